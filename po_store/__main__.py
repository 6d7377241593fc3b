import sys

from po_store.run import main

sys.exit(main())
