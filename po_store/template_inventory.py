"""Loading of source string inventories written by gettext extractors.

Extractors such as xgettext or pybabel write a template (.pot) file. Its entries
are turned into TemplateItems keyed the same way this store keys translations.
"""

import os
from typing import Dict, Optional

import polib

from po_store.utils.config import I18nSettings
from po_store.utils.logging_setup import get_logger

from .translation import TemplateItem

logger = get_logger("template_inventory")


def load_template_items(pot_path: str, settings: Optional[I18nSettings] = None,
                        filename: Optional[str] = None) -> Dict[str, TemplateItem]:
    """Read a template file into TemplateItems by message key.

    Obsolete entries and the header are skipped. With templates generated per
    file, items are assigned to ``filename``, or to the template's own base name
    when not given.

    Args:
        pot_path: Path to the template file
        settings: Store settings, defaults apply when None
        filename: Owning file name for every item

    Returns:
        Dict[str, TemplateItem]: Items by message key

    Raises:
        OSError: If the file cannot be read
    """
    settings = settings or I18nSettings()
    if not os.path.isfile(pot_path):
        raise FileNotFoundError(f"Template file not found: {pot_path}")

    if settings.generate_template_per_file and not filename:
        filename = os.path.splitext(os.path.basename(pot_path))[0]

    pot = polib.pofile(pot_path, encoding="utf-8")
    items: Dict[str, TemplateItem] = {}
    for entry in pot:
        if entry.obsolete or entry.msgid == "":
            continue
        if entry.msgid_plural:
            logger.warning(f"Plural forms are not supported, using the singular of {entry.msgid!r}")
        item = TemplateItem.from_polib_entry(
            entry, message_context_enabled=settings.message_context_enabled_from_comment, filename=filename)
        existing = items.get(item.msg_key)
        if existing is None:
            items[item.msg_key] = item
        else:
            existing.references.extend(r for r in item.references if r not in existing.references)

    logger.info(f"Loaded {len(items)} source strings from {pot_path}")
    return items
