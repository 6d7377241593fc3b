import logging
import os
import sys

ROOT_LOGGER_NAME = "po_store"
LOG_LEVEL_ENV_VAR = "PO_STORE_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def _configure_root_logger():
    global _configured
    if _configured:
        return
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    level_name = os.environ.get(LOG_LEVEL_ENV_VAR, "INFO").upper()
    level = getattr(logging, level_name, None)
    if not isinstance(level, int):
        level = logging.INFO
    root_logger.setLevel(level)
    if not root_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(handler)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Get a logger namespaced under the po_store root logger.

    Args:
        name: Short module name, e.g. "po_codec"

    Returns:
        logging.Logger: The configured logger
    """
    _configure_root_logger()
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
