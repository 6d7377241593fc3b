import os
import shutil
from typing import Iterable, List

from po_store.utils.logging_setup import get_logger

logger = get_logger("atomic_file_writer")

BACKUP_SUFFIX = ".backup"
TEMP_SUFFIX = ".temp"

# Header lines holding timestamps, ignored when deciding whether content changed
TRANSLATION_HEADER_LINES = 5
TEMPLATE_HEADER_LINES = 4


def get_backup_path(path: str) -> str:
    return f"{path}{BACKUP_SUFFIX}"


def get_temp_path(path: str) -> str:
    return f"{path}{TEMP_SUFFIX}"


def create_file_if_not_exists(path: str):
    """Create the file, and any missing parent directories, if it does not exist."""
    if os.path.exists(path):
        return
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "a", encoding="utf-8"):
        pass
    logger.debug(f"Created empty file {path}")


def _read_lines(path: str) -> List[str]:
    with open(path, "r", encoding="utf-8") as f:
        return f.read().splitlines()


def files_the_same(new_path: str, old_path: str, skip: int = TEMPLATE_HEADER_LINES) -> bool:
    """Compare two files line by line, ignoring the first ``skip`` lines.

    An old file with nothing past the skipped lines never counts as the same,
    so a freshly created empty destination is always written.
    """
    if not os.path.exists(new_path) or not os.path.exists(old_path):
        return False
    new_content = _read_lines(new_path)[skip:]
    old_content = _read_lines(old_path)[skip:]
    return len(old_content) != 0 and new_content == old_content


def create_backup_file(path: str):
    """Copy the file to its backup path. Only one backup generation is kept.

    The file itself stays in place until the new content is moved over it.
    """
    if not os.path.exists(path):
        return
    backup_path = get_backup_path(path)
    if os.path.exists(backup_path):
        os.remove(backup_path)
    shutil.copy2(path, backup_path)
    logger.debug(f"Backed up {path} to {backup_path}")


def _write_temp_file(temp_path: str, lines: Iterable[str]):
    try:
        with open(temp_path, "w", encoding="utf-8", newline="\n") as f:
            for line in lines:
                f.write(line)
                f.write("\n")
            f.flush()
            os.fsync(f.fileno())
    except BaseException:
        if os.path.exists(temp_path):
            os.remove(temp_path)
        raise


def write_lines_atomically(path: str, lines: Iterable[str], skip: int = TEMPLATE_HEADER_LINES) -> bool:
    """Replace the file at ``path`` with the given lines.

    The content is written to a temp file next to the destination first. When it
    matches the current content (ignoring the first ``skip`` lines) the temp file is
    discarded and the destination is left untouched. Otherwise the current file is
    rotated to the backup path and the temp file moved into its place, so readers
    only ever see the old or the new content in full.

    Args:
        path: Destination file
        lines: Lines to write, without line endings
        skip: Number of leading header lines to ignore in the comparison

    Returns:
        bool: True if the destination was replaced, False if it was already up to date
    """
    create_file_if_not_exists(path)
    temp_path = get_temp_path(path)
    logger.debug(f"Writing file: {temp_path}")
    _write_temp_file(temp_path, lines)

    if files_the_same(temp_path, path, skip):
        os.remove(temp_path)
        logger.debug(f"No changes for {path}")
        return False

    create_backup_file(path)
    os.replace(temp_path, path)
    logger.info(f"Wrote {path}")
    return True
