import os
from typing import List

from babel import Locale, UnknownLocaleError

from po_store.translation import Language
from po_store.utils.logging_setup import get_logger

logger = get_logger("language_discovery")


def resolve_culture(tag: str) -> Locale:
    """Resolve a language tag such as "sv-SE", "pt_BR" or "fr" to a babel Locale.

    Raises:
        babel.UnknownLocaleError: If no locale data exists for the tag
        ValueError: If the tag is not well formed
    """
    if not tag or not tag.strip():
        raise ValueError("Empty language tag")
    sep = "-" if "-" in tag else "_"
    return Locale.parse(tag, sep=sep)


def is_valid_language_tag(tag: str) -> bool:
    try:
        resolve_culture(tag)
        return True
    except (UnknownLocaleError, ValueError):
        return False


class LanguageDiscovery:
    """Finds the languages present in a locale directory.

    Each sub-directory named after a resolvable culture is a language. Directories
    with other names are ignored.
    """

    @staticmethod
    def discover(locale_dir: str) -> List[Language]:
        """List the languages found in the locale directory.

        Args:
            locale_dir (str): Path to the locale directory

        Returns:
            List[Language]: Languages in directory name order
        """
        if not os.path.isdir(locale_dir):
            logger.warning(f"Locale directory does not exist: {locale_dir}")
            return []

        languages = []
        for name in sorted(os.listdir(locale_dir)):
            if not os.path.isdir(os.path.join(locale_dir, name)):
                continue
            try:
                culture = resolve_culture(name)
            except (UnknownLocaleError, ValueError):
                logger.debug(f"Ignoring directory that is not a valid culture: {name}")
                continue
            languages.append(Language(name, culture))

        logger.debug(f"Found {len(languages)} languages in {locale_dir}")
        return languages
