import os
from itertools import groupby
from typing import Dict, List, Optional

from po_store.utils.config import I18nSettings
from po_store.utils.language_discovery import LanguageDiscovery
from po_store.utils.logging_setup import get_logger

from . import po_codec
from .atomic_file_writer import TEMPLATE_HEADER_LINES, TRANSLATION_HEADER_LINES, write_lines_atomically
from .translation import Language, TemplateItem, Translation
from .translation_repository_base import CacheDependency, TranslationRepositoryBase

logger = get_logger("po_translation_repository")

PO_EXTENSION = ".po"
POT_EXTENSION = ".pot"
POT_DATE_LINE_INDEX = 3


class POTranslationRepository(TranslationRepositoryBase):
    """Translation store backed by PO files laid out as <locale dir>/<langtag>/<filename>.po.

    The template lives at <locale dir>/<filename>.pot, or one template per source
    file group when templates are generated per file.
    """

    def __init__(self, settings: I18nSettings, discovery=None):
        """Initialize the repository.

        Args:
            settings: Store settings
            discovery: Object with a discover(locale_dir) method listing the languages
                in the locale directory, used when no languages are configured
        """
        self._settings = settings
        self._discovery = discovery or LanguageDiscovery()

    @property
    def settings(self) -> I18nSettings:
        return self._settings

    def get_absolute_locale_dir(self) -> str:
        return os.path.abspath(self._settings.locale_directory)

    def get_po_file_path(self, langtag: str, filename: Optional[str] = None) -> str:
        """Get the path to the PO file of a language.

        Args:
            langtag: Language tag
            filename: File name without extension, the configured locale filename if not set

        Returns:
            str: Path to the PO file
        """
        if not filename:
            filename = self._settings.locale_filename
        return os.path.join(self.get_absolute_locale_dir(), langtag, filename + PO_EXTENSION)

    def get_pot_file_path(self, filename: Optional[str] = None) -> str:
        if not filename:
            filename = self._settings.locale_filename
        return os.path.join(self.get_absolute_locale_dir(), filename + POT_EXTENSION)

    def _configured_languages(self) -> List[str]:
        return [language for language in self._settings.available_languages if language]

    # Loading

    def get_translation(self, langtag: str, file_names: Optional[List[str]] = None,
                        loading_cache: bool = True) -> Translation:
        translation = Translation(Language(langtag))
        per_file = self._settings.generate_template_per_file

        paths = []
        if not per_file or loading_cache:
            paths.append(self.get_po_file_path(langtag))
        for other_file in self._settings.locale_other_files:
            if other_file:
                paths.append(self.get_po_file_path(langtag, other_file))
        if per_file and not loading_cache:
            for file_name in file_names or []:
                paths.append(self.get_po_file_path(langtag, file_name))

        for path in paths:
            if os.path.exists(path):
                po_codec.parse_file(path, translation)
            else:
                logger.debug(f"No translation file at {path}")

        logger.debug(f"Loaded {len(translation)} items for {langtag}")
        return translation

    def get_available_languages(self) -> List[Language]:
        """Get the configured languages, or the languages found in the locale directory."""
        languages = self._configured_languages()
        if languages:
            return [Language(language) for language in languages]
        return self._discovery.discover(self.get_absolute_locale_dir())

    def translation_exists(self, langtag: str) -> bool:
        """Check the configured languages, or whether the PO file exists if none are configured."""
        languages = self._configured_languages()
        if languages:
            return langtag in languages
        return os.path.isfile(self.get_po_file_path(langtag))

    def get_cache_dependency_for_single_language(self, langtag: str) -> Optional[CacheDependency]:
        path = self.get_po_file_path(langtag)
        if not os.path.exists(path):
            return None
        return CacheDependency(path)

    def get_cache_dependency_for_all_languages(self) -> CacheDependency:
        return CacheDependency(self.get_absolute_locale_dir(), is_directory=True)

    # Saving

    def _read_pot_date(self, template_path: str) -> Optional[str]:
        """The POT-Creation-Date line of an existing template, reused verbatim."""
        if not os.path.exists(template_path):
            return None
        with open(template_path, "r", encoding="utf-8") as f:
            for index, line in enumerate(f):
                if index == POT_DATE_LINE_INDEX:
                    return line.rstrip("\r\n")
        return None

    def save_translation(self, translation: Translation, file_names: Optional[List[str]] = None) -> bool:
        """Save a translation to <locale dir>/<langtag>/<filename>.po, backing up the previous version.

        The main file always receives every item. When templates are generated per file,
        each name in ``file_names`` also gets a file holding only that file's items.
        """
        langtag = translation.language_short_tag
        main_filename = self._settings.locale_filename
        targets = [name for name in dict.fromkeys(file_names or []) if name and name != main_filename]
        targets.append(main_filename)

        changed = False
        for target in targets:
            if target == main_filename or not self._settings.generate_template_per_file:
                items = list(translation.items.values())
            else:
                items = [item for item in translation.items.values() if item.filename == target]

            pot_date = self._read_pot_date(self.get_pot_file_path(target))
            if pot_date is None:
                pot_date = f'"POT-Creation-Date: {po_codec.format_timestamp()}\\n"'

            lines = po_codec.serialize_translation(
                items, pot_date=pot_date,
                message_context_enabled=self._settings.message_context_enabled_from_comment)
            if write_lines_atomically(self.get_po_file_path(langtag, target), lines, TRANSLATION_HEADER_LINES):
                changed = True
        return changed

    def save_template(self, items: Dict[str, TemplateItem]) -> bool:
        """Save the template(s) listing every translatable string of the project."""
        if self._settings.generate_template_per_file:
            def by_filename(item):
                return item.filename or ""
            for filename, group in groupby(sorted(items.values(), key=by_filename), key=by_filename):
                self._save_template({item.msg_key: item for item in group}, filename)
            return True
        return self._save_template(items, None)

    def _save_template(self, items: Dict[str, TemplateItem], filename: Optional[str]) -> bool:
        lines = po_codec.serialize_template(
            items, message_context_enabled=self._settings.message_context_enabled_from_comment)
        write_lines_atomically(self.get_pot_file_path(filename), lines, TEMPLATE_HEADER_LINES)
        return True
