from typing import Dict, List

from po_store.utils.config import I18nSettings
from po_store.utils.logging_setup import get_logger

from .merge_results import LanguageMergeStatus, MergeResults
from .translation import TemplateItem, Translation, TranslationItem
from .translation_repository_base import TranslationRepositoryBase

logger = get_logger("translation_merger")


class TranslationMerger:
    """Merges freshly extracted source strings into the stored translations.

    Human translations are never touched. Strings that disappeared from the sources
    lose their references and are kept as orphans.
    """

    def __init__(self, repository: TranslationRepositoryBase, settings: I18nSettings):
        self._repository = repository
        self._settings = settings

    def merge_translation(self, src: Dict[str, TemplateItem], dst: Translation) -> LanguageMergeStatus:
        """Merge the source strings into a translation and save it.

        1. Every item of dst loses its references, making it an orphan for now.
        2. Source strings missing from dst are added with an empty translation.
        3. Source strings present in dst get msgid, references and comments refreshed.

        Args:
            src: Source strings by message key
            dst: The stored translation, modified in place

        Returns:
            LanguageMergeStatus: Counts of new, refreshed and orphaned items
        """
        status = LanguageMergeStatus(dst.language_short_tag)

        for dst_item in dst.items.values():
            dst_item.references = []

        file_name_list: List[str] = []

        for src_item in src.values():
            if src_item.msg_key in dst:
                status.refreshed_items += 1
            else:
                status.new_items += 1
            dst_item = dst.get_or_add(src_item.msg_key, lambda key: TranslationItem(msg_key=key, message=""))
            dst_item.msgid = src_item.msgid
            dst_item.references = list(src_item.references)
            dst_item.extracted_comments = list(src_item.comments)

            if self._settings.generate_template_per_file:
                if src_item.filename and src_item.filename not in file_name_list:
                    file_name_list.append(src_item.filename)
                dst_item.filename = src_item.filename

        status.orphaned_items = len(dst.orphans())
        status.total_items = len(dst)

        status.files_changed = self._repository.save_translation(dst, file_name_list)
        logger.info(f"Merged {len(src)} strings into {dst.language_short_tag}: "
                    f"{status.new_items} new, {status.orphaned_items} orphaned")
        return status

    def merge_all_translation(self, items: Dict[str, TemplateItem]) -> MergeResults:
        """Merge the source strings into every available language."""
        results = MergeResults(total_strings=len(items))
        file_names = list(dict.fromkeys(item.filename for item in items.values() if item.filename))

        for language in self._repository.get_available_languages():
            translation = self._repository.get_translation(language.language_short_tag, file_names,
                                                           loading_cache=False)
            results.add(self.merge_translation(items, translation))

        return results
