from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional

from .translation import Language, TemplateItem, Translation


@dataclass(frozen=True)
class CacheDependency:
    """A filesystem location whose changes invalidate cached translations."""
    path: str
    is_directory: bool = False


class TranslationRepositoryBase(ABC):
    """Abstract base class for translation stores.

    A store loads and saves the translations of each language and the template
    listing every translatable string. The merger only talks to this interface.
    """

    @abstractmethod
    def get_translation(self, langtag: str, file_names: Optional[List[str]] = None,
                        loading_cache: bool = True) -> Translation:
        """Load the translation for a language.

        Args:
            langtag: Language tag, e.g. "sv-SE"
            file_names: Per-file template names to load in addition to the main file
            loading_cache: True when loading for lookups rather than for a merge

        Returns:
            Translation: The translation, empty if no file exists yet
        """
        pass

    @abstractmethod
    def get_available_languages(self) -> List[Language]:
        """Get the languages this store holds translations for."""
        pass

    @abstractmethod
    def translation_exists(self, langtag: str) -> bool:
        """Check whether a translation exists for the language tag."""
        pass

    @abstractmethod
    def save_translation(self, translation: Translation, file_names: Optional[List[str]] = None) -> bool:
        """Save a translation, keeping a backup of the previous version.

        Returns:
            bool: True if any file changed
        """
        pass

    @abstractmethod
    def save_template(self, items: Dict[str, TemplateItem]) -> bool:
        """Save the template holding all strings of the project."""
        pass

    @abstractmethod
    def get_cache_dependency_for_single_language(self, langtag: str) -> Optional[CacheDependency]:
        pass

    @abstractmethod
    def get_cache_dependency_for_all_languages(self) -> CacheDependency:
        pass
