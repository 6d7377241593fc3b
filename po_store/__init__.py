from .po_translation_repository import POTranslationRepository
from .translation import Language, ReferenceContext, TemplateItem, Translation, TranslationItem
from .translation_merger import TranslationMerger
from .utils.config import ConfigManager, I18nSettings
