import argparse
import sys
from dataclasses import replace

from po_store.utils.config import ConfigError, ConfigManager, I18nSettings
from po_store.utils.logging_setup import get_logger

from .po_translation_repository import POTranslationRepository
from .template_inventory import load_template_items
from .translation_merger import TranslationMerger

logger = get_logger("run")

DEFAULT_CONFIG_FILE = "po_store.json"


class Run:
    def __init__(self, args):
        self.args = args
        self.settings = self.load_settings(args)
        self.repository = POTranslationRepository(self.settings)

    @staticmethod
    def load_settings(args) -> I18nSettings:
        config_manager = ConfigManager(default_config_path=args.config, user_config_path=args.user_config)
        settings = I18nSettings.from_config(config_manager)
        if args.locale_dir:
            settings = replace(settings, locale_directory=args.locale_dir)
        return settings

    def list_languages(self):
        for language in self.repository.get_available_languages():
            print(language.language_short_tag)
        return 0

    def merge(self):
        items = load_template_items(self.args.template, self.settings)
        if self.args.write_template:
            self.repository.save_template(items)
        results = TranslationMerger(self.repository, self.settings).merge_all_translation(items)
        print(results.format_status_report())
        return 0

    def execute(self) -> int:
        if self.args.command == "languages":
            return self.list_languages()
        if self.args.command == "merge":
            return self.merge()
        raise ValueError(f"Unknown command: {self.args.command}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="po-store", description="Maintain gettext PO translation files.")
    parser.add_argument("--config", default=DEFAULT_CONFIG_FILE,
                        help=f"JSON config file (default: {DEFAULT_CONFIG_FILE})")
    parser.add_argument("--user-config", default=None, help="JSON file overriding values of the config file")
    parser.add_argument("--locale-dir", default=None, help="Locale directory, overrides the config")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("languages", help="List the available languages")

    merge_parser = subparsers.add_parser("merge", help="Merge a template from an extractor into every language")
    merge_parser.add_argument("template", help="Template (.pot) file listing the current source strings")
    merge_parser.add_argument("--write-template", action="store_true",
                              help="Also rewrite the store's own template file")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return Run(args).execute()
    except (ConfigError, OSError) as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
