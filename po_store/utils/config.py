import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from po_store.utils.logging_setup import get_logger

logger = get_logger("config")


class ConfigError(ValueError):
    """Raised when a configuration file or value cannot be used."""


class ConfigManager:
    """JSON-backed configuration with a default file and a user override file.

    Values are looked up with dot notation, e.g. ``i18n.locale_directory``.
    The user config takes precedence over the default config, key by key.
    """

    def __init__(self, default_config_path=None, user_config_path=None):
        self.default_config_path = Path(default_config_path) if default_config_path else None
        self.user_config_path = Path(user_config_path) if user_config_path else None
        self.config = self.load_config()

    @property
    def config_dir(self) -> Optional[Path]:
        """Directory relative paths in the config are resolved against."""
        for path in (self.user_config_path, self.default_config_path):
            if path is not None:
                return path.resolve().parent
        return None

    def _load_file(self, path: Optional[Path]) -> dict:
        if path is None or not path.exists():
            return {}
        try:
            with open(path, 'r', encoding='utf-8') as f:
                loaded = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in config file {path}: {e}") from e
        if not isinstance(loaded, dict):
            raise ConfigError(f"Config file {path} must contain a JSON object")
        logger.debug(f"Loaded config from {path}")
        return loaded

    def load_config(self):
        """Load configuration from files, merging user config with defaults."""
        default_config = self._load_file(self.default_config_path)
        user_config = self._load_file(self.user_config_path)
        return self.merge_configs(default_config, user_config)

    def merge_configs(self, default, user):
        """Recursively merge user config with default config."""
        merged = default.copy()

        for key, value in user.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = self.merge_configs(merged[key], value)
            else:
                merged[key] = value

        return merged

    def save_user_config(self, config):
        """Save user configuration to file."""
        if self.user_config_path is None:
            raise ConfigError("No user config path set, cannot save configuration")
        self.user_config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.user_config_path, 'w', encoding='utf-8') as f:
            json.dump(config, f, indent=4)
        self.config = self.load_config()

    def get(self, key, default=None):
        """Get a configuration value using dot notation."""
        try:
            value = self.config
            for k in key.split('.'):
                value = value[k]
            return value
        except (KeyError, TypeError):
            return default

    def set(self, key, value):
        """Set a configuration value using dot notation."""
        keys = key.split('.')
        current = self.config

        # Navigate to the correct nested location
        for k in keys[:-1]:
            if k not in current:
                current[k] = {}
            current = current[k]

        current[keys[-1]] = value
        self.save_user_config(self.config)


def _as_string_tuple(key, value) -> Tuple[str, ...]:
    # Lists may also be given the way older configs did, as "a;b;c"
    if value is None:
        return ()
    if isinstance(value, str):
        value = value.split(";")
    if not isinstance(value, (list, tuple)):
        raise ConfigError(f"Invalid value for {key}: expected a list or ';'-separated string")
    return tuple(str(v).strip() for v in value if str(v).strip() != "")


def _as_bool(key, value) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    if value is None:
        return False
    raise ConfigError(f"Invalid value for {key}: expected a boolean")


@dataclass(frozen=True)
class I18nSettings:
    """Immutable settings passed into the repository and the merger."""
    locale_directory: str = "locale"
    locale_filename: str = "messages"
    locale_other_files: Tuple[str, ...] = ()
    available_languages: Tuple[str, ...] = ()
    generate_template_per_file: bool = False
    message_context_enabled_from_comment: bool = False

    PREFIX = "i18n."

    @classmethod
    def from_config(cls, config_manager: ConfigManager) -> 'I18nSettings':
        """Build settings from the ``i18n`` section of a ConfigManager.

        Args:
            config_manager: Loaded configuration

        Returns:
            I18nSettings: The resolved settings
        """
        def get(name, default=None):
            return config_manager.get(cls.PREFIX + name, default)

        locale_directory = get("locale_directory", cls.locale_directory)
        if not isinstance(locale_directory, str) or locale_directory.strip() == "":
            raise ConfigError(f"Invalid location provided for {cls.PREFIX}locale_directory: {locale_directory!r}")
        locale_directory = locale_directory.strip()
        if "{HOME}" in locale_directory:
            locale_directory = locale_directory.replace("{HOME}", os.path.expanduser("~"))
        if not os.path.isabs(locale_directory) and config_manager.config_dir is not None:
            locale_directory = str(config_manager.config_dir / locale_directory)

        locale_filename = get("locale_filename", cls.locale_filename)
        if not isinstance(locale_filename, str) or locale_filename.strip() == "":
            raise ConfigError(f"Invalid value for {cls.PREFIX}locale_filename: {locale_filename!r}")

        return cls(
            locale_directory=locale_directory,
            locale_filename=locale_filename.strip(),
            locale_other_files=_as_string_tuple(cls.PREFIX + "locale_other_files", get("locale_other_files")),
            available_languages=_as_string_tuple(cls.PREFIX + "available_languages", get("available_languages")),
            generate_template_per_file=_as_bool(cls.PREFIX + "generate_template_per_file",
                                                get("generate_template_per_file")),
            message_context_enabled_from_comment=_as_bool(cls.PREFIX + "message_context_enabled_from_comment",
                                                          get("message_context_enabled_from_comment")),
        )

    @classmethod
    def from_file(cls, config_path) -> 'I18nSettings':
        """Convenience constructor for a single JSON config file."""
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")
        return cls.from_config(ConfigManager(default_config_path=config_path))
