"""Simple YAML configuration loader for NoteDrop."""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "notedrop" / "notedrop.yaml"
DEFAULT_DATA_DIRECTORY = Path.home() / ".local" / "share" / "notedrop"

DEFAULTS: Dict[str, Any] = {
    "storage": {
        "data_directory": str(DEFAULT_DATA_DIRECTORY),
        "notes_directory": str(Path.home() / "Documents" / "NoteDrop"),
        "legacy_data_directory": None,
    },
    "notion": {
        "token": "",
        "page_id": "",
        "api_version": "2022-06-28",
        "timeout_seconds": 15.0,
    },
    "transcription": {
        "api_key": "",
        "url": "wss://stt-rt.soniox.com/transcribe-websocket",
        "model": "stt-rt-v4",
        "language_hints": ["en"],
        "finalize_grace_seconds": 0.7,
        "frame_queue_size": 100,
    },
    "audio": {
        "device_index": None,
        "buffer_ms": 50,
    },
    "logging": {
        "level": "INFO",
        "file_path": str(DEFAULT_DATA_DIRECTORY / "logs" / "notedrop.log"),
        "console_output": True,
    },
}

# Secrets may come from the environment instead of the config file.
ENV_OVERRIDES = {
    "NOTEDROP_NOTION_TOKEN": "notion.token",
    "NOTEDROP_TRANSCRIPTION_API_KEY": "transcription.api_key",
}

_PATH_KEYS = (
    "storage.data_directory",
    "storage.notes_directory",
    "storage.legacy_data_directory",
    "logging.file_path",
)


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class NoteDropConfig:
    """NoteDrop configuration loader."""

    def __init__(self, config_path: Optional[str] = None, environ: Optional[Dict[str, str]] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, uses
                        ~/.config/notedrop/notedrop.yaml when it exists and
                        built-in defaults otherwise.
            environ: Environment used for secret overrides; os.environ if None

        Raises:
            FileNotFoundError: If an explicit config_path does not exist
            ConfigurationError: If the file is not valid YAML
        """
        if config_path is not None:
            self.config_file: Optional[Path] = Path(config_path).expanduser()
            if not self.config_file.exists():
                raise FileNotFoundError(f"Configuration file not found: {self.config_file}")
        elif DEFAULT_CONFIG_PATH.exists():
            self.config_file = DEFAULT_CONFIG_PATH
        else:
            self.config_file = None

        if self.config_file is not None:
            logger.info(f"Loading configuration from: {self.config_file}")
            self.config = _merge(DEFAULTS, self._load_config())
        else:
            logger.info("No configuration file, using defaults")
            self.config = copy.deepcopy(DEFAULTS)

        self._apply_env(os.environ if environ is None else environ)

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to read configuration: {e}") from e

        if config is None:
            return {}
        if not isinstance(config, dict):
            raise ConfigurationError("Configuration file must contain a mapping")

        self._resolve_paths(config)
        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent
        for key_path in _PATH_KEYS:
            section, key = key_path.split('.')
            value = config.get(section, {}).get(key) if isinstance(config.get(section), dict) else None
            if not value:
                continue
            value = os.path.expanduser(str(value))
            if not os.path.isabs(value):
                value = str(config_dir / value)
            config[section][key] = value

    def _apply_env(self, environ: Dict[str, str]) -> None:
        for variable, key_path in ENV_OVERRIDES.items():
            value = environ.get(variable)
            if value:
                self.set(key_path, value)
                logger.debug(f"Configuration key '{key_path}' taken from ${variable}")

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'notion.page_id').

        Args:
            key_path: Dot-separated key path (e.g., 'transcription.model')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key_path: Dot-separated path to config value (e.g., 'notion.token')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        config_dict[keys[-1]] = value
        if 'token' not in key_path and 'api_key' not in key_path:
            logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_data_directory(self) -> str:
        """Get directory holding the pending-note queue."""
        return str(Path(self.get('storage.data_directory')).expanduser().absolute())

    def get_notes_directory(self) -> str:
        """Get directory for locally saved note files."""
        return str(Path(self.get('storage.notes_directory')).expanduser().absolute())
