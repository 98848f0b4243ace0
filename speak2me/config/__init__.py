"""YAML configuration for Speak2Me.

Values are addressed with dot paths such as ``recognition.language``. A
config file only needs the keys it changes; everything else comes from
`DEFAULTS`.
"""

import copy
import os
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "speak2me.yaml"

DEFAULTS: Dict[str, Any] = {
    "recognition": {
        "language": "de-DE",
        "restart_delay_seconds": 0.1,
        "retry_backoff_seconds": 0.5,
    },
    "audio": {
        "sample_rate": 16000,
        "chunk_size": 1024,
        "channels": 1,
    },
    "google_cloud": {
        "credentials_path": None,
    },
    "assessment": {
        "model": "gpt-4o",
        "api_key_env": "OPENAI_API_KEY",
        "target_level": "A1",
    },
    "logging": {
        "level": "INFO",
        "file_path": "logs/speak2me.log",
        "console_output": True,
    },
}

# Relative values of these keys are taken relative to the config file
PATH_KEYS = ("google_cloud.credentials_path", "logging.file_path")

_MISSING = object()


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge `override` into a copy of `base`."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Speak2MeConfig:
    """Loads `speak2me.yaml` (or an explicit file) on top of the defaults."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration.

        Args:
            config_path: YAML file to load. Without it, `speak2me.yaml` in the
                working directory is used if present, else the defaults.

        Raises:
            FileNotFoundError: An explicit config file does not exist
            ValueError: The file is not a non-empty YAML mapping
        """
        self.config_file: Optional[Path] = None
        if config_path:
            self.config_file = Path(config_path)
            if not self.config_file.is_file():
                raise FileNotFoundError(f"Configuration file not found: {self.config_file}")
        elif Path(DEFAULT_CONFIG_FILE).is_file():
            self.config_file = Path(DEFAULT_CONFIG_FILE)

        if self.config_file is None:
            logger.info("No configuration file, using built-in defaults")
            self.config = copy.deepcopy(DEFAULTS)
            return

        logger.info(f"Reading configuration from {self.config_file}")
        self.config = _merge(DEFAULTS, self._read_file())
        self._anchor_paths()

    def _read_file(self) -> Dict[str, Any]:
        try:
            loaded = yaml.safe_load(self.config_file.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {self.config_file}: {e}") from e

        if loaded is None:
            raise ValueError(f"Configuration file {self.config_file} is empty")
        if not isinstance(loaded, dict):
            raise ValueError(f"Configuration file {self.config_file} must contain a mapping")
        return loaded

    def _anchor_paths(self) -> None:
        base = self.config_file.parent
        for key_path in PATH_KEYS:
            value = self.get(key_path)
            if value and not os.path.isabs(value):
                self.set(key_path, str(base / value))

    def _walk(self, key_path: str, create: bool = False):
        """Return (parent dict, last key) for a dot path, or (None, key) if absent."""
        *parents, leaf = key_path.split(".")
        node = self.config
        for key in parents:
            child = node.get(key, _MISSING)
            if not isinstance(child, dict):
                if not create:
                    return None, leaf
                child = node[key] = {}
            node = child
        return node, leaf

    def get(self, key_path: str, default: Any = None) -> Any:
        """Value at a dot path (e.g. 'audio.sample_rate'), or `default`."""
        node, leaf = self._walk(key_path)
        if node is None:
            return default
        return node.get(leaf, default)

    def set(self, key_path: str, value: Any) -> None:
        """Set the value at a dot path, creating intermediate sections."""
        node, leaf = self._walk(key_path, create=True)
        node[leaf] = value
        logger.debug(f"Config {key_path} = {value!r}")

    def get_google_credentials_path(self) -> Optional[str]:
        """Absolute path of the service-account file, or None if not configured."""
        path = self.get("google_cloud.credentials_path")
        return str(Path(path).absolute()) if path else None

    def get_assessment_api_key(self) -> Optional[str]:
        """Assessment API key, read from the environment variable named in the config."""
        return os.environ.get(self.get("assessment.api_key_env", "OPENAI_API_KEY"))
