"""
Settings sources for loading meridian's own settings.
"""

import os
import yaml
from abc import ABC, abstractmethod
from typing import Dict, Any, Mapping, Optional, Union
from pathlib import Path

from ...infrastructure.connectors import parse_value
from ...infrastructure.exceptions import ConfigurationError

# Top-level sections of MeridianSettings, used to split MERIDIAN_<SECTION>_<FIELD>
SECTIONS = ("fetcher", "cache", "resolver", "logging")


class SettingsSource(ABC):
    """Abstract base class for settings sources."""

    @abstractmethod
    def load(self) -> Dict[str, Any]:
        """Load settings data from the source."""
        pass

    @abstractmethod
    def get_priority(self) -> int:
        """Get the priority of this source (higher number = higher priority)."""
        pass


class YAMLSettingsSource(SettingsSource):
    """YAML file settings source."""

    def __init__(self, file_path: Union[str, Path], priority: int = 100):
        self.file_path = Path(file_path)
        self.priority = priority

    def load(self) -> Dict[str, Any]:
        """Load settings from YAML file."""
        if not self.file_path.exists():
            raise ConfigurationError(
                f"Settings file not found: {self.file_path}",
                config_path=str(self.file_path),
                error_code="CONFIG_FILE_NOT_FOUND"
            )

        try:
            with open(self.file_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in settings file: {self.file_path}",
                config_path=str(self.file_path),
                error_code="INVALID_YAML",
                context={"yaml_error": str(e)},
                cause=e
            ) from e
        except OSError as e:
            raise ConfigurationError(
                f"Error reading settings file: {self.file_path}",
                config_path=str(self.file_path),
                error_code="CONFIG_READ_ERROR",
                context={"error": str(e)},
                cause=e
            ) from e

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Settings file must contain a mapping: {self.file_path}",
                config_path=str(self.file_path),
                error_code="INVALID_YAML"
            )
        return data

    def get_priority(self) -> int:
        return self.priority


class EnvironmentSettingsSource(SettingsSource):
    """
    Environment variable settings source.

    ``MERIDIAN_CACHE_TTL_SECONDS=60`` becomes ``{"cache": {"ttl_seconds": 60}}``;
    a double underscore separates nesting levels explicitly
    (``MERIDIAN_FETCHER__MAX_WORKERS``). ``MERIDIAN_PATHS`` is always a list.
    """

    def __init__(
        self,
        prefix: str = "MERIDIAN_",
        priority: int = 200,
        environ: Optional[Mapping[str, str]] = None
    ):
        self.prefix = prefix.upper()
        self.priority = priority
        self.environ = environ

    def load(self) -> Dict[str, Any]:
        """Load settings from environment variables."""
        environ = self.environ if self.environ is not None else os.environ
        config: Dict[str, Any] = {}

        for key, value in environ.items():
            if key.upper().startswith(self.prefix):
                # Remove prefix and convert to nested dict
                config_key = key[len(self.prefix):].lower()
                if config_key:
                    self._set_nested_value(config, config_key, self._parse_value(value, config_key))

        return config

    def _set_nested_value(self, config: Dict[str, Any], key: str, value: Any) -> None:
        """Set a nested settings value using underscore notation."""
        if "__" in key:
            parts = [p for p in key.split("__") if p]
        else:
            section, _, rest = key.partition("_")
            parts = [section, rest] if section in SECTIONS and rest else [key]

        current = config
        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]

        current[parts[-1]] = value

    def _parse_value(self, value: str, key: str = "") -> Any:
        """Parse environment variable value to appropriate type."""
        # Known list fields, even single values become lists
        if key in ("paths", "fetcher_overlay_suffixes", "fetcher__overlay_suffixes"):
            return [item.strip() for item in value.split(",") if item.strip()]
        return parse_value(value)

    def get_priority(self) -> int:
        return self.priority
