"""
Settings builder for creating MeridianSettings instances.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Union
from pathlib import Path

from pydantic import ValidationError

from ...infrastructure.exceptions import ConfigurationValidationError
from .models import MeridianSettings
from .sources import SettingsSource, YAMLSettingsSource, EnvironmentSettingsSource

logger = logging.getLogger(__name__)


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def validate_settings(data: Dict[str, Any]) -> MeridianSettings:
    """
    Validate merged settings data.

    Raises:
        ConfigurationValidationError: listing every validation error
    """
    try:
        return MeridianSettings(**data)
    except ValidationError as e:
        errors = [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
            for err in e.errors()
        ]
        raise ConfigurationValidationError(
            f"Settings validation failed with {len(errors)} errors",
            validation_errors=errors,
            cause=e
        ) from e


class SettingsBuilder:
    """
    Builder for creating MeridianSettings from multiple sources.

    Sources are merged from lowest to highest priority; with no sources the
    builder falls back to the ``MERIDIAN_`` environment source.
    """

    def __init__(self):
        self._sources: List[SettingsSource] = []
        self._overrides: Dict[str, Any] = {}

    def add_yaml_source(self, path: Union[str, Path], priority: int = 100) -> 'SettingsBuilder':
        """
        Add a YAML settings source.

        Args:
            path: Path to the YAML settings file
            priority: Priority of this source (higher = more important)
        """
        self._sources.append(YAMLSettingsSource(path, priority))
        return self

    def add_environment_source(
        self,
        prefix: str = "MERIDIAN_",
        priority: int = 200,
        environ: Optional[Mapping[str, str]] = None
    ) -> 'SettingsBuilder':
        """
        Add environment variable settings source.

        Args:
            prefix: Environment variable prefix (default: MERIDIAN_)
            priority: Priority of this source (higher = more important)
            environ: Mapping to read instead of ``os.environ``
        """
        self._sources.append(EnvironmentSettingsSource(prefix, priority, environ))
        return self

    def add_source(self, source: SettingsSource) -> 'SettingsBuilder':
        """Add a custom settings source."""
        self._sources.append(source)
        return self

    def add_defaults(self) -> 'SettingsBuilder':
        """Add default settings sources (environment variables with MERIDIAN_ prefix)."""
        return self.add_environment_source("MERIDIAN_", 200)

    def with_overrides(self, overrides: Dict[str, Any]) -> 'SettingsBuilder':
        """Programmatic values applied above every source."""
        self._overrides = deep_merge(self._overrides, overrides)
        return self

    def load_raw(self) -> Dict[str, Any]:
        """Load and merge raw data from all sources, without validation."""
        if not self._sources:
            self.add_defaults()

        merged: Dict[str, Any] = {}
        # Load from sources in priority order (lowest to highest)
        for source in sorted(self._sources, key=lambda s: s.get_priority()):
            try:
                merged = deep_merge(merged, source.load())
            except Exception as e:
                logger.error(f"Failed to load settings from source: {type(source).__name__}: {e}")
                raise
        return deep_merge(merged, self._overrides)

    def build(self) -> MeridianSettings:
        """
        Build validated settings from all added sources.

        Raises:
            ConfigurationError: a source could not be loaded
            ConfigurationValidationError: merged data failed validation
        """
        return validate_settings(self.load_raw())
