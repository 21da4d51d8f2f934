"""
Settings Management

Type-safe, immutable settings for meridian components, loaded from YAML and
environment variable sources with validation.
"""

from .models import (
    FetcherSettings,
    CacheSettings,
    ResolverSettings,
    LoggingSettings,
    MeridianSettings
)

from .sources import (
    SettingsSource,
    YAMLSettingsSource,
    EnvironmentSettingsSource
)

from .builder import SettingsBuilder, validate_settings

from .utils import (
    load_settings_from_file,
    load_default_settings
)

__all__ = [
    # Models
    'FetcherSettings',
    'CacheSettings',
    'ResolverSettings',
    'LoggingSettings',
    'MeridianSettings',

    # Sources
    'SettingsSource',
    'YAMLSettingsSource',
    'EnvironmentSettingsSource',

    # Builder
    'SettingsBuilder',
    'validate_settings',

    # Utilities
    'load_settings_from_file',
    'load_default_settings'
]
