"""
Framework Layer - configuration fetch, merge and distribution

This layer turns logical paths into merged documents, resolves external value
references, and distributes the result through reloadable values.
"""

from .reloadable import Reloadable, ReloadableState
from .registry import ReloadableRegistry
from .interpolation import interpolate_path, interpolate_paths
from .scanner import DirectoryScanner, ListingSnapshot
from .fetcher import SourceFetcher
from .references import (
    ConnectorRegistry,
    DocumentReferenceResolver,
    ValueReferenceResolver,
    parse_reference,
)
from .refresh import ConfigurationRefresher
from .configuration import (
    MeridianSettings,
    FetcherSettings,
    CacheSettings,
    ResolverSettings,
    LoggingSettings,
    SettingsBuilder,
    load_settings_from_file,
    load_default_settings,
)
from .factory import (
    configure_logging,
    create_source_fetcher,
    create_value_resolver,
    create_connector_registry,
    create_reference_resolver,
    create_refresher,
)

__all__ = [
    "Reloadable",
    "ReloadableState",
    "ReloadableRegistry",
    "interpolate_path",
    "interpolate_paths",
    "DirectoryScanner",
    "ListingSnapshot",
    "SourceFetcher",
    "ConnectorRegistry",
    "DocumentReferenceResolver",
    "ValueReferenceResolver",
    "parse_reference",
    "ConfigurationRefresher",
    "MeridianSettings",
    "FetcherSettings",
    "CacheSettings",
    "ResolverSettings",
    "LoggingSettings",
    "SettingsBuilder",
    "load_settings_from_file",
    "load_default_settings",
    "configure_logging",
    "create_source_fetcher",
    "create_value_resolver",
    "create_connector_registry",
    "create_reference_resolver",
    "create_refresher",
]
