"""
meridian - hierarchical configuration aggregation with hot-reloadable values

Fetches configuration documents from backing stores, merges them
deterministically, resolves external value references and distributes the
result to consumers through reloadable values.
"""

__version__ = "1.0.0"
__author__ = "meridian Development Team"

from .domain import Query, FetchTarget, Document, parse_document, BackingStoreClient, ValueReferenceConnector
from .infrastructure import (
    MeridianException,
    TransientFetchError,
    MissingTargetError,
    InvalidReferenceError,
    ReloadableClosedError,
    ValueNotPresentError,
    ValueCache,
    CacheKey,
    FilesystemBackingStore,
    InMemoryBackingStore,
    EnvironmentValueConnector,
)
from .framework import (
    Reloadable,
    ReloadableRegistry,
    SourceFetcher,
    DirectoryScanner,
    ValueReferenceResolver,
    DocumentReferenceResolver,
    ConnectorRegistry,
    ConfigurationRefresher,
    MeridianSettings,
    create_refresher,
)

__all__ = [
    "Query",
    "FetchTarget",
    "Document",
    "parse_document",
    "BackingStoreClient",
    "ValueReferenceConnector",
    "MeridianException",
    "TransientFetchError",
    "MissingTargetError",
    "InvalidReferenceError",
    "ReloadableClosedError",
    "ValueNotPresentError",
    "ValueCache",
    "CacheKey",
    "FilesystemBackingStore",
    "InMemoryBackingStore",
    "EnvironmentValueConnector",
    "Reloadable",
    "ReloadableRegistry",
    "SourceFetcher",
    "DirectoryScanner",
    "ValueReferenceResolver",
    "DocumentReferenceResolver",
    "ConnectorRegistry",
    "ConfigurationRefresher",
    "MeridianSettings",
    "create_refresher",
]
