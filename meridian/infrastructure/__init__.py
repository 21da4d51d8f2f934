"""
Infrastructure Layer - Core technical services

This layer provides the exception hierarchy, document cache, bounded task
execution, bundled stores and connectors, and structured logging.
"""

from .exceptions import (
    MeridianException,
    ConfigurationError,
    ConfigurationValidationError,
    DocumentParseError,
    TransientFetchError,
    MissingTargetError,
    InvalidReferenceError,
    ConnectorError,
    ReloadableClosedError,
    ValueNotPresentError,
)
from .caching import CacheKey, CacheEntry, CacheStats, ValueCache
from .concurrency import run_tasks
from .stores import FilesystemBackingStore, InMemoryBackingStore
from .connectors import EnvironmentValueConnector
from .observability import (
    LogLevel, JSONLogFormatter, HumanReadableFormatter, get_logger,
    configure_default_logging, refresh_context, source_context, get_refresh_id
)

__all__ = [
    "MeridianException",
    "ConfigurationError",
    "ConfigurationValidationError",
    "DocumentParseError",
    "TransientFetchError",
    "MissingTargetError",
    "InvalidReferenceError",
    "ConnectorError",
    "ReloadableClosedError",
    "ValueNotPresentError",
    "CacheKey",
    "CacheEntry",
    "CacheStats",
    "ValueCache",
    "run_tasks",
    "FilesystemBackingStore",
    "InMemoryBackingStore",
    "EnvironmentValueConnector",
    "LogLevel",
    "JSONLogFormatter",
    "HumanReadableFormatter",
    "get_logger",
    "configure_default_logging",
    "refresh_context",
    "source_context",
    "get_refresh_id",
]
