"""
Factory functions building components from MeridianSettings.
"""

import logging
from typing import Callable, Optional, Sequence

from ..domain.interfaces import BackingStoreClient, ValueReferenceConnector
from ..domain.models import Query
from ..infrastructure.caching import ValueCache
from ..infrastructure.connectors import EnvironmentValueConnector
from ..infrastructure.observability.logging import configure_default_logging
from .configuration.models import MeridianSettings
from .fetcher import SourceFetcher
from .references import ConnectorRegistry, DocumentReferenceResolver, ValueReferenceResolver
from .refresh import ConfigurationRefresher
from .registry import ReloadableRegistry

logger = logging.getLogger(__name__)


def configure_logging(settings: Optional[MeridianSettings] = None) -> logging.Logger:
    """Configure the meridian logger from logging settings."""
    settings = settings or MeridianSettings()
    return configure_default_logging(
        level=settings.logging.level,
        use_json=settings.logging.format == "json",
        log_file=settings.logging.file_path
    )


def create_source_fetcher(
    client: BackingStoreClient,
    settings: Optional[MeridianSettings] = None,
    clock: Optional[Callable[[], float]] = None
) -> SourceFetcher:
    """Create a SourceFetcher with a cache sized by the cache settings."""
    settings = settings or MeridianSettings()
    cache = ValueCache(
        ttl_seconds=settings.cache.ttl_seconds,
        max_size=settings.cache.max_size,
        clock=clock,
        name=f"{client.store_type}-documents"
    )
    return SourceFetcher(client, settings=settings.fetcher, cache=cache, name=client.store_type)


def create_value_resolver(
    connector: ValueReferenceConnector,
    settings: Optional[MeridianSettings] = None
) -> ValueReferenceResolver:
    settings = settings or MeridianSettings()
    return ValueReferenceResolver(connector, settings.resolver)


def create_connector_registry(include_environment: bool = True) -> ConnectorRegistry:
    """Create a connector registry, optionally pre-populated with the environment connector."""
    registry = ConnectorRegistry()
    if include_environment:
        registry.register(EnvironmentValueConnector)
    return registry


def create_reference_resolver(
    connectors: Optional[ConnectorRegistry] = None,
    settings: Optional[MeridianSettings] = None
) -> DocumentReferenceResolver:
    settings = settings or MeridianSettings()
    return DocumentReferenceResolver(
        connectors if connectors is not None else create_connector_registry(),
        settings.resolver
    )


def create_refresher(
    client: BackingStoreClient,
    settings: Optional[MeridianSettings] = None,
    query: Optional[Query] = None,
    paths: Optional[Sequence[str]] = None,
    connectors: Optional[ConnectorRegistry] = None,
    registry: Optional[ReloadableRegistry] = None,
    clock: Optional[Callable[[], float]] = None
) -> ConfigurationRefresher:
    """
    Wire a complete refresh pipeline for one backing store.

    Args:
        client: Backing store holding the configuration documents
        settings: Component settings; defaults apply when omitted
        query: Query used by every cycle
        paths: Logical paths; defaults to ``settings.paths``
        connectors: Reference connectors; the environment connector is used
            when omitted
        registry: Registry to update; a new one is created when omitted
        clock: Clock for the document cache
    """
    settings = settings or MeridianSettings()
    refresher = ConfigurationRefresher(
        fetcher=create_source_fetcher(client, settings, clock=clock),
        registry=registry if registry is not None else ReloadableRegistry(),
        paths=list(paths) if paths is not None else list(settings.paths),
        reference_resolver=create_reference_resolver(connectors, settings),
        query=query
    )
    logger.debug(f"Created refresher for {client.store_type} with {len(refresher.paths)} paths")
    return refresher
