"""
External value reference resolution.

Documents may carry string leaves of the form ``%{<type>:<name>}``. The
``type`` selects a connector from a ``ConnectorRegistry`` (by primary tag or
alias); names are resolved in batches by a ``ValueReferenceResolver``.
"""

import logging
import re
import threading
from functools import partial
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ..domain.document import Document
from ..domain.interfaces import ValueReferenceConnector
from ..infrastructure.concurrency import run_tasks
from ..infrastructure.exceptions import (
    ConnectorError,
    InvalidReferenceError,
    MeridianException,
    MissingTargetError,
    TransientFetchError,
)
from ..infrastructure.utils import partition, trimmed_non_empty, unique_list
from .configuration.models import ResolverSettings

logger = logging.getLogger(__name__)

REFERENCE_PATTERN = re.compile(r"^%\{([^:{}]*):([^{}]*)\}$")

ConnectorFactory = Callable[..., ValueReferenceConnector]


def parse_reference(value: Any) -> Optional[Tuple[str, str]]:
    """
    Parse a ``%{type:name}`` reference.

    Returns:
        (type, name), or None if the value is not a reference

    Raises:
        InvalidReferenceError: reference syntax with a blank type or name
    """
    if not isinstance(value, str) or not value.startswith("%{"):
        return None
    match = REFERENCE_PATTERN.match(value.strip())
    if match is None:
        raise InvalidReferenceError(f"Malformed value reference: '{value}'", reference=value)
    ref_type, name = match.group(1).strip(), match.group(2).strip()
    if not ref_type or not name:
        raise InvalidReferenceError(f"Malformed value reference: '{value}'", reference=value)
    return ref_type, name


class ValueReferenceResolver:
    """
    Resolves batches of names through one connector.

    Names are deduplicated (first occurrence kept), split into batches of at
    most ``batch_size`` and resolved one sub-request per batch.
    """

    def __init__(self, connector: ValueReferenceConnector, settings: Optional[ResolverSettings] = None):
        self.connector = connector
        self.settings = settings or ResolverSettings()

    @property
    def type(self) -> str:
        return self.connector.type

    def supports(self, tag: str) -> bool:
        return self.connector.supports(tag)

    def resolve(self, names: Iterable[str]) -> Dict[str, Any]:
        """
        Resolve names to values.

        Raises:
            MissingTargetError: names the connector does not know, unless
                ``allow_missing`` is set
            TransientFetchError: connector failure
        """
        unique = unique_list(trimmed_non_empty(names))
        if not unique:
            return {}

        batches = partition(unique, self.settings.batch_size)
        tasks = [partial(self._resolve_batch, batch) for batch in batches]
        results = run_tasks(
            tasks,
            parallel=self.settings.parallel,
            max_workers=self.settings.max_workers,
            name=f"{self.type}-resolve"
        )

        resolved: Dict[str, Any] = {}
        for batch, values in zip(batches, results):
            for name in batch:
                if name in values:
                    resolved[name] = values[name]

        missing = [name for name in unique if name not in resolved]
        if missing:
            if not self.settings.allow_missing:
                raise MissingTargetError(
                    f"Unresolved '{self.type}' references: {', '.join(missing)}",
                    targets=missing
                )
            logger.info(f"Omitting {len(missing)} unresolved '{self.type}' references: {missing}")

        logger.debug(f"Resolved {len(resolved)}/{len(unique)} '{self.type}' references in {len(batches)} batches")
        return resolved

    def _resolve_batch(self, batch: Sequence[str]) -> Dict[str, Any]:
        try:
            return self.connector.resolve_batch(list(batch)) or {}
        except MeridianException:
            raise
        except Exception as e:
            raise TransientFetchError(
                f"Error resolving '{self.type}' references {list(batch)}: {e}",
                store=self.type,
                cause=e
            ) from e

    def list(self) -> List[str]:
        """All names known to the connector."""
        return list(self.connector.list())

    def close(self) -> None:
        self.connector.close()


class ConnectorRegistry:
    """
    Explicit table of reference type tags to connector factories.

    Populated by the host application at startup. Each registry is
    independent; there is no process-wide registration.
    """

    def __init__(self):
        self._factories: Dict[str, ConnectorFactory] = {}
        self._primary: Dict[str, str] = {}
        self._lock = threading.RLock()

    def register(
        self,
        factory: ConnectorFactory,
        type_tag: Optional[str] = None,
        aliases: Optional[Iterable[str]] = None
    ) -> 'ConnectorRegistry':
        """
        Register a connector factory.

        Args:
            factory: Callable returning a connector; a connector class works.
            type_tag: Primary type tag (defaults to ``factory.type``)
            aliases: Alternative tags (defaults to ``factory.aliases``)

        Raises:
            ConnectorError: missing type tag, or a tag/alias already taken
        """
        primary = type_tag if type_tag is not None else getattr(factory, "type", "")
        if not primary:
            raise ConnectorError(f"Connector factory {factory!r} declares no type tag")
        alias_set = set(aliases if aliases is not None else getattr(factory, "aliases", ()))
        alias_set.discard(primary)
        tags = [primary] + sorted(alias_set)

        with self._lock:
            taken = [tag for tag in tags if tag in self._primary]
            if taken:
                raise ConnectorError(
                    f"Reference type already registered: {', '.join(taken)}",
                    connector_type=primary
                )
            self._factories[primary] = factory
            for tag in tags:
                self._primary[tag] = primary

        logger.debug(f"Registered connector '{primary}' (aliases: {sorted(alias_set)})")
        return self

    def primary_type(self, tag: str) -> str:
        """
        Map a tag or alias to its primary type tag.

        Raises:
            InvalidReferenceError: unknown reference type
        """
        with self._lock:
            primary = self._primary.get(tag)
        if primary is None:
            raise InvalidReferenceError(f"Unknown reference type: '{tag}'", reference=tag)
        return primary

    def lookup(self, tag: str) -> ConnectorFactory:
        primary = self.primary_type(tag)
        with self._lock:
            return self._factories[primary]

    def create(self, tag: str, **options: Any) -> ValueReferenceConnector:
        """Create a connector for a tag or alias."""
        factory = self.lookup(tag)
        try:
            return factory(**options)
        except MeridianException:
            raise
        except Exception as e:
            raise ConnectorError(
                f"Failed to create connector for '{tag}': {e}",
                connector_type=tag,
                cause=e
            ) from e

    def types(self) -> List[str]:
        """Registered primary type tags, sorted."""
        with self._lock:
            return sorted(self._factories)

    def __contains__(self, tag: str) -> bool:
        with self._lock:
            return tag in self._primary


class DocumentReferenceResolver:
    """
    Substitutes ``%{type:name}`` leaves of a document with resolved values.

    Connectors are created lazily, one per primary type, and reused across
    refresh cycles until ``close``.
    """

    def __init__(
        self,
        connectors: ConnectorRegistry,
        settings: Optional[ResolverSettings] = None,
        connector_options: Optional[Dict[str, Dict[str, Any]]] = None
    ):
        self.connectors = connectors
        self.settings = settings or ResolverSettings()
        self.connector_options = connector_options or {}
        self._resolvers: Dict[str, ValueReferenceResolver] = {}
        self._lock = threading.Lock()

    def resolver_for(self, tag: str) -> ValueReferenceResolver:
        primary = self.connectors.primary_type(tag)
        with self._lock:
            resolver = self._resolvers.get(primary)
            if resolver is None:
                connector = self.connectors.create(primary, **self.connector_options.get(primary, {}))
                resolver = ValueReferenceResolver(connector, self.settings)
                self._resolvers[primary] = resolver
            return resolver

    def references(self, document: Document) -> List[Tuple[str, str, str]]:
        """List (path, type, name) for every reference leaf, in document order."""
        found = []
        for path, value in document.leaves():
            parsed = parse_reference(value)
            if parsed is not None:
                found.append((path, parsed[0], parsed[1]))
        return found

    def resolve_document(self, document: Document) -> Document:
        """
        Return a new document with every reference replaced by its value.

        Raises:
            InvalidReferenceError: malformed reference or unknown type
            MissingTargetError: unresolved names, unless ``allow_missing``
            TransientFetchError: connector failure
        """
        refs = self.references(document)
        if not refs:
            return document

        by_type: Dict[str, List[str]] = {}
        for _, ref_type, name in refs:
            by_type.setdefault(self.connectors.primary_type(ref_type), []).append(name)

        values: Dict[str, Dict[str, Any]] = {}
        for primary, names in by_type.items():
            values[primary] = self.resolver_for(primary).resolve(names)

        result = document
        missing = []
        for path, ref_type, name in refs:
            resolved = values[self.connectors.primary_type(ref_type)]
            if name in resolved:
                result = result.with_value(path, resolved[name])
            else:
                missing.append(path)
        # last first, so list removals do not shift pending indices
        for path in reversed(missing):
            result = result.without_path(path)

        logger.debug(f"Substituted {len(refs)} references across {len(by_type)} types")
        return result

    def close(self) -> None:
        """Close every connector created so far."""
        with self._lock:
            resolvers = list(self._resolvers.values())
            self._resolvers.clear()
        for resolver in resolvers:
            try:
                resolver.close()
            except Exception as e:
                logger.error(f"Error closing '{resolver.type}' connector: {e}")
