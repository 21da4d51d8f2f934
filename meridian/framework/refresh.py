"""
Refresh cycle driver.

One cycle runs fetch -> reference resolution -> registry update. Scheduling
is left to the host application; call ``refresh`` from whatever timer,
watcher or request handler fits.
"""

import logging
import threading
import time
from typing import Dict, Any, Optional, Sequence

from ..domain.document import Document
from ..domain.models import Query
from ..infrastructure.observability.logging import refresh_context
from .fetcher import SourceFetcher
from .references import DocumentReferenceResolver
from .registry import ReloadableRegistry

logger = logging.getLogger(__name__)


class ConfigurationRefresher:
    """
    Drives refresh cycles for one registry.

    Cycles are serialized by an internal lock. A failed cycle re-raises its
    error and leaves the registry untouched, so consumers keep the last good
    value.
    """

    def __init__(
        self,
        fetcher: SourceFetcher,
        registry: ReloadableRegistry,
        paths: Sequence[str],
        reference_resolver: Optional[DocumentReferenceResolver] = None,
        query: Optional[Query] = None
    ):
        self.fetcher = fetcher
        self.registry = registry
        self.paths = list(paths)
        self.reference_resolver = reference_resolver
        self.query = query or Query()
        self._lock = threading.Lock()
        self.cycles = 0
        self.failures = 0
        self.last_success: Optional[float] = None
        self.last_error: Optional[BaseException] = None

    def refresh(self, query: Optional[Query] = None) -> Document:
        """
        Run one refresh cycle.

        Returns:
            The document pushed to the registry
        """
        query = query or self.query
        with self._lock, refresh_context():
            self.cycles += 1
            started = time.monotonic()
            logger.debug(f"Refresh cycle {self.cycles} started", extra={"paths": self.paths})
            try:
                document = self.fetcher.fetch(query, self.paths)
                if self.reference_resolver is not None:
                    document = self.reference_resolver.resolve_document(document)
                changed = self.registry.update(document)
            except Exception as e:
                self.failures += 1
                self.last_error = e
                logger.error(
                    f"Refresh cycle {self.cycles} failed, keeping last value: {e}"
                )
                raise

            self.last_success = time.time()
            self.last_error = None
            logger.info(
                f"Refresh cycle {self.cycles} completed: {changed} reloadables changed",
                extra={"duration_ms": round((time.monotonic() - started) * 1000, 2)}
            )
            return document

    def get_stats(self) -> Dict[str, Any]:
        """Counters for monitoring."""
        return {
            "cycles": self.cycles,
            "failures": self.failures,
            "last_success": self.last_success,
            "last_error": str(self.last_error) if self.last_error else None,
        }

    def close(self) -> None:
        """Close the registry, the fetcher and any reference connectors."""
        self.registry.close()
        if self.reference_resolver is not None:
            self.reference_resolver.close()
        self.fetcher.close()
