"""
Source fetcher.

Turns a query and a list of logical paths into one deterministic document:

1. interpolate logical paths into concrete base paths, normalized by the
   backing store into its target id form
2. expand every base path into fetch targets from one listing snapshot
3. deduplicate targets, keeping first occurrences
4. load every target (cache first, then the backing store), sequentially
   or on a bounded worker pool
5. merge: overlays within a base path, then base paths with the first
   listed path taking precedence
"""

import logging
from functools import partial
from typing import Dict, List, Optional, Sequence, Tuple

from ..domain.document import Document, parse_document
from ..domain.interfaces import BackingStoreClient
from ..domain.models import FetchTarget, Query
from ..infrastructure.caching import CacheKey, ValueCache
from ..infrastructure.concurrency import run_tasks
from ..infrastructure.exceptions import (
    MeridianException,
    MissingTargetError,
    TransientFetchError,
)
from ..infrastructure.observability.logging import source_context
from .configuration.models import FetcherSettings
from .interpolation import interpolate_paths
from .scanner import DirectoryScanner

logger = logging.getLogger(__name__)


class SourceFetcher:
    """
    Fetches and merges configuration documents from one backing store.

    The cache and the client are shared by all fetch tasks of this instance.
    """

    def __init__(
        self,
        client: BackingStoreClient,
        settings: Optional[FetcherSettings] = None,
        cache: Optional[ValueCache[Document]] = None,
        scanner: Optional[DirectoryScanner] = None,
        name: str = ""
    ):
        self.client = client
        self.settings = settings or FetcherSettings()
        self.cache: ValueCache[Document] = cache if cache is not None else ValueCache(name=f"{name or 'fetcher'}-cache")
        self.scanner = scanner or DirectoryScanner(
            client,
            primary_document_name=self.settings.primary_document_name,
            overlay_dir=self.settings.overlay_dir,
            overlay_enabled=self.settings.overlay_enabled,
            overlay_suffixes=self.settings.overlay_suffixes,
        )
        self.name = name or f"{type(client).__name__}"

    def __repr__(self) -> str:
        return f"SourceFetcher({self.name})"

    def fetch(self, query: Query, logical_paths: Sequence[str]) -> Document:
        """
        Fetch and merge the documents for a query.

        Raises:
            InvalidReferenceError: malformed logical path
            MissingTargetError: missing target under the ``fail`` policy
            TransientFetchError: backing store failure
            DocumentParseError: unparsable content
        """
        paths = [self.client.normalize(p) for p in interpolate_paths(logical_paths, query)]
        if not paths:
            logger.debug(f"{self}: no paths to fetch")
            return Document.empty()

        snapshot = self.scanner.snapshot(query, paths)

        groups: List[Tuple[str, List[FetchTarget]]] = []
        seen = set()
        for path in paths:
            targets = self.scanner.expand(path, snapshot)
            if not targets:
                self._handle_missing(path)
                continue
            unique = [t for t in targets if t.target_id not in seen]
            seen.update(t.target_id for t in unique)
            groups.append((path, unique))

        targets = [t for _, group in groups for t in group]
        logger.debug(f"{self}: fetching {len(targets)} targets for {len(paths)} paths")

        tasks = [partial(self._load, target) for target in targets]
        results = run_tasks(
            tasks,
            parallel=self.settings.parallel,
            max_workers=self.settings.max_workers,
            name=f"{self.name}-fetch"
        )
        loaded: Dict[str, Optional[Document]] = {
            target.target_id: doc for target, doc in zip(targets, results)
        }

        partials = []
        for path, group in groups:
            doc = self.scanner.merge([(t, loaded[t.target_id]) for t in group])
            if not doc.is_empty():
                partials.append(doc)

        result = Document.merge_fallback(partials)
        logger.info(
            f"{self}: fetched {len(partials)} documents from {len(targets)} targets",
            extra={"paths": paths}
        )
        return result

    def _load(self, target: FetchTarget) -> Optional[Document]:
        """Load one target: cache hit, or store read + parse + cache."""
        key = CacheKey(target.target_id, target.revision)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"{self}: cache hit for {key}")
            return cached

        with source_context(target.target_id):
            try:
                text = self.client.content(target.target_id)
            except MeridianException:
                raise
            except Exception as e:
                raise TransientFetchError(
                    f"Error loading {target.target_id}: {e}",
                    target=target.target_id,
                    store=self.name,
                    cause=e
                ) from e

            if text is None:
                self._handle_missing(target.target_id)
                return None

            document = parse_document(text, origin=target.target_id)
            logger.debug(f"{self}: loaded {target.target_id} (revision {target.revision!r})")
            return self.cache.put(key, document)

    def _handle_missing(self, target: str) -> None:
        if self.settings.missing_target_policy == "fail":
            raise MissingTargetError(
                f"Configuration location does not exist: {target}",
                targets=[target]
            )
        logger.warning(f"{self}: configuration location does not exist, skipping: {target}")

    def close(self) -> None:
        """Close the backing store client and drop cached documents."""
        self.cache.clear()
        self.client.close()
