"""
Directory scanner for hierarchical stores.

Implements the "primary document plus overlay directory" convention on top
of a single listing snapshot per query:

    <base>/application.yaml       primary document
    <base>/conf.d/01-db.yaml      overlay entries, merged over the primary in
    <base>/conf.d/02-cache.yaml   lexicographic order (later entries win)

A base path that is itself a document is used as-is.
"""

import logging
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from ..domain.document import Document
from ..domain.interfaces import BackingStoreClient
from ..domain.models import FetchTarget, Query

logger = logging.getLogger(__name__)


def join_path(base: str, name: str) -> str:
    if not base:
        return name
    return f"{base.rstrip('/')}/{name.lstrip('/')}"


class ListingSnapshot:
    """
    Immutable view over one store listing.

    Every query against the snapshot is answered locally, so resolving many
    paths costs a single remote listing call.
    """

    def __init__(self, entries: Dict[str, str]):
        self._entries: Dict[str, str] = dict(sorted(entries.items()))

    def __len__(self) -> int:
        return len(self._entries)

    def is_file(self, target: str) -> bool:
        return target in self._entries

    def revision(self, target: str) -> str:
        return self._entries.get(target, "")

    def is_directory(self, target: str) -> bool:
        prefix = target.rstrip("/") + "/"
        return any(key.startswith(prefix) for key in self._entries)

    def path_exists(self, target: str) -> bool:
        return self.is_file(target) or self.is_directory(target)

    def list_directory(self, target: str) -> Iterator[str]:
        """
        Lazily yield the names of the immediate entries of a directory.

        Each call returns a fresh iterator.
        """
        prefix = target.rstrip("/") + "/"

        def entries() -> Iterator[str]:
            seen = set()
            for key in self._entries:
                if not key.startswith(prefix):
                    continue
                name = key[len(prefix):].split("/", 1)[0]
                if name and name not in seen:
                    seen.add(name)
                    yield name

        return entries()


class DirectoryScanner:
    """
    Expands logical base paths into fetch targets and merges the documents
    loaded for one base path.
    """

    def __init__(
        self,
        client: BackingStoreClient,
        primary_document_name: str = "application.yaml",
        overlay_dir: str = "conf.d",
        overlay_enabled: bool = True,
        overlay_suffixes: Sequence[str] = (".yaml", ".yml", ".json", ".conf")
    ):
        self.client = client
        self.primary_document_name = primary_document_name
        self.overlay_dir = overlay_dir
        self.overlay_enabled = overlay_enabled
        self.overlay_suffixes = tuple(overlay_suffixes)

    def snapshot(self, query: Query, prefixes: Optional[Sequence[str]] = None) -> ListingSnapshot:
        """Take one listing of the store for a query."""
        entries = self.client.listing(query, prefixes)
        logger.debug(f"Listing snapshot for {list(prefixes or [])}: {len(entries)} entries")
        return ListingSnapshot(entries)

    def _is_overlay_entry(self, name: str) -> bool:
        if name.startswith("."):
            return False
        return not self.overlay_suffixes or name.endswith(self.overlay_suffixes)

    def expand(self, base_path: str, snapshot: ListingSnapshot) -> List[FetchTarget]:
        """
        Resolve one logical base path into its fetch targets.

        Returns:
            Primary target first (if present), then overlay entries sorted by
            name; an empty list when nothing exists under the base path.
        """
        if snapshot.is_file(base_path):
            return [FetchTarget(base_path, snapshot.revision(base_path))]

        targets: List[FetchTarget] = []

        primary = join_path(base_path, self.primary_document_name)
        if snapshot.is_file(primary):
            targets.append(FetchTarget(primary, snapshot.revision(primary)))

        if self.overlay_enabled:
            overlay_dir = join_path(base_path, self.overlay_dir)
            if snapshot.is_directory(overlay_dir):
                for name in sorted(snapshot.list_directory(overlay_dir)):
                    entry = join_path(overlay_dir, name)
                    if snapshot.is_file(entry) and self._is_overlay_entry(name):
                        targets.append(FetchTarget(entry, snapshot.revision(entry)))
                    else:
                        logger.debug(f"Skipping overlay entry: {entry}")

        return targets

    @staticmethod
    def merge(documents: Sequence[Tuple[FetchTarget, Optional[Document]]]) -> Document:
        """
        Merge the documents of one base path.

        Documents are expected in ``expand`` order (primary, then sorted
        overlays); each later document overrides the ones before it.
        """
        return Document.merge_overrides(doc for _, doc in documents if doc is not None)
