"""
Bundled backing stores.

- FilesystemBackingStore: local directory hierarchy
- InMemoryBackingStore: dictionary backed store for embedding and tests

Both implement the BackingStoreClient contract. Remote stores (object
storage, parameter stores, instance metadata) live outside of meridian.
"""

import logging
import os
import threading
from pathlib import Path
from typing import Dict, Optional, Sequence, Union

from ..domain.interfaces import BackingStoreClient
from ..domain.models import Query
from .exceptions import TransientFetchError

logger = logging.getLogger(__name__)


def _under_prefix(target_id: str, prefixes: Optional[Sequence[str]]) -> bool:
    if prefixes is None:
        return True
    return any(
        target_id == p or target_id.startswith(p.rstrip("/") + "/")
        for p in prefixes
    )


class FilesystemBackingStore(BackingStoreClient):
    """
    Local filesystem store.

    Target ids are POSIX style paths, absolute or relative to ``root``. The
    revision tag combines modification time and size, so any rewrite of a
    file invalidates its cache entry.
    """

    store_type = "filesystem"

    def __init__(self, root: Optional[Union[str, Path]] = None, encoding: str = "utf-8"):
        self.root = Path(os.path.normpath(root)) if root is not None else None
        self.encoding = encoding

    def _resolve(self, target_id: str) -> Path:
        path = Path(target_id)
        if self.root is not None and not path.is_absolute():
            path = self.root / path
        return path

    def _target_id(self, path: Path) -> str:
        if self.root is not None:
            try:
                return path.relative_to(self.root).as_posix()
            except ValueError:
                pass
        return path.as_posix()

    def normalize(self, target_id: str) -> str:
        """Canonical id: relative to ``root`` when under it, no ``.``/``..`` parts."""
        return self._target_id(Path(os.path.normpath(self._resolve(target_id))))

    @staticmethod
    def _revision(path: Path) -> str:
        stat = path.stat()
        return f"{stat.st_mtime_ns}-{stat.st_size}"

    def listing(self, query: Query, prefixes: Optional[Sequence[str]] = None) -> Dict[str, str]:
        """List regular files under the given prefixes (or under ``root``)."""
        if prefixes is None:
            if self.root is None:
                raise TransientFetchError(
                    "Filesystem listing without prefixes requires a root directory",
                    store=self.store_type
                )
            bases = [self.root]
        else:
            bases = [self._resolve(p) for p in prefixes]

        result: Dict[str, str] = {}
        for base in bases:
            try:
                if base.is_file():
                    result[self._target_id(base)] = self._revision(base)
                    continue
                if not base.is_dir():
                    logger.debug(f"Filesystem prefix does not exist: {base}")
                    continue
                for dirpath, dirnames, filenames in os.walk(base):
                    dirnames.sort()
                    for filename in sorted(filenames):
                        path = Path(dirpath) / filename
                        result[self._target_id(path)] = self._revision(path)
            except OSError as e:
                raise TransientFetchError(
                    f"Error listing filesystem path: {base}",
                    target=str(base),
                    store=self.store_type,
                    cause=e
                ) from e

        return dict(sorted(result.items()))

    def content(self, target_id: str) -> Optional[str]:
        """Read a file; returns None if it does not exist."""
        path = self._resolve(target_id)
        if not path.is_file():
            return None
        try:
            with open(path, 'r', encoding=self.encoding) as f:
                return f.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise TransientFetchError(
                f"Error reading configuration file: {path}",
                target=target_id,
                store=self.store_type,
                cause=e
            ) from e

    def __repr__(self) -> str:
        return f"FilesystemBackingStore(root={self.root!s})"


class InMemoryBackingStore(BackingStoreClient):
    """
    In-memory store suitable for tests and embedded use.

    Every ``put`` bumps the target's revision unless one is given explicitly.
    Call counters make remote-call expectations observable.
    """

    store_type = "memory"

    def __init__(self, contents: Optional[Dict[str, str]] = None) -> None:
        self._contents: Dict[str, str] = {}
        self._revisions: Dict[str, str] = {}
        self._counter = 0
        self._lock = threading.Lock()
        self._closed = False
        self.listing_calls = 0
        self.content_calls = 0
        for target_id, text in (contents or {}).items():
            self.put(target_id, text)

    def put(self, target_id: str, text: str, revision: Optional[str] = None) -> str:
        """Store content for a target and return its new revision."""
        with self._lock:
            if revision is None:
                self._counter += 1
                revision = str(self._counter)
            self._contents[target_id] = text
            self._revisions[target_id] = revision
            return revision

    def delete(self, target_id: str) -> bool:
        with self._lock:
            self._revisions.pop(target_id, None)
            return self._contents.pop(target_id, None) is not None

    def listing(self, query: Query, prefixes: Optional[Sequence[str]] = None) -> Dict[str, str]:
        with self._lock:
            self.listing_calls += 1
            return {
                target_id: self._revisions[target_id]
                for target_id in sorted(self._contents)
                if _under_prefix(target_id, prefixes)
            }

    def content(self, target_id: str) -> Optional[str]:
        with self._lock:
            self.content_calls += 1
            return self._contents.get(target_id)

    def close(self) -> None:
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed
