"""
Core Domain Interfaces

Contracts implemented by backing-store specific collaborators. The core only
talks to stores and reference connectors through these two shapes.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, FrozenSet, List, Optional, Sequence

from .models import Query


class BackingStoreClient(ABC):
    """
    Interface for stores that hold configuration documents.

    Implementations should be safe to call from several worker threads at
    once; one client is shared by every fetch task of a source fetcher.
    """

    #: short store name used in log messages and errors
    store_type: str = "store"

    @abstractmethod
    def listing(self, query: Query, prefixes: Optional[Sequence[str]] = None) -> Dict[str, str]:
        """
        List known targets for a query.

        Args:
            query: Query scoping the listing
            prefixes: Interpolated base paths to restrict the listing to;
                ``None`` lists everything the client can see

        Returns:
            Ordered mapping of target id to revision tag ("" when the store
            has no revision information)
        """
        pass

    @abstractmethod
    def content(self, target_id: str) -> Optional[str]:
        """
        Retrieve raw content of a target.

        Returns:
            Raw text, or None if the target does not exist
        """
        pass

    def normalize(self, target_id: str) -> str:
        """
        Map a base path onto the target id form used by ``listing``.

        Stores that accept several spellings of the same location (relative,
        absolute, ``./`` prefixed) must return the one their listing uses.
        """
        return target_id

    def close(self) -> None:
        """Release any resources held by the client."""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


class ValueReferenceConnector(ABC):
    """
    Interface for stores that resolve externally referenced values
    (secrets, parameters, environment variables, ...).

    Subclasses declare a primary ``type`` tag and a set of ``aliases``
    used for registration and lookup.
    """

    type: str = ""
    aliases: FrozenSet[str] = frozenset()

    def supports(self, tag: str) -> bool:
        """Check whether this connector serves the given reference type."""
        return tag == self.type or tag in self.aliases

    @abstractmethod
    def resolve_batch(self, names: Sequence[str]) -> Dict[str, Any]:
        """
        Resolve a batch of names.

        Names unknown to the store are simply absent from the result.
        """
        pass

    def list(self) -> List[str]:
        """List every name known to the store."""
        raise NotImplementedError(f"{type(self).__name__} does not support listing")

    def close(self) -> None:
        """Release any resources held by the connector."""
        pass
