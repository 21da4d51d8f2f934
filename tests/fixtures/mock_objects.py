"""
Mock objects and test doubles for meridian unit testing.
"""

import threading
from typing import Any, Dict, List, Optional, Sequence

from meridian.domain.interfaces import BackingStoreClient, ValueReferenceConnector
from meridian.domain.models import Query
from meridian.infrastructure.stores import InMemoryBackingStore


class ManualClock:
    """Clock whose time only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


class StaticValueConnector(ValueReferenceConnector):
    """Reference connector serving a fixed table and recording every batch."""

    type = "static"
    aliases = frozenset({"fixed"})

    def __init__(self, values: Optional[Dict[str, Any]] = None, extra: Optional[Dict[str, Any]] = None):
        self.values = dict(values or {})
        self.extra = dict(extra or {})
        self.batches: List[List[str]] = []
        self.closed = False
        self._lock = threading.Lock()

    def resolve_batch(self, names: Sequence[str]) -> Dict[str, Any]:
        with self._lock:
            self.batches.append(list(names))
        result = {name: self.values[name] for name in names if name in self.values}
        result.update(self.extra)
        return result

    def list(self) -> List[str]:
        return sorted(self.values)

    def close(self) -> None:
        self.closed = True


class FailingConnector(ValueReferenceConnector):
    """Reference connector whose every call fails."""

    type = "broken"

    def __init__(self, error: Optional[Exception] = None):
        self.error = error or ConnectionError("parameter store unreachable")

    def resolve_batch(self, names: Sequence[str]) -> Dict[str, Any]:
        raise self.error


class FailingStore(InMemoryBackingStore):
    """In-memory store failing on configured targets."""

    def __init__(self, contents: Optional[Dict[str, str]] = None, failing: Sequence[str] = (),
                 error: Optional[Exception] = None):
        super().__init__(contents)
        self.failing = set(failing)
        self.error = error or ConnectionError("store unreachable")

    def content(self, target_id: str) -> Optional[str]:
        if target_id in self.failing:
            raise self.error
        return super().content(target_id)


class PhantomStore(BackingStoreClient):
    """Store listing targets whose content has disappeared."""

    store_type = "phantom"

    def __init__(self, listed: Dict[str, str]):
        self.listed = dict(listed)

    def listing(self, query: Query, prefixes: Optional[Sequence[str]] = None) -> Dict[str, str]:
        return dict(self.listed)

    def content(self, target_id: str) -> Optional[str]:
        return None


class RecordingSubscriber:
    """Subscriber recording every value it receives."""

    def __init__(self):
        self.values: List[Any] = []

    def __call__(self, value: Any) -> None:
        self.values.append(value)

    @property
    def calls(self) -> int:
        return len(self.values)
