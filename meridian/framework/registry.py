"""
Reloadable registry.

Holds the current merged configuration document and the reloadables handed
out for paths within it. Each ``update`` swaps the document, computes the new
value of every live path, and pushes only the values that changed.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from ..domain.document import Document
from ..infrastructure.exceptions import ReloadableClosedError
from .reloadable import Reloadable

logger = logging.getLogger(__name__)

Converter = Callable[[Any], Any]

_MISSING = object()


@dataclass(eq=False)
class _Binding:
    """A reloadable bound to a document path."""
    path: str
    reloadable: Reloadable
    converter: Optional[Converter] = None
    last_raw: Any = field(default=_MISSING)

    def extract(self, document: Optional[Document]) -> Any:
        if document is None:
            return None
        if not self.path:
            return None if document.is_empty() else document
        return document.get(self.path)

    def convert(self, raw: Any) -> Any:
        if raw is None or self.converter is None:
            return raw
        return self.converter(raw)


class ReloadableRegistry:
    """
    Owner of the current configuration value and its reloadables.

    ``update`` calls must be serialized by the driver; the registry does no
    queuing of its own.
    """

    def __init__(self, document: Optional[Document] = None, name: str = "registry"):
        self.name = name
        self._document: Optional[Document] = document
        self._bindings: List[_Binding] = []
        self._lock = threading.RLock()
        self._closed = False
        self._update_count = 0

    @property
    def current(self) -> Optional[Document]:
        """The current document, or None if none has been pushed yet."""
        return self._document

    @property
    def update_count(self) -> int:
        return self._update_count

    @property
    def is_closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise ReloadableClosedError(f"Registry is closed: {self.name}")

    def root(self) -> Reloadable:
        """Reloadable holding the whole document."""
        return self.reloadable("")

    def reloadable(self, path: str, converter: Optional[Converter] = None) -> Reloadable:
        """
        Create a reloadable bound to a dotted document path.

        Args:
            path: Dotted path within the document ("" for the whole document)
            converter: Optional callable applied to the raw value, e.g. a
                pydantic model's ``model_validate``

        Returns:
            Reloadable initialized with the path's current value
        """
        with self._lock:
            self._check_open()
            binding = _Binding(path=path or "", reloadable=Reloadable(name=path or "<root>"), converter=converter)
            raw = binding.extract(self._document)
            binding.last_raw = raw
            if raw is not None:
                binding.reloadable.update(binding.convert(raw))
            self._bindings.append(binding)
            binding.reloadable.on_close(lambda: self._unbind(binding))
        return binding.reloadable

    def _unbind(self, binding: _Binding) -> None:
        with self._lock:
            if binding in self._bindings:
                self._bindings.remove(binding)

    def update(self, document: Optional[Document]) -> int:
        """
        Swap in a new document (None clears everything) and notify reloadables
        whose value changed.

        Returns:
            Number of reloadables that received a new value
        """
        with self._lock:
            self._check_open()
            self._document = document
            self._update_count += 1
            bindings = list(self._bindings)

        changed = 0
        for binding in bindings:
            if binding.reloadable.is_closed:
                continue
            raw = binding.extract(document)
            if binding.last_raw is not _MISSING and raw == binding.last_raw:
                continue
            binding.last_raw = raw
            try:
                value = binding.convert(raw)
            except Exception as e:
                logger.error(
                    f"{self.name}: cannot convert value at path '{binding.path}': {e}",
                    exc_info=True
                )
                continue
            binding.reloadable.update(value)
            changed += 1

        logger.debug(f"{self.name}: update #{self._update_count} changed {changed}/{len(bindings)} reloadables")
        return changed

    def close(self) -> None:
        """Close the registry and every reloadable it handed out. Idempotent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            bindings = list(self._bindings)

        for binding in bindings:
            binding.reloadable.close()
        logger.debug(f"{self.name}: closed {len(bindings)} reloadables")

    def __len__(self) -> int:
        with self._lock:
            return len(self._bindings)

    def __enter__(self) -> 'ReloadableRegistry':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
