"""
Configuration document model.

A Document is an immutable hierarchical key/value tree and the unit of merge.
Every merge produces a new Document; the wrapped data is never handed out
without copying.
"""

import copy
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

import yaml

from ..infrastructure.exceptions import DocumentParseError, InvalidReferenceError


def _split_path(path: str) -> List[str]:
    if path is None:
        raise InvalidReferenceError("Document path cannot be None")
    if not path.strip():
        return []
    parts = path.strip().split(".")
    if any(p == "" for p in parts):
        raise InvalidReferenceError(f"Malformed document path: '{path}'", reference=path)
    return parts


def _list_index(node: List[Any], part: str) -> Optional[int]:
    if part.isdigit() and int(part) < len(node):
        return int(part)
    return None


def _child(node: Any, part: str) -> Any:
    """Step one path segment into a mapping key or a list index."""
    if isinstance(node, dict) and part in node:
        return node[part]
    if isinstance(node, list):
        index = _list_index(node, part)
        if index is not None:
            return node[index]
    raise KeyError(part)


def _normalize(value: Any) -> Any:
    """Deep copy a parsed value, forcing mapping keys to strings."""
    if isinstance(value, Mapping):
        return {str(k): _normalize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]
    return copy.deepcopy(value)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


class Document:
    """Immutable parsed configuration tree."""

    __slots__ = ("_data", "_origin")

    def __init__(self, data: Optional[Mapping[str, Any]] = None, origin: str = ""):
        if data is not None and not isinstance(data, Mapping):
            raise DocumentParseError(
                f"Document root must be a mapping, got {type(data).__name__}",
                origin=origin
            )
        self._data: Dict[str, Any] = _normalize(data or {})
        self._origin = origin

    @classmethod
    def empty(cls) -> 'Document':
        return cls()

    @classmethod
    def _wrap(cls, data: Dict[str, Any], origin: str) -> 'Document':
        # data is already private to the new instance
        doc = cls.__new__(cls)
        doc._data = data
        doc._origin = origin
        return doc

    @property
    def origin(self) -> str:
        """Human readable description of where this document came from."""
        return self._origin

    def is_empty(self) -> bool:
        return not self._data

    def keys(self) -> List[str]:
        """Top-level keys in insertion order."""
        return list(self._data.keys())

    def _lookup(self, path: str) -> Any:
        node: Any = self._data
        for part in _split_path(path):
            try:
                node = _child(node, part)
            except KeyError:
                raise KeyError(path) from None
        return node

    def has_path(self, path: str) -> bool:
        """Check whether a dotted path resolves to a value."""
        try:
            self._lookup(path)
            return True
        except KeyError:
            return False

    def get(self, path: str, default: Any = None) -> Any:
        """
        Get a copy of the value at a dotted path.

        An empty path returns the whole tree as a dictionary.
        """
        try:
            return copy.deepcopy(self._lookup(path))
        except KeyError:
            return default

    def with_fallback(self, other: 'Document') -> 'Document':
        """
        Merge this document over ``other``.

        Keys present in this document win; ``other`` only fills keys that are
        absent here. Nested mappings are merged recursively.
        """
        if other is None or other.is_empty():
            return self
        if self.is_empty():
            return other
        merged = _deep_merge(copy.deepcopy(other._data), copy.deepcopy(self._data))
        origin = ", ".join(o for o in (self._origin, other._origin) if o)
        return Document._wrap(merged, origin)

    def at_path(self, path: str) -> 'Document':
        """Return a new document with this tree nested under ``path``."""
        parts = _split_path(path)
        data: Dict[str, Any] = copy.deepcopy(self._data)
        for part in reversed(parts):
            data = {part: data}
        return Document._wrap(data, self._origin)

    def with_value(self, path: str, value: Any) -> 'Document':
        """
        Return a new document with ``value`` set at ``path``.

        Numeric segments address existing list elements; any other missing
        or non-container step is replaced by a new mapping.
        """
        parts = _split_path(path)
        if not parts:
            raise InvalidReferenceError("Cannot replace the document root", reference=path)
        data = copy.deepcopy(self._data)
        node: Any = data
        for part in parts[:-1]:
            try:
                child = _child(node, part)
            except KeyError:
                child = None
            if not isinstance(child, (dict, list)):
                child = {}
                self._assign(node, part, child, path)
            node = child
        self._assign(node, parts[-1], _normalize(value), path)
        return Document._wrap(data, self._origin)

    @staticmethod
    def _assign(node: Any, part: str, value: Any, path: str) -> None:
        if isinstance(node, list):
            index = _list_index(node, part)
            if index is None:
                raise InvalidReferenceError(f"List index out of range in path: '{path}'", reference=path)
            node[index] = value
        else:
            node[part] = value

    def without_path(self, path: str) -> 'Document':
        """
        Return a new document with ``path`` removed.

        Removing a list element shifts the elements after it.
        """
        if not self.has_path(path):
            return self
        parts = _split_path(path)
        data = copy.deepcopy(self._data)
        node: Any = data
        for part in parts[:-1]:
            node = _child(node, part)
        if isinstance(node, list):
            del node[_list_index(node, parts[-1])]
        else:
            del node[parts[-1]]
        return Document._wrap(data, self._origin)

    def leaves(self) -> Iterator[tuple]:
        """
        Iterate ``(dotted_path, value)`` pairs for all scalar values.

        List elements are addressed by index (``servers.0.host``). Empty
        mappings and empty lists are reported as leaves.
        """
        def walk(prefix: str, items):
            for key, value in items:
                path = f"{prefix}.{key}" if prefix else str(key)
                if isinstance(value, dict) and value:
                    yield from walk(path, value.items())
                elif isinstance(value, list) and value:
                    yield from walk(path, enumerate(value))
                else:
                    yield path, value
        return walk("", self._data.items())

    def to_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self._data)

    @staticmethod
    def merge_fallback(documents: Iterable['Document']) -> 'Document':
        """Merge documents where the first listed document has highest precedence."""
        result = Document.empty()
        for doc in documents:
            if doc is not None:
                result = result.with_fallback(doc)
        return result

    @staticmethod
    def merge_overrides(documents: Iterable['Document']) -> 'Document':
        """Merge documents where each later document overrides the earlier ones."""
        result = Document.empty()
        for doc in documents:
            if doc is not None:
                result = doc.with_fallback(result)
        return result

    def __contains__(self, path: str) -> bool:
        return self.has_path(path)

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Document):
            return self._data == other._data
        if isinstance(other, Mapping):
            return self._data == dict(other)
        return NotImplemented

    def __repr__(self) -> str:
        origin = f" origin={self._origin!r}" if self._origin else ""
        return f"Document({self._data!r}{origin})"


def parse_document(text: Optional[str], origin: str = "") -> Document:
    """
    Parse raw YAML (or JSON) content into a Document.

    Blank content yields an empty document.
    """
    if text is None or not text.strip():
        return Document(origin=origin)

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise DocumentParseError(
            f"Invalid document content: {origin or '<string>'}",
            origin=origin,
            context={"yaml_error": str(e)},
            cause=e
        ) from e

    if data is None:
        return Document(origin=origin)
    return Document(data, origin=origin)
