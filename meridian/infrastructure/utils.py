"""
Collection helpers shared by the fetch and resolution pipelines.
"""

from typing import Iterable, List, Optional, Sequence, TypeVar

T = TypeVar('T')


def unique_list(items: Iterable[Optional[T]]) -> List[T]:
    """Remove None elements and duplicates, keeping first occurrences in order."""
    seen = set()
    result: List[T] = []
    for item in items:
        if item is None or item in seen:
            continue
        seen.add(item)
        result.append(item)
    return result


def trimmed_non_empty(strings: Iterable[Optional[str]]) -> List[str]:
    """Strip strings and drop None/blank ones."""
    return [s.strip() for s in strings if s is not None and s.strip()]


def partition(items: Sequence[T], max_elements: int) -> List[List[T]]:
    """
    Split a sequence into consecutive chunks of at most ``max_elements``.

    None elements are removed before chunking.
    """
    if max_elements < 1:
        raise ValueError("max_elements can't be < 1")

    source = [item for item in items if item is not None]
    return [source[i:i + max_elements] for i in range(0, len(source), max_elements)]
