"""
Bundled value reference connectors.
"""

import os
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..domain.interfaces import ValueReferenceConnector


def parse_value(value: str) -> Any:
    """Parse a raw string value to bool, int, float, list or str."""
    # Try to parse as boolean
    if value.lower() in ('true', 'false'):
        return value.lower() == 'true'

    # Try to parse as integer
    try:
        return int(value)
    except ValueError:
        pass

    # Try to parse as float
    try:
        return float(value)
    except ValueError:
        pass

    # Comma-separated values become lists
    if ',' in value:
        return [item.strip() for item in value.split(',')]

    return value


class EnvironmentValueConnector(ValueReferenceConnector):
    """
    Resolves ``%{env:NAME}`` references from environment variables.

    With a prefix, ``NAME`` is looked up as ``<prefix>NAME``.
    """

    type = "env"
    aliases = frozenset({"environment", "environ"})

    def __init__(self, prefix: str = "", environ: Optional[Mapping[str, str]] = None, coerce: bool = True):
        self.prefix = prefix
        self.environ = environ if environ is not None else os.environ
        self.coerce = coerce

    def resolve_batch(self, names: Sequence[str]) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for name in names:
            raw = self.environ.get(f"{self.prefix}{name}")
            if raw is None:
                continue
            result[name] = parse_value(raw) if self.coerce else raw
        return result

    def list(self) -> List[str]:
        return sorted(
            key[len(self.prefix):] for key in self.environ
            if key.startswith(self.prefix) and len(key) > len(self.prefix)
        )

    def __repr__(self) -> str:
        return f"EnvironmentValueConnector(prefix={self.prefix!r})"
