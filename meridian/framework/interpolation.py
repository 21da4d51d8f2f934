"""
Logical path interpolation.

Logical paths may contain ``${attribute}`` placeholders resolved from a
Query. ``${env}`` is multi-valued: a path using it expands to one candidate
per query environment.
"""

import re
from typing import Dict, Iterable, List

from ..domain.models import Query
from ..infrastructure.exceptions import InvalidReferenceError
from ..infrastructure.utils import trimmed_non_empty, unique_list

PLACEHOLDER_PATTERN = re.compile(r"\$\{([^${}]*)\}")

ENV_PLACEHOLDERS = ("env", "environment")


def _substitute(path: str, values: Dict[str, str]) -> str:
    def replace(match: 're.Match') -> str:
        name = match.group(1).strip()
        if not name:
            raise InvalidReferenceError(f"Empty placeholder in path: '{path}'", reference=path)
        if name not in values:
            raise InvalidReferenceError(
                f"Unknown placeholder '${{{name}}}' in path: '{path}'",
                reference=path,
                context={"placeholder": name}
            )
        value = values[name]
        if value is None or value == "":
            raise InvalidReferenceError(
                f"Placeholder '${{{name}}}' has no value in query for path: '{path}'",
                reference=path,
                context={"placeholder": name}
            )
        return value

    result = PLACEHOLDER_PATTERN.sub(replace, path)
    if "${" in result:
        raise InvalidReferenceError(f"Malformed placeholder in path: '{path}'", reference=path)
    return result


def _uses_env(path: str) -> bool:
    return any(
        match.group(1).strip() in ENV_PLACEHOLDERS
        for match in PLACEHOLDER_PATTERN.finditer(path)
    )


def normalize_path(path: str) -> str:
    """Strip whitespace and trailing slashes (a bare "/" is kept)."""
    stripped = path.strip()
    return stripped.rstrip("/") or stripped


def interpolate_path(path: str, query: Query) -> List[str]:
    """
    Interpolate one logical path into its concrete candidates.

    Raises:
        InvalidReferenceError: for malformed or unresolvable placeholders
    """
    values = query.attributes()

    if not _uses_env(path):
        return [normalize_path(_substitute(path, values))]

    if not query.environments:
        raise InvalidReferenceError(
            f"Path uses ${{env}} but query has no environments: '{path}'",
            reference=path
        )

    candidates = []
    for env in query.environments:
        env_values = dict(values)
        for placeholder in ENV_PLACEHOLDERS:
            env_values[placeholder] = env
        candidates.append(normalize_path(_substitute(path, env_values)))
    return candidates


def interpolate_paths(paths: Iterable[str], query: Query) -> List[str]:
    """
    Interpolate logical paths, preserving input order and removing duplicates.
    """
    candidates: List[str] = []
    for path in trimmed_non_empty(paths):
        candidates.extend(interpolate_path(path, query))
    return unique_list(candidates)
