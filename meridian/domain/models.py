"""
Core Domain Models

Defines the value objects that scope and identify configuration fetches.
"""

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple, Union


LabelPairs = Tuple[Tuple[str, str], ...]


@dataclass(frozen=True)
class Query:
    """
    Immutable lookup key used to interpolate logical paths and scope fetches.

    ``environments`` is ordered; a ``${env}`` placeholder expands to one path
    candidate per environment. ``labels`` may be given as a mapping and is
    stored as a sorted tuple of pairs so that queries stay hashable.
    """
    application: str = ""
    environments: Tuple[str, ...] = ()
    datacenter: str = ""
    zone: str = ""
    labels: Union[LabelPairs, Mapping[str, str]] = field(default=())

    def __post_init__(self):
        envs = self.environments
        if isinstance(envs, str):
            envs = (envs,)
        object.__setattr__(
            self, 'environments',
            tuple(e.strip() for e in envs if e and e.strip())
        )

        labels = self.labels
        if isinstance(labels, Mapping):
            labels = labels.items()
        object.__setattr__(
            self, 'labels',
            tuple(sorted((str(k), str(v)) for k, v in labels))
        )

    def label(self, name: str) -> Optional[str]:
        """Get a label value by name."""
        for key, value in self.labels:
            if key == name:
                return value
        return None

    def attributes(self) -> Dict[str, str]:
        """
        Single-valued placeholder table for path interpolation.

        ``env`` is not included since it is multi-valued; labels never
        override the built-in attributes.
        """
        attrs = dict(self.labels)
        attrs.update({
            "application": self.application,
            "app": self.application,
            "datacenter": self.datacenter,
            "dc": self.datacenter,
            "zone": self.zone,
        })
        return attrs


@dataclass(frozen=True)
class FetchTarget:
    """A concrete, store-specific fetchable unit plus its revision tag."""
    target_id: str
    revision: str = ""

    def __post_init__(self):
        if self.revision is None:
            object.__setattr__(self, 'revision', "")

    @property
    def name(self) -> str:
        """Last path segment of the target identifier."""
        return self.target_id.rstrip("/").rsplit("/", 1)[-1]
