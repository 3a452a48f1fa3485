from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Sequence

from .errors import InvalidIdentifier

DependencyAdjacency = Mapping[str, Sequence[str]]


@dataclass(frozen=True)
class PackageId:
    name: str
    version: str

    def __post_init__(self) -> None:
        if not self.name:
            raise InvalidIdentifier("name", self.name)
        if not self.version:
            raise InvalidIdentifier("version", self.version)

    def __str__(self) -> str:
        return f"{self.name}=={self.version}"


@dataclass
class DependencyGraph:
    direct: List[str]
    transitive: Dict[str, List[str]] = field(default_factory=dict)
    packages: List[PackageId] = field(default_factory=list)

    @property
    def direct_count(self) -> int:
        return len(self.direct)

    @property
    def transitive_count(self) -> int:
        """Number of transitive edges summed over every direct dependency.

        A package reachable from two direct dependencies is counted twice,
        once under each of them.
        """

        return sum(len(names) for names in self.transitive.values())

    def transitive_of(self, direct_name: str) -> List[str]:
        return list(self.transitive.get(direct_name, []))

    def as_dict(self) -> dict:
        return {
            "direct": list(self.direct),
            "transitive": {name: list(deps) for name, deps in self.transitive.items()},
            "direct_count": self.direct_count,
            "transitive_count": self.transitive_count,
        }
