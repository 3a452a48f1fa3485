"""Wildcard package exclusion.

Patterns use ``*`` as a multi-character wildcard and are compiled once into a
small closed set of matcher shapes. Matching is case-sensitive and performs no
name normalization.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Set, Union

from .diagnostics import INEFFECTIVE_EXCLUSION_PATTERN, Diagnostic, DiagnosticSink, resolve_sink
from .errors import (
    AllPackagesExcluded,
    InvalidPattern,
    InvalidPatternCharacter,
    PatternTooBroad,
    PatternTooLong,
    TooManyPatterns,
)
from .types_packages import DependencyAdjacency, PackageId

MAX_EXCLUDE_PATTERNS = 64
MAX_PATTERN_LENGTH = 255
WILDCARD = "*"
EXTRA_PATTERN_CHARS = {"-", "_", ".", "[", "]", WILDCARD}


@dataclass(frozen=True)
class Exact:
    value: str

    def matches(self, name: str) -> bool:
        return name == self.value


@dataclass(frozen=True)
class PrefixWildcard:
    """``*suffix``: the wildcard leads, so the name must end with the suffix."""

    suffix: str

    def matches(self, name: str) -> bool:
        return name.endswith(self.suffix)


@dataclass(frozen=True)
class SuffixWildcard:
    """``prefix*``: the wildcard trails, so the name must start with the prefix."""

    prefix: str

    def matches(self, name: str) -> bool:
        return name.startswith(self.prefix)


@dataclass(frozen=True)
class Contains:
    middle: str

    def matches(self, name: str) -> bool:
        return self.middle in name


@dataclass(frozen=True)
class OrderedParts:
    parts: tuple[str, ...]

    def matches(self, name: str) -> bool:
        position = 0
        for part in self.parts:
            found = name.find(part, position)
            if found < 0:
                return False
            position = found + len(part)
        return True


PatternShape = Union[Exact, PrefixWildcard, SuffixWildcard, Contains, OrderedParts]


@dataclass(frozen=True)
class ExclusionPattern:
    raw: str
    shape: PatternShape

    def matches(self, name: str) -> bool:
        return self.shape.matches(name)


def _is_valid_pattern_char(char: str) -> bool:
    return char.isalnum() or char in EXTRA_PATTERN_CHARS


def validate_pattern(pattern: str) -> None:
    if not pattern:
        raise InvalidPattern(pattern)
    if len(pattern) > MAX_PATTERN_LENGTH:
        raise PatternTooLong(pattern, MAX_PATTERN_LENGTH)
    for char in pattern:
        if not _is_valid_pattern_char(char):
            raise InvalidPatternCharacter(pattern, char)
    if all(char == WILDCARD for char in pattern):
        raise PatternTooBroad(pattern)


def compile_shape(pattern: str) -> PatternShape:
    wildcards = pattern.count(WILDCARD)

    if wildcards == 0:
        return Exact(pattern)

    if wildcards == 1:
        if pattern.startswith(WILDCARD):
            return PrefixWildcard(pattern[1:])
        if pattern.endswith(WILDCARD):
            return SuffixWildcard(pattern[:-1])
        return OrderedParts(tuple(pattern.split(WILDCARD)))

    if wildcards == 2 and pattern.startswith(WILDCARD) and pattern.endswith(WILDCARD):
        return Contains(pattern[1:-1])

    return OrderedParts(tuple(part for part in pattern.split(WILDCARD) if part))


def compile_patterns(raw_patterns: Sequence[str]) -> List[ExclusionPattern]:
    """Validate and compile a batch of raw patterns.

    The whole batch is rejected on the first invalid pattern.
    """

    if len(raw_patterns) > MAX_EXCLUDE_PATTERNS:
        raise TooManyPatterns(len(raw_patterns), MAX_EXCLUDE_PATTERNS)

    compiled: List[ExclusionPattern] = []
    for raw in raw_patterns:
        validate_pattern(raw)
        compiled.append(ExclusionPattern(raw=raw, shape=compile_shape(raw)))
    return compiled


@dataclass
class ExclusionResult:
    packages: List[PackageId]
    adjacency: Dict[str, List[str]]
    removed: List[PackageId] = field(default_factory=list)
    ineffective_patterns: List[str] = field(default_factory=list)


class PackageExclusionFilter:
    """Removes packages whose names match any compiled exclusion pattern.

    The filter remembers which patterns matched at least once so callers can
    report patterns that had no effect. Build one filter per analysis run.
    """

    def __init__(self, patterns: Sequence[ExclusionPattern]):
        self.patterns: List[ExclusionPattern] = list(patterns)
        self._matched: Set[int] = set()

    @classmethod
    def from_raw(cls, raw_patterns: Sequence[str]) -> "PackageExclusionFilter":
        return cls(compile_patterns(raw_patterns))

    def matching_indices(self, name: str) -> List[int]:
        return [index for index, pattern in enumerate(self.patterns) if pattern.matches(name)]

    def matches(self, name: str) -> bool:
        hits = self.matching_indices(name)
        self._matched.update(hits)
        return bool(hits)

    @property
    def matched_indices(self) -> Set[int]:
        return set(self._matched)

    def unmatched_patterns(self) -> List[str]:
        return [
            pattern.raw for index, pattern in enumerate(self.patterns) if index not in self._matched
        ]

    def partition_packages(
        self, packages: Iterable[PackageId]
    ) -> tuple[List[PackageId], List[PackageId]]:
        kept: List[PackageId] = []
        removed: List[PackageId] = []
        for package in packages:
            (removed if self.matches(package.name) else kept).append(package)

        if removed and not kept:
            raise AllPackagesExcluded(len(removed))
        return kept, removed

    def filter_packages(self, packages: Iterable[PackageId]) -> List[PackageId]:
        kept, _ = self.partition_packages(packages)
        return kept

    def filter_adjacency(self, adjacency: DependencyAdjacency) -> Dict[str, List[str]]:
        filtered: Dict[str, List[str]] = {}
        for name, deps in adjacency.items():
            if self.matches(name):
                continue
            filtered[name] = [dep for dep in deps if not self.matches(dep)]
        return filtered

    def apply(
        self,
        packages: Iterable[PackageId],
        adjacency: DependencyAdjacency,
        sink: Optional[DiagnosticSink] = None,
    ) -> ExclusionResult:
        kept, removed = self.partition_packages(packages)
        filtered_adjacency = self.filter_adjacency(adjacency)

        emit = resolve_sink(sink)
        ineffective = self.unmatched_patterns()
        for raw in ineffective:
            emit(
                Diagnostic(
                    code=INEFFECTIVE_EXCLUSION_PATTERN,
                    message=f"Exclusion pattern '{raw}' did not match any package",
                    subject=raw,
                )
            )

        return ExclusionResult(
            packages=kept,
            adjacency=filtered_adjacency,
            removed=removed,
            ineffective_patterns=ineffective,
        )
