"""Direct/transitive dependency partitioning over a resolved adjacency relation.

The adjacency relation comes straight from lockfile content and is treated as
untrusted: it may be cyclic, self-referential or pathologically deep. The walk
is iterative, keeps its state local to each call, and stops expanding a chain
once it reaches ``max_depth``.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .diagnostics import DEPENDENCY_CHAIN_TRUNCATED, Diagnostic, DiagnosticSink, resolve_sink
from .errors import InvalidIdentifier
from .types_packages import DependencyAdjacency, DependencyGraph, PackageId

MAX_DEPENDENCY_DEPTH = 100


def _unique(names: Iterable[str]) -> List[str]:
    seen: Set[str] = set()
    ordered: List[str] = []
    for name in names:
        if name not in seen:
            seen.add(name)
            ordered.append(name)
    return ordered


def direct_dependencies(adjacency: DependencyAdjacency, root_name: str) -> List[str]:
    return _unique(adjacency.get(root_name) or [])


def collect_transitive(
    start: str,
    adjacency: DependencyAdjacency,
    direct: Set[str],
    sink: DiagnosticSink,
    max_depth: int = MAX_DEPENDENCY_DEPTH,
) -> List[str]:
    """Return every package reachable from ``start`` that is not a direct dependency.

    Names are recorded in depth-first preorder, the order in which a recursive
    walk over the successor lists would first reach them.
    """

    recorded: List[str] = []
    recorded_set: Set[str] = set()
    # Shallowest depth each name was expanded at; a shorter path expands it again.
    expanded_at: Dict[str, int] = {start: 0}
    truncated: List[str] = []

    # Successors are pushed in reverse so they pop in declaration order.
    stack: List[Tuple[str, int]] = [(dep, 1) for dep in reversed(adjacency.get(start) or [])]

    while stack:
        name, depth = stack.pop()

        if name not in direct and name not in recorded_set:
            recorded.append(name)
            recorded_set.add(name)

        if expanded_at.get(name, max_depth + 1) <= depth:
            continue

        successors: Sequence[str] = adjacency.get(name) or []
        if not successors:
            expanded_at[name] = depth
            continue

        if depth >= max_depth:
            if name not in truncated:
                truncated.append(name)
            continue

        expanded_at[name] = depth
        stack.extend((dep, depth + 1) for dep in reversed(successors))

    for name in truncated:
        if name in expanded_at:
            continue
        sink(
            Diagnostic(
                code=DEPENDENCY_CHAIN_TRUNCATED,
                message=(
                    f"Dependency chain under '{start}' exceeded depth {max_depth} at "
                    f"'{name}'; its dependencies were not expanded"
                ),
                subject=name,
            )
        )

    return recorded


def analyze_dependencies(
    packages: Sequence[PackageId],
    adjacency: DependencyAdjacency,
    root_name: str,
    sink: Optional[DiagnosticSink] = None,
    max_depth: int = MAX_DEPENDENCY_DEPTH,
) -> DependencyGraph:
    if not root_name:
        raise InvalidIdentifier("name", root_name)

    emit = resolve_sink(sink)
    direct = direct_dependencies(adjacency, root_name)
    direct_set = set(direct)

    transitive: Dict[str, List[str]] = {}
    for name in direct:
        collected = collect_transitive(name, adjacency, direct_set, emit, max_depth=max_depth)
        if collected:
            transitive[name] = collected

    return DependencyGraph(direct=direct, transitive=transitive, packages=list(packages))
