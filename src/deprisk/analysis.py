"""End-to-end analysis run over plain input data.

The dependency-graph branch and the vulnerability branch share no state and
can run side by side on a small thread pool.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .advisories import records_from_entries
from .dependency_graph import MAX_DEPENDENCY_DEPTH, analyze_dependencies
from .diagnostics import Diagnostic, DiagnosticCollector, DiagnosticSink
from .errors import ValidationError
from .exclusion import PackageExclusionFilter
from .risk_classifier import apply_ignore_list, classify_vulnerabilities
from .types_packages import DependencyGraph, PackageId
from .types_risk import PackageVulnerabilities, RiskClassification, ThresholdPolicy

logger = logging.getLogger(__name__)


@dataclass
class AnalysisInput:
    root: str
    packages: List[PackageId]
    dependencies: Dict[str, List[str]] = field(default_factory=dict)
    vulnerabilities: List[PackageVulnerabilities] = field(default_factory=list)


@dataclass
class AnalysisResult:
    root: str
    graph: DependencyGraph
    classification: RiskClassification
    threshold: ThresholdPolicy
    excluded: List[PackageId] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def exceeded(self) -> bool:
        return self.classification.exceeded


def _packages(value: Any) -> List[PackageId]:
    if not isinstance(value, list):
        raise ValidationError("'packages' must be a list of {name, version} objects")
    packages: List[PackageId] = []
    for index, item in enumerate(value):
        if not isinstance(item, Mapping):
            raise ValidationError(
                f"packages[{index}] must be an object with 'name' and 'version'",
                context={"index": index},
            )
        packages.append(PackageId(name=str(item.get("name") or ""), version=str(item.get("version") or "")))
    return packages


def _dependencies(value: Any) -> Dict[str, List[str]]:
    if not isinstance(value, Mapping):
        raise ValidationError("'dependencies' must map package names to lists of names")
    dependencies: Dict[str, List[str]] = {}
    for name, deps in value.items():
        if deps is not None and not isinstance(deps, list):
            raise ValidationError(
                f"dependencies of '{name}' must be a list of names",
                context={"package": str(name)},
            )
        dependencies[str(name)] = [str(dep) for dep in deps or []]
    return dependencies


def parse_analysis_input(payload: Mapping[str, Any]) -> AnalysisInput:
    """Build an ``AnalysisInput`` from the decoded JSON input document.

    Malformed shapes raise ``ValidationError`` naming the offending field.
    """

    if not isinstance(payload, Mapping):
        raise ValidationError("Input document must be a JSON object")

    root = str(payload.get("root") or "")
    packages = _packages(payload.get("packages") or [])
    dependencies = _dependencies(payload.get("dependencies") or {})

    raw_vulnerabilities = payload.get("vulnerabilities") or {}
    if not isinstance(raw_vulnerabilities, Mapping):
        raise ValidationError("'vulnerabilities' must map package names to lists of advisories")

    versions = {package.name: package for package in packages}
    vulnerabilities: List[PackageVulnerabilities] = []
    for name, entries in raw_vulnerabilities.items():
        package = versions.get(name)
        if package is None:
            logger.warning("Vulnerabilities reported for unknown package '%s' were skipped", name)
            continue
        if entries is not None and not isinstance(entries, list):
            raise ValidationError(
                f"vulnerabilities of '{name}' must be a list of advisories",
                context={"package": str(name)},
            )
        vulnerabilities.append(
            PackageVulnerabilities(package=package, vulnerabilities=records_from_entries(entries or []))
        )

    return AnalysisInput(
        root=root,
        packages=packages,
        dependencies=dependencies,
        vulnerabilities=vulnerabilities,
    )


def _vulnerability_branch(
    vulnerabilities: Sequence[PackageVulnerabilities],
    kept_names: set[str],
    threshold: ThresholdPolicy,
    ignored_ids: Sequence[str],
) -> RiskClassification:
    in_scope = [entry for entry in vulnerabilities if entry.package.name in kept_names]
    return classify_vulnerabilities(apply_ignore_list(in_scope, ignored_ids), threshold)


def run_analysis(
    data: AnalysisInput,
    exclude_patterns: Sequence[str] = (),
    threshold: Optional[ThresholdPolicy] = None,
    ignored_ids: Sequence[str] = (),
    sink: Optional[DiagnosticSink] = None,
    parallel: bool = False,
    max_depth: int = MAX_DEPENDENCY_DEPTH,
) -> AnalysisResult:
    threshold = threshold or ThresholdPolicy.none()
    collector = DiagnosticCollector(forward=sink)

    packages = list(data.packages)
    adjacency: Dict[str, List[str]] = {name: list(deps) for name, deps in data.dependencies.items()}
    excluded: List[PackageId] = []
    if exclude_patterns:
        exclusion = PackageExclusionFilter.from_raw(exclude_patterns).apply(packages, adjacency, collector)
        packages, adjacency, excluded = exclusion.packages, exclusion.adjacency, exclusion.removed

    kept_names = {package.name for package in packages}

    if parallel:
        with ThreadPoolExecutor(max_workers=2) as executor:
            graph_future = executor.submit(
                analyze_dependencies, packages, adjacency, data.root, collector, max_depth
            )
            risk_future = executor.submit(
                _vulnerability_branch, data.vulnerabilities, kept_names, threshold, ignored_ids
            )
            graph = graph_future.result()
            classification = risk_future.result()
    else:
        graph = analyze_dependencies(packages, adjacency, data.root, collector, max_depth)
        classification = _vulnerability_branch(data.vulnerabilities, kept_names, threshold, ignored_ids)

    logger.debug(
        "Analysed %d packages: %d direct, %d transitive edges, %d above threshold",
        len(packages),
        graph.direct_count,
        graph.transitive_count,
        len(classification.above),
    )

    return AnalysisResult(
        root=data.root,
        graph=graph,
        classification=classification,
        threshold=threshold,
        excluded=excluded,
        diagnostics=list(collector.items),
    )
