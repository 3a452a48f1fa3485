from __future__ import annotations

"""Shared data structures for dependency and vulnerability analysis.

The definitions live in domain-focused modules; this module re-exports them so
callers have a single stable import path.
"""

from .types_packages import DependencyAdjacency, DependencyGraph, PackageId
from .types_risk import (
    PackageVulnerabilities,
    RiskClassification,
    SeverityBand,
    ThresholdPolicy,
    VulnerabilityRecord,
)

__all__ = [
    "DependencyAdjacency",
    "DependencyGraph",
    "PackageId",
    "PackageVulnerabilities",
    "RiskClassification",
    "SeverityBand",
    "ThresholdPolicy",
    "VulnerabilityRecord",
]
