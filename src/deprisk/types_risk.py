from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .errors import ConflictingThresholds, InvalidThreshold, InvalidVulnerabilityRecord
from .types_packages import PackageId

MIN_SCORE = 0.0
MAX_SCORE = 10.0


class SeverityBand(Enum):
    """Coarse severity classification; the value is the comparison rank."""

    NONE = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4

    @property
    def rank(self) -> int:
        return self.value

    @property
    def label(self) -> str:
        return self.name.capitalize()

    def __lt__(self, other: "SeverityBand") -> bool:
        if not isinstance(other, SeverityBand):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: "SeverityBand") -> bool:
        if not isinstance(other, SeverityBand):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: "SeverityBand") -> bool:
        if not isinstance(other, SeverityBand):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: "SeverityBand") -> bool:
        if not isinstance(other, SeverityBand):
            return NotImplemented
        return self.rank >= other.rank


def _check_score(value: float) -> bool:
    return not math.isnan(value) and MIN_SCORE <= value <= MAX_SCORE


@dataclass(frozen=True)
class VulnerabilityRecord:
    id: str
    severity: SeverityBand = SeverityBand.NONE
    score: Optional[float] = None
    fixed_version: Optional[str] = None
    summary: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.id or not self.id.strip():
            raise InvalidVulnerabilityRecord("Vulnerability id cannot be empty", self.id)
        if self.score is not None and not _check_score(float(self.score)):
            raise InvalidVulnerabilityRecord(
                f"CVSS score {self.score} is outside the range 0.0-10.0", self.id
            )

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "score": self.score,
            "severity": self.severity.label,
            "fixed_version": self.fixed_version,
            "summary": self.summary,
        }


@dataclass
class PackageVulnerabilities:
    package: PackageId
    vulnerabilities: List[VulnerabilityRecord] = field(default_factory=list)

    @property
    def highest_severity(self) -> SeverityBand:
        return max((v.severity for v in self.vulnerabilities), default=SeverityBand.NONE)

    def as_dict(self) -> dict:
        return {
            "name": self.package.name,
            "version": self.package.version,
            "highest_severity": self.highest_severity.label,
            "vulnerabilities": [v.as_dict() for v in self.vulnerabilities],
        }


@dataclass(frozen=True)
class ThresholdPolicy:
    """Gating rule: no threshold, a minimum severity band, or a minimum CVSS score."""

    severity: Optional[SeverityBand] = None
    score: Optional[float] = None

    def __post_init__(self) -> None:
        if self.severity is not None and self.score is not None:
            raise ConflictingThresholds(self.severity, self.score)
        if self.score is not None and not _check_score(float(self.score)):
            raise InvalidThreshold(self.score, "CVSS threshold must be between 0.0 and 10.0")

    @classmethod
    def none(cls) -> "ThresholdPolicy":
        return cls()

    @classmethod
    def by_severity(cls, band: SeverityBand) -> "ThresholdPolicy":
        return cls(severity=band)

    @classmethod
    def by_score(cls, score: float) -> "ThresholdPolicy":
        return cls(score=score)

    @property
    def kind(self) -> str:
        if self.severity is not None:
            return "severity"
        if self.score is not None:
            return "score"
        return "none"

    def describe(self) -> str:
        if self.severity is not None:
            return f"severity >= {self.severity.label}"
        if self.score is not None:
            return f"CVSS >= {self.score:.1f}"
        return "no threshold"


@dataclass
class RiskClassification:
    above: List[PackageVulnerabilities] = field(default_factory=list)
    below: List[PackageVulnerabilities] = field(default_factory=list)

    @property
    def exceeded(self) -> bool:
        return bool(self.above)

    @property
    def vulnerable_count(self) -> int:
        return sum(1 for entry in self.above + self.below if entry.vulnerabilities)

    def as_dict(self) -> dict:
        return {
            "exceeded": self.exceeded,
            "above": [entry.as_dict() for entry in self.above],
            "below": [entry.as_dict() for entry in self.below],
        }
