"""CVSS v3 base-score decoding.

Vectors look like ``CVSS:3.1/AV:N/AC:L/PR:N/UI:N/S:U/C:H/I:H/A:H``. Parsing and
scoring are delegated to the ``cvss`` package; metrics may appear in any order
and all eight base metrics are required. Anything that cannot be decoded yields
``None`` rather than an exception so a single malformed advisory never aborts a
run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from cvss import CVSS3
from cvss.exceptions import CVSSError

from .types_risk import SeverityBand

logger = logging.getLogger(__name__)

TEXTUAL_SEVERITY = {
    "CRITICAL": SeverityBand.CRITICAL,
    "HIGH": SeverityBand.HIGH,
    "MODERATE": SeverityBand.MEDIUM,
    "MEDIUM": SeverityBand.MEDIUM,
    "LOW": SeverityBand.LOW,
}


@dataclass(frozen=True)
class CvssVector:
    vector: str
    attack_vector: str
    attack_complexity: str
    privileges_required: str
    user_interaction: str
    scope: str
    confidentiality: str
    integrity: str
    availability: str

    @property
    def scope_changed(self) -> bool:
        return self.scope == "C"

    def base_score(self) -> float:
        return float(CVSS3(self.vector).base_score)

    def as_string(self) -> str:
        return self.vector


def _parse(vector: Optional[str]) -> Optional[CVSS3]:
    if not isinstance(vector, str) or not vector.strip():
        return None
    try:
        return CVSS3(vector.strip())
    except CVSSError as exc:
        logger.debug("Unable to decode CVSS vector %r: %s", vector, exc)
        return None


def decode_vector(vector: Optional[str]) -> Optional[CvssVector]:
    parsed = _parse(vector)
    if parsed is None:
        return None

    metrics = parsed.metrics
    return CvssVector(
        vector=vector.strip(),
        attack_vector=metrics["AV"],
        attack_complexity=metrics["AC"],
        privileges_required=metrics["PR"],
        user_interaction=metrics["UI"],
        scope=metrics["S"],
        confidentiality=metrics["C"],
        integrity=metrics["I"],
        availability=metrics["A"],
    )


def score_vector(vector: Optional[str]) -> Optional[float]:
    parsed = _parse(vector)
    if parsed is None:
        return None
    return float(parsed.base_score)


def severity_from_score(score: float) -> SeverityBand:
    if score <= 0:
        return SeverityBand.NONE
    if score < 4.0:
        return SeverityBand.LOW
    if score < 7.0:
        return SeverityBand.MEDIUM
    if score < 9.0:
        return SeverityBand.HIGH
    return SeverityBand.CRITICAL


def severity_from_text(text: Optional[str]) -> SeverityBand:
    if not text:
        return SeverityBand.NONE
    return TEXTUAL_SEVERITY.get(text.strip().upper(), SeverityBand.NONE)


def assess_severity(
    vector: Optional[str], textual_severity: Optional[str] = None
) -> tuple[Optional[float], SeverityBand]:
    """Return ``(score, band)``, preferring a decodable vector over the textual field."""

    score = score_vector(vector)
    if score is not None:
        return score, severity_from_score(score)
    return None, severity_from_text(textual_severity)
