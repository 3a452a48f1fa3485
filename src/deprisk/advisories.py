"""Turn already-deserialized advisory payloads into ``VulnerabilityRecord`` values.

Two payload shapes are understood: the flat entries of the analysis input
document (``cvss_vector`` / ``severity`` / ``fixed_version``) and raw OSV
vulnerability objects. Nothing here performs network access.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping, Optional

from .cvss import assess_severity, decode_vector
from .errors import InvalidVulnerabilityRecord
from .types_risk import VulnerabilityRecord

logger = logging.getLogger(__name__)

CVSS_SEVERITY_TYPES = ("CVSS_V3", "CVSS_V4")


def _is_osv(entry: Mapping[str, Any]) -> bool:
    return isinstance(entry.get("severity"), list) or "affected" in entry or "database_specific" in entry


def _osv_vector(entry: Mapping[str, Any]) -> Optional[str]:
    severities = [s for s in entry.get("severity") or [] if isinstance(s, Mapping)]
    for severity_type in CVSS_SEVERITY_TYPES:
        for item in severities:
            if item.get("type") == severity_type and decode_vector(item.get("score")):
                return item.get("score")
    return None


def _osv_textual_severity(entry: Mapping[str, Any]) -> Optional[str]:
    database_specific = entry.get("database_specific") or {}
    if isinstance(database_specific, Mapping):
        value = database_specific.get("severity")
        return str(value) if value else None
    return None


def _mapping_items(value: Any, what: str, vuln_id: Optional[str]) -> List[Mapping[str, Any]]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, Mapping) for item in value):
        raise InvalidVulnerabilityRecord(f"'{what}' must be a list of objects", vuln_id)
    return value


def _osv_fixed_version(entry: Mapping[str, Any]) -> Optional[str]:
    vuln_id = entry.get("id")
    for affected in _mapping_items(entry.get("affected"), "affected", vuln_id):
        for version_range in _mapping_items(affected.get("ranges"), "affected[].ranges", vuln_id):
            for event in _mapping_items(version_range.get("events"), "ranges[].events", vuln_id):
                fixed = event.get("fixed")
                if fixed:
                    return str(fixed)
    return None


def record_from_osv(entry: Mapping[str, Any]) -> VulnerabilityRecord:
    vuln_id = entry.get("id") or (entry.get("aliases") or [None])[0] or ""
    score, band = assess_severity(_osv_vector(entry), _osv_textual_severity(entry))
    return VulnerabilityRecord(
        id=str(vuln_id),
        score=score,
        severity=band,
        fixed_version=_osv_fixed_version(entry),
        summary=entry.get("summary"),
    )


def record_from_entry(entry: Mapping[str, Any]) -> VulnerabilityRecord:
    if not isinstance(entry, Mapping):
        raise InvalidVulnerabilityRecord(f"Vulnerability entry must be an object, got {type(entry).__name__}")
    if _is_osv(entry):
        return record_from_osv(entry)

    vector = entry.get("cvss_vector") or entry.get("vector")
    score, band = assess_severity(vector, entry.get("severity"))
    if vector and score is None:
        logger.debug("Unable to decode CVSS vector %r for %s", vector, entry.get("id"))
    return VulnerabilityRecord(
        id=str(entry.get("id") or ""),
        score=score,
        severity=band,
        fixed_version=entry.get("fixed_version"),
        summary=entry.get("summary"),
    )


def records_from_entries(entries: Iterable[Mapping[str, Any]]) -> List[VulnerabilityRecord]:
    return [record_from_entry(entry) for entry in entries]
