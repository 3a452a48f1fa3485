from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional

import yaml

from .errors import ConfigFileError, InvalidThreshold
from .types_risk import SeverityBand, ThresholdPolicy

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "deprisk.config.yml"
SUPPORTED_FORMATS = {"json", "markdown", "md", "cyclonedx"}
KNOWN_FIELDS = {"format", "exclude_packages", "severity_threshold", "cvss_threshold", "ignore_cves"}
THRESHOLD_SEVERITIES = {
    "low": SeverityBand.LOW,
    "medium": SeverityBand.MEDIUM,
    "high": SeverityBand.HIGH,
    "critical": SeverityBand.CRITICAL,
}


@dataclass
class IgnoredVulnerability:
    id: str
    reason: str = ""


@dataclass
class ConfigFile:
    format: Optional[str] = None
    exclude_packages: List[str] = field(default_factory=list)
    severity_threshold: Optional[str] = None
    cvss_threshold: Optional[float] = None
    ignore_cves: List[IgnoredVulnerability] = field(default_factory=list)
    unknown_fields: List[str] = field(default_factory=list)


@dataclass
class AnalysisSettings:
    """Settings after merging CLI arguments over a config file."""

    format: str = "json"
    exclude_patterns: List[str] = field(default_factory=list)
    threshold: ThresholdPolicy = field(default_factory=ThresholdPolicy.none)
    ignore_cves: List[IgnoredVulnerability] = field(default_factory=list)

    @property
    def ignored_ids(self) -> List[str]:
        return [entry.id for entry in self.ignore_cves]


def _string_list(path: Path, key: str, value: object) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigFileError(path, f"'{key}' must be a list")
    return [str(item) for item in value]


def _parse_ignore_cves(path: Path, value: object) -> List[IgnoredVulnerability]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigFileError(path, "'ignore_cves' must be a list")

    entries: list[IgnoredVulnerability] = []
    for index, entry in enumerate(value):
        if isinstance(entry, dict):
            vuln_id = str(entry.get("id") or "")
            reason = str(entry.get("reason") or "")
        else:
            vuln_id = str(entry or "")
            reason = ""
        if not vuln_id.strip():
            raise ConfigFileError(
                path,
                f"ignore_cves[{index}].id must not be empty (e.g. \"CVE-2024-1234\")",
            )
        entries.append(IgnoredVulnerability(id=vuln_id.strip(), reason=reason))
    return entries


def load_config(path: Path) -> ConfigFile:
    try:
        raw = yaml.safe_load(path.read_text()) or {}
    except OSError as exc:
        raise ConfigFileError(path, f"unable to read file: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigFileError(path, f"invalid YAML: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigFileError(path, "top-level document must be a mapping")

    unknown = sorted(str(key) for key in raw if key not in KNOWN_FIELDS)
    for key in unknown:
        logger.warning("Unknown config field '%s' in %s will be ignored", key, path)

    cvss_threshold = raw.get("cvss_threshold")
    if cvss_threshold is not None:
        try:
            cvss_threshold = float(cvss_threshold)
        except (TypeError, ValueError) as exc:
            raise ConfigFileError(path, f"'cvss_threshold' must be a number, got {cvss_threshold!r}") from exc

    fmt = str(raw["format"]).lower() if raw.get("format") else None
    if fmt is not None and fmt not in SUPPORTED_FORMATS:
        raise ConfigFileError(path, f"unsupported format '{fmt}' (expected json, markdown or cyclonedx)")

    severity_threshold = raw.get("severity_threshold")
    return ConfigFile(
        format=fmt,
        exclude_packages=_string_list(path, "exclude_packages", raw.get("exclude_packages")),
        severity_threshold=str(severity_threshold) if severity_threshold else None,
        cvss_threshold=cvss_threshold,
        ignore_cves=_parse_ignore_cves(path, raw.get("ignore_cves")),
        unknown_fields=unknown,
    )


def discover_config(directory: Path) -> Optional[ConfigFile]:
    candidate = directory / CONFIG_FILENAME
    if not candidate.exists():
        return None
    return load_config(candidate)


def parse_severity_threshold(text: str) -> SeverityBand:
    band = THRESHOLD_SEVERITIES.get(text.strip().lower())
    if band is None:
        raise InvalidThreshold(text, "expected one of low, medium, high, critical")
    return band


def build_threshold_policy(
    severity: Optional[str] = None, score: Optional[float] = None
) -> ThresholdPolicy:
    band = parse_severity_threshold(severity) if severity else None
    return ThresholdPolicy(severity=band, score=score)


def merge_unique(primary: Iterable[str], secondary: Iterable[str]) -> List[str]:
    seen: set[str] = set()
    merged: List[str] = []
    for item in list(primary) + list(secondary):
        if item not in seen:
            seen.add(item)
            merged.append(item)
    return merged


def merge_settings(
    config: Optional[ConfigFile],
    fmt: Optional[str] = None,
    exclude: Iterable[str] = (),
    severity_threshold: Optional[str] = None,
    cvss_threshold: Optional[float] = None,
    ignore_cves: Iterable[str] = (),
) -> AnalysisSettings:
    """Combine CLI values with a config file.

    Scalars come from the CLI when given, then the config file. List fields
    are merged with CLI entries first and deduplicated.
    """

    config = config or ConfigFile()

    cli_ignored = [IgnoredVulnerability(id=vuln_id) for vuln_id in ignore_cves]
    ignored: list[IgnoredVulnerability] = []
    seen_ids: set[str] = set()
    for entry in cli_ignored + config.ignore_cves:
        if entry.id not in seen_ids:
            seen_ids.add(entry.id)
            ignored.append(entry)

    # A threshold given on the command line replaces both config thresholds.
    if severity_threshold is not None or cvss_threshold is not None:
        threshold = build_threshold_policy(severity_threshold, cvss_threshold)
    else:
        threshold = build_threshold_policy(config.severity_threshold, config.cvss_threshold)

    return AnalysisSettings(
        format=fmt or config.format or "json",
        exclude_patterns=merge_unique(exclude, config.exclude_packages),
        threshold=threshold,
        ignore_cves=ignored,
    )
