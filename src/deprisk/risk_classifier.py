from __future__ import annotations

from typing import Iterable, List, Sequence

from .types_risk import (
    PackageVulnerabilities,
    RiskClassification,
    ThresholdPolicy,
    VulnerabilityRecord,
)


def exceeds_threshold(record: VulnerabilityRecord, policy: ThresholdPolicy) -> bool:
    """Return True when a single vulnerability trips the policy.

    Score thresholds only consider records that carry a numeric score, even
    when a textual severity placed the record in a high band.
    """

    if policy.severity is not None:
        return record.severity.rank >= policy.severity.rank
    if policy.score is not None:
        return record.score is not None and record.score >= policy.score
    return False


def classify_vulnerabilities(
    packages: Sequence[PackageVulnerabilities], policy: ThresholdPolicy
) -> RiskClassification:
    classification = RiskClassification()
    for entry in packages:
        if any(exceeds_threshold(record, policy) for record in entry.vulnerabilities):
            classification.above.append(entry)
        else:
            classification.below.append(entry)
    return classification


def apply_ignore_list(
    packages: Sequence[PackageVulnerabilities], ignored_ids: Iterable[str]
) -> List[PackageVulnerabilities]:
    ignored = {vuln_id.strip() for vuln_id in ignored_ids if vuln_id and vuln_id.strip()}
    if not ignored:
        return list(packages)

    return [
        PackageVulnerabilities(
            package=entry.package,
            vulnerabilities=[v for v in entry.vulnerabilities if v.id not in ignored],
        )
        for entry in packages
    ]
