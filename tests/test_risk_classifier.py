from deprisk.risk_classifier import apply_ignore_list, classify_vulnerabilities, exceeds_threshold
from deprisk.types import (
    PackageId,
    PackageVulnerabilities,
    SeverityBand,
    ThresholdPolicy,
    VulnerabilityRecord,
)


def _vuln(vuln_id: str, severity: SeverityBand, score=None) -> VulnerabilityRecord:
    return VulnerabilityRecord(id=vuln_id, severity=severity, score=score, summary=f"Test vulnerability {vuln_id}")


def _entry(name: str, *vulns: VulnerabilityRecord) -> PackageVulnerabilities:
    return PackageVulnerabilities(package=PackageId(name, "1.0.0"), vulnerabilities=list(vulns))


def test_severity_threshold_uses_highest_vulnerability():
    entry = _entry("requests", _vuln("CVE-1", SeverityBand.CRITICAL, 9.8), _vuln("CVE-2", SeverityBand.LOW, 2.0))

    result = classify_vulnerabilities([entry], ThresholdPolicy.by_severity(SeverityBand.HIGH))

    assert result.above == [entry]
    assert result.below == []
    assert result.exceeded


def test_severity_threshold_is_inclusive():
    entry = _entry("urllib3", _vuln("CVE-3", SeverityBand.HIGH, 7.5))
    result = classify_vulnerabilities([entry], ThresholdPolicy.by_severity(SeverityBand.HIGH))
    assert result.above == [entry]


def test_package_below_severity_threshold():
    entry = _entry("urllib3", _vuln("CVE-4", SeverityBand.LOW, 2.0))

    result = classify_vulnerabilities([entry], ThresholdPolicy.by_severity(SeverityBand.HIGH))

    assert result.above == []
    assert result.below == [entry]
    assert not result.exceeded


def test_score_threshold_ignores_unscored_vulnerabilities():
    entry = _entry("certifi", _vuln("GHSA-1", SeverityBand.HIGH))

    result = classify_vulnerabilities([entry], ThresholdPolicy.by_score(7.0))

    assert result.below == [entry]
    assert not result.exceeded


def test_score_threshold_is_inclusive():
    entry = _entry("certifi", _vuln("CVE-5", SeverityBand.HIGH, 7.0))
    assert classify_vulnerabilities([entry], ThresholdPolicy.by_score(7.0)).exceeded
    assert not classify_vulnerabilities([entry], ThresholdPolicy.by_score(7.1)).exceeded


def test_no_threshold_never_exceeds():
    entries = [
        _entry("a", _vuln("CVE-6", SeverityBand.CRITICAL, 10.0)),
        _entry("b"),
    ]

    result = classify_vulnerabilities(entries, ThresholdPolicy.none())

    assert result.above == []
    assert result.below == entries
    assert result.vulnerable_count == 1


def test_every_package_lands_in_exactly_one_bucket():
    entries = [
        _entry("a", _vuln("CVE-7", SeverityBand.MEDIUM, 5.0)),
        _entry("b", _vuln("CVE-8", SeverityBand.CRITICAL, 9.1)),
        _entry("c"),
    ]

    result = classify_vulnerabilities(entries, ThresholdPolicy.by_score(6.0))

    assert [e.package.name for e in result.above] == ["b"]
    assert [e.package.name for e in result.below] == ["a", "c"]


def test_exceeds_threshold_with_none_severity_record():
    record = _vuln("CVE-9", SeverityBand.NONE, 0.0)
    assert exceeds_threshold(record, ThresholdPolicy.by_score(0.0))
    assert not exceeds_threshold(record, ThresholdPolicy.by_severity(SeverityBand.LOW))


def test_ignore_list_drops_records_before_classification():
    entries = [_entry("a", _vuln("CVE-10", SeverityBand.CRITICAL, 9.8), _vuln("CVE-11", SeverityBand.LOW, 1.0))]

    filtered = apply_ignore_list(entries, ["CVE-10", " "])
    result = classify_vulnerabilities(filtered, ThresholdPolicy.by_severity(SeverityBand.HIGH))

    assert [v.id for v in filtered[0].vulnerabilities] == ["CVE-11"]
    assert not result.exceeded
    assert [v.id for v in entries[0].vulnerabilities] == ["CVE-10", "CVE-11"]
