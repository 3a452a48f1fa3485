import pytest

from deprisk.advisories import record_from_entry, record_from_osv, records_from_entries
from deprisk.errors import InvalidVulnerabilityRecord
from deprisk.types import SeverityBand

CRITICAL_VECTOR = "CVSS:3.1/AV:N/AC:L/PR:N/UI:N/S:U/C:H/I:H/A:H"


def test_flat_entry_with_vector():
    record = record_from_entry(
        {"id": "CVE-2024-0001", "cvss_vector": CRITICAL_VECTOR, "fixed_version": "2.0.0", "summary": "demo"}
    )
    assert record.score == pytest.approx(9.8, abs=0.05)
    assert record.severity is SeverityBand.CRITICAL
    assert record.fixed_version == "2.0.0"


def test_flat_entry_falls_back_to_textual_severity():
    record = record_from_entry({"id": "GHSA-1", "cvss_vector": "broken", "severity": "moderate"})
    assert record.score is None
    assert record.severity is SeverityBand.MEDIUM


def test_osv_entry_prefers_v3_vector_and_extracts_fixed_version():
    osv = {
        "id": "GHSA-abcd",
        "summary": "Request smuggling",
        "severity": [
            {"type": "CVSS_V4", "score": "CVSS:4.0/AV:N/AC:L/AT:N/PR:N/UI:N/VC:H/VI:H/VA:H/SC:N/SI:N/SA:N"},
            {"type": "CVSS_V3", "score": CRITICAL_VECTOR},
        ],
        "database_specific": {"severity": "LOW"},
        "affected": [
            {"ranges": [{"type": "ECOSYSTEM", "events": [{"introduced": "0"}, {"fixed": "2.32.0"}]}]}
        ],
    }

    record = record_from_osv(osv)

    assert record.id == "GHSA-abcd"
    assert record.severity is SeverityBand.CRITICAL
    assert record.fixed_version == "2.32.0"
    assert record.summary == "Request smuggling"


def test_osv_entry_without_decodable_vector_uses_database_severity():
    osv = {
        "id": "PYSEC-1",
        "severity": [{"type": "CVSS_V4", "score": "CVSS:4.0/AV:N/AC:L/AT:N/PR:N/UI:N/VC:H/VI:H/VA:H/SC:N/SI:N/SA:N"}],
        "database_specific": {"severity": "HIGH"},
    }

    record = record_from_entry(osv)

    assert record.score is None
    assert record.severity is SeverityBand.HIGH
    assert record.fixed_version is None


def test_osv_entry_falls_back_to_alias_for_id():
    record = record_from_osv({"aliases": ["CVE-2023-1"], "severity": []})
    assert record.id == "CVE-2023-1"
    assert record.severity is SeverityBand.NONE


def test_records_from_entries_keeps_order():
    records = records_from_entries([{"id": "A", "severity": "LOW"}, {"id": "B", "severity": "HIGH"}])
    assert [r.id for r in records] == ["A", "B"]


@pytest.mark.parametrize(
    "entry",
    [
        "CVE-2024-0001",
        {"id": "GHSA-2", "affected": "urllib3"},
        {"id": "GHSA-3", "affected": [{"ranges": ["ECOSYSTEM"]}]},
        {"id": "GHSA-4", "affected": [{"ranges": [{"events": [["fixed", "1.0"]]}]}]},
    ],
)
def test_malformed_entries_are_rejected(entry):
    with pytest.raises(InvalidVulnerabilityRecord):
        record_from_entry(entry)
