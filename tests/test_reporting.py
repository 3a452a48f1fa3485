import json
from pathlib import Path

import pytest

from deprisk.analysis import parse_analysis_input, run_analysis
from deprisk.reporting import render_cyclonedx, render_json, render_markdown, render_report, write_report
from deprisk.types import SeverityBand, ThresholdPolicy


@pytest.fixture
def result(sample_input):
    return run_analysis(
        parse_analysis_input(sample_input),
        exclude_patterns=["*-dev", "unused"],
        threshold=ThresholdPolicy.by_severity(SeverityBand.HIGH),
    )


def test_render_json_contains_graph_and_classification(result):
    payload = json.loads(render_json(result))

    assert payload["root"] == "myproject"
    assert payload["threshold_exceeded"] is True
    assert payload["threshold"] == "severity >= High"
    assert payload["dependencies"]["transitive"] == {"requests": ["urllib3", "certifi"]}
    assert payload["excluded"] == [{"name": "pytest-dev", "version": "0.1.0"}]
    assert payload["vulnerabilities"]["above"][0]["name"] == "urllib3"
    assert payload["vulnerabilities"]["above"][0]["vulnerabilities"][0]["fixed_version"] == "1.26.2"
    assert payload["diagnostics"][0]["code"] == "INEFFECTIVE_EXCLUSION_PATTERN"


def test_markdown_renders_sections(result):
    markdown = render_markdown(result)

    assert markdown.startswith("# Dependency Risk Report")
    assert "Result: FAILED" in markdown
    assert "| requests | urllib3, certifi |" in markdown
    assert "CVE-2020-26137" in markdown
    assert "Excluded packages: pytest-dev" in markdown
    assert "[INEFFECTIVE_EXCLUSION_PATTERN]" in markdown


def test_render_report_rejects_unknown_format(result):
    with pytest.raises(ValueError):
        render_report(result, "sarif")


def test_write_report_creates_parent_directories(result, tmp_path: Path):
    destination = tmp_path / "out" / "report.md"
    content = write_report(result, "md", destination)
    assert destination.read_text() == content


def test_markdown_escapes_pipes_in_every_cell(sample_input):
    sample_input["vulnerabilities"]["certifi"] = [
        {"id": "GHSA|low", "severity": "LOW", "fixed_version": "2024|9", "summary": "a | b"}
    ]
    markdown = render_markdown(run_analysis(parse_analysis_input(sample_input)))

    row = next(line for line in markdown.splitlines() if line.startswith("| certifi |"))
    assert "GHSA\\|low" in row
    assert "2024\\|9" in row
    assert "a \\| b" in row
    assert row.count(" | ") == 6


def test_render_cyclonedx_document(result):
    sbom = json.loads(render_cyclonedx(result))

    assert sbom["bomFormat"] == "CycloneDX"
    assert sbom["specVersion"] == "1.6"
    assert sbom["serialNumber"].startswith("urn:uuid:")
    assert sbom["metadata"]["component"]["name"] == "myproject"
    names = [component["name"] for component in sbom["components"]]
    assert "pytest-dev" not in names
    assert "pkg:pypi/urllib3@1.26.0" in [component["purl"] for component in sbom["components"]]
    assert sbom["dependencies"] == [
        {"ref": "requests-2.31.0", "dependsOn": ["urllib3-1.26.0", "certifi-2024.8.30"]}
    ]

    by_id = {vuln["id"]: vuln for vuln in sbom["vulnerabilities"]}
    critical = by_id["CVE-2020-26137"]
    assert critical["ratings"] == [{"severity": "critical", "score": pytest.approx(9.8, abs=0.05)}]
    assert critical["affects"] == [{"ref": "urllib3-1.26.0"}]
    assert critical["recommendation"] == "Upgrade to 1.26.2"
    assert critical["properties"] == [{"name": "deprisk:above_threshold", "value": "true"}]
    assert by_id["GHSA-low"]["ratings"] == [{"severity": "low"}]
    assert by_id["GHSA-low"]["properties"][0]["value"] == "false"


def test_render_report_dispatches_cyclonedx(result):
    assert json.loads(render_report(result, "CycloneDX"))["bomFormat"] == "CycloneDX"
