from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from jinja2 import Environment, select_autoescape

from .analysis import AnalysisResult
from .types_packages import PackageId
from .types_risk import PackageVulnerabilities

env = Environment(
    autoescape=select_autoescape(["html", "xml"], default_for_string=False),
    trim_blocks=True,
    lstrip_blocks=True,
)

MARKDOWN_TEMPLATE = """# Dependency Risk Report

Project: {{ root }}
Threshold: {{ threshold }}
Result: {{ "FAILED" if exceeded else "passed" }}

## Dependencies

Direct dependencies: {{ graph.direct_count }}
Transitive dependency edges: {{ graph.transitive_count }}

| Direct dependency | Transitive dependencies |
| --- | --- |
{% for row in dependency_rows %}
| {{ row.name }} | {{ row.transitive or "None" }} |
{% endfor %}
{% if excluded %}

Excluded packages: {{ excluded | join(", ") }}
{% endif %}

## Vulnerabilities above threshold

{% if above_rows %}
| Package | Version | ID | Severity | CVSS | Fixed in | Summary |
| --- | --- | --- | --- | --- | --- | --- |
{% for row in above_rows %}
| {{ row.name }} | {{ row.version }} | {{ row.id }} | {{ row.severity }} | {{ row.score }} | {{ row.fixed }} | {{ row.summary }} |
{% endfor %}
{% else %}
None
{% endif %}

## Other vulnerabilities

{% if below_rows %}
| Package | Version | ID | Severity | CVSS | Fixed in | Summary |
| --- | --- | --- | --- | --- | --- | --- |
{% for row in below_rows %}
| {{ row.name }} | {{ row.version }} | {{ row.id }} | {{ row.severity }} | {{ row.score }} | {{ row.fixed }} | {{ row.summary }} |
{% endfor %}
{% else %}
None
{% endif %}
{% if diagnostics %}

## Warnings

{% for item in diagnostics %}
- [{{ item.code }}] {{ item.message }}
{% endfor %}
{% endif %}
"""


def _cell(value: object) -> str:
    return str(value).replace("|", "\\|").replace("\n", " ")


def _vulnerability_rows(entries: Iterable[PackageVulnerabilities]) -> Iterable[dict]:
    for entry in entries:
        for vuln in entry.vulnerabilities:
            yield {
                "name": _cell(entry.package.name),
                "version": _cell(entry.package.version),
                "id": _cell(vuln.id),
                "severity": vuln.severity.label,
                "score": f"{vuln.score:.1f}" if vuln.score is not None else "n/a",
                "fixed": _cell(vuln.fixed_version or "n/a"),
                "summary": _cell(vuln.summary or ""),
            }


def render_json(result: AnalysisResult) -> str:
    payload = {
        "root": result.root,
        "threshold": result.threshold.describe(),
        "threshold_exceeded": result.exceeded,
        "dependencies": result.graph.as_dict(),
        "excluded": [{"name": p.name, "version": p.version} for p in result.excluded],
        "vulnerabilities": result.classification.as_dict(),
        "diagnostics": [item.as_dict() for item in result.diagnostics],
    }
    return json.dumps(payload, indent=2)


def _bom_ref(package: PackageId) -> str:
    return f"{package.name}-{package.version}"


def render_cyclonedx(result: AnalysisResult) -> str:
    refs = {package.name: _bom_ref(package) for package in result.graph.packages}

    components = [
        {
            "type": "library",
            "bom-ref": refs[package.name],
            "name": package.name,
            "version": package.version,
            "purl": f"pkg:pypi/{package.name}@{package.version}",
        }
        for package in result.graph.packages
    ]

    # Names without a component (unknown to the package list) are left out of dependsOn.
    dependencies = []
    for name in result.graph.direct:
        if name not in refs:
            continue
        depends_on = [refs[dep] for dep in result.graph.transitive_of(name) if dep in refs]
        entry = {"ref": refs[name]}
        if depends_on:
            entry["dependsOn"] = depends_on
        dependencies.append(entry)

    vulnerabilities = []
    for above, entries in ((True, result.classification.above), (False, result.classification.below)):
        for entry in entries:
            component_ref = _bom_ref(entry.package)
            for vuln in entry.vulnerabilities:
                rating = {"severity": vuln.severity.name.lower()}
                if vuln.score is not None:
                    rating["score"] = vuln.score
                item = {
                    "bom-ref": f"{vuln.id}-{component_ref}",
                    "id": vuln.id,
                    "ratings": [rating],
                    "affects": [{"ref": component_ref}],
                    "properties": [{"name": "deprisk:above_threshold", "value": str(above).lower()}],
                }
                if vuln.summary:
                    item["description"] = vuln.summary
                if vuln.fixed_version:
                    item["recommendation"] = f"Upgrade to {vuln.fixed_version}"
                vulnerabilities.append(item)

    sbom = {
        "bomFormat": "CycloneDX",
        "specVersion": "1.6",
        "serialNumber": f"urn:uuid:{uuid.uuid4()}",
        "version": 1,
        "metadata": {
            "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "tools": [{"vendor": "deprisk", "name": "deprisk"}],
            "component": {"type": "application", "name": result.root},
        },
        "components": components,
        "dependencies": dependencies,
        "vulnerabilities": vulnerabilities,
    }
    return json.dumps(sbom, indent=2)


def render_markdown(result: AnalysisResult) -> str:
    template = env.from_string(MARKDOWN_TEMPLATE)
    dependency_rows = [
        {"name": _cell(name), "transitive": _cell(", ".join(result.graph.transitive_of(name)))}
        for name in result.graph.direct
    ]
    return template.render(
        root=result.root,
        threshold=result.threshold.describe(),
        exceeded=result.exceeded,
        graph=result.graph,
        dependency_rows=dependency_rows,
        excluded=[p.name for p in result.excluded],
        above_rows=list(_vulnerability_rows(result.classification.above)),
        below_rows=list(_vulnerability_rows(result.classification.below)),
        diagnostics=result.diagnostics,
    )


def render_report(result: AnalysisResult, fmt: str) -> str:
    fmt = fmt.lower()
    if fmt == "json":
        return render_json(result)
    if fmt in {"markdown", "md"}:
        return render_markdown(result)
    if fmt == "cyclonedx":
        return render_cyclonedx(result)
    raise ValueError(f"Unsupported format: {fmt}")


def write_report(result: AnalysisResult, fmt: str, output: Optional[Path]) -> str:
    content = render_report(result, fmt)
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(content)
    return content
