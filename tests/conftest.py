import sys
from pathlib import Path

import pytest

# Ensure src package is importable without installation
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if SRC.exists():
    sys.path.insert(0, str(SRC))


@pytest.fixture
def sample_input() -> dict:
    """A small analysis input document shared by the CLI and analysis tests."""

    return {
        "root": "myproject",
        "packages": [
            {"name": "myproject", "version": "1.0.0"},
            {"name": "requests", "version": "2.31.0"},
            {"name": "urllib3", "version": "1.26.0"},
            {"name": "certifi", "version": "2024.8.30"},
            {"name": "pytest-dev", "version": "0.1.0"},
        ],
        "dependencies": {
            "myproject": ["requests", "pytest-dev"],
            "requests": ["urllib3", "certifi"],
            "pytest-dev": ["certifi"],
        },
        "vulnerabilities": {
            "urllib3": [
                {
                    "id": "CVE-2020-26137",
                    "cvss_vector": "CVSS:3.1/AV:N/AC:L/PR:N/UI:N/S:U/C:H/I:H/A:H",
                    "fixed_version": "1.26.2",
                    "summary": "CRLF injection",
                }
            ],
            "certifi": [{"id": "GHSA-low", "severity": "LOW"}],
        },
    }
