from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import click

from .analysis import parse_analysis_input, run_analysis
from .config import discover_config, load_config, merge_settings
from .cvss import assess_severity
from .errors import DepRiskError
from .exclusion import compile_patterns
from .reporting import write_report


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@click.group()
def main() -> None:
    """Dependency risk analysis CLI."""


@main.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False, path_type=str))
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=str),
    help="YAML config file (defaults to deprisk.config.yml next to the input, if present).",
)
@click.option(
    "--exclude",
    multiple=True,
    help="Package name pattern to exclude; '*' matches any run of characters.",
)
@click.option(
    "--severity-threshold",
    type=click.Choice(["low", "medium", "high", "critical"], case_sensitive=False),
    help="Fail when any vulnerability reaches this severity.",
)
@click.option(
    "--cvss-threshold",
    type=float,
    help="Fail when any scored vulnerability reaches this CVSS score (0.0-10.0).",
)
@click.option(
    "--ignore-cve",
    multiple=True,
    help="Vulnerability ID to leave out of the threshold check.",
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["json", "markdown", "md", "cyclonedx"], case_sensitive=False),
    help="Output format for the report (default: json).",
)
@click.option(
    "--output",
    type=click.Path(dir_okay=False, writable=True, path_type=str),
    help="Write the report to a file instead of stdout.",
)
@click.option(
    "--parallel/--sequential",
    default=False,
    show_default=True,
    help="Run the dependency and vulnerability analyses concurrently.",
)
@click.option("--verbose", is_flag=True, help="Enable debug logging.")
def analyze(
    input_file: str,
    config_path: Optional[str],
    exclude: tuple[str, ...],
    severity_threshold: Optional[str],
    cvss_threshold: Optional[float],
    ignore_cve: tuple[str, ...],
    fmt: Optional[str],
    output: Optional[str],
    parallel: bool,
    verbose: bool,
) -> None:
    """Analyse a resolved dependency set described by a JSON INPUT_FILE."""

    _configure_logging(verbose)
    if severity_threshold and cvss_threshold is not None:
        raise click.UsageError("--severity-threshold and --cvss-threshold cannot be used together")

    input_path = Path(input_file)
    try:
        payload = json.loads(input_path.read_text())
    except json.JSONDecodeError as exc:
        raise click.ClickException(f"Unable to parse input JSON {input_path}: {exc}") from exc

    try:
        config = load_config(Path(config_path)) if config_path else discover_config(input_path.parent)
        settings = merge_settings(
            config,
            fmt=fmt,
            exclude=exclude,
            severity_threshold=severity_threshold,
            cvss_threshold=cvss_threshold,
            ignore_cves=ignore_cve,
        )
        data = parse_analysis_input(payload)
        result = run_analysis(
            data,
            exclude_patterns=settings.exclude_patterns,
            threshold=settings.threshold,
            ignored_ids=settings.ignored_ids,
            parallel=parallel,
        )
    except DepRiskError as exc:
        raise click.ClickException(str(exc)) from exc

    for item in result.diagnostics:
        click.echo(f"Warning: {item.message}", err=True)

    destination = Path(output) if output else None
    rendered = write_report(result, settings.format, destination)
    if not destination:
        click.echo(rendered)

    if result.exceeded:
        click.echo(
            f"{len(result.classification.above)} package(s) have vulnerabilities at or above "
            f"the threshold ({result.threshold.describe()})",
            err=True,
        )
        raise SystemExit(1)


@main.command()
@click.argument("vector")
@click.option("--severity", "textual_severity", help="Fallback textual severity (e.g. HIGH, MODERATE).")
def cvss(vector: str, textual_severity: Optional[str]) -> None:
    """Score a CVSS v3 VECTOR and print its severity band."""

    score, band = assess_severity(vector, textual_severity)
    if score is None:
        click.echo("Unable to decode CVSS vector; using textual severity.", err=True)
    score_text = f"{score:.1f}" if score is not None else "n/a"
    click.echo(f"score={score_text} severity={band.label}")


@main.command("check-patterns")
@click.argument("patterns", nargs=-1, required=True)
def check_patterns(patterns: tuple[str, ...]) -> None:
    """Validate exclusion PATTERNS and show how each one is matched."""

    try:
        compiled = compile_patterns(list(patterns))
    except DepRiskError as exc:
        raise click.ClickException(str(exc)) from exc

    for pattern in compiled:
        click.echo(f"{pattern.raw}: {pattern.shape!r}")


if __name__ == "__main__":
    main()
