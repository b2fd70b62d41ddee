"""Command line entry point: lint a bundle directory or print its assembled prompt."""

from __future__ import annotations

import json
import logging
import sys

import click

from .bundle import BundleError, load_bundle_from_dir
from .checks.catalog import CHECKS, CHECKS_VERSION
from .lint import lint_bundle
from .prompting import build_prompt_context
from .settings import get_settings

logger = logging.getLogger(__name__)

_LEVEL_COLORS = {"error": "red", "warn": "yellow", "info": "cyan"}


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    logging.getLogger().setLevel(getattr(logging, level.upper(), logging.INFO))


def _load(path: str):
    try:
        return load_bundle_from_dir(path)
    except BundleError as e:
        raise click.ClickException(str(e)) from e


@click.group()
@click.version_option(version=CHECKS_VERSION)
@click.option("--log-level", default=None, help="Override LOG_LEVEL.")
def cli(log_level):
    """Lint Salesforce prompt bundles (rules.json, *.mode.json, markdown)."""
    _setup_logging(log_level or get_settings().LOG_LEVEL)


@cli.command("lint")
@click.argument("path", required=False)
@click.option("--strict", is_flag=True, help="Fail on warnings too (also STRICT_DEFAULT).")
@click.option("--json", "as_json", is_flag=True, help="Print the full JSON report.")
def lint_cmd(path, strict, as_json):
    """Lint the bundle at PATH (default: BUNDLE_DIR)."""
    settings = get_settings()
    bundle = _load(path or settings.BUNDLE_DIR)
    report = lint_bundle(
        bundle,
        strict=strict or settings.STRICT_DEFAULT,
        required_sections=settings.REQUIRED_SECTIONS,
    )

    if as_json:
        click.echo(json.dumps(report.model_dump(), indent=2, ensure_ascii=False))
    else:
        for issue in report.issues:
            where = issue.file or bundle.source
            label = click.style(f"{issue.severity:<5}", fg=_LEVEL_COLORS.get(issue.severity))
            click.echo(f"{label} {where}: {issue.message} [{issue.code}]")
        summary = report.rules_summary
        click.echo(f"{summary.total} rules, {len(report.files)} files. {report.decision.summary}")

    if report.decision.needs_fix:
        sys.exit(1)


@cli.command("prompt")
@click.argument("path", required=False)
@click.option("--max-chars", type=int, default=None, help="Truncate the context (default: PROMPT_MAX_CHARS).")
def prompt_cmd(path, max_chars):
    """Print the assistant context assembled from the bundle."""
    settings = get_settings()
    bundle = _load(path or settings.BUNDLE_DIR)
    text, truncated = build_prompt_context(bundle, max_chars=settings.PROMPT_MAX_CHARS if max_chars is None else max_chars)
    if truncated:
        logger.warning("prompt truncated to %d chars", len(text))
    click.echo(text)


@cli.command("checks")
def checks_cmd():
    """List the lint check catalog."""
    for check in sorted(CHECKS.values(), key=lambda c: c.check_id):
        click.echo(f"{check.check_id:<10} {check.severity:<5} {check.code}")


def main() -> None:
    cli()
