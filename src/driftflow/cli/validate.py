"""flow validate command - report what enhance would change, without changing it."""

import asyncio
import json
from pathlib import Path
from typing import Any

import click
from rich.table import Table

from driftflow.cli.utils import find_project_root, load_migration, load_project_config
from driftflow.core.logging import clear_run_id, set_run_id
from driftflow.core.progress import get_console, pluralize, status
from driftflow.enhance import EnhanceReport, EnhancementEngine, IssueSeverity

BLOCKING = (IssueSeverity.CRITICAL, IssueSeverity.HIGH)


def report_to_dict(report: EnhanceReport) -> list[dict[str, Any]]:
    rows = []
    for result in report.results:
        analysis = report.analyses[result.enhancement.id]
        rows.append(
            {
                "id": result.enhancement.id,
                "name": result.enhancement.name,
                "category": result.enhancement.category_name,
                "confidence": round(analysis.confidence, 3),
                "requires_confirmation": result.enhancement.requires_confirmation,
                "issues": [
                    {
                        "severity": issue.severity.value,
                        "line": issue.line,
                        "description": issue.description,
                        "recommendation": issue.recommendation,
                    }
                    for issue in analysis.issues
                ],
            }
        )
    return rows


def _issues_table(report: EnhanceReport) -> Table:
    table = Table(show_header=True, box=None, padding=(0, 1), pad_edge=False)
    table.add_column("Line", justify="right", style="dim")
    table.add_column("Severity")
    table.add_column("Enhancement", style="cyan")
    table.add_column("Issue")
    for result in report.results:
        for issue in report.analyses[result.enhancement.id].issues:
            table.add_row(
                str(issue.line),
                issue.severity.value,
                result.enhancement.id,
                issue.description,
            )
    return table


def has_blocking_issues(report: EnhanceReport) -> bool:
    return any(
        issue.severity in BLOCKING
        for result in report.results
        for issue in report.analyses[result.enhancement.id].issues
    )


@click.command()
@click.argument("file", required=False)
@click.option(
    "--project",
    "project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: nearest directory with .flow, package.json or .git)",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--strict", is_flag=True, help="Exit with status 1 on critical or high issues")
@click.pass_context
def validate_command(
    ctx: click.Context, file: str | None, project: Path | None, as_json: bool, strict: bool
) -> None:
    """List the enhancements that apply to a migration and the issues they found.

    FILE defaults to the latest migration in the migrations directory.
    """
    project_root = find_project_root(project)
    config = load_project_config(project_root, verbose=ctx.obj.get("verbose", False))
    migration = load_migration(file, project_root, config)
    engine = EnhancementEngine(settings=config.enhancements)

    set_run_id()
    try:
        report = asyncio.run(engine.enhance(migration, validate_only=True))
    finally:
        clear_run_id()

    if as_json:
        payload = {"migration": migration.name, "enhancements": report_to_dict(report)}
        click.echo(json.dumps(payload, indent=2))
    elif not report.results:
        status(f"{migration.name}: no enhancements apply", style="success")
    else:
        status(
            f"{migration.name}: {pluralize(len(report.results), 'enhancement')} would apply",
            style="warning",
        )
        get_console().print(_issues_table(report))

    if strict and has_blocking_issues(report):
        ctx.exit(1)
