"""flow enhance command - apply safety and speed enhancements to a migration."""

import asyncio
import difflib
from pathlib import Path

import click
from rich.markup import escape

from driftflow.cli.utils import find_project_root, load_migration, load_project_config
from driftflow.core.logging import clear_run_id, set_run_id
from driftflow.core.progress import get_console, pluralize, print_rule, spinner, status
from driftflow.enhance import (
    EnhanceReport,
    Enhancement,
    EnhancementAnalysis,
    EnhancementEngine,
)
from driftflow.migrations import MigrationFile, replace_forward_section


def confirm_enhancement(enhancement: Enhancement, analysis: EnhancementAnalysis | None) -> bool:
    """Show what a confirmation-gated enhancement found and ask before applying it."""
    console = get_console()
    console.print(f"\n[bold]{enhancement.name}[/bold] [dim]({enhancement.id})[/dim]")
    console.print(f"  {enhancement.description}")
    if analysis is not None:
        for issue in analysis.issues:
            console.print(
                f"  [yellow]•[/yellow] line {issue.line} "
                f"{escape(f'[{issue.severity.value}] {issue.description}')}",
                highlight=False,
            )
    return click.confirm("Apply this enhancement?", default=False, err=True)


def print_report(report: EnhanceReport) -> None:
    applied = report.applied
    for result in report.results:
        if result.applied:
            status(
                f"{result.enhancement.name} ({pluralize(len(result.changes), 'change')})",
                style="success",
            )
        else:
            status(f"{result.enhancement.name} skipped", style="warning")
    for warning in report.warnings:
        status(warning, style="warning", indent=2)
    if not report.results:
        status("No enhancements needed", style="success")
    elif applied:
        status(f"Applied {pluralize(len(applied), 'enhancement')}", style="success")


def write_enhanced(migration: MigrationFile, content: str) -> None:
    """Write enhanced forward SQL back, keeping any rollback section."""
    path = Path(migration.path)
    original = path.read_text(encoding="utf-8")
    path.write_text(replace_forward_section(original, content), encoding="utf-8")


def unified_diff(migration: MigrationFile, report: EnhanceReport) -> str:
    return "".join(
        difflib.unified_diff(
            report.original.splitlines(keepends=True),
            report.content.splitlines(keepends=True),
            fromfile=f"a/{migration.name}",
            tofile=f"b/{migration.name}",
        )
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
@click.option("--yes", "-y", is_flag=True, help="Apply confirmation-gated enhancements")
@click.option("--dry-run", is_flag=True, help="Print the diff instead of writing the file")
@click.pass_context
def enhance_command(
    ctx: click.Context, file: str | None, project: Path | None, yes: bool, dry_run: bool
) -> None:
    """Enhance a migration file in place.

    FILE defaults to the latest migration in the migrations directory.
    """
    project_root = find_project_root(project)
    config = load_project_config(project_root, verbose=ctx.obj.get("verbose", False))
    settings = config.enhancements
    if yes:
        settings = settings.model_copy(update={"auto_approve": True})

    migration = load_migration(file, project_root, config)
    engine = EnhancementEngine(settings=settings, confirm=confirm_enhancement)

    set_run_id()
    try:
        status(f"Enhancing [cyan]{migration.name}[/cyan]", style="none")
        with spinner("Analysing migration"):
            analyses = asyncio.run(engine.analyze_all(migration))
        selected = engine.select(analyses)
        report = engine.apply_enhancements(migration.up, migration, selected, analyses)
    finally:
        clear_run_id()

    print_report(report)
    if not report.changed:
        return

    if dry_run:
        print_rule("dry run")
        click.echo(unified_diff(migration, report), nl=False)
        return

    write_enhanced(migration, report.content)
    status(f"Wrote {migration.path}", style="success")
