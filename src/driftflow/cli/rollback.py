"""flow rollback command - print or write the reverse script for a migration."""

from pathlib import Path

import click

from driftflow.cli.utils import find_project_root, load_migration, load_project_config
from driftflow.core.logging import clear_run_id, set_run_id
from driftflow.core.progress import status
from driftflow.enhance import EnhancementEngine
from driftflow.enhance.rollback import MANUAL_MARKER


@click.command()
@click.argument("file", required=False)
@click.option(
    "--project",
    "project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: nearest directory with .flow, package.json or .git)",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
    default=None,
    help="Write the rollback script to this file instead of stdout",
)
@click.pass_context
def rollback_command(
    ctx: click.Context, file: str | None, project: Path | None, output: Path | None
) -> None:
    """Generate a rollback script for a migration.

    An explicit rollback section in the file is used as is; otherwise the
    reverse statements are derived from the forward script.
    """
    project_root = find_project_root(project)
    config = load_project_config(project_root, verbose=ctx.obj.get("verbose", False))
    migration = load_migration(file, project_root, config)
    engine = EnhancementEngine(settings=config.enhancements)

    set_run_id()
    try:
        script = engine.generate_rollback(migration)
    finally:
        clear_run_id()

    if output is None:
        click.echo(script, nl=not script.endswith("\n"))
    else:
        output.write_text(script, encoding="utf-8")
        status(f"Wrote rollback for {migration.name} to {output}", style="success")

    manual = script.count(MANUAL_MARKER)
    if manual:
        status(f"{manual} statement(s) need a manual rollback", style="warning")
