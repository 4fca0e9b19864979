"""flow detect command - identify the project's ORM and database connection."""

import json
from dataclasses import asdict
from pathlib import Path

import click

from driftflow.cli.utils import find_project_root, load_project_config
from driftflow.core.logging import clear_run_id, set_run_id
from driftflow.core.progress import get_console, status
from driftflow.orm import DatabaseConfig, detect_orm


def _masked(database: DatabaseConfig) -> dict[str, object]:
    data = asdict(database)
    if data.get("password"):
        data["password"] = "***"
    if data.get("url") and database.password:
        data["url"] = data["url"].replace(database.password, "***")
    return data


@click.command()
@click.argument(
    "path",
    default=None,
    required=False,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def detect_command(ctx: click.Context, path: Path | None, as_json: bool) -> None:
    """Detect the ORM used by a project.

    PATH is the project root (default: nearest directory with .flow,
    package.json or .git).
    """
    project_root = path.resolve() if path is not None else find_project_root()
    load_project_config(project_root, verbose=ctx.obj.get("verbose", False))

    set_run_id()
    try:
        detected = detect_orm(project_root)
        database = detected[0].get_database_config(project_root) if detected else None
    finally:
        clear_run_id()

    if as_json:
        payload: dict[str, object] = {"project": str(project_root), "orm": None}
        if detected is not None:
            detector, result = detected
            payload["orm"] = {"name": detector.name, **asdict(result)}
            payload["database"] = _masked(database) if database is not None else None
        click.echo(json.dumps(payload, indent=2))
        return

    if detected is None:
        status("No supported ORM detected", style="warning")
        return

    detector, result = detected
    console = get_console()
    status(f"[bold]{detector.name}[/bold] ({result.confidence}% confidence)", style="success")
    for note in result.evidence:
        console.print(f"    [dim]{note}[/dim]", highlight=False)
    for warning in result.warnings:
        status(warning, style="warning", indent=2)
    if database is not None:
        where = database.host or "local file"
        if database.host and database.port:
            where = f"{where}:{database.port}"
        status(f"Database: {database.type} [cyan]{database.database}[/cyan] ({where})")
