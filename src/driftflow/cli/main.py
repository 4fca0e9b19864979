"""DriftFlow CLI - flow command."""

import click

from driftflow.cli.detect import detect_command
from driftflow.cli.enhance import enhance_command
from driftflow.cli.rollback import rollback_command
from driftflow.cli.validate import validate_command
from driftflow.core.logging import configure_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="flow")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """DriftFlow - Safety and speed enhancements for SQL migrations."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(level="DEBUG" if verbose else "WARNING")


cli.add_command(enhance_command, name="enhance")
cli.add_command(validate_command, name="validate")
cli.add_command(rollback_command, name="rollback")
cli.add_command(detect_command, name="detect")


if __name__ == "__main__":
    cli()
