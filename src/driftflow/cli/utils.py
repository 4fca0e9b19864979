"""CLI utilities."""

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import click

from driftflow.config import DriftFlowConfig, load_config
from driftflow.core.errors import DriftFlowError, MigrationError
from driftflow.core.logging import configure_logging
from driftflow.migrations import (
    MigrationFile,
    find_latest_migration,
    parse_migration_file,
    resolve_migration_path,
)
from driftflow.orm import detect_orm

PROJECT_MARKERS = (".flow", "package.json", ".git")


def find_project_root(start_path: Path | None = None) -> Path:
    """Find the project root from the given path.

    Walks up the directory tree looking for a ``.flow`` directory, a
    package.json or a .git directory. Falls back to the starting directory
    when none is found.
    """
    if start_path is None:
        start_path = Path.cwd()

    start = start_path.resolve()
    current = start
    while True:
        if any((current / marker).exists() for marker in PROJECT_MARKERS):
            return current
        if current == current.parent:
            return start
        current = current.parent


@contextmanager
def cli_errors() -> Iterator[None]:
    """Turn DriftFlow errors into click errors with their code and message."""
    try:
        yield
    except DriftFlowError as e:
        raise click.ClickException(str(e)) from e


def load_project_config(project_root: Path, *, verbose: bool = False) -> DriftFlowConfig:
    """Load config for ``project_root`` and apply its logging section."""
    with cli_errors():
        config = load_config(project_root)
    logging_config = config.logging
    if verbose:
        logging_config = logging_config.model_copy(update={"level": "DEBUG"})
    configure_logging(config=logging_config)
    return config


def migrations_dir(project_root: Path, config: DriftFlowConfig) -> Path:
    """Configured migrations directory, or the one the detected ORM writes to."""
    configured = project_root / config.migrations.path
    if configured.is_dir():
        return configured
    detected = detect_orm(project_root)
    if detected is not None:
        orm_config = detected[0].extract_config(project_root)
        if orm_config is not None and orm_config.migration_directory.exists:
            return orm_config.migration_directory.absolute
    return configured


def load_migration(file: str | None, project_root: Path, config: DriftFlowConfig) -> MigrationFile:
    """Load ``file`` or, when omitted, the latest migration of the project.

    A ``file`` that exists relative to the working directory is used as is;
    otherwise it is resolved inside the migrations directory.

    Raises:
        click.ClickException: If no migration can be found or read.
    """
    directory = migrations_dir(project_root, config)
    extensions = tuple(config.migrations.extensions)
    with cli_errors():
        if file is None:
            latest = find_latest_migration(directory, extensions)
            if latest is None:
                raise MigrationError.empty_directory(str(directory))
            path = latest
        elif Path(file).is_file():
            path = resolve_migration_path(Path(file).resolve(), directory, extensions)
        else:
            path = resolve_migration_path(file, directory, extensions)
        return parse_migration_file(path)
