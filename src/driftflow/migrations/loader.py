"""Migration file discovery and loading."""

from __future__ import annotations

import hashlib
import re
from datetime import datetime
from pathlib import Path

from driftflow.core.errors import MigrationError
from driftflow.core.logging import get_logger
from driftflow.migrations.models import MigrationFile
from driftflow.migrations.sql import parse_operations, split_rollback_section

log = get_logger("migrations")

DEFAULT_EXTENSIONS: tuple[str, ...] = (".sql",)

# 20240131120000_add_users.sql
_DATETIME_PREFIX = re.compile(r"^(\d{14})_")
# 0003_add_users.sql (drizzle / sequence numbered)
_SEQUENCE_PREFIX = re.compile(r"^(\d+)_")


def is_migration_file(path: Path, extensions: tuple[str, ...] = DEFAULT_EXTENSIONS) -> bool:
    return path.suffix.lower() in extensions


def _sort_key(path: Path) -> tuple[int, str]:
    match = _SEQUENCE_PREFIX.match(path.name)
    return (int(match.group(1)) if match else -1, path.name)


def list_migration_files(
    migrations_dir: Path, extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
) -> list[Path]:
    """All migration files in a directory, oldest first."""
    if not migrations_dir.is_dir():
        return []
    files = [
        p for p in migrations_dir.iterdir() if p.is_file() and is_migration_file(p, extensions)
    ]
    return sorted(files, key=_sort_key)


def find_latest_migration(
    migrations_dir: Path, extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
) -> Path | None:
    files = list_migration_files(migrations_dir, extensions)
    return files[-1] if files else None


def resolve_migration_path(
    file: str | Path,
    migrations_dir: Path,
    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS,
) -> Path:
    """Resolve a user-supplied migration path against the migrations directory.

    Raises:
        MigrationError: If the file does not exist or is not a migration file.
    """
    candidate = Path(file)
    if not candidate.is_absolute():
        candidate = migrations_dir / candidate
    if not candidate.is_file():
        raise MigrationError.not_found(str(candidate))
    if not is_migration_file(candidate, extensions):
        raise MigrationError.invalid_file(str(candidate))
    return candidate


def extract_timestamp(path: Path) -> datetime:
    """Timestamp from a YYYYMMDDHHMMSS filename prefix, else the file mtime."""
    match = _DATETIME_PREFIX.match(path.name)
    if match:
        try:
            return datetime.strptime(match.group(1), "%Y%m%d%H%M%S")
        except ValueError:
            pass
    try:
        return datetime.fromtimestamp(path.stat().st_mtime)
    except OSError:
        return datetime.now()


def parse_migration_file(path: Path) -> MigrationFile:
    """Load a migration file from disk.

    A ``-- rollback`` comment line splits the file into forward and reverse
    sections; without it the whole file is the forward script.

    Raises:
        MigrationError: If the file cannot be read.
    """
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise MigrationError.not_found(str(path)) from e

    up, down = split_rollback_section(content)
    migration = MigrationFile(
        path=str(path),
        name=path.name,
        up=up,
        down=down or "",
        timestamp=extract_timestamp(path),
        operations=parse_operations(up),
        checksum=hashlib.sha256(content.encode("utf-8")).hexdigest(),
    )
    log.debug(
        "migration_loaded",
        path=str(path),
        operations=len(migration.operations),
        has_down=migration.has_down,
    )
    return migration
