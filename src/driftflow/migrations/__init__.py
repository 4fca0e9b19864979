"""Migration module - file records, loading, and SQL statement helpers."""

from driftflow.migrations.loader import (
    find_latest_migration,
    list_migration_files,
    parse_migration_file,
    resolve_migration_path,
)
from driftflow.migrations.models import MigrationFile, OperationType, SqlOperation
from driftflow.migrations.sql import (
    parse_operations,
    replace_forward_section,
    split_rollback_section,
    split_statements,
)

__all__ = [
    "MigrationFile",
    "OperationType",
    "SqlOperation",
    "find_latest_migration",
    "list_migration_files",
    "parse_migration_file",
    "parse_operations",
    "replace_forward_section",
    "resolve_migration_path",
    "split_rollback_section",
    "split_statements",
]
