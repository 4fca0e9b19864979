"""Migration file models."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum


class OperationType(Enum):
    """Kind of SQL statement, as recognised by the statement heuristics."""

    CREATE_TABLE = "CREATE_TABLE"
    DROP_TABLE = "DROP_TABLE"
    ALTER_TABLE = "ALTER_TABLE"
    CREATE_INDEX = "CREATE_INDEX"
    DROP_INDEX = "DROP_INDEX"
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    OTHER = "OTHER"


@dataclass(frozen=True)
class SqlOperation:
    """One statement of a migration script."""

    type: OperationType
    sql: str
    line: int  # 1-based line of the statement's first token
    table: str | None = None
    column: str | None = None
    index: str | None = None


@dataclass(frozen=True)
class MigrationFile:
    """Immutable description of one migration script.

    ``up`` is the source of truth for every analysis. ``operations`` is often
    left empty; callers that need structure re-derive it from ``up``.
    """

    path: str
    name: str
    up: str
    down: str = ""
    timestamp: datetime = field(default_factory=datetime.now)
    operations: tuple[SqlOperation, ...] = ()
    checksum: str = ""

    def with_up(self, up: str) -> MigrationFile:
        """Copy with a different forward script (used between pipeline steps)."""
        return replace(self, up=up)

    @property
    def has_down(self) -> bool:
        return bool(self.down.strip())
