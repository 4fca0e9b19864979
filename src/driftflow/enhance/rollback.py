"""Rollback generation.

An explicit ``down`` script always wins, then a ``-- rollback`` section
embedded in the forward script. Otherwise a reverse script is synthesized
statement by statement: creations are reversed exactly, anything that
cannot be reversed mechanically becomes a ``MANUAL ACTION REQUIRED``
placeholder. Each forward statement yields exactly one step, so an
``ALTER TABLE`` adding several columns or constraints is reversed by a single
``ALTER TABLE`` dropping them in reverse order. Steps come out in reverse
statement order.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from driftflow.core.logging import get_logger
from driftflow.migrations.models import MigrationFile, OperationType, SqlOperation
from driftflow.migrations.sql import (
    is_transaction_control,
    parse_operations,
    split_rollback_section,
)

log = get_logger("enhance.rollback")

MANUAL_MARKER = "-- MANUAL ACTION REQUIRED"

_IDENT = r"[`\"\[]?([\w.$]+)[`\"\]]?"
_ADD_COLUMN = re.compile(
    r"\badd\s+(?:column\s+)?(?:if\s+not\s+exists\s+)?"
    rf"(?!constraint\b|primary\b|unique\b|check\b|foreign\b|index\b|key\b){_IDENT}",
    re.I,
)
_ADD_CONSTRAINT = re.compile(rf"\badd\s+constraint\s+{_IDENT}", re.I)


@dataclass(frozen=True)
class RollbackStep:
    """One reverse statement, or a placeholder when none can be derived."""

    sql: str
    source: str  # forward statement this step reverses
    line: int
    manual: bool = False

    def render(self) -> str:
        return self.sql if self.manual else f"{self.sql};"


def synthesize_rollback(up: str) -> list[RollbackStep]:
    """Derive reverse steps for a forward script, last statement first."""
    steps: list[RollbackStep] = []
    for op in parse_operations(up):
        if is_transaction_control(op.sql):
            continue
        steps.extend(_reverse(op))
    steps.reverse()
    return steps


def _reverse(op: SqlOperation) -> list[RollbackStep]:
    if op.type == OperationType.CREATE_TABLE and op.table:
        return [RollbackStep(f"DROP TABLE {op.table}", op.sql, op.line)]
    if op.type == OperationType.CREATE_INDEX and op.index:
        return [RollbackStep(f"DROP INDEX {op.index}", op.sql, op.line)]
    if op.type == OperationType.ALTER_TABLE and op.table:
        drops = sorted(
            [(m.start(), f"DROP COLUMN {m.group(1)}") for m in _ADD_COLUMN.finditer(op.sql)]
            + [
                (m.start(), f"DROP CONSTRAINT {m.group(1)}")
                for m in _ADD_CONSTRAINT.finditer(op.sql)
            ],
            reverse=True,
        )
        if drops:
            actions = ", ".join(action for _, action in drops)
            return [RollbackStep(f"ALTER TABLE {op.table} {actions}", op.sql, op.line)]
    return [_manual(op)]


def _manual(op: SqlOperation) -> RollbackStep:
    summary = " ".join(op.sql.split())
    if len(summary) > 80:
        summary = summary[:77] + "..."
    return RollbackStep(
        f"{MANUAL_MARKER}: reverse line {op.line}: {summary}", op.sql, op.line, manual=True
    )


def render_rollback(steps: list[RollbackStep]) -> str:
    return "\n".join(step.render() for step in steps)


def generate_rollback(migration: MigrationFile) -> str:
    """Reverse script for ``migration``."""
    if migration.has_down:
        return migration.down
    _, embedded = split_rollback_section(migration.up)
    if embedded is not None and embedded.strip():
        return embedded

    steps = synthesize_rollback(migration.up)
    manual = sum(1 for step in steps if step.manual)
    log.debug("rollback_synthesized", migration=migration.name, steps=len(steps), manual=manual)
    header = [
        f"-- Rollback for {migration.name}",
        "-- Generated from the forward script; review before running",
    ]
    return "\n".join([*header, render_rollback(steps)]) + "\n"
