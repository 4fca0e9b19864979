"""Regex-level SQL helpers: statement splitting and operation classification.

There is no SQL grammar here. Statements are split on ``;`` (outside quoted
literals) and on drizzle's ``--> statement-breakpoint`` marker, and each
statement is classified by its leading keywords.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from driftflow.migrations.models import OperationType, SqlOperation

STATEMENT_BREAKPOINT = "--> statement-breakpoint"

_ROLLBACK_MARKER = re.compile(r"^\s*--\s*rollback\b.*$", re.IGNORECASE | re.MULTILINE)

_TRANSACTION_MARKERS = re.compile(r"\b(?:begin|start\s+transaction|commit)\b", re.I)
_TRANSACTION_STATEMENT = re.compile(
    r"^(?:begin|start\s+transaction|commit|rollback|end)\b(?:\s+(?:work|transaction))?\s*$", re.I
)

_IDENT = r"[`\"\[]?([\w.$]+)[`\"\]]?"

_CLASSIFIERS: list[tuple[re.Pattern[str], OperationType]] = [
    (re.compile(r"^create\s+(?:temp(?:orary)?\s+)?table\b", re.I), OperationType.CREATE_TABLE),
    (re.compile(r"^drop\s+table\b", re.I), OperationType.DROP_TABLE),
    (re.compile(r"^alter\s+table\b", re.I), OperationType.ALTER_TABLE),
    (re.compile(r"^create\s+(?:unique\s+)?index\b", re.I), OperationType.CREATE_INDEX),
    (re.compile(r"^drop\s+index\b", re.I), OperationType.DROP_INDEX),
    (re.compile(r"^insert\s+into\b", re.I), OperationType.INSERT),
    (re.compile(r"^update\b", re.I), OperationType.UPDATE),
    (re.compile(r"^delete\s+from\b", re.I), OperationType.DELETE),
]

_TABLE_PATTERNS: dict[OperationType, re.Pattern[str]] = {
    OperationType.CREATE_TABLE: re.compile(
        rf"create\s+(?:temp(?:orary)?\s+)?table\s+(?:if\s+not\s+exists\s+)?{_IDENT}", re.I
    ),
    OperationType.DROP_TABLE: re.compile(rf"drop\s+table\s+(?:if\s+exists\s+)?{_IDENT}", re.I),
    OperationType.ALTER_TABLE: re.compile(
        rf"alter\s+table\s+(?:if\s+exists\s+)?(?:only\s+)?{_IDENT}", re.I
    ),
    OperationType.CREATE_INDEX: re.compile(rf"\bon\s+(?:only\s+)?{_IDENT}", re.I),
    OperationType.INSERT: re.compile(rf"insert\s+into\s+{_IDENT}", re.I),
    OperationType.UPDATE: re.compile(rf"update\s+(?:only\s+)?{_IDENT}", re.I),
    OperationType.DELETE: re.compile(rf"delete\s+from\s+(?:only\s+)?{_IDENT}", re.I),
}

_INDEX_NAME = re.compile(
    rf"(?:create\s+(?:unique\s+)?index\s+(?:concurrently\s+)?(?:if\s+not\s+exists\s+)?"
    rf"|drop\s+index\s+(?:concurrently\s+)?(?:if\s+exists\s+)?)"
    # unnamed indexes: CREATE INDEX [CONCURRENTLY] ON t (...)
    rf"(?!(?:on|concurrently|if)\b){_IDENT}",
    re.I,
)
_COLUMN_NAME = re.compile(
    rf"\b(?:add|drop|alter|rename)\s+column\s+(?:if\s+(?:not\s+)?exists\s+)?{_IDENT}", re.I
)


@dataclass(frozen=True)
class Statement:
    """A single SQL statement without its terminating semicolon."""

    sql: str
    line: int


def split_rollback_section(text: str) -> tuple[str, str | None]:
    """Split a script on a ``-- rollback`` comment line.

    Returns (forward, reverse). ``reverse`` is None when there is no marker.
    """
    match = _ROLLBACK_MARKER.search(text)
    if match is None:
        return text, None
    return text[: match.start()].rstrip() + "\n", text[match.end() :].strip("\n")


def replace_forward_section(text: str, forward: str) -> str:
    """Swap the forward part of a script, keeping any ``-- rollback`` section."""
    match = _ROLLBACK_MARKER.search(text)
    if match is None:
        return forward
    return f"{forward.rstrip()}\n\n{text[match.start():].lstrip()}"


def strip_comments(text: str) -> str:
    """Drop ``--`` line comments, keeping line structure intact."""
    return "\n".join(_strip_line_comment(line) for line in text.split("\n"))


def _strip_line_comment(line: str) -> str:
    in_quote = False
    for i, ch in enumerate(line):
        if ch == "'":
            in_quote = not in_quote
        elif not in_quote and line.startswith("--", i):
            return line[:i]
    return line


def split_statements(text: str) -> list[Statement]:
    """Split a script into statements, tracking the starting line of each."""
    statements: list[Statement] = []
    buffer: list[str] = []
    start_line: int | None = None
    line_no = 1
    in_quote = False

    def flush() -> None:
        nonlocal start_line
        sql = "".join(buffer).strip()
        if sql and start_line is not None:
            statements.append(Statement(sql=sql, line=start_line))
        buffer.clear()
        start_line = None

    for raw_line in text.split("\n"):
        if not in_quote and raw_line.strip().lower().startswith(STATEMENT_BREAKPOINT):
            flush()
            line_no += 1
            continue
        line = raw_line if in_quote else _strip_line_comment(raw_line)
        for ch in line:
            if ch == "'":
                in_quote = not in_quote
            if ch == ";" and not in_quote:
                flush()
                continue
            if start_line is None:
                if ch.isspace():
                    continue
                start_line = line_no
            buffer.append(ch)
        buffer.append("\n")
        line_no += 1
    flush()
    return statements


def has_transaction_control(text: str) -> bool:
    """True when the script (comments ignored) opens or commits a transaction itself."""
    return _TRANSACTION_MARKERS.search(strip_comments(text)) is not None


def is_transaction_control(sql: str) -> bool:
    return _TRANSACTION_STATEMENT.match(sql.strip()) is not None


def classify(sql: str) -> OperationType:
    head = sql.lstrip()
    for pattern, op_type in _CLASSIFIERS:
        if pattern.match(head):
            return op_type
    return OperationType.OTHER


def parse_operations(text: str) -> tuple[SqlOperation, ...]:
    """Derive structured operations from a forward script."""
    operations: list[SqlOperation] = []
    for statement in split_statements(text):
        op_type = classify(statement.sql)
        table = _first_group(_TABLE_PATTERNS.get(op_type), statement.sql)
        index = None
        if op_type in (OperationType.CREATE_INDEX, OperationType.DROP_INDEX):
            index = _first_group(_INDEX_NAME, statement.sql)
        column = None
        if op_type == OperationType.ALTER_TABLE:
            column = _first_group(_COLUMN_NAME, statement.sql)
        operations.append(
            SqlOperation(
                type=op_type,
                sql=statement.sql,
                line=statement.line,
                table=table,
                column=column,
                index=index,
            )
        )
    return tuple(operations)


def _first_group(pattern: re.Pattern[str] | None, sql: str) -> str | None:
    if pattern is None:
        return None
    match = pattern.search(sql)
    return match.group(1) if match else None
