"""Speed enhancements: lock-free index builds and batched inserts."""

from __future__ import annotations

import re
from collections.abc import Iterable

from driftflow.enhance.base import BaseModule, is_comment, replace_in_matches
from driftflow.enhance.models import (
    ChangeType,
    Enhancement,
    EnhancementCategory,
    EnhancementChange,
    EnhancementImpact,
    EnhancementIssue,
    EnhancementResult,
    IssueSeverity,
)
from driftflow.enhance.scoring import Evidence, EvidenceCount
from driftflow.migrations.sql import has_transaction_control

_CREATE_INDEX = re.compile(r"\bcreate\s+(unique\s+)?index\s+(?=\S)(?!concurrently\b)", re.I)


class ConcurrentIndexModule(BaseModule):
    enhancement = Enhancement(
        id="speed-concurrent-index",
        name="Concurrent Index Creation",
        description="Creates indexes concurrently to avoid blocking writes",
        category=EnhancementCategory.SPEED,
        priority=8,
        tags=frozenset({"index", "concurrent", "locking", "postgresql"}),
    )
    impact = EnhancementImpact(
        risk_reduction=0.3,
        performance_improvement=0.8,
        complexity_added=0.1,
        description="Builds indexes without locking the table against writes",
    )
    not_applicable_reason = "No non-concurrent index creation found"
    idempotent = True

    def _matches(self, content: str) -> bool:
        return _CREATE_INDEX.search(content) is not None

    def _collect_issues(self, content: str) -> Iterable[EnhancementIssue]:
        issues = []
        for number, line in enumerate(content.split("\n"), start=1):
            match = None if is_comment(line) else _CREATE_INDEX.search(line)
            if match is None:
                continue
            unique = match.group(1) is not None
            issues.append(
                EnhancementIssue(
                    severity=IssueSeverity.HIGH if unique else IssueSeverity.MEDIUM,
                    description=(
                        "CREATE UNIQUE INDEX blocks writes for the whole build"
                        if unique
                        else "CREATE INDEX blocks writes to the table while it builds"
                    ),
                    location=line.strip(),
                    line=number,
                    recommendation="Use CREATE INDEX CONCURRENTLY outside a transaction",
                )
            )
        return issues

    def _evidence(self, content: str, issues: tuple[EnhancementIssue, ...]) -> Evidence:
        return Evidence(
            required=EvidenceCount(found=1, total=1),
            optional=EvidenceCount(found=1 if issues else 0, total=1),
            negative=1 if has_transaction_control(content) else 0,
        )

    def _rewrite(self, content: str) -> EnhancementResult:
        if has_transaction_control(content):
            return EnhancementResult.skipped(
                self.enhancement,
                content,
                "CREATE INDEX CONCURRENTLY cannot run inside a transaction block; "
                "indexes left unchanged",
            )
        modified, changes = replace_in_matches(
            content,
            _CREATE_INDEX,
            lambda m: f"CREATE {'UNIQUE ' if m.group(1) else ''}INDEX CONCURRENTLY ",
            "Build index concurrently to avoid blocking writes",
        )
        return self._result(
            content,
            modified,
            changes,
            ["CONCURRENTLY is PostgreSQL syntax and must run outside a transaction block"],
        )


# -- batch insert -----------------------------------------------------------

_INSERT = re.compile(r"\binsert\s+into\b", re.I)
_SINGLE_INSERT = re.compile(
    r"^(\s*)insert\s+into\s+([\w.\"`\[\]]+)\s*\(([^)]*)\)\s*values\s*(\(.*\))\s*;\s*$", re.I
)
BATCH_THRESHOLD = 3
MIN_RUN = 2
LARGE_RUN = 5


def _insert_key(line: str) -> tuple[str, str, str, str] | None:
    """(indent, table, columns, values) of a one-line INSERT ... VALUES statement.

    Statements with anything after the row tuples (``ON CONFLICT``,
    ``RETURNING``, ``ON DUPLICATE KEY``) are not plain inserts and give None.
    """
    match = _SINGLE_INSERT.match(line)
    if match is None:
        return None
    indent, table, columns, values = match.groups()
    rows = _row_tuples(values)
    if rows is None:
        return None
    return indent, table, ", ".join(c.strip() for c in columns.split(",")), rows


def _row_tuples(text: str) -> str | None:
    """``text`` stripped when it holds only comma-separated ``(...)`` tuples."""
    depth = 0
    in_quote = False
    expect_row = True
    for ch in text:
        if in_quote:
            in_quote = ch != "'"
        elif depth:
            if ch == "'":
                in_quote = True
            elif ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1
        elif ch.isspace():
            continue
        elif ch == "(" and expect_row:
            depth, expect_row = 1, False
        elif ch == "," and not expect_row:
            expect_row = True
        else:
            return None
    if depth or in_quote or expect_row:
        return None
    return text.strip()


def _insert_runs(content: str) -> list[tuple[int, list[str]]]:
    """Consecutive one-line inserts into the same table and columns.

    Returns (0-based start index, lines) for each run of at least ``MIN_RUN``.
    """
    runs: list[tuple[int, list[str]]] = []
    current: list[str] = []
    start = 0
    current_key: tuple[str, str] | None = None
    for index, line in enumerate([*content.split("\n"), ""]):
        parsed = _insert_key(line)
        key = (parsed[1].lower(), parsed[2].lower()) if parsed else None
        if key is not None and key == current_key:
            current.append(line)
            continue
        if len(current) >= MIN_RUN:
            runs.append((start, current))
        current, start, current_key = ([line], index, key) if key else ([], index, None)
    return runs


class BatchInsertModule(BaseModule):
    enhancement = Enhancement(
        id="speed-batch-insert",
        name="Batch Insert Optimization",
        description="Merges runs of single-row inserts into multi-row inserts",
        category=EnhancementCategory.SPEED,
        priority=7,
        tags=frozenset({"insert", "batch", "bulk", "performance"}),
    )
    impact = EnhancementImpact(
        risk_reduction=0.0,
        performance_improvement=0.6,
        complexity_added=0.2,
        description="Cuts round trips by inserting many rows per statement",
    )
    not_applicable_reason = f"No more than {BATCH_THRESHOLD} INSERT statements found"
    idempotent = True

    def _matches(self, content: str) -> bool:
        return len(_INSERT.findall(content)) > BATCH_THRESHOLD

    def _collect_issues(self, content: str) -> Iterable[EnhancementIssue]:
        issues = []
        for start, lines in _insert_runs(content):
            table = _insert_key(lines[0])[1]
            issues.append(
                EnhancementIssue(
                    severity=IssueSeverity.MEDIUM if len(lines) > LARGE_RUN else IssueSeverity.LOW,
                    description=f"{len(lines)} single-row INSERT statements into {table}",
                    location=lines[0].strip(),
                    line=start + 1,
                    recommendation="Combine them into one multi-row INSERT",
                )
            )
        return issues

    def _rewrite(self, content: str) -> EnhancementResult:
        lines = content.split("\n")
        out: list[str] = []
        changes: list[EnhancementChange] = []
        position = 0
        for start, run in _insert_runs(content):
            out.extend(lines[position:start])
            indent, table, columns, _ = _insert_key(run[0])
            values = [_insert_key(line)[3] for line in run]
            merged = [
                f"{indent}-- Batched {len(run)} inserts into {table}",
                f"{indent}INSERT INTO {table} ({columns}) VALUES",
                *(f"{indent}  {v}," for v in values[:-1]),
                f"{indent}  {values[-1]};",
            ]
            changes.append(
                EnhancementChange(
                    type=ChangeType.MODIFIED,
                    original="\n".join(run),
                    modified="\n".join(merged),
                    line=len(out) + 1,
                    reason=f"Merged {len(run)} inserts into one statement",
                )
            )
            out.extend(merged)
            position = start + len(run)
        out.extend(lines[position:])
        return self._result(content, "\n".join(out), changes)
