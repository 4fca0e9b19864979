"""Safety enhancements.

Each module guards one class of risky schema or data change. Most annotate
the offending lines with a comment block; a few rewrite SQL (transaction
wrapping, ``IF EXISTS`` on drops) or prepend a banner for the whole script.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable

from driftflow.enhance.base import (
    BaseModule,
    LinePattern,
    comment_block,
    insert_before_matches,
    is_comment,
    matching_lines,
    prepend_block,
    replace_in_matches,
)
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
from driftflow.migrations.models import OperationType
from driftflow.migrations.sql import (
    has_transaction_control,
    parse_operations,
    split_statements,
)

_IDENT = r"[`\"\[]?([\w.$]+)[`\"\]]?"
_ALTER_TABLE = re.compile(rf"\balter\s+table\s+(?:if\s+exists\s+)?(?:only\s+)?{_IDENT}", re.I)
_ALTER_COLUMN = re.compile(rf"\balter\s+column\s+{_IDENT}", re.I)
# constraint added to a table that may already hold rows
_EXISTING_TABLE = re.compile(
    r"\balter\s+table\b|\badd\s+(?:constraint|foreign|unique|check)\b", re.I
)

Construct = tuple[re.Pattern[str], IssueSeverity, str]


def _table_on(line: str, default: str = "table_name") -> str:
    match = _ALTER_TABLE.search(line)
    return match.group(1) if match else default


def _column_on(line: str, default: str = "column_name") -> str:
    match = _ALTER_COLUMN.search(line)
    return match.group(1) if match else default


def _line_issues(
    content: str,
    pattern: LinePattern,
    severity: IssueSeverity | Callable[[str], IssueSeverity],
    description: str | Callable[[str], str],
    recommendation: str,
) -> list[EnhancementIssue]:
    """One issue per non-comment line matching ``pattern``."""
    return [
        EnhancementIssue(
            severity=severity(line) if callable(severity) else severity,
            description=description(line) if callable(description) else description,
            location=line.strip(),
            line=number,
            recommendation=recommendation,
        )
        for number, line in matching_lines(content, pattern)
    ]


def _construct_issues(
    content: str, constructs: list[Construct], recommendation: str
) -> list[EnhancementIssue]:
    """One issue per line, classified by the first construct it matches."""
    issues = []
    for number, line in enumerate(content.split("\n"), start=1):
        construct = None if is_comment(line) else _first_construct(line, constructs)
        if construct is None:
            continue
        _, severity, description = construct
        issues.append(
            EnhancementIssue(
                severity=severity,
                description=description,
                location=line.strip(),
                line=number,
                recommendation=recommendation,
            )
        )
    return issues


def _first_construct(line: str, constructs: list[Construct]) -> Construct | None:
    for construct in constructs:
        if construct[0].search(line):
            return construct
    return None


def _kinds_found(content: str, constructs: list[Construct]) -> int:
    return sum(1 for pattern, _, _ in constructs if pattern.search(content))


# -- transaction wrapper ----------------------------------------------------

_TRANSACTION_RISKS: list[Construct] = [
    (
        re.compile(r"\bdrop\s+table\b", re.I),
        IssueSeverity.HIGH,
        "DROP TABLE cannot be undone if a later statement fails",
    ),
    (
        re.compile(r"\bdrop\s+column\b", re.I),
        IssueSeverity.HIGH,
        "DROP COLUMN cannot be undone if a later statement fails",
    ),
    (
        re.compile(r"^\s*delete\s+from\b", re.I | re.M),
        IssueSeverity.HIGH,
        "DELETE leaves partial data behind if a later statement fails",
    ),
    (
        re.compile(r"\balter\s+table\b", re.I),
        IssueSeverity.MEDIUM,
        "ALTER TABLE leaves the schema half-migrated if a later statement fails",
    ),
    (
        re.compile(r"^\s*update\b", re.I | re.M),
        IssueSeverity.MEDIUM,
        "UPDATE leaves partial data behind if a later statement fails",
    ),
    (
        re.compile(r"\b(?:create|drop)\s+(?:unique\s+)?index\b", re.I),
        IssueSeverity.LOW,
        "Index change runs outside a transaction",
    ),
]

# statements that refuse to run inside a transaction block
_NON_TRANSACTIONAL = re.compile(
    r"\bconcurrently\b|^\s*vacuum\b|\balter\s+type\b[^;]*\badd\s+value\b", re.I | re.M
)


class TransactionWrapperModule(BaseModule):
    enhancement = Enhancement(
        id="safety-transaction-wrapper",
        name="Transaction Wrapper",
        description="Wraps migration in a transaction to ensure atomicity",
        category=EnhancementCategory.SAFETY,
        priority=9,
        tags=frozenset({"transaction", "atomicity", "rollback"}),
    )
    impact = EnhancementImpact(
        risk_reduction=0.8,
        performance_improvement=0.0,
        complexity_added=0.1,
        description="Wraps the migration in a transaction so a failure rolls back every statement",
    )
    not_applicable_reason = "Migration already uses transactions or has no risky operations"
    idempotent = True

    def _matches(self, content: str) -> bool:
        if has_transaction_control(content):
            return False
        return _kinds_found(content, _TRANSACTION_RISKS) > 0

    def _collect_issues(self, content: str) -> Iterable[EnhancementIssue]:
        return _construct_issues(
            content,
            _TRANSACTION_RISKS,
            "Run the migration inside BEGIN/COMMIT so it applies all-or-nothing",
        )

    def _evidence(self, content: str, issues: tuple[EnhancementIssue, ...]) -> Evidence:
        return Evidence(
            required=EvidenceCount(found=1, total=1),
            optional=EvidenceCount(
                found=_kinds_found(content, _TRANSACTION_RISKS), total=len(_TRANSACTION_RISKS)
            ),
            negative=len(_NON_TRANSACTIONAL.findall(content)),
        )

    def _rewrite(self, content: str) -> EnhancementResult:
        body = content.strip("\n")
        wrapped = f"BEGIN;\n\n{body}\n\nCOMMIT;\n"
        warnings = []
        if _NON_TRANSACTIONAL.search(content):
            warnings.append(
                "Migration contains statements that cannot run inside a transaction block"
            )
        return self._result(
            content,
            wrapped,
            [
                EnhancementChange(
                    type=ChangeType.WRAPPED,
                    original=content,
                    modified=wrapped,
                    line=1,
                    reason="Wrapped migration in a transaction for atomicity",
                )
            ],
            warnings,
        )


# -- drop table -------------------------------------------------------------

_DROP_TABLE = re.compile(r"\bdrop\s+table\b", re.I)
_DROP_TABLE_NAME = re.compile(rf"\bdrop\s+table\s+(?:if\s+exists\s+)?{_IDENT}", re.I)
_DROP_TABLE_UNGUARDED = re.compile(r"\b(drop\s+table)\s+(?=\S)(?!if\s+exists\b)", re.I)


class DropTableSafeguardModule(BaseModule):
    enhancement = Enhancement(
        id="safety-drop-table-safeguard",
        name="Drop Table Safeguard",
        description="Adds warnings and IF EXISTS guards to DROP TABLE operations",
        category=EnhancementCategory.SAFETY,
        priority=10,
        requires_confirmation=True,
        tags=frozenset({"drop", "data-loss", "critical"}),
    )
    impact = EnhancementImpact(
        risk_reduction=0.9,
        performance_improvement=0.0,
        complexity_added=0.2,
        description="Flags irreversible table drops and makes them tolerate missing tables",
    )
    not_applicable_reason = "No DROP TABLE operations found"
    idempotent = True

    def _matches(self, content: str) -> bool:
        return _DROP_TABLE.search(content) is not None

    def _collect_issues(self, content: str) -> Iterable[EnhancementIssue]:
        return _line_issues(
            content,
            _DROP_TABLE,
            IssueSeverity.CRITICAL,
            lambda line: f"Dropping {_drop_table_name(line)} permanently deletes its data",
            "Back up the table and confirm nothing still depends on it",
        )

    def _evidence(self, content: str, issues: tuple[EnhancementIssue, ...]) -> Evidence:
        guarded = len(re.findall(r"\bdrop\s+table\s+if\s+exists\b", content))
        return Evidence(
            required=EvidenceCount(found=1, total=1),
            optional=EvidenceCount(found=1 if issues else 0, total=1),
            negative=min(guarded, 2),
        )

    def _rewrite(self, content: str) -> EnhancementResult:
        guarded, changes = replace_in_matches(
            content,
            _DROP_TABLE_UNGUARDED,
            lambda m: f"{m.group(1)} IF EXISTS ",
            "Added IF EXISTS to DROP TABLE",
        )
        annotated, added = insert_before_matches(
            guarded,
            _DROP_TABLE,
            lambda line: comment_block(
                [
                    "CRITICAL WARNING: DROP TABLE operation detected",
                    f"Dropping {_drop_table_name(line)} permanently deletes all of its data",
                    "Verify a current backup exists before running this migration",
                ]
            ),
            "Added warning before DROP TABLE",
        )
        return self._result(content, annotated, changes + added)


def _drop_table_name(line: str) -> str:
    match = _DROP_TABLE_NAME.search(line)
    return match.group(1) if match else "the table"


# -- drop column ------------------------------------------------------------

_DROP_COLUMN = re.compile(rf"\bdrop\s+column\s+(?:if\s+exists\s+)?{_IDENT}", re.I)
_DROP_COLUMN_MARKER = "-- drop column warning"


class DropColumnModule(BaseModule):
    enhancement = Enhancement(
        id="safety-drop-column",
        name="Drop Column Warning",
        description="Warns that DROP COLUMN permanently deletes column data",
        category=EnhancementCategory.SAFETY,
        priority=9,
        tags=frozenset({"drop", "data-loss", "column"}),
    )
    impact = EnhancementImpact(
        risk_reduction=0.8,
        performance_improvement=0.0,
        complexity_added=0.1,
        description="Calls out dropped columns before their data is lost",
    )
    not_applicable_reason = "No DROP COLUMN operations found"
    idempotent = True

    def _matches(self, content: str) -> bool:
        return _DROP_COLUMN.search(content) is not None

    def _already_applied(self, raw: str) -> bool:
        return _DROP_COLUMN_MARKER in raw

    def _collect_issues(self, content: str) -> Iterable[EnhancementIssue]:
        issues = []
        for table, column, line, statement in _dropped_columns(content):
            issues.append(
                EnhancementIssue(
                    severity=IssueSeverity.HIGH,
                    description=f"Dropping column {table}.{column} permanently deletes its data",
                    location=statement,
                    line=line,
                    recommendation=(
                        "Stop reading the column in application code and back up its data "
                        "before dropping it"
                    ),
                )
            )
        return issues

    def _rewrite(self, content: str) -> EnhancementResult:
        dropped = _dropped_columns(content)
        block = [
            "-- DROP COLUMN WARNING",
            "-- This migration permanently deletes column data:",
            *(f"--   {table}.{column}" for table, column, _, _ in dropped),
            "-- Deploy application code that no longer reads these columns first.",
            "-- Back up the column data if it may be needed again.",
            "",
        ]
        modified, change = prepend_block(content, block, "Added DROP COLUMN warning")
        return self._result(content, modified, [change])


def _dropped_columns(content: str) -> list[tuple[str, str, int, str]]:
    """(table, column, line, statement) for every DROP COLUMN in the script."""
    dropped = []
    for statement in split_statements(content):
        table = _table_on(statement.sql, default="<table>")
        for match in _DROP_COLUMN.finditer(statement.sql):
            line = statement.line + statement.sql[: match.start()].count("\n")
            dropped.append((table, match.group(1), line, " ".join(statement.sql.split())))
    return dropped


# -- foreign keys -----------------------------------------------------------

_FOREIGN_KEY = re.compile(r"\bforeign\s+key\b|\breferences\b", re.I)
_REFERENCES = re.compile(r"\breferences\s+(?!on\b)", re.I)


class ForeignKeyConstraintModule(BaseModule):
    enhancement = Enhancement(
        id="safety-foreign-key-constraint",
        name="Foreign Key Constraint Safety",
        description="Validates foreign key constraints before creation",
        category=EnhancementCategory.SAFETY,
        priority=7,
        tags=frozenset({"foreign-key", "constraint", "integrity"}),
    )
    impact = EnhancementImpact(
        risk_reduction=0.6,
        performance_improvement=0.1,
        complexity_added=0.2,
        description="Surfaces validation and locking cost of new foreign keys",
    )
    not_applicable_reason = "No foreign key constraints found"
    idempotent = True

    def _matches(self, content: str) -> bool:
        return _FOREIGN_KEY.search(content) is not None

    def _collect_issues(self, content: str) -> Iterable[EnhancementIssue]:
        return _line_issues(
            content,
            _REFERENCES,
            lambda line: (
                IssueSeverity.HIGH if _EXISTING_TABLE.search(line) else IssueSeverity.LOW
            ),
            "Foreign key validates every existing row and locks both tables while it does",
            "Index the referencing column; on large tables add the constraint NOT VALID "
            "and validate it separately",
        )

    def _rewrite(self, content: str) -> EnhancementResult:
        modified, changes = insert_before_matches(
            content,
            _REFERENCES,
            lambda _: comment_block(
                [
                    "Foreign key check: make sure every existing value has a referenced row",
                    "On large tables add the constraint NOT VALID, then VALIDATE CONSTRAINT",
                    "Index the referencing column so parent deletes and joins stay fast",
                ]
            ),
            "Added foreign key validation notes",
        )
        return self._result(content, modified, changes)


# -- nullability ------------------------------------------------------------

_SET_NOT_NULL = re.compile(r"\bset\s+not\s+null\b", re.I)
_DROP_NOT_NULL = re.compile(r"\bdrop\s+not\s+null\b", re.I)
_ADD_NOT_NULL = re.compile(
    r"^(?!.*\bdefault\b).*\badd\s+(?:column\s+)?"
    r"(?!constraint\b|primary\b|unique\b|check\b|foreign\b)\w[^;]*\bnot\s+null\b",
    re.I,
)

_NULLABILITY: list[Construct] = [
    (_SET_NOT_NULL, IssueSeverity.HIGH, "SET NOT NULL fails if any existing row holds NULL"),
    (
        _ADD_NOT_NULL,
        IssueSeverity.HIGH,
        "Adding a NOT NULL column without a DEFAULT fails on tables that already have rows",
    ),
    (_DROP_NOT_NULL, IssueSeverity.MEDIUM, "DROP NOT NULL lets NULL values into the column"),
]


class NullableColumnModule(BaseModule):
    enhancement = Enhancement(
        id="safety-nullable-column",
        name="Nullable Column Safety",
        description="Ensures safe handling of nullable column changes",
        category=EnhancementCategory.SAFETY,
        priority=6,
        requires_confirmation=True,
        tags=frozenset({"nullable", "column", "constraint"}),
    )
    impact = EnhancementImpact(
        risk_reduction=0.5,
        performance_improvement=0.0,
        complexity_added=0.2,
        description="Adds NULL checks around nullability changes",
    )
    not_applicable_reason = "No nullable column changes found"
    idempotent = True

    def _matches(self, content: str) -> bool:
        return any(_first_construct(line, _NULLABILITY) for line in content.split("\n"))

    def _collect_issues(self, content: str) -> Iterable[EnhancementIssue]:
        return _construct_issues(
            content,
            _NULLABILITY,
            "Backfill NULL values or provide a DEFAULT before tightening nullability",
        )

    def _rewrite(self, content: str) -> EnhancementResult:
        modified, changes = insert_before_matches(
            content,
            lambda line: _first_construct(line, _NULLABILITY) is not None,
            self._block,
            "Added NULL safety check",
        )
        return self._result(content, modified, changes)

    @staticmethod
    def _block(line: str) -> list[str]:
        if _SET_NOT_NULL.search(line):
            table, column = _table_on(line), _column_on(line)
            return comment_block(
                [
                    "Safety check: ensure no NULL values exist before adding NOT NULL",
                    f"UPDATE {table} SET {column} = <value> WHERE {column} IS NULL;",
                ]
            )
        if _DROP_NOT_NULL.search(line):
            return comment_block(
                [
                    "Dropping NOT NULL lets NULL values into this column",
                    "Make sure application code handles NULL before deploying",
                ]
            )
        return comment_block(
            [
                "Adding a NOT NULL column without a DEFAULT fails on non-empty tables",
                "Add a DEFAULT, or add the column nullable, backfill, then SET NOT NULL",
            ]
        )


# -- data type changes ------------------------------------------------------

_PG_TYPE_CHANGE = re.compile(
    rf"\balter\s+column\s+{_IDENT}\s+(?:set\s+data\s+)?type\s+(\w+)", re.I
)
_MYSQL_MODIFY = re.compile(rf"\bmodify\s+(?:column\s+)?{_IDENT}\s+(\w+)", re.I)
_MYSQL_CHANGE = re.compile(rf"\bchange\s+(?:column\s+)?{_IDENT}\s+{_IDENT}\s+(\w+)", re.I)

_LOSSY_TARGETS = frozenset(
    {
        "int", "integer", "bigint", "smallint", "tinyint", "numeric", "decimal",
        "real", "float", "double", "boolean", "bool", "uuid", "date", "timestamp",
        "timestamptz", "time", "json", "jsonb",
    }
)
_TRUNCATING_TARGETS = frozenset({"varchar", "char", "character", "nvarchar", "nchar"})


def _type_change(line: str) -> tuple[str, str, bool] | None:
    """(column, target type, is_postgres_form) for a column type change on ``line``."""
    match = _PG_TYPE_CHANGE.search(line)
    if match:
        return match.group(1), match.group(2).lower(), True
    match = _MYSQL_MODIFY.search(line)
    if match:
        return match.group(1), match.group(2).lower(), False
    match = _MYSQL_CHANGE.search(line)
    if match:
        return match.group(2), match.group(3).lower(), False
    return None


def _type_change_description(line: str) -> str:
    column, target, _ = _type_change(line)
    return f"Converting {column} to {target.upper()} can fail or lose data for existing rows"


def _type_change_severity(line: str) -> IssueSeverity:
    change = _type_change(line)
    target = change[1] if change else ""
    if target in _LOSSY_TARGETS:
        return IssueSeverity.HIGH
    if target in _TRUNCATING_TARGETS:
        return IssueSeverity.MEDIUM
    return IssueSeverity.LOW


class DataTypeChangeModule(BaseModule):
    enhancement = Enhancement(
        id="safety-data-type-change",
        name="Data Type Change Safety",
        description="Validates data compatibility for column type changes",
        category=EnhancementCategory.SAFETY,
        priority=8,
        requires_confirmation=True,
        tags=frozenset({"data-type", "column", "conversion"}),
    )
    impact = EnhancementImpact(
        risk_reduction=0.7,
        performance_improvement=0.0,
        complexity_added=0.3,
        description="Flags conversions that can fail or truncate existing data",
    )
    not_applicable_reason = "No column type changes found"
    idempotent = True

    def _matches(self, content: str) -> bool:
        return any(_type_change(line) for line in content.split("\n"))

    def _collect_issues(self, content: str) -> Iterable[EnhancementIssue]:
        return _line_issues(
            content,
            lambda line: _type_change(line) is not None,
            _type_change_severity,
            _type_change_description,
            "Check existing values convert cleanly, or stage the change through a new column",
        )

    def _rewrite(self, content: str) -> EnhancementResult:
        modified, changes = insert_before_matches(
            content,
            lambda line: _type_change(line) is not None,
            self._block,
            "Added data type conversion check",
        )
        return self._result(content, modified, changes)

    @staticmethod
    def _block(line: str) -> list[str]:
        column, target, postgres = _type_change(line)
        notes = [
            f"Safety check: verify existing data converts cleanly to {target.upper()}",
            "Consider backing up data or using a staged migration approach",
        ]
        if postgres and not re.search(r"\busing\b", line, re.I):
            notes.append(f"Add USING {column}::{target} to control the conversion")
        return comment_block(notes)


# -- column renames ---------------------------------------------------------

_RENAME_COLUMN = re.compile(rf"\brename\s+column\s+{_IDENT}\s+to\s+{_IDENT}", re.I)


class ColumnRenamingModule(BaseModule):
    enhancement = Enhancement(
        id="safety-column-renaming",
        name="Column Renaming Safety",
        description="Provides safe column renaming with backward compatibility",
        category=EnhancementCategory.SAFETY,
        priority=7,
        requires_confirmation=True,
        tags=frozenset({"rename", "column", "compatibility"}),
    )
    impact = EnhancementImpact(
        risk_reduction=0.6,
        performance_improvement=0.0,
        complexity_added=0.4,
        description="Suggests a staged rename that keeps running code working",
    )
    not_applicable_reason = "No column renames found"
    idempotent = True

    def _matches(self, content: str) -> bool:
        return _RENAME_COLUMN.search(content) is not None

    def _collect_issues(self, content: str) -> Iterable[EnhancementIssue]:
        return _line_issues(
            content,
            _RENAME_COLUMN,
            IssueSeverity.HIGH,
            lambda line: "Renaming {} to {} breaks queries that still use the old name".format(
                *_RENAME_COLUMN.search(line).groups()
            ),
            "Add the new column, copy data, switch application code, then drop the old column",
        )

    def _rewrite(self, content: str) -> EnhancementResult:
        modified, changes = insert_before_matches(
            content,
            _RENAME_COLUMN,
            lambda _: comment_block(
                [
                    "Column renaming detected. Consider a staged approach:",
                    "1. Add the new column",
                    "2. Copy data from the old column",
                    "3. Update application code to use the new column",
                    "4. Drop the old column in a later migration",
                ]
            ),
            "Added staged rename guidance",
        )
        return self._result(content, modified, changes)


# -- cascade deletes --------------------------------------------------------

_CASCADE_DELETE = re.compile(r"\bon\s+delete\s+cascade\b", re.I)


class CascadeDeleteModule(BaseModule):
    enhancement = Enhancement(
        id="safety-cascade-delete",
        name="Cascade Delete Safety",
        description="Warns about CASCADE DELETE operations and their impact",
        category=EnhancementCategory.SAFETY,
        priority=9,
        requires_confirmation=True,
        tags=frozenset({"cascade", "delete", "foreign-key"}),
    )
    impact = EnhancementImpact(
        risk_reduction=0.8,
        performance_improvement=0.0,
        complexity_added=0.1,
        description="Calls out deletes that silently remove child rows",
    )
    not_applicable_reason = "No ON DELETE CASCADE found"
    idempotent = True

    def _matches(self, content: str) -> bool:
        return _CASCADE_DELETE.search(content) is not None

    def _collect_issues(self, content: str) -> Iterable[EnhancementIssue]:
        return _line_issues(
            content,
            _CASCADE_DELETE,
            IssueSeverity.HIGH,
            "ON DELETE CASCADE removes child rows automatically when a parent is deleted",
            "Prefer ON DELETE RESTRICT or SET NULL, or soft deletes for critical data",
        )

    def _rewrite(self, content: str) -> EnhancementResult:
        modified, changes = insert_before_matches(
            content,
            _CASCADE_DELETE,
            lambda _: comment_block(
                [
                    "WARNING: ON DELETE CASCADE deletes child rows automatically",
                    "Alternatives: ON DELETE RESTRICT, ON DELETE SET NULL, or soft deletes",
                ]
            ),
            "Added cascade delete warning",
        )
        return self._result(content, modified, changes)


# -- unique constraints -----------------------------------------------------

_UNIQUE = re.compile(r"\bunique\b", re.I)
_ADD_UNIQUE = re.compile(
    r"\badd\s+(?:constraint\s+\S+\s+)?unique\s*(?:(?:key|index)\s+\S+\s*)?\(([^)]*)\)", re.I
)
_CREATE_UNIQUE_INDEX = re.compile(
    rf"\bcreate\s+unique\s+index\b.*?\bon\s+(?:only\s+)?{_IDENT}\s*\(([^)]*)\)", re.I
)


def _unique_on_existing(line: str) -> tuple[str, str] | None:
    """(table, columns) for a unique constraint added to an existing table."""
    match = _CREATE_UNIQUE_INDEX.search(line)
    if match:
        return match.group(1), match.group(2).strip()
    match = _ADD_UNIQUE.search(line)
    if match:
        return _table_on(line), match.group(1).strip()
    return None


class UniqueConstraintModule(BaseModule):
    enhancement = Enhancement(
        id="safety-unique-constraint",
        name="Unique Constraint Safety",
        description="Checks for duplicate data before adding unique constraints",
        category=EnhancementCategory.SAFETY,
        priority=7,
        tags=frozenset({"unique", "constraint", "duplicates"}),
    )
    impact = EnhancementImpact(
        risk_reduction=0.6,
        performance_improvement=0.0,
        complexity_added=0.2,
        description="Adds a duplicate check ahead of new unique constraints",
    )
    not_applicable_reason = "No unique constraints found"
    idempotent = True

    def _matches(self, content: str) -> bool:
        return _UNIQUE.search(content) is not None

    def _collect_issues(self, content: str) -> Iterable[EnhancementIssue]:
        return _line_issues(
            content,
            _UNIQUE,
            lambda line: (
                IssueSeverity.MEDIUM if _unique_on_existing(line) else IssueSeverity.LOW
            ),
            "Unique constraint fails if the column already holds duplicate values",
            "Find and resolve duplicates before adding the constraint",
        )

    def _evidence(self, content: str, issues: tuple[EnhancementIssue, ...]) -> Evidence:
        existing = any(_unique_on_existing(line) for line in content.split("\n"))
        return Evidence(
            required=EvidenceCount(found=1, total=1),
            optional=EvidenceCount(found=1 if existing else 0, total=1),
        )

    def _rewrite(self, content: str) -> EnhancementResult:
        modified, changes = insert_before_matches(
            content,
            lambda line: _unique_on_existing(line) is not None,
            self._block,
            "Added duplicate check before unique constraint",
        )
        return self._result(content, modified, changes)

    @staticmethod
    def _block(line: str) -> list[str]:
        table, columns = _unique_on_existing(line)
        return comment_block(
            [
                "Safety check: find duplicates before adding the unique constraint",
                f"SELECT {columns}, COUNT(*) FROM {table} GROUP BY {columns} HAVING COUNT(*) > 1;",
            ]
        )


# -- check constraints ------------------------------------------------------

_CHECK = re.compile(r"\bcheck\s*\(", re.I)
_ADD_CHECK = re.compile(r"\badd\s+(?:constraint\s+\S+\s+)?check\s*\(", re.I)
_NOT_VALID = re.compile(r"\bnot\s+valid\b", re.I)


class CheckConstraintModule(BaseModule):
    enhancement = Enhancement(
        id="safety-check-constraint",
        name="Check Constraint Safety",
        description="Validates existing data against new check constraints",
        category=EnhancementCategory.SAFETY,
        priority=6,
        tags=frozenset({"check", "constraint", "validation"}),
    )
    impact = EnhancementImpact(
        risk_reduction=0.5,
        performance_improvement=0.0,
        complexity_added=0.2,
        description="Flags check constraints that existing rows may violate",
    )
    not_applicable_reason = "No check constraints found"
    idempotent = True

    def _matches(self, content: str) -> bool:
        return _CHECK.search(content) is not None

    def _collect_issues(self, content: str) -> Iterable[EnhancementIssue]:
        return _line_issues(
            content,
            _CHECK,
            lambda line: IssueSeverity.MEDIUM if _ADD_CHECK.search(line) else IssueSeverity.LOW,
            "Check constraint fails if existing rows violate it",
            "Query for violating rows before adding the constraint",
        )

    def _evidence(self, content: str, issues: tuple[EnhancementIssue, ...]) -> Evidence:
        return Evidence(
            required=EvidenceCount(found=1, total=1),
            optional=EvidenceCount(found=1 if _ADD_CHECK.search(content) else 0, total=1),
            negative=len(_NOT_VALID.findall(content)),
        )

    def _rewrite(self, content: str) -> EnhancementResult:
        modified, changes = insert_before_matches(
            content,
            lambda line: _ADD_CHECK.search(line) is not None and not _NOT_VALID.search(line),
            lambda _: comment_block(
                [
                    "Safety check: every existing row must satisfy this CHECK constraint",
                    "On PostgreSQL, add it NOT VALID and run VALIDATE CONSTRAINT separately",
                ]
            ),
            "Added check constraint validation note",
        )
        return self._result(content, modified, changes)


# -- backup recommendation --------------------------------------------------

_DESTRUCTIVE: list[Construct] = [
    (re.compile(r"\bdrop\s+table\b", re.I), IssueSeverity.CRITICAL, "DROP TABLE"),
    (re.compile(r"\btruncate\b", re.I), IssueSeverity.CRITICAL, "TRUNCATE"),
    (re.compile(r"\bdrop\s+column\b", re.I), IssueSeverity.HIGH, "DROP COLUMN"),
    (re.compile(r"\bdelete\s+from\b", re.I), IssueSeverity.HIGH, "DELETE FROM"),
    (re.compile(r"^\s*update\s", re.I | re.M), IssueSeverity.MEDIUM, "UPDATE"),
    (re.compile(r"\balter\s+column\b", re.I), IssueSeverity.MEDIUM, "ALTER COLUMN"),
    (re.compile(r"\bdrop\s+index\b", re.I), IssueSeverity.MEDIUM, "DROP INDEX"),
    (re.compile(r"\bdrop\s+constraint\b", re.I), IssueSeverity.MEDIUM, "DROP CONSTRAINT"),
]
_BACKUP_MARKER = "-- backup recommendation"


class BackupRecommendationModule(BaseModule):
    enhancement = Enhancement(
        id="safety-backup-recommendation",
        name="Backup Recommendation",
        description="Recommends a backup before destructive operations",
        category=EnhancementCategory.SAFETY,
        priority=9,
        tags=frozenset({"backup", "data-loss", "recovery"}),
    )
    impact = EnhancementImpact(
        risk_reduction=0.9,
        performance_improvement=0.0,
        complexity_added=0.1,
        description="Reminds operators to take a backup before data is destroyed",
    )
    not_applicable_reason = "No destructive operations found"
    idempotent = True

    def _matches(self, content: str) -> bool:
        return _kinds_found(content, _DESTRUCTIVE) > 0

    def _already_applied(self, raw: str) -> bool:
        return _BACKUP_MARKER in raw

    def _collect_issues(self, content: str) -> Iterable[EnhancementIssue]:
        return [
            EnhancementIssue(
                severity=issue.severity,
                description=f"{issue.description} cannot be undone without a backup",
                location=issue.location,
                line=issue.line,
                recommendation=issue.recommendation,
            )
            for issue in _construct_issues(
                content, _DESTRUCTIVE, "Take a database backup before running this migration"
            )
        ]

    def _evidence(self, content: str, issues: tuple[EnhancementIssue, ...]) -> Evidence:
        return Evidence(
            required=EvidenceCount(found=1, total=1),
            optional=EvidenceCount(
                found=_kinds_found(content, _DESTRUCTIVE), total=len(_DESTRUCTIVE)
            ),
        )

    def _rewrite(self, content: str) -> EnhancementResult:
        found = []
        for number, line in enumerate(content.split("\n"), start=1):
            construct = None if is_comment(line) else _first_construct(line, _DESTRUCTIVE)
            if construct is not None:
                found.append(f"--   {construct[2]} (line {number})")
        block = [
            "-- BACKUP RECOMMENDATION",
            "-- This migration contains potentially destructive operations:",
            *found,
            "-- Take a backup before running it, for example:",
            "--   pg_dump -h localhost -U username -d database_name > backup_YYYYMMDD_HHMMSS.sql",
            "",
        ]
        modified, change = prepend_block(content, block, "Added backup recommendation")
        return self._result(content, modified, [change])


# -- migration order --------------------------------------------------------

_ORDER_MARKER = "-- migration order guidelines"
_DEPENDS_ON_TABLE = (
    OperationType.INSERT,
    OperationType.UPDATE,
    OperationType.DELETE,
    OperationType.ALTER_TABLE,
    OperationType.CREATE_INDEX,
)


def _order_problems(content: str) -> list[EnhancementIssue]:
    """Statements that touch a table before the script creates it, and drop/recreate pairs."""
    operations = parse_operations(content)
    created_at: dict[str, int] = {}
    for position, op in enumerate(operations):
        if op.type == OperationType.CREATE_TABLE and op.table:
            created_at.setdefault(op.table.lower(), position)

    problems = []
    for position, op in enumerate(operations):
        if not op.table:
            continue
        created = created_at.get(op.table.lower())
        if created is None or created <= position:
            continue
        verb = " ".join(op.sql.split()[:2]).upper()
        if op.type in _DEPENDS_ON_TABLE:
            problems.append(
                EnhancementIssue(
                    severity=IssueSeverity.HIGH,
                    description=f"{verb} on {op.table} runs before {op.table} is created",
                    location=" ".join(op.sql.split()),
                    line=op.line,
                    recommendation="Create tables before statements that use them",
                )
            )
        elif op.type == OperationType.DROP_TABLE:
            problems.append(
                EnhancementIssue(
                    severity=IssueSeverity.MEDIUM,
                    description=f"{op.table} is dropped and then recreated; its data is lost",
                    location=" ".join(op.sql.split()),
                    line=op.line,
                    recommendation="Alter the existing table instead of dropping and recreating it",
                )
            )
    return problems


class MigrationOrderModule(BaseModule):
    enhancement = Enhancement(
        id="safety-migration-order",
        name="Migration Order Validation",
        description="Checks that operations run in a safe order",
        category=EnhancementCategory.SAFETY,
        priority=8,
        tags=frozenset({"order", "dependencies", "sequence"}),
    )
    impact = EnhancementImpact(
        risk_reduction=0.7,
        performance_improvement=0.0,
        complexity_added=0.1,
        description="Flags statements that depend on tables created later in the script",
    )
    not_applicable_reason = "No order-sensitive operations found"
    idempotent = True

    def _matches(self, content: str) -> bool:
        return bool(_order_problems(content))

    def _already_applied(self, raw: str) -> bool:
        return _ORDER_MARKER in raw

    def _collect_issues(self, content: str) -> Iterable[EnhancementIssue]:
        return _order_problems(content)

    def _rewrite(self, content: str) -> EnhancementResult:
        problems = _order_problems(content)
        block = [
            "-- MIGRATION ORDER GUIDELINES",
            *(f"-- Line {issue.line}: {issue.description}" for issue in problems),
            "-- Recommended order of operations:",
            "-- 1. Create new tables",
            "-- 2. Add new columns",
            "-- 3. Create indexes",
            "-- 4. Add constraints",
            "-- 5. Migrate data",
            "-- 6. Drop old constraints",
            "-- 7. Drop old columns",
            "-- 8. Drop old tables",
            "",
        ]
        modified, change = prepend_block(content, block, "Added migration order guidelines")
        return self._result(content, modified, [change])
