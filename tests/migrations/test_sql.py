"""Tests for migrations/sql.py statement helpers."""

from __future__ import annotations

import pytest

from driftflow.migrations.models import OperationType
from driftflow.migrations.sql import (
    classify,
    has_transaction_control,
    is_transaction_control,
    parse_operations,
    replace_forward_section,
    split_rollback_section,
    split_statements,
    strip_comments,
)


class TestSplitStatements:
    """Tests for split_statements."""

    def test_splits_on_semicolons_with_lines(self) -> None:
        text = "CREATE TABLE a (id int);\n\nCREATE TABLE b (id int);\n"

        statements = split_statements(text)

        assert [s.sql for s in statements] == ["CREATE TABLE a (id int)", "CREATE TABLE b (id int)"]
        assert [s.line for s in statements] == [1, 3]

    def test_splits_on_statement_breakpoint(self) -> None:
        """Drizzle's breakpoint marker ends a statement even without a semicolon."""
        text = "CREATE TABLE a (id int)\n--> statement-breakpoint\nCREATE TABLE b (id int)"

        statements = split_statements(text)

        assert [s.line for s in statements] == [1, 3]

    def test_semicolon_inside_literal_is_not_a_split(self) -> None:
        statements = split_statements("INSERT INTO t VALUES ('a;b');")

        assert len(statements) == 1
        assert statements[0].sql == "INSERT INTO t VALUES ('a;b')"

    def test_comments_are_dropped(self) -> None:
        statements = split_statements("-- header; still a comment\nDROP TABLE t;")

        assert [s.sql for s in statements] == ["DROP TABLE t"]
        assert statements[0].line == 2

    def test_empty_script(self) -> None:
        assert split_statements("  \n-- nothing here\n") == []


class TestStripComments:
    """Tests for strip_comments."""

    def test_keeps_line_structure(self) -> None:
        assert strip_comments("SELECT 1; -- note\n-- full\nSELECT 2;") == "SELECT 1; \n\nSELECT 2;"

    def test_double_dash_inside_literal_survives(self) -> None:
        assert strip_comments("SELECT '--x';") == "SELECT '--x';"


class TestRollbackSection:
    """Tests for split_rollback_section and replace_forward_section."""

    def test_no_marker(self) -> None:
        assert split_rollback_section("CREATE TABLE t (id int);\n") == (
            "CREATE TABLE t (id int);\n",
            None,
        )

    def test_marker_is_case_insensitive(self) -> None:
        forward, reverse = split_rollback_section(
            "CREATE TABLE t (id int);\n\n-- ROLLBACK\nDROP TABLE t;\n"
        )

        assert forward == "CREATE TABLE t (id int);\n"
        assert reverse == "DROP TABLE t;"

    def test_replace_forward_keeps_rollback(self) -> None:
        original = "CREATE TABLE t (id int);\n-- rollback\nDROP TABLE t;\n"

        result = replace_forward_section(original, "BEGIN;\nCREATE TABLE t (id int);\nCOMMIT;\n")

        assert result == "BEGIN;\nCREATE TABLE t (id int);\nCOMMIT;\n\n-- rollback\nDROP TABLE t;\n"

    def test_replace_forward_without_rollback(self) -> None:
        assert replace_forward_section("SELECT 1;\n", "SELECT 2;\n") == "SELECT 2;\n"


class TestTransactionControl:
    """Tests for transaction marker helpers."""

    def test_detects_begin(self) -> None:
        assert has_transaction_control("BEGIN;\nDROP TABLE t;\nCOMMIT;")

    def test_ignores_markers_in_comments(self) -> None:
        assert not has_transaction_control("-- remember to COMMIT\nDROP TABLE t;")

    @pytest.mark.parametrize("sql", ["BEGIN", "commit", "START TRANSACTION", "COMMIT WORK"])
    def test_statement_is_transaction_control(self, sql: str) -> None:
        assert is_transaction_control(sql)

    def test_regular_statement_is_not(self) -> None:
        assert not is_transaction_control("DROP TABLE t")


class TestParseOperations:
    """Tests for classify and parse_operations."""

    @pytest.mark.parametrize(
        ("sql", "expected"),
        [
            ("CREATE TABLE t (id int)", OperationType.CREATE_TABLE),
            ("create temporary table t (id int)", OperationType.CREATE_TABLE),
            ("DROP TABLE t", OperationType.DROP_TABLE),
            ("ALTER TABLE t ADD COLUMN c int", OperationType.ALTER_TABLE),
            ("CREATE UNIQUE INDEX i ON t (c)", OperationType.CREATE_INDEX),
            ("DROP INDEX i", OperationType.DROP_INDEX),
            ("INSERT INTO t VALUES (1)", OperationType.INSERT),
            ("UPDATE t SET c = 1", OperationType.UPDATE),
            ("DELETE FROM t", OperationType.DELETE),
            ("SELECT 1", OperationType.OTHER),
        ],
    )
    def test_classify(self, sql: str, expected: OperationType) -> None:
        assert classify(sql) == expected

    def test_extracts_table_and_index(self) -> None:
        ops = parse_operations("CREATE TABLE t (id int); CREATE INDEX idx_t ON t(id);")

        assert [op.type for op in ops] == [OperationType.CREATE_TABLE, OperationType.CREATE_INDEX]
        assert ops[0].table == "t"
        assert ops[1].table == "t"
        assert ops[1].index == "idx_t"

    @pytest.mark.parametrize(
        "sql",
        [
            "CREATE INDEX ON t (id);",
            "CREATE UNIQUE INDEX ON t (id);",
            "CREATE INDEX CONCURRENTLY ON t (id);",
        ],
    )
    def test_unnamed_index_has_no_name(self, sql: str) -> None:
        (op,) = parse_operations(sql)

        assert op.type == OperationType.CREATE_INDEX
        assert op.table == "t"
        assert op.index is None

    def test_concurrent_index_name(self) -> None:
        (op,) = parse_operations("CREATE INDEX CONCURRENTLY IF NOT EXISTS idx_t ON t (id);")

        assert op.index == "idx_t"

    def test_extracts_column_from_alter(self) -> None:
        (op,) = parse_operations('ALTER TABLE "users" ADD COLUMN "email" text;')

        assert op.table == "users"
        assert op.column == "email"
