"""Tests for the shared module scaffolding and text helpers."""

from __future__ import annotations

import re

from driftflow.enhance.base import (
    comment_block,
    find_line,
    insert_before_matches,
    matching_lines,
    prepend_block,
    replace_in_matches,
)
from driftflow.enhance.models import ChangeType
from driftflow.enhance.safety import DropTableSafeguardModule
from driftflow.migrations.models import MigrationFile


class TestFindLine:
    """find_line and matching_lines."""

    def test_first_match(self) -> None:
        assert find_line("SELECT 1;\nDROP TABLE t;\nDROP TABLE u;", "drop table") == 2

    def test_no_match_is_line_one(self) -> None:
        assert find_line("SELECT 1;", "drop table") == 1

    def test_comments_never_match(self) -> None:
        content = "-- DROP TABLE t;\nDROP TABLE u;"

        assert matching_lines(content, re.compile(r"drop", re.I)) == [(2, "DROP TABLE u;")]

    def test_callable_pattern(self) -> None:
        assert matching_lines("a\nbb\nccc", lambda line: len(line) > 1) == [(2, "bb"), (3, "ccc")]


class TestInsertBeforeMatches:
    """insert_before_matches."""

    def test_inserts_with_indent(self) -> None:
        content, changes = insert_before_matches(
            "BEGIN;\n    DROP TABLE t;\nCOMMIT;",
            "drop table",
            lambda _: comment_block(["careful"]),
            "warn",
        )

        assert content == "BEGIN;\n    -- careful\n    DROP TABLE t;\nCOMMIT;"
        (change,) = changes
        assert change.type == ChangeType.ADDED
        assert change.line == 2

    def test_rerun_is_a_no_op(self) -> None:
        first, _ = insert_before_matches(
            "DROP TABLE t;", "drop table", lambda _: comment_block(["careful"]), "warn"
        )

        second, changes = insert_before_matches(
            first, "drop table", lambda _: comment_block(["careful"]), "warn"
        )

        assert second == first
        assert changes == []


class TestReplaceAndPrepend:
    """replace_in_matches and prepend_block."""

    def test_replace_skips_comments(self) -> None:
        content, changes = replace_in_matches(
            "-- drop table t\ndrop table t;",
            re.compile(r"drop table", re.I),
            lambda m: "DROP TABLE",
            "upper",
        )

        assert content == "-- drop table t\nDROP TABLE t;"
        assert [(c.line, c.type) for c in changes] == [(2, ChangeType.MODIFIED)]

    def test_prepend(self) -> None:
        content, change = prepend_block("SELECT 1;", ["-- header", ""], "banner")

        assert content == "-- header\n\nSELECT 1;"
        assert change.line == 1


class TestBaseModuleDetect:
    """Input degradation in BaseModule.detect."""

    module = DropTableSafeguardModule()

    def test_empty_script_is_not_applicable(self) -> None:
        migration = MigrationFile(path="m.sql", name="m.sql", up="   \n")

        assert self.module.detect(migration) is False
        assert self.module.analyze(migration).applicable is False

    def test_comment_only_script_is_not_applicable(self) -> None:
        migration = MigrationFile(path="m.sql", name="m.sql", up="-- DROP TABLE users;\n")

        assert self.module.detect(migration) is False

    def test_non_string_script_is_not_applicable(self) -> None:
        migration = MigrationFile(path="m.sql", name="m.sql", up=None)  # type: ignore[arg-type]

        assert self.module.detect(migration) is False
