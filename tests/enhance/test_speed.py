"""Tests for the speed enhancement modules."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from driftflow.enhance.models import ChangeType, IssueSeverity
from driftflow.enhance.speed import BatchInsertModule, ConcurrentIndexModule
from driftflow.migrations.models import MigrationFile

MakeMigration = Callable[..., MigrationFile]


class TestConcurrentIndex:
    """speed-concurrent-index."""

    module = ConcurrentIndexModule()

    def test_rewrites_to_concurrently(self, make_migration: MakeMigration) -> None:
        migration = make_migration(
            "CREATE INDEX idx_users_email ON users (email);\n"
            "CREATE UNIQUE INDEX idx_users_handle ON users (handle);"
        )

        analysis = self.module.analyze(migration)
        result = self.module.apply(migration.up, migration)

        assert [i.severity for i in analysis.issues] == [IssueSeverity.MEDIUM, IssueSeverity.HIGH]
        assert result.modified_content == (
            "CREATE INDEX CONCURRENTLY idx_users_email ON users (email);\n"
            "CREATE UNIQUE INDEX CONCURRENTLY idx_users_handle ON users (handle);"
        )
        assert all(c.type == ChangeType.MODIFIED for c in result.changes)
        assert result.warnings

    def test_already_concurrent_is_not_applicable(self, make_migration: MakeMigration) -> None:
        migration = make_migration("CREATE INDEX CONCURRENTLY idx ON users (email);")

        assert self.module.analyze(migration).applicable is False

    def test_declines_inside_transaction(self, make_migration: MakeMigration) -> None:
        """CONCURRENTLY is invalid inside BEGIN/COMMIT, so the text is left as is."""
        migration = make_migration("BEGIN;\nCREATE INDEX idx ON users (email);\nCOMMIT;\n")

        analysis = self.module.analyze(migration)
        result = self.module.apply(migration.up, migration)

        assert analysis.applicable
        assert analysis.confidence < 1.0
        assert result.applied is False
        assert result.modified_content == migration.up
        assert "transaction block" in result.warnings[0]

    def test_commented_index_is_ignored(self, make_migration: MakeMigration) -> None:
        migration = make_migration("-- CREATE INDEX idx ON users (email);\nSELECT 1;")

        assert self.module.detect(migration) is False


def inserts(count: int, table: str = "users") -> str:
    return "\n".join(
        f"INSERT INTO {table} (name, email) VALUES ('u{i}', 'u{i}@example.com');"
        for i in range(count)
    )


class TestBatchInsert:
    """speed-batch-insert."""

    module = BatchInsertModule()

    def test_three_inserts_are_below_threshold(self, make_migration: MakeMigration) -> None:
        assert self.module.analyze(make_migration(inserts(3))).applicable is False

    def test_merges_run(self, make_migration: MakeMigration) -> None:
        migration = make_migration(inserts(4))

        analysis = self.module.analyze(migration)
        result = self.module.apply(migration.up, migration)

        (issue,) = analysis.issues
        assert issue.severity == IssueSeverity.LOW
        assert issue.line == 1
        assert result.modified_content.split("\n") == [
            "-- Batched 4 inserts into users",
            "INSERT INTO users (name, email) VALUES",
            "  ('u0', 'u0@example.com'),",
            "  ('u1', 'u1@example.com'),",
            "  ('u2', 'u2@example.com'),",
            "  ('u3', 'u3@example.com');",
        ]

    def test_large_run_is_medium(self, make_migration: MakeMigration) -> None:
        (issue,) = self.module.analyze(make_migration(inserts(6))).issues

        assert issue.severity == IssueSeverity.MEDIUM

    def test_runs_split_by_table(self, make_migration: MakeMigration) -> None:
        migration = make_migration(f"{inserts(2, 'users')}\n{inserts(2, 'teams')}")

        result = self.module.apply(migration.up, migration)

        assert len(result.changes) == 2
        assert result.modified_content.count("INSERT INTO") == 2

    def test_output_is_not_batched_again(self, make_migration: MakeMigration) -> None:
        migration = make_migration(inserts(5))
        first = self.module.apply(migration.up, migration)

        second = self.module.apply(first.modified_content, migration)

        assert second.applied is False

    @pytest.mark.parametrize(
        "tail",
        [
            " ON CONFLICT (a) DO UPDATE SET a = (EXCLUDED.a)",
            " ON DUPLICATE KEY UPDATE a = VALUES(a)",
            " RETURNING (a)",
        ],
    )
    def test_inserts_with_trailing_clauses_are_left_alone(
        self, make_migration: MakeMigration, tail: str
    ) -> None:
        up = "\n".join(f"INSERT INTO t (a) VALUES ({i}){tail};" for i in range(4))
        migration = make_migration(up)

        result = self.module.apply(up, migration)

        assert result.applied is False
        assert result.modified_content == up
        assert self.module.analyze(migration).issues == ()

    def test_parentheses_and_quotes_inside_values(self, make_migration: MakeMigration) -> None:
        up = "\n".join(
            f"INSERT INTO notes (body, n) VALUES ('it''s (x), {i}', lower('A'));" for i in range(4)
        )
        migration = make_migration(up)

        result = self.module.apply(up, migration)

        assert result.applied is True
        assert "  ('it''s (x), 3', lower('A'));" in result.modified_content.split("\n")
