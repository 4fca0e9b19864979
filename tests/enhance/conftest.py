"""Shared fixtures for enhancement tests."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from driftflow.enhance.definitions import register_catalog
from driftflow.enhance.registry import ModuleRegistry
from driftflow.migrations.models import MigrationFile


@pytest.fixture
def make_migration() -> Callable[..., MigrationFile]:
    """Build an in-memory migration from forward SQL."""

    def _make(up: str, name: str = "0001_test.sql", down: str = "") -> MigrationFile:
        return MigrationFile(path=f"migrations/{name}", name=name, up=up, down=down)

    return _make


@pytest.fixture
def catalog_registry() -> ModuleRegistry:
    """A private registry holding the built-in catalog."""
    return register_catalog(ModuleRegistry())
