"""Shared fixtures for ORM detection tests."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

import pytest

WriteFiles = Callable[[dict[str, str]], Path]


@pytest.fixture(autouse=True)
def no_database_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("DATABASE_URL", "DB_URL", "TYPEORM_URL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def project(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def write_files(project: Path) -> WriteFiles:
    """Write ``{relative path: content}`` under the project; a trailing / makes a directory."""

    def _write(files: dict[str, str]) -> Path:
        for relative, content in files.items():
            path = project / relative
            if relative.endswith("/"):
                path.mkdir(parents=True, exist_ok=True)
                continue
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
        return project

    return _write


@pytest.fixture
def write_package(write_files: WriteFiles) -> Callable[..., Path]:
    """Write a package.json declaring the given packages."""

    def _write(*dependencies: str, dev: tuple[str, ...] = (), at: str = "") -> Path:
        content = json.dumps(
            {
                "name": "app",
                "dependencies": {name: "^1.0.0" for name in dependencies},
                "devDependencies": {name: "^1.0.0" for name in dev},
            }
        )
        return write_files({f"{at}package.json": content})

    return _write
