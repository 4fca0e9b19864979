"""Drizzle ORM detector.

Looks for drizzle packages in package.json (root, or next to a drizzle
config anywhere in the project), a ``drizzle.config.*`` file, a schema file
and a migrations directory. Config files are found by walking the project,
so monorepo layouts need no list of known workspace directories.
"""

from __future__ import annotations

import re
from pathlib import Path

from driftflow.enhance.scoring import Evidence, EvidenceCount
from driftflow.orm.base import BaseORMDetector
from driftflow.orm.models import (
    DEFAULT_PORTS,
    DatabaseConfig,
    DetectionResult,
    DrizzleConfig,
    FilePath,
)

PACKAGES = ("drizzle-orm", "drizzle-kit")
CONFIG_NAMES = ("drizzle.config.ts", "drizzle.config.js", "drizzle.config.mjs")
SCHEMA_FILES = (
    "src/db/schema.ts",
    "src/schema.ts",
    "db/schema.ts",
    "schema.ts",
    "src/lib/db/schema.ts",
)
MIGRATION_DIRS = ("drizzle", "migrations", "drizzle/migrations")

DEFAULT_DRIVER = "pg"
DEFAULT_OUT_DIR = "./drizzle"
DEFAULT_SCHEMA = "./src/db/schema.ts"

_CONFIG_FILE = re.compile(r"^drizzle\.config\.(?:ts|js|mjs)$")
_DRIVERS = ("pg", "mysql2", "better-sqlite3", "sqlite")
# drizzle-kit >= 0.21 names the dialect rather than the driver
_DIALECT_DRIVERS = {"postgresql": "pg", "mysql": "mysql2", "sqlite": "better-sqlite3"}
_DRIVER_TYPES = {
    "pg": "postgresql",
    "mysql2": "mysql",
    "better-sqlite3": "sqlite",
    "sqlite": "sqlite",
}


class DrizzleDetector(BaseORMDetector):
    name = "drizzle"

    def detect(self, project_root: Path) -> DetectionResult:
        notes: list[str] = []

        config_files = self._config_files(project_root)
        notes.extend(f"Found config file: {f.relative}" for f in config_files)

        found, _ = self.check_package_dependencies(project_root, PACKAGES)
        notes.extend(f"Found dependency: {dep} (root)" for dep in found)
        packages = set(found)
        for config_file in config_files:
            config_dir = config_file.absolute.parent
            if config_dir == project_root.resolve():
                continue
            nested, _ = self.check_package_dependencies(config_dir, PACKAGES)
            notes.extend(f"Found dependency: {dep} ({config_file.relative})" for dep in nested)
            packages.update(nested)

        schema_files, _ = self.check_files(project_root, SCHEMA_FILES)
        notes.extend(f"Found schema file: {f.relative}" for f in schema_files)

        migration_dirs, _ = self.check_files(project_root, MIGRATION_DIRS)
        notes.extend(f"Found migration directory: {f.relative}" for f in migration_dirs)

        optional = sum(1 for group in (config_files, schema_files, migration_dirs) if group)
        return self._result(
            Evidence(
                required=EvidenceCount(found=1 if packages else 0, total=1),
                optional=EvidenceCount(found=optional, total=3),
            ),
            notes,
        )

    def extract_config(self, project_root: Path) -> DrizzleConfig | None:
        config_files = self._config_files(project_root)
        if not config_files:
            return None
        config_file = config_files[0]
        content = self.read_text(config_file.absolute)
        if content is None:
            return None

        out_dir = self.extract_config_value(content, "out") or DEFAULT_OUT_DIR
        return DrizzleConfig(
            config_file=config_file,
            driver=_driver(content),
            schema_path=self.extract_config_value(content, "schema") or DEFAULT_SCHEMA,
            out_dir=out_dir,
            # out is relative to the config file
            migration_directory=FilePath.create(
                (Path(config_file.relative).parent / out_dir).as_posix(), project_root
            ),
            dependencies=PACKAGES,
        )

    def _config_files(self, project_root: Path) -> list[FilePath]:
        """Drizzle configs in the project, shallowest first, .ts before .js before .mjs."""
        relative = [
            p.relative_to(project_root) for p in self.find_config_files(project_root, _CONFIG_FILE)
        ]
        relative.sort(key=lambda p: (len(p.parts), CONFIG_NAMES.index(p.name)))
        return [FilePath.create(p.as_posix(), project_root) for p in relative]

    def _database_from_config(self, project_root: Path) -> DatabaseConfig | None:
        config = self.extract_config(project_root)
        if config is None:
            return None
        db_type = _DRIVER_TYPES.get(config.driver, "postgresql")
        return DatabaseConfig(
            type=db_type,  # type: ignore[arg-type]
            host="localhost",
            port=DEFAULT_PORTS.get(db_type),
            database="main",
        )


def _driver(content: str) -> str:
    driver = BaseORMDetector.extract_config_value(content, "driver")
    if driver in _DRIVERS:
        return driver
    dialect = BaseORMDetector.extract_config_value(content, "dialect")
    if dialect in _DRIVERS:
        return dialect
    return _DIALECT_DRIVERS.get(dialect or "", DEFAULT_DRIVER)
