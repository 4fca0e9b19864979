"""TypeORM detector.

Evidence: ``typeorm`` or ``@nestjs/typeorm`` in package.json (required),
then a config file, entity files, a migrations directory and migration
files (optional, each counted once).
"""

from __future__ import annotations

import json
import re
from pathlib import Path

from driftflow.enhance.scoring import Evidence, EvidenceCount
from driftflow.orm.base import BaseORMDetector, log
from driftflow.orm.models import (
    DEFAULT_PORTS,
    DatabaseConfig,
    DatabaseType,
    DetectionResult,
    FilePath,
    TypeORMConfig,
)

PACKAGES = ("typeorm", "@nestjs/typeorm")
CONFIG_FILES = (
    "ormconfig.ts",
    "ormconfig.js",
    "ormconfig.json",
    "typeorm.config.ts",
    "typeorm.config.js",
    "src/data-source.ts",
    "src/data-source.js",
)
ENTITY_DIRS = ("src", "entities", "entity")
MIGRATION_DIRS = ("src/migrations", "migrations", "database/migrations")

DEFAULT_ENTITIES = ("src/**/*.entity.{ts,js}",)
DEFAULT_MIGRATIONS = ("src/migrations/*.{ts,js}",)

_ENTITY_FILE = re.compile(r"\.entity\.(ts|js)$")
_MIGRATION_FILE = re.compile(r"^\d+.*\.(ts|js)$")

_TYPES: dict[str, DatabaseType] = {
    "postgres": "postgresql",
    "postgresql": "postgresql",
    "mysql": "mysql",
    "mariadb": "mysql",
    "sqlite": "sqlite",
    "better-sqlite3": "sqlite",
}


class TypeORMDetector(BaseORMDetector):
    name = "typeorm"
    database_url_vars = ("DATABASE_URL", "DB_URL", "TYPEORM_URL")

    def detect(self, project_root: Path) -> DetectionResult:
        notes: list[str] = []

        config_files, _ = self.check_files(project_root, CONFIG_FILES)
        notes.extend(f"Found config file: {f.relative}" for f in config_files)

        found, _ = self.check_package_dependencies(project_root, PACKAGES)
        notes.extend(f"Found dependency: {dep}" for dep in found)

        entities = self.find_config_files(project_root, _ENTITY_FILE, ENTITY_DIRS)
        if entities:
            notes.append(f"Found {len(entities)} entity files")

        migration_dirs, _ = self.check_files(project_root, MIGRATION_DIRS)
        notes.extend(f"Found migration directory: {f.relative}" for f in migration_dirs)

        migrations = self.find_config_files(project_root, _MIGRATION_FILE, MIGRATION_DIRS)
        if migrations:
            notes.append(f"Found {len(migrations)} migration files")

        optional = sum(
            1 for group in (config_files, entities, migration_dirs, migrations) if group
        )
        return self._result(
            Evidence(
                required=EvidenceCount(found=1 if found else 0, total=1),
                optional=EvidenceCount(found=optional, total=4),
            ),
            notes,
        )

    def extract_config(self, project_root: Path) -> TypeORMConfig | None:
        config_files, _ = self.check_files(project_root, CONFIG_FILES)
        if not config_files:
            return None
        config_file = config_files[0]
        content = self.read_text(config_file.absolute)
        if content is None:
            return None

        if config_file.relative.endswith(".json"):
            entities, migrations = _json_arrays(content)
        else:
            entities = _array_value(content, "entities")
            migrations = _array_value(content, "migrations")

        return TypeORMConfig(
            config_file=config_file,
            entities=entities or DEFAULT_ENTITIES,
            migrations=migrations or DEFAULT_MIGRATIONS,
            migration_directory=FilePath.create("src/migrations", project_root),
            dependencies=("typeorm",),
        )

    def _database_from_config(self, project_root: Path) -> DatabaseConfig | None:
        config = self.extract_config(project_root)
        content = None
        if config is not None and config.config_file is not None:
            content = self.read_text(config.config_file.absolute)
        if content is not None:
            db_type = self.extract_config_value(content, "type")
            database = self.extract_config_value(content, "database")
            if db_type and database:
                mapped = _TYPES.get(db_type, "postgresql")
                port = _config_port(content)
                return DatabaseConfig(
                    type=mapped,
                    host=self.extract_config_value(content, "host") or "localhost",
                    port=port if port is not None else DEFAULT_PORTS.get(mapped),
                    database=database,
                    username=self.extract_config_value(content, "username"),
                    password=self.extract_config_value(content, "password"),
                )
        return DatabaseConfig(type="postgresql", host="localhost", port=5432, database="main")


def _array_value(content: str, key: str) -> tuple[str, ...]:
    match = re.search(rf"{key}:\s*\[([^\]]+)\]", content)
    if match is None:
        return ()
    items = (item.strip().strip("'\"` ") for item in match.group(1).split(","))
    return tuple(item for item in items if item)


def _json_arrays(content: str) -> tuple[tuple[str, ...], tuple[str, ...]]:
    try:
        data = json.loads(content)
    except ValueError as e:
        log.debug("typeorm_config_invalid", error=str(e))
        return (), ()
    if isinstance(data, list):
        # ormconfig.json may hold several connections; the first one wins
        data = data[0] if data and isinstance(data[0], dict) else {}
    if not isinstance(data, dict):
        return (), ()

    def strings(value: object) -> tuple[str, ...]:
        return tuple(v for v in value if isinstance(v, str)) if isinstance(value, list) else ()

    return strings(data.get("entities")), strings(data.get("migrations"))


def _config_port(content: str) -> int | None:
    # ports are usually bare numbers in TS configs
    match = re.search(r"\bport['\"]?:\s*['\"]?(\d+)", content)
    return int(match.group(1)) if match else None
