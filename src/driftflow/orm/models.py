"""ORM detection models."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

DatabaseType = Literal["postgresql", "mysql", "sqlite"]

DEFAULT_PORTS: dict[str, int] = {"postgresql": 5432, "mysql": 3306}


@dataclass(frozen=True)
class FilePath:
    """A project file, addressed both ways."""

    absolute: Path
    relative: str
    exists: bool

    @classmethod
    def create(cls, relative: str, project_root: Path) -> FilePath:
        absolute = (project_root / relative).resolve()
        return cls(absolute=absolute, relative=relative, exists=absolute.exists())


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection settings discovered for a project."""

    type: DatabaseType
    database: str
    host: str | None = None
    port: int | None = None
    username: str | None = None
    password: str | None = None
    url: str | None = None


@dataclass(frozen=True)
class DetectionResult:
    """Outcome of one detector. ``confidence`` is on the 0-100 scale."""

    found: bool
    confidence: int
    evidence: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True, kw_only=True)
class ORMConfig:
    """Configuration common to every ORM."""

    type: str
    migration_directory: FilePath
    dependencies: tuple[str, ...] = ()
    config_file: FilePath | None = None
    schema_file: FilePath | None = None
    version: str | None = None


@dataclass(frozen=True, kw_only=True)
class DrizzleConfig(ORMConfig):
    type: str = "drizzle"
    driver: Literal["pg", "mysql2", "better-sqlite3", "sqlite"] = "pg"
    schema_path: str = "./src/db/schema.ts"
    out_dir: str = "./drizzle"


@dataclass(frozen=True)
class ClientGenerator:
    provider: str = "prisma-client-js"
    output: str | None = None


@dataclass(frozen=True, kw_only=True)
class PrismaConfig(ORMConfig):
    type: str = "prisma"
    client_generator: ClientGenerator | None = None
    datasource_provider: DatabaseType = "postgresql"


@dataclass(frozen=True, kw_only=True)
class TypeORMConfig(ORMConfig):
    type: str = "typeorm"
    entities: tuple[str, ...] = ()
    migrations: tuple[str, ...] = ()
    subscribers: tuple[str, ...] = ()
    migrations_dir: str = "src/migrations"
    entities_dir: str = "src/entities"
