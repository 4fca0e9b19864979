"""Prisma ORM detector."""

from __future__ import annotations

import os
import re
from pathlib import Path

from driftflow.enhance.scoring import Evidence, EvidenceCount
from driftflow.orm.base import BaseORMDetector, find_env_value, parse_database_url
from driftflow.orm.models import (
    ClientGenerator,
    DatabaseConfig,
    DatabaseType,
    DetectionResult,
    FilePath,
    PrismaConfig,
)

PACKAGES = ("prisma", "@prisma/client")
SCHEMA_FILES = ("prisma/schema.prisma", "schema.prisma")
MIGRATIONS_DIR = "prisma/migrations"

_GENERATOR_BLOCK = re.compile(r"generator\s+client\s*\{([^}]+)\}", re.S)
_DATASOURCE_BLOCK = re.compile(r"datasource\s+\w+\s*\{([^}]+)\}", re.S)
_PROVIDER = re.compile(r'provider\s*=\s*"([^"]+)"')
_OUTPUT = re.compile(r'output\s*=\s*"([^"]+)"')
_ENV_URL = re.compile(r'url\s*=\s*env\(\s*"([^"]+)"\s*\)')
_LITERAL_URL = re.compile(r'url\s*=\s*"([^"]+)"')

_PROVIDERS: dict[str, DatabaseType] = {
    "postgresql": "postgresql",
    "postgres": "postgresql",
    "mysql": "mysql",
    "sqlite": "sqlite",
}


class PrismaDetector(BaseORMDetector):
    name = "prisma"
    threshold = 0.5

    def detect(self, project_root: Path) -> DetectionResult:
        notes: list[str] = []
        warnings: list[str] = []

        found, _ = self.check_package_dependencies(project_root, PACKAGES)
        notes.extend(f"Found dependency: {dep}" for dep in found)

        schema_files, _ = self.check_files(project_root, SCHEMA_FILES)
        if schema_files:
            notes.append(f"Found schema file: {schema_files[0].relative}")

        migration_dirs, _ = self.check_files(project_root, [MIGRATIONS_DIR])
        if migration_dirs:
            notes.append(f"Found migrations directory: {migration_dirs[0].relative}")

        if found and not schema_files:
            warnings.append("Prisma dependency found but no schema.prisma file detected")
        if schema_files and "@prisma/client" not in found:
            warnings.append("Schema file found but @prisma/client not installed")

        return self._result(
            Evidence(
                required=EvidenceCount(found=len(found), total=len(PACKAGES)),
                optional=EvidenceCount(
                    found=(1 if schema_files else 0) + (1 if migration_dirs else 0), total=2
                ),
            ),
            notes,
            warnings,
        )

    def extract_config(self, project_root: Path) -> PrismaConfig | None:
        schema_files, _ = self.check_files(project_root, SCHEMA_FILES)
        if not schema_files:
            return None
        schema_file = schema_files[0]
        content = self.read_text(schema_file.absolute)
        if content is None:
            return None

        generator = None
        block = _GENERATOR_BLOCK.search(content)
        if block:
            provider = _PROVIDER.search(block.group(1))
            output = _OUTPUT.search(block.group(1))
            generator = ClientGenerator(
                provider=provider.group(1) if provider else "prisma-client-js",
                output=output.group(1) if output else None,
            )

        return PrismaConfig(
            config_file=schema_file,
            schema_file=schema_file,
            migration_directory=FilePath.create(MIGRATIONS_DIR, project_root),
            dependencies=PACKAGES,
            client_generator=generator,
            datasource_provider=_datasource_provider(content),
        )

    def get_database_config(self, project_root: Path) -> DatabaseConfig | None:
        """Connection settings from the schema's datasource block."""
        config = self.extract_config(project_root)
        if config is None or config.schema_file is None:
            return None
        content = self.read_text(config.schema_file.absolute)
        block = _DATASOURCE_BLOCK.search(content or "")
        if block is None:
            return None

        datasource = block.group(1)
        env_url = _ENV_URL.search(datasource)
        if env_url:
            variable = env_url.group(1)
            url = os.environ.get(variable) or find_env_value(project_root, [variable])
        else:
            literal = _LITERAL_URL.search(datasource)
            if literal is None:
                return None
            url = literal.group(1)

        parsed = parse_database_url(url) if url else None
        return parsed or DatabaseConfig(type=config.datasource_provider, database="unknown")


def _datasource_provider(content: str) -> DatabaseType:
    block = _DATASOURCE_BLOCK.search(content)
    provider = _PROVIDER.search(block.group(1)) if block else None
    return _PROVIDERS.get(provider.group(1) if provider else "", "postgresql")
