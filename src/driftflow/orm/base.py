"""Base ORM detector with the helpers every detector shares."""

from __future__ import annotations

import json
import os
import re
from abc import ABC, abstractmethod
from collections.abc import Iterable
from pathlib import Path
from typing import ClassVar
from urllib.parse import unquote, urlsplit

from dotenv import dotenv_values

from driftflow.core.excludes import is_prunable
from driftflow.core.logging import get_logger
from driftflow.enhance.scoring import (
    DEFAULT_THRESHOLD,
    Evidence,
    EvidenceCount,
    calculate_confidence,
    is_found,
    to_percent,
)
from driftflow.orm.models import DatabaseConfig, DetectionResult, FilePath, ORMConfig

log = get_logger("orm")

ENV_FILES: tuple[str, ...] = (".env", ".env.local", ".env.development")
WORKSPACE_DIRS: tuple[str, ...] = ("apps", "packages")
DATABASE_URL_VARS: tuple[str, ...] = ("DATABASE_URL",)
# levels below a search root that find_config_files descends into
MAX_SEARCH_DEPTH = 5

_URL_SCHEMES: dict[str, str] = {
    "postgres": "postgresql",
    "postgresql": "postgresql",
    "mysql": "mysql",
    "sqlite": "sqlite",
}


class BaseORMDetector(ABC):
    """Detects one ORM in a JavaScript/TypeScript project.

    ``detect`` scores evidence with the shared confidence scorer and reports
    it on the 0-100 scale. ``get_database_config`` looks for a connection URL
    in env files first and falls back to what the ORM's own config says.
    """

    name: ClassVar[str]
    threshold: ClassVar[float] = DEFAULT_THRESHOLD
    database_url_vars: ClassVar[tuple[str, ...]] = DATABASE_URL_VARS

    @abstractmethod
    def detect(self, project_root: Path) -> DetectionResult:
        """Detect if this ORM is present in the project."""

    @abstractmethod
    def extract_config(self, project_root: Path) -> ORMConfig | None:
        """Extract ORM-specific configuration, None when there is none."""

    def get_database_config(self, project_root: Path) -> DatabaseConfig | None:
        url = find_env_value(project_root, self.database_url_vars)
        if url:
            parsed = parse_database_url(url)
            if parsed is not None:
                return parsed
        return self._database_from_config(project_root)

    def _database_from_config(self, project_root: Path) -> DatabaseConfig | None:
        return None

    # -- scoring ------------------------------------------------------------

    def _result(
        self,
        evidence: Evidence,
        notes: list[str],
        warnings: list[str] | None = None,
    ) -> DetectionResult:
        confidence = calculate_confidence(evidence)
        found = is_found(confidence, self.threshold)
        log.debug(
            "orm_scored",
            orm=self.name,
            confidence=confidence,
            threshold=self.threshold,
            found=found,
        )
        return DetectionResult(
            found=found,
            confidence=to_percent(confidence),
            evidence=notes,
            warnings=list(warnings or []),
        )

    # -- helpers ------------------------------------------------------------

    def check_package_dependencies(
        self, project_root: Path, dependencies: Iterable[str]
    ) -> tuple[list[str], list[str]]:
        """Split ``dependencies`` into (found, missing) per package.json.

        Both ``dependencies`` and ``devDependencies`` count. A missing or
        malformed package.json finds nothing.
        """
        wanted = list(dependencies)
        declared = _declared_packages(project_root / "package.json")
        found = [d for d in wanted if d in declared]
        missing = [d for d in wanted if d not in declared]
        return found, missing

    def check_files(
        self, project_root: Path, relative_paths: Iterable[str]
    ) -> tuple[list[FilePath], list[str]]:
        """Split paths into (existing, missing). Directories count as existing."""
        existing: list[FilePath] = []
        missing: list[str] = []
        for relative in relative_paths:
            file_path = FilePath.create(relative, project_root)
            if file_path.exists:
                existing.append(file_path)
            else:
                missing.append(relative)
        return existing, missing

    def find_config_files(
        self,
        project_root: Path,
        pattern: re.Pattern[str],
        directories: Iterable[str] = (".",),
        max_depth: int = MAX_SEARCH_DEPTH,
    ) -> list[Path]:
        """Recursively find files whose name matches ``pattern``.

        Never descends into VCS, dependency or build directories, nor more than
        ``max_depth`` levels below each search root. Unreadable directories are
        skipped.
        """
        matches: list[Path] = []
        for directory in directories:
            start = project_root / directory
            if not start.is_dir():
                continue
            for dirpath, dirnames, filenames in os.walk(start):
                if len(Path(dirpath).relative_to(start).parts) >= max_depth:
                    dirnames[:] = []
                else:
                    dirnames[:] = sorted(d for d in dirnames if not is_prunable(d))
                matches.extend(
                    Path(dirpath) / name for name in sorted(filenames) if pattern.search(name)
                )
        return matches

    @staticmethod
    def extract_config_value(content: str, key: str) -> str | None:
        """Value of ``key: 'value'`` in a JS/TS config file (or ``"key": "value"`` in JSON)."""
        match = re.search(rf"\b{re.escape(key)}['\"]?:\s*['\"]([^'\"]+)['\"]", content)
        return match.group(1) if match else None

    @staticmethod
    def read_text(path: Path) -> str | None:
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            log.debug("orm_file_unreadable", path=str(path), error=str(e))
            return None


def _declared_packages(package_json: Path) -> set[str]:
    try:
        data = json.loads(package_json.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return set()
    if not isinstance(data, dict):
        return set()
    declared: set[str] = set()
    for section in ("dependencies", "devDependencies"):
        deps = data.get(section)
        if isinstance(deps, dict):
            declared.update(deps)
    return declared


def env_file_candidates(project_root: Path) -> list[Path]:
    """Env files to search, in priority order.

    Project root env files first, then ``.env`` in every ancestor up to the
    filesystem root, then ``apps/*/.env`` and ``packages/*/.env``.
    """
    root = project_root.resolve()
    candidates = [root / name for name in ENV_FILES]
    candidates.extend(parent / ".env" for parent in root.parents)
    for workspace in WORKSPACE_DIRS:
        workspace_dir = root / workspace
        if workspace_dir.is_dir():
            candidates.extend(sorted(workspace_dir.glob("*/.env")))
    return [path for path in candidates if path.is_file()]


def find_env_value(project_root: Path, keys: Iterable[str]) -> str | None:
    """First non-empty value of any of ``keys`` across the env file candidates."""
    keys = tuple(keys)
    for env_file in env_file_candidates(project_root):
        values = dotenv_values(env_file)
        for key in keys:
            value = values.get(key)
            if value:
                log.debug("env_value_found", key=key, path=str(env_file))
                return value.strip()
    return None


def parse_database_url(url: str) -> DatabaseConfig | None:
    """Parse a postgres/postgresql/mysql/sqlite URL, None for anything else."""
    try:
        parsed = urlsplit(url.strip())
        port = parsed.port
    except ValueError:
        return None
    # postgresql+psycopg://... style driver suffixes
    db_type = _URL_SCHEMES.get(parsed.scheme.lower().split("+", 1)[0])
    if db_type is None:
        return None
    return DatabaseConfig(
        type=db_type,  # type: ignore[arg-type]
        host=parsed.hostname or None,
        port=port,
        database=unquote(parsed.path[1:]),
        username=unquote(parsed.username) if parsed.username else None,
        password=unquote(parsed.password) if parsed.password else None,
        url=url,
    )
