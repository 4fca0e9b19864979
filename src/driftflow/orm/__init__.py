"""ORM module - detect which ORM a project uses and how it connects."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from driftflow.orm.base import (
    BaseORMDetector,
    env_file_candidates,
    find_env_value,
    log,
    parse_database_url,
)
from driftflow.orm.drizzle import DrizzleDetector
from driftflow.orm.models import (
    ClientGenerator,
    DatabaseConfig,
    DetectionResult,
    DrizzleConfig,
    FilePath,
    ORMConfig,
    PrismaConfig,
    TypeORMConfig,
)
from driftflow.orm.prisma import PrismaDetector
from driftflow.orm.typeorm import TypeORMDetector


def default_detectors() -> list[BaseORMDetector]:
    return [DrizzleDetector(), PrismaDetector(), TypeORMDetector()]


def detect_orm(
    project_root: Path,
    detectors: Sequence[BaseORMDetector] | None = None,
) -> tuple[BaseORMDetector, DetectionResult] | None:
    """Best detector that found its ORM, highest confidence first.

    Ties keep detector order. A detector that raises is logged and skipped.
    """
    best: tuple[BaseORMDetector, DetectionResult] | None = None
    for detector in detectors if detectors is not None else default_detectors():
        try:
            result = detector.detect(project_root)
        except Exception as e:
            log.warning("orm_detector_failed", orm=detector.name, error=str(e))
            continue
        if result.found and (best is None or result.confidence > best[1].confidence):
            best = (detector, result)
    if best is not None:
        log.info("orm_detected", orm=best[0].name, confidence=best[1].confidence)
    return best


__all__ = [
    "BaseORMDetector",
    "ClientGenerator",
    "DatabaseConfig",
    "DetectionResult",
    "DrizzleConfig",
    "DrizzleDetector",
    "FilePath",
    "ORMConfig",
    "PrismaConfig",
    "PrismaDetector",
    "TypeORMConfig",
    "TypeORMDetector",
    "default_detectors",
    "detect_orm",
    "env_file_candidates",
    "find_env_value",
    "parse_database_url",
]
