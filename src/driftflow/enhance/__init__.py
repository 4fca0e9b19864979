"""Enhance module - safety and speed rules for migration scripts."""

# Import definitions to register the built-in catalog
from driftflow.enhance import definitions as _definitions  # noqa: F401
from driftflow.enhance.base import BaseModule, EnhancementModule
from driftflow.enhance.engine import ConfirmCallback, EnhancementEngine
from driftflow.enhance.models import (
    ChangeType,
    EnhanceReport,
    Enhancement,
    EnhancementAnalysis,
    EnhancementCategory,
    EnhancementChange,
    EnhancementImpact,
    EnhancementIssue,
    EnhancementResult,
    IssueSeverity,
)
from driftflow.enhance.registry import ModuleRegistry, registry
from driftflow.enhance.rollback import RollbackStep, generate_rollback, synthesize_rollback
from driftflow.enhance.scoring import Evidence, EvidenceCount, calculate_confidence, is_found

__all__ = [
    "BaseModule",
    "ChangeType",
    "ConfirmCallback",
    "EnhanceReport",
    "Enhancement",
    "EnhancementAnalysis",
    "EnhancementCategory",
    "EnhancementChange",
    "EnhancementEngine",
    "EnhancementImpact",
    "EnhancementIssue",
    "EnhancementModule",
    "EnhancementResult",
    "Evidence",
    "EvidenceCount",
    "IssueSeverity",
    "ModuleRegistry",
    "RollbackStep",
    "calculate_confidence",
    "generate_rollback",
    "is_found",
    "registry",
    "synthesize_rollback",
]
