"""Config module exports."""

from driftflow.config.loader import load_config
from driftflow.config.models import (
    DriftFlowConfig,
    EnhancementSettings,
    LoggingConfig,
    MigrationsConfig,
)

__all__ = [
    "load_config",
    "DriftFlowConfig",
    "EnhancementSettings",
    "LoggingConfig",
    "MigrationsConfig",
]
