"""Core module exports."""

from driftflow.core.errors import (
    CatalogError,
    ConfigError,
    DriftFlowError,
    ErrorCode,
    InternalError,
    MigrationError,
)
from driftflow.core.logging import (
    clear_run_id,
    configure_logging,
    get_logger,
    get_run_id,
    set_run_id,
)
from driftflow.core.progress import spinner, status

__all__ = [
    # Errors
    "CatalogError",
    "ConfigError",
    "DriftFlowError",
    "ErrorCode",
    "InternalError",
    "MigrationError",
    # Logging
    "clear_run_id",
    "configure_logging",
    "get_logger",
    "get_run_id",
    "set_run_id",
    # Console
    "spinner",
    "status",
]
