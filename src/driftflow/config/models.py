"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (DRIFTFLOW__SECTION__KEY)
3. Project YAML (.flow/config.yaml)
4. Global YAML (~/.config/driftflow/config.yaml)
5. Built-in defaults (this file)

Examples:
    DRIFTFLOW__LOGGING__LEVEL=DEBUG
    DRIFTFLOW__ENHANCEMENTS__AUTO_APPROVE=true
    DRIFTFLOW__MIGRATIONS__PATH=db/migrations
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration."""

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        DRIFTFLOW__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="WARNING",
        description="Root log level. The CLI raises this to DEBUG with --verbose.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class EnhancementSettings(BaseModel):
    """Which enhancements run and how the confirmation gate behaves.

    Env vars:
        DRIFTFLOW__ENHANCEMENTS__ENABLE_SAFETY
        DRIFTFLOW__ENHANCEMENTS__ENABLE_SPEED
        DRIFTFLOW__ENHANCEMENTS__AUTO_APPROVE
    """

    enable_safety: bool = Field(default=True, description="Run safety enhancements.")
    enable_speed: bool = Field(default=True, description="Run speed enhancements.")
    auto_approve: bool = Field(
        default=False,
        description="Apply enhancements that require confirmation without asking. "
        "RISK: destructive-operation safeguards are applied unreviewed.",
    )
    disabled_enhancements: list[str] = Field(
        default_factory=list,
        description="Enhancement ids that are never analysed or applied.",
    )
    custom_priorities: dict[str, int] = Field(
        default_factory=dict,
        description="Per-id priority overrides. Category precedence still applies.",
    )

    @field_validator("custom_priorities")
    @classmethod
    def validate_priorities(cls, v: dict[str, int]) -> dict[str, int]:
        for key, priority in v.items():
            if not (0 <= priority <= 100):
                raise ValueError(f"Priority for '{key}' must be 0-100, got {priority}")
        return v


class MigrationsConfig(BaseModel):
    """Where migration files live.

    Env vars:
        DRIFTFLOW__MIGRATIONS__PATH: Directory relative to the project root
    """

    path: str = Field(default="migrations", description="Migrations directory.")
    extensions: list[str] = Field(default_factory=lambda: [".sql"])


class DriftFlowConfig(BaseModel):
    """Root configuration."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    enhancements: EnhancementSettings = Field(default_factory=EnhancementSettings)
    migrations: MigrationsConfig = Field(default_factory=MigrationsConfig)
