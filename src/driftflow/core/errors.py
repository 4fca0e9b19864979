"""DriftFlow error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Catalog / enhancement
- 4xxx: Migration files
- 9xxx: Internal
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002

    # Catalog (3xxx)
    CATALOG_INVALID_MODULE = 3001
    CATALOG_DUPLICATE_ID = 3002
    CATALOG_UNKNOWN_ID = 3003

    # Migration files (4xxx)
    MIGRATION_NOT_FOUND = 4001
    MIGRATION_INVALID_FILE = 4002
    MIGRATION_DIR_EMPTY = 4003

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, slots=True)
class DriftFlowError(Exception):
    """Base error with structured context for CLI and JSON output."""

    code: ErrorCode
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'CONFIG_PARSE_ERROR')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(DriftFlowError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )


class CatalogError(DriftFlowError):
    """Enhancement catalog contract violations.

    Raised while the catalog is being built, never during a pipeline run.
    """

    @classmethod
    def invalid_module(cls, module: Any, reason: str) -> "CatalogError":
        return cls(
            code=ErrorCode.CATALOG_INVALID_MODULE,
            message=f"Invalid enhancement module {module!r}: {reason}",
            details={"module": repr(module), "reason": reason},
        )

    @classmethod
    def duplicate_id(cls, enhancement_id: str) -> "CatalogError":
        return cls(
            code=ErrorCode.CATALOG_DUPLICATE_ID,
            message=f"Enhancement id already registered: {enhancement_id}",
            details={"id": enhancement_id},
        )

    @classmethod
    def unknown_id(cls, enhancement_id: str) -> "CatalogError":
        return cls(
            code=ErrorCode.CATALOG_UNKNOWN_ID,
            message=f"Enhancement module not found: {enhancement_id}",
            details={"id": enhancement_id},
        )


class MigrationError(DriftFlowError):
    """Migration file lookup and loading errors."""

    @classmethod
    def not_found(cls, path: str) -> "MigrationError":
        return cls(
            code=ErrorCode.MIGRATION_NOT_FOUND,
            message=f"Migration file not found: {path}",
            details={"path": path},
        )

    @classmethod
    def invalid_file(cls, path: str) -> "MigrationError":
        return cls(
            code=ErrorCode.MIGRATION_INVALID_FILE,
            message=f"File is not a migration file: {path}",
            details={"path": path},
        )

    @classmethod
    def empty_directory(cls, path: str) -> "MigrationError":
        return cls(
            code=ErrorCode.MIGRATION_DIR_EMPTY,
            message=f"No migration files found in {path}",
            details={"path": path},
        )


class InternalError(DriftFlowError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
