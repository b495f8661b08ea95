"""dblineage error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Lineage
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
    CONFIG_MISSING_REQUIRED = 2003

    # Lineage (3xxx)
    LINEAGE_INVALID_REQUEST = 3001
    LINEAGE_GENERATION_FAILED = 3002
    LINEAGE_TABLE_NOT_FOUND = 3003

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, slots=True)
class DbLineageError(Exception):
    """Base error with structured context for API responses."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'CONFIG_PARSE_ERROR')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON responses."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(DbLineageError):
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

    @classmethod
    def missing_required(cls, field: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_MISSING_REQUIRED,
            message=f"Missing required config field: {field}",
            details={"field": field},
        )


class LineageError(DbLineageError):
    """Lineage request and generation errors."""

    @classmethod
    def invalid_request(cls, reason: str) -> "LineageError":
        return cls(
            code=ErrorCode.LINEAGE_INVALID_REQUEST,
            message=f"Invalid lineage request: {reason}",
            details={"reason": reason},
        )

    @classmethod
    def generation_failed(
        cls, table_name: str, column_name: str | None, reason: str, report_id: int | None
    ) -> "LineageError":
        target = f"{table_name}.{column_name}" if column_name else table_name
        return cls(
            code=ErrorCode.LINEAGE_GENERATION_FAILED,
            message=f"Lineage generation failed for {target}: {reason}",
            retryable=True,
            details={
                "table": table_name,
                "column": column_name,
                "reason": reason,
                "report_id": report_id,
            },
        )

    @classmethod
    def table_not_found(cls, table_name: str, project_ids: list[str]) -> "LineageError":
        return cls(
            code=ErrorCode.LINEAGE_TABLE_NOT_FOUND,
            message=f"Table not found: {table_name}",
            details={"table": table_name, "project_ids": project_ids},
        )


class InternalError(DbLineageError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
