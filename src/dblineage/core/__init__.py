"""Core module exports."""

from dblineage.core.errors import (
    ConfigError,
    DbLineageError,
    ErrorCode,
    InternalError,
    LineageError,
)
from dblineage.core.logging import (
    clear_request_id,
    configure_logging,
    get_request_id,
    set_request_id,
)

__all__ = [
    # Errors
    "DbLineageError",
    "ConfigError",
    "ErrorCode",
    "InternalError",
    "LineageError",
    # Logging
    "clear_request_id",
    "configure_logging",
    "get_request_id",
    "set_request_id",
]
