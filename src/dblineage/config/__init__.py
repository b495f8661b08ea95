"""Config module exports."""

from dblineage.config.loader import get_database_url, load_config
from dblineage.config.models import (
    CacheConfig,
    DatabaseConfig,
    DbLineageConfig,
    LineageConfig,
    LoggingConfig,
    TracerConfig,
)

__all__ = [
    "load_config",
    "get_database_url",
    "DbLineageConfig",
    "CacheConfig",
    "DatabaseConfig",
    "LineageConfig",
    "LoggingConfig",
    "TracerConfig",
]
