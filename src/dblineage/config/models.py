"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (DBLINEAGE__SECTION__KEY)
3. Repo YAML (.dblineage/config.yaml)
4. Global YAML (~/.config/dblineage/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    DBLINEAGE__<SECTION>__<KEY>=<VALUE>

Examples:
    DBLINEAGE__LOGGING__LEVEL=DEBUG
    DBLINEAGE__CACHE__BACKEND=redis
    DBLINEAGE__LINEAGE__MAX_HIERARCHY_DEPTH=15
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

NodeType = Literal["TABLE", "PROCEDURE", "QUERY", "FUNCTION", "COLUMN"]

DEFAULT_NODE_COLORS: dict[str, str] = {
    "TABLE": "#82c158",
    "QUERY": "#0a9ccd",
    "PROCEDURE": "#c34474",
    "FUNCTION": "#5283a2",
    "COLUMN": "#b2f1ca",
}


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
        DBLINEAGE__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="WARNING",
        description="Root log level. DEBUG logs every accepted usage and is verbose.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class DatabaseConfig(BaseModel):
    """Database connection configuration.

    Env vars:
        DBLINEAGE__DATABASE__URL: SQLAlchemy URL (default: SQLite file in .dblineage/)
        DBLINEAGE__DATABASE__BUSY_TIMEOUT_MS: SQLite busy timeout
        DBLINEAGE__DATABASE__MAX_RETRIES: Max retry attempts for locked DB
    """

    url: str | None = Field(
        default=None,
        description="SQLAlchemy database URL. Default: sqlite:///<repo>/.dblineage/lineage.db",
    )
    busy_timeout_ms: int = Field(
        default=30000,
        description="SQLite busy timeout (ms). Parallel tracing relies on it.",
    )
    max_retries: int = Field(
        default=3,
        description="Max retry attempts for locked database errors.",
    )
    retry_base_delay_sec: float = Field(
        default=0.1,
        description="Base delay between retries (exponential backoff).",
    )


class CacheConfig(BaseModel):
    """Cache backend configuration.

    Env vars:
        DBLINEAGE__CACHE__BACKEND: memory | redis | none
        DBLINEAGE__CACHE__REDIS_URL: Redis URL when backend=redis
        DBLINEAGE__CACHE__DEFAULT_TTL_SEC: TTL when a caller passes none
    """

    backend: Literal["memory", "redis", "none"] = Field(
        default="memory",
        description="Cache backend. 'none' disables caching entirely.",
    )
    redis_url: str | None = Field(
        default=None,
        description="Redis connection URL (e.g., redis://localhost:6379/0).",
    )
    default_ttl_sec: int = Field(
        default=3600,
        description="Default entry TTL in seconds.",
    )
    max_entries: int = Field(
        default=10000,
        description="Max entries held by the in-memory backend (oldest evicted first).",
    )

    @field_validator("default_ttl_sec", "max_entries")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"Must be positive, got {v}")
        return v


class LineageConfig(BaseModel):
    """Lineage tree generation defaults.

    Runtime overrides come from the system_control table
    (ETL_DB_LINEAGE_FLAG, COLUMN_COLORS, LINEAGE_CACHE_TTL, MAX_HIERARCHY_DEPTH).

    Env vars:
        DBLINEAGE__LINEAGE__ETL_ENABLED: Attach ETL target tables to procedures
        DBLINEAGE__LINEAGE__MAX_HIERARCHY_DEPTH: Recursion bound
        DBLINEAGE__LINEAGE__CACHE_TTL_SEC: TTL for cached lineage trees
    """

    etl_enabled: bool = Field(
        default=False,
        description="Extend lineage trees with registered ETL table flows.",
    )
    max_hierarchy_depth: int = Field(
        default=10,
        description="Maximum depth of the lineage tree below the root. "
        "RISK: Large values on dense call graphs produce very large trees.",
    )
    cache_ttl_sec: int = Field(
        default=3600,
        description="TTL for cached lineage trees and table listings.",
    )
    node_colors: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_NODE_COLORS),
        description="Display color per node type.",
    )

    @field_validator("max_hierarchy_depth")
    @classmethod
    def validate_depth(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"Depth must be >= 0, got {v}")
        return v


class TracerConfig(BaseModel):
    """Column usage tracer configuration.

    Env vars:
        DBLINEAGE__TRACER__MAX_WORKERS: Files traced in parallel
    """

    max_workers: int = Field(
        default=1,
        description="Parallel tracing workers. "
        "RISK: >1 may cause SQLite contention; each file is its own transaction.",
    )
    context_lines: int = Field(
        default=5,
        description="Lines before/after a match considered as its context window.",
    )
    snippet_lines: int = Field(
        default=2,
        description="Lines before/after a match stored as its code snippet.",
    )
    max_file_size_kb: int = Field(
        default=1024,
        description="Skip files larger than this during ingestion.",
    )


class DbLineageConfig(BaseModel):
    """Root configuration for dblineage."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    lineage: LineageConfig = Field(default_factory=LineageConfig)
    tracer: TracerConfig = Field(default_factory=TracerConfig)
