"""Best-effort caching for lineage trees, table listings and source snippets."""

from dblineage.cache.backends import CacheBackend, MemoryCache, NullCache, RedisCache
from dblineage.cache.service import (
    CacheService,
    config_key,
    create_cache,
    lineage_key,
    project_key,
    project_patterns,
    schemas_key,
    source_key,
    tables_key,
)

__all__ = [
    "CacheBackend",
    "CacheService",
    "MemoryCache",
    "NullCache",
    "RedisCache",
    "config_key",
    "create_cache",
    "lineage_key",
    "project_key",
    "project_patterns",
    "schemas_key",
    "source_key",
    "tables_key",
]
