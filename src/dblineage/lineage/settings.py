"""Effective lineage settings: config defaults overlaid with system_control rows.

Recognized keys:
    ETL_DB_LINEAGE_FLAG   "true" enables ETL flow extension
    COLUMN_COLORS         JSON object, node type -> color
    LINEAGE_CACHE_TTL     seconds
    MAX_HIERARCHY_DEPTH   recursion bound below the root

Unparseable values are logged and ignored.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any

import structlog
from sqlmodel import Session, select

from dblineage.config.models import DEFAULT_NODE_COLORS, LineageConfig
from dblineage.db.models import SystemControl

log = structlog.get_logger()

ETL_FLAG_KEY = "ETL_DB_LINEAGE_FLAG"
COLORS_KEY = "COLUMN_COLORS"
CACHE_TTL_KEY = "LINEAGE_CACHE_TTL"
MAX_DEPTH_KEY = "MAX_HIERARCHY_DEPTH"


@dataclass(slots=True)
class LineageSettings:
    etl_enabled: bool = False
    node_colors: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_NODE_COLORS))
    cache_ttl_sec: int = 3600
    max_hierarchy_depth: int = 10

    def color_for(self, node_type: str) -> str:
        return self.node_colors.get(node_type) or DEFAULT_NODE_COLORS.get(node_type, "")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LineageSettings:
        return cls(
            etl_enabled=bool(data.get("etl_enabled", False)),
            node_colors=dict(data.get("node_colors") or DEFAULT_NODE_COLORS),
            cache_ttl_sec=int(data.get("cache_ttl_sec", 3600)),
            max_hierarchy_depth=int(data.get("max_hierarchy_depth", 10)),
        )

    @classmethod
    def from_config(cls, config: LineageConfig) -> LineageSettings:
        return cls(
            etl_enabled=config.etl_enabled,
            node_colors=dict(config.node_colors),
            cache_ttl_sec=config.cache_ttl_sec,
            max_hierarchy_depth=config.max_hierarchy_depth,
        )


def _parse_int(key: str, value: str, minimum: int) -> int | None:
    try:
        parsed = int(value)
    except ValueError:
        log.warning("system_control_invalid_value", key=key, value=value)
        return None
    if parsed < minimum:
        log.warning("system_control_invalid_value", key=key, value=value)
        return None
    return parsed


def load_settings(session: Session, config: LineageConfig) -> LineageSettings:
    """Config defaults overlaid with active system_control rows."""
    settings = LineageSettings.from_config(config)
    rows = session.exec(select(SystemControl).where(SystemControl.is_active == True))  # noqa: E712
    values = {row.config_key: row.config_value for row in rows if row.config_value is not None}

    if ETL_FLAG_KEY in values:
        settings.etl_enabled = values[ETL_FLAG_KEY].strip().lower() == "true"
    if COLORS_KEY in values:
        try:
            colors = json.loads(values[COLORS_KEY])
        except ValueError:
            log.warning("system_control_invalid_value", key=COLORS_KEY)
        else:
            if isinstance(colors, dict):
                settings.node_colors = {**settings.node_colors, **colors}
    if CACHE_TTL_KEY in values:
        ttl = _parse_int(CACHE_TTL_KEY, values[CACHE_TTL_KEY], minimum=1)
        if ttl is not None:
            settings.cache_ttl_sec = ttl
    if MAX_DEPTH_KEY in values:
        depth = _parse_int(MAX_DEPTH_KEY, values[MAX_DEPTH_KEY], minimum=0)
        if depth is not None:
            settings.max_hierarchy_depth = depth
    return settings
