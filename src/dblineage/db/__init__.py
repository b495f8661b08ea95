"""Persistence layer: SQLModel tables and the database connection manager."""

from dblineage.db.database import BulkWriter, Database
from dblineage.db.models import (
    ColumnUsage,
    ComponentEdge,
    ComponentNode,
    ComponentSource,
    ComponentType,
    DbColumn,
    DbTable,
    EdgeRelation,
    FlowType,
    LineageKind,
    LineageReport,
    LineageResult,
    NodeType,
    ReportStatus,
    SourceFile,
    SystemControl,
    TableFlow,
    UsageType,
)

__all__ = [
    "Database",
    "BulkWriter",
    "ColumnUsage",
    "ComponentEdge",
    "ComponentNode",
    "ComponentSource",
    "ComponentType",
    "DbColumn",
    "DbTable",
    "EdgeRelation",
    "FlowType",
    "LineageKind",
    "LineageReport",
    "LineageResult",
    "NodeType",
    "ReportStatus",
    "SourceFile",
    "SystemControl",
    "TableFlow",
    "UsageType",
]
