"""SQLModel definitions for schema, usage, component graph and lineage results.

Single source of truth for all table schemas.

Two layers share one database:
- Flat layer: db_tables / db_columns / source_files / column_usages,
  populated by the schema extractor and the column usage tracer.
- Component graph: component_nodes / component_edges / component_sources,
  populated by richer external pipelines when available. Empty is valid.

Lineage output is cached in lineage_results and audited in lineage_reports.
"""

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Column, ForeignKey, Integer, Text, UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# ENUMS
# ============================================================================


class UsageType(str, Enum):
    """Classified operation at a column usage site."""

    READ = "read"
    WRITE = "write"
    UPDATE = "update"
    DELETE = "delete"
    JOIN = "join"
    FILTER = "filter"
    PROJECTION = "projection"


class ComponentType(str, Enum):
    """Kind of node in the persisted component graph."""

    TABLE = "TABLE"
    COLUMN = "COLUMN"
    PROCEDURE = "PROCEDURE"
    FUNCTION = "FUNCTION"
    QUERY = "QUERY"
    FUNCTION_CALL = "FUNCTION_CALL"
    FUNCTION_DEFINITION = "FUNCTION_DEFINITION"
    CREATE_TABLE_STATEMENT = "CREATE_TABLE_STATEMENT"
    CREATE_COLUMN_DEFINITION = "CREATE_COLUMN_DEFINITION"
    FILE = "FILE"  # Pseudo-component for the flat usage view

    @classmethod
    def definition_kinds(cls) -> "frozenset[ComponentType]":
        """Schema-definition components never appear as referencing components."""
        return frozenset({cls.CREATE_TABLE_STATEMENT, cls.CREATE_COLUMN_DEFINITION})


class NodeType(str, Enum):
    """Display type of a lineage tree node."""

    TABLE = "TABLE"
    PROCEDURE = "PROCEDURE"
    QUERY = "QUERY"
    FUNCTION = "FUNCTION"
    COLUMN = "COLUMN"

    @classmethod
    def for_component(cls, component_type: str) -> "NodeType":
        """Map a component type to its display type. Unknown kinds show as FUNCTION."""
        return _COMPONENT_TO_NODE.get(component_type, cls.FUNCTION)


_COMPONENT_TO_NODE: dict[str, NodeType] = {
    ComponentType.TABLE.value: NodeType.TABLE,
    ComponentType.COLUMN.value: NodeType.COLUMN,
    ComponentType.PROCEDURE.value: NodeType.PROCEDURE,
    ComponentType.FUNCTION.value: NodeType.FUNCTION,
    ComponentType.FUNCTION_CALL.value: NodeType.FUNCTION,
    ComponentType.FUNCTION_DEFINITION.value: NodeType.FUNCTION,
    ComponentType.QUERY.value: NodeType.QUERY,
    ComponentType.FILE.value: NodeType.FUNCTION,
}


class EdgeRelation(str, Enum):
    """Component graph edge kind."""

    REFERENCES = "REFERENCES"  # parent is referenced by child
    CALLS = "CALLS"  # parent calls child


class ReportStatus(str, Enum):
    """Lineage generation attempt status."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class LineageKind(str, Enum):
    """Whole-table or single-column lineage."""

    TABLE = "TABLE"
    COLUMN = "COLUMN"


class FlowType(str, Enum):
    """ETL flow classification."""

    ETL = "ETL"
    TRANSFORM = "TRANSFORM"
    LOAD = "LOAD"
    EXTRACT = "EXTRACT"


# ============================================================================
# FLAT SCHEMA / USAGE TABLES
# ============================================================================


class SourceFile(SQLModel, table=True):
    """Ingested source file. ``parsed`` is set once usage tracing has run over it."""

    __tablename__ = "source_files"
    __table_args__ = (UniqueConstraint("project_id", "path", name="uq_source_file_path"),)

    id: int | None = Field(default=None, primary_key=True)
    project_id: str = Field(index=True)
    path: str = Field(index=True)
    language: str = Field(default="unknown", index=True)
    content: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    parsed: bool = Field(default=False, index=True)

    usages: list["ColumnUsage"] = Relationship(back_populates="source_file")


class DbTable(SQLModel, table=True):
    """Database table discovered from DDL or ORM models."""

    __tablename__ = "db_tables"
    __table_args__ = (UniqueConstraint("project_id", "name", name="uq_table_name"),)

    id: int | None = Field(default=None, primary_key=True)
    project_id: str = Field(index=True)
    name: str = Field(index=True)

    columns: list["DbColumn"] = Relationship(back_populates="table")


class DbColumn(SQLModel, table=True):
    """Column of a DbTable."""

    __tablename__ = "db_columns"
    __table_args__ = (UniqueConstraint("table_id", "name", name="uq_column_name"),)

    id: int | None = Field(default=None, primary_key=True)
    table_id: int = Field(
        sa_column=Column(Integer, ForeignKey("db_tables.id", ondelete="CASCADE"), index=True)
    )
    name: str = Field(index=True)
    data_type: str | None = None
    is_primary_key: bool = False
    is_foreign_key: bool = False
    foreign_table: str | None = None
    foreign_column: str | None = None

    table: DbTable | None = Relationship(back_populates="columns")


class ColumnUsage(SQLModel, table=True):
    """One classified occurrence of a column at a file/line. Never mutated."""

    __tablename__ = "column_usages"
    __table_args__ = (
        UniqueConstraint(
            "column_id", "source_file_id", "line_number", "usage_type", name="uq_usage_site"
        ),
    )

    id: int | None = Field(default=None, primary_key=True)
    column_id: int = Field(
        sa_column=Column(Integer, ForeignKey("db_columns.id", ondelete="CASCADE"), index=True)
    )
    source_file_id: int = Field(
        sa_column=Column(Integer, ForeignKey("source_files.id", ondelete="CASCADE"), index=True)
    )
    line_number: int
    usage_type: str = Field(index=True)
    code_snippet: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    context: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))

    source_file: SourceFile | None = Relationship(back_populates="usages")


# ============================================================================
# COMPONENT GRAPH
# ============================================================================


class ComponentNode(SQLModel, table=True):
    """Node of the richer component graph (table, column, procedure, query...)."""

    __tablename__ = "component_nodes"

    id: str = Field(primary_key=True)
    project_id: str = Field(index=True)
    name: str = Field(index=True)
    component_type: str = Field(index=True)
    parent_id: str | None = Field(default=None, index=True)  # Containment (column -> table)
    is_noise: bool = Field(default=False)
    order_seq: int | None = None
    description: str | None = None


class ComponentEdge(SQLModel, table=True):
    """Directed reference/call edge between components. Cycles are allowed."""

    __tablename__ = "component_edges"

    id: int | None = Field(default=None, primary_key=True)
    parent_id: str = Field(index=True)
    child_id: str = Field(index=True)
    relation: str = Field(default=EdgeRelation.REFERENCES.value, index=True)
    call_order: int | None = None


class ComponentSource(SQLModel, table=True):
    """Stored source snippet for a component."""

    __tablename__ = "component_sources"

    id: int | None = Field(default=None, primary_key=True)
    component_id: str = Field(index=True)
    parent_component_id: str | None = None
    source_code: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    start_line: int = 0
    end_line: int = 0


class TableFlow(SQLModel, table=True):
    """Registered ETL flow from a source table through a procedure to a target table."""

    __tablename__ = "table_flows"

    id: int | None = Field(default=None, primary_key=True)
    project_id: str = Field(index=True)
    source_table: str = Field(index=True)
    target_table: str | None = None
    procedure_name: str | None = Field(default=None, index=True)
    flow_sequence: int | None = None
    flow_type: str = Field(default=FlowType.TRANSFORM.value)


class SystemControl(SQLModel, table=True):
    """Runtime configuration flag (ETL_DB_LINEAGE_FLAG, MAX_HIERARCHY_DEPTH, ...)."""

    __tablename__ = "system_control"

    id: int | None = Field(default=None, primary_key=True)
    config_key: str = Field(unique=True, index=True)
    config_value: str | None = None
    description: str | None = None
    is_active: bool = Field(default=True)
    updated_at: datetime = Field(default_factory=_utcnow)


# ============================================================================
# LINEAGE OUTPUT
# ============================================================================


class LineageResult(SQLModel, table=True):
    """Persisted lineage tree, keyed by project set + table + column."""

    __tablename__ = "lineage_results"
    __table_args__ = (
        UniqueConstraint("project_ids", "table_name", "column_key", name="uq_lineage_result"),
    )

    id: int | None = Field(default=None, primary_key=True)
    project_key: str = Field(index=True)  # Sorted project ids joined by "_"
    project_ids: str = Field(sa_column=Column(Text, nullable=False))  # JSON list, sorted
    table_name: str = Field(index=True)
    column_key: str  # Column name, or "ALL" for whole-table lineage
    lineage_kind: str = Field(default=LineageKind.TABLE.value)
    lineage_data: str = Field(sa_column=Column(Text, nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow)


class LineageReport(SQLModel, table=True):
    """Audit record of one lineage generation attempt."""

    __tablename__ = "lineage_reports"

    id: int | None = Field(default=None, primary_key=True)
    project_key: str = Field(index=True)
    table_name: str
    column_name: str | None = None
    status: str = Field(default=ReportStatus.RUNNING.value, index=True)
    started_at: datetime = Field(default_factory=_utcnow)
    ended_at: datetime | None = None
    lineage_json: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    error_detail: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
