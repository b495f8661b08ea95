"""Reference graphs consumed by the lineage builder.

One interface, two sources:

- ComponentGraph reads the persisted component graph (component_nodes /
  component_edges). Tables and columns are components; REFERENCES edges point
  from the referenced component to the referencing one, CALLS edges from
  caller to callee.
- UsageGraph is the same interface over the flat tables written by the
  tracer. Each distinct source file touching the table (or column) is one
  pseudo-component with no children of its own.

``open_graph`` picks the component graph when it holds any node for the
requested projects, the usage graph otherwise.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy import func
from sqlmodel import Session, col, select

from dblineage.db.models import (
    ColumnUsage,
    ComponentEdge,
    ComponentNode,
    ComponentType,
    DbColumn,
    DbTable,
    EdgeRelation,
    SourceFile,
)

FILE_COMPONENT_PREFIX = "file:"


@dataclass(frozen=True, slots=True)
class GraphComponent:
    """A component as seen by the builder."""

    id: str
    name: str
    component_type: str
    description: str | None = None


@dataclass(frozen=True, slots=True)
class GraphColumn:
    """A column of a table, for the root's type information."""

    id: str
    name: str
    data_type: str | None = None


class ReferenceGraph(ABC):
    """Who references a table or column, and what each referencing component leads to."""

    def __init__(self, session: Session, project_ids: Sequence[str]) -> None:
        self.session = session
        self.project_ids = list(project_ids)

    @abstractmethod
    def referencing(self, table: str, column: str | None = None) -> list[GraphComponent]:
        """Components referencing ``table`` (or ``table.column``), in display order."""

    @abstractmethod
    def children(self, component_id: str) -> list[GraphComponent]:
        """Call children first (by call order), then remaining reference children."""

    def table_columns(self, table: str) -> list[GraphColumn]:
        """Columns of ``table`` from the extracted schema, ordered by name."""
        stmt = (
            select(DbColumn)
            .join(DbTable, col(DbColumn.table_id) == col(DbTable.id))
            .where(col(DbTable.project_id).in_(self.project_ids), DbTable.name == table)
            .order_by(col(DbColumn.name))
        )
        return [
            GraphColumn(id=str(c.id), name=c.name, data_type=c.data_type)
            for c in self.session.exec(stmt)
        ]

    def table_exists(self, table: str) -> bool:
        stmt = select(DbTable.id).where(
            col(DbTable.project_id).in_(self.project_ids), DbTable.name == table
        )
        return self.session.exec(stmt).first() is not None

    def table_names(self) -> list[str]:
        stmt = (
            select(DbTable.name)
            .where(col(DbTable.project_id).in_(self.project_ids))
            .distinct()
            .order_by(col(DbTable.name))
        )
        return list(self.session.exec(stmt))


def _unique(components: list[GraphComponent]) -> list[GraphComponent]:
    seen: set[str] = set()
    result: list[GraphComponent] = []
    for comp in components:
        if comp.id in seen:
            continue
        seen.add(comp.id)
        result.append(comp)
    return result


def _to_component(node: ComponentNode) -> GraphComponent:
    return GraphComponent(
        id=node.id,
        name=node.name,
        component_type=node.component_type,
        description=node.description,
    )


class ComponentGraph(ReferenceGraph):
    """Reference graph over component_nodes / component_edges."""

    def _anchor_ids(self, table: str, column: str | None) -> list[str]:
        table_ids = list(
            self.session.exec(
                select(ComponentNode.id).where(
                    col(ComponentNode.project_id).in_(self.project_ids),
                    ComponentNode.name == table,
                    ComponentNode.component_type == ComponentType.TABLE.value,
                )
            )
        )
        if column is None or not table_ids:
            return table_ids
        return list(
            self.session.exec(
                select(ComponentNode.id).where(
                    ComponentNode.name == column,
                    ComponentNode.component_type == ComponentType.COLUMN.value,
                    col(ComponentNode.parent_id).in_(table_ids),
                )
            )
        )

    def referencing(self, table: str, column: str | None = None) -> list[GraphComponent]:
        anchors = self._anchor_ids(table, column)
        if not anchors:
            return []
        excluded = [k.value for k in ComponentType.definition_kinds()]
        stmt = (
            select(ComponentNode)
            .join(ComponentEdge, col(ComponentEdge.child_id) == col(ComponentNode.id))
            .where(
                col(ComponentEdge.parent_id).in_(anchors),
                ComponentEdge.relation == EdgeRelation.REFERENCES.value,
                col(ComponentNode.project_id).in_(self.project_ids),
                col(ComponentNode.component_type).not_in(excluded),
                col(ComponentNode.is_noise) == False,  # noqa: E712
            )
            .order_by(
                col(ComponentNode.order_seq).is_(None),
                col(ComponentNode.order_seq),
                col(ComponentNode.name),
            )
        )
        return _unique([_to_component(n) for n in self.session.exec(stmt)])

    def children(self, component_id: str) -> list[GraphComponent]:
        calls_stmt = (
            select(ComponentNode)
            .join(ComponentEdge, col(ComponentEdge.child_id) == col(ComponentNode.id))
            .where(
                ComponentEdge.parent_id == component_id,
                ComponentEdge.relation == EdgeRelation.CALLS.value,
                col(ComponentNode.is_noise) == False,  # noqa: E712
            )
            .order_by(
                col(ComponentEdge.call_order).is_(None),
                col(ComponentEdge.call_order),
                col(ComponentNode.order_seq).is_(None),
                col(ComponentNode.order_seq),
            )
        )
        calls = _unique([_to_component(n) for n in self.session.exec(calls_stmt)])
        call_ids = {c.id for c in calls}

        refs_stmt = (
            select(ComponentNode)
            .join(ComponentEdge, col(ComponentEdge.child_id) == col(ComponentNode.id))
            .where(
                ComponentEdge.parent_id == component_id,
                ComponentEdge.relation == EdgeRelation.REFERENCES.value,
                col(ComponentNode.is_noise) == False,  # noqa: E712
            )
            .order_by(col(ComponentNode.order_seq).is_(None), col(ComponentNode.order_seq))
        )
        refs = [
            _to_component(n) for n in self.session.exec(refs_stmt) if n.id not in call_ids
        ]
        return calls + _unique(refs)

    def table_columns(self, table: str) -> list[GraphColumn]:
        table_ids = self._anchor_ids(table, None)
        if table_ids:
            stmt = (
                select(ComponentNode)
                .where(
                    col(ComponentNode.parent_id).in_(table_ids),
                    ComponentNode.component_type == ComponentType.COLUMN.value,
                )
                .order_by(col(ComponentNode.name))
            )
            columns = [
                GraphColumn(id=n.id, name=n.name, data_type=n.description)
                for n in self.session.exec(stmt)
            ]
            if columns:
                return columns
        return super().table_columns(table)

    def table_exists(self, table: str) -> bool:
        return bool(self._anchor_ids(table, None)) or super().table_exists(table)

    def table_names(self) -> list[str]:
        stmt = select(ComponentNode.name).where(
            col(ComponentNode.project_id).in_(self.project_ids),
            ComponentNode.component_type == ComponentType.TABLE.value,
        )
        return sorted(set(self.session.exec(stmt)) | set(super().table_names()))


class UsageGraph(ReferenceGraph):
    """Single-level reference graph over the tracer's usage rows."""

    def referencing(self, table: str, column: str | None = None) -> list[GraphComponent]:
        stmt = (
            select(SourceFile.id, SourceFile.path, ColumnUsage.usage_type)
            .join(ColumnUsage, col(ColumnUsage.source_file_id) == col(SourceFile.id))
            .join(DbColumn, col(DbColumn.id) == col(ColumnUsage.column_id))
            .join(DbTable, col(DbTable.id) == col(DbColumn.table_id))
            .where(col(DbTable.project_id).in_(self.project_ids), DbTable.name == table)
            .order_by(col(SourceFile.path))
        )
        if column is not None:
            stmt = stmt.where(DbColumn.name == column)

        files: dict[int, tuple[str, set[str]]] = {}
        for file_id, path, usage_type in self.session.exec(stmt):
            entry = files.setdefault(file_id, (path, set()))
            entry[1].add(usage_type)

        return [
            GraphComponent(
                id=f"{FILE_COMPONENT_PREFIX}{file_id}",
                name=path,
                component_type=ComponentType.FILE.value,
                description=", ".join(sorted(usage_types)),
            )
            for file_id, (path, usage_types) in files.items()
        ]

    def children(self, component_id: str) -> list[GraphComponent]:  # noqa: ARG002
        return []


def open_graph(session: Session, project_ids: Sequence[str]) -> ReferenceGraph:
    """Component graph when populated for these projects, usage graph otherwise."""
    count = session.exec(
        select(func.count())
        .select_from(ComponentNode)
        .where(col(ComponentNode.project_id).in_(list(project_ids)))
    ).one()
    if count:
        return ComponentGraph(session, project_ids)
    return UsageGraph(session, project_ids)
