"""Lineage tree generation with cache and persisted-result reuse.

Per request:

    cache check -> persisted-result check -> generation

``regenerate=True`` skips both checks. Generation opens a LineageReport row
(running), builds the tree depth-first from a ReferenceGraph, optionally
extends it with ETL flows, upserts the LineageResult, closes the report
(completed) and caches the tree. Any failure closes the report as failed
with the traceback and is re-raised as LineageError.generation_failed.

The visited set used for cycle detection is created per generation call and
passed down explicitly; nothing about a generation lives on the builder.
"""

from __future__ import annotations

import json
import traceback
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlmodel import col, select

from dblineage.cache.service import (
    CacheService,
    config_key,
    create_cache,
    lineage_key,
    project_key,
    source_key,
    tables_key,
)
from dblineage.config.constants import ALL_COLUMNS_KEY, CONFIG_CACHE_TTL_SEC, TYPE_INFO_COLORS
from dblineage.config.models import LineageConfig
from dblineage.core.errors import LineageError
from dblineage.db.database import Database
from dblineage.db.models import (
    ComponentSource,
    LineageKind,
    LineageReport,
    LineageResult,
    NodeType,
    ReportStatus,
    SourceFile,
)
from dblineage.lineage.etl import attach_etl_flows, load_flows
from dblineage.lineage.graph import (
    FILE_COMPONENT_PREFIX,
    GraphComponent,
    ReferenceGraph,
    open_graph,
)
from dblineage.lineage.settings import LineageSettings, load_settings
from dblineage.lineage.tree import ROOT, LineageNode, LineageTree, TypeInfo, display_name

log = structlog.get_logger()

SOURCE_CACHE_TTL_SEC = 3600


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _project_set(project_ids: Sequence[str]) -> str:
    """Exact stored identity of a project set; ids may contain "_"."""
    return json.dumps(sorted(str(p) for p in project_ids))


@dataclass(slots=True)
class LineageResponse:
    """Result of build_lineage."""

    tree: dict[str, Any]
    from_cache: bool
    generated_at: str | None = None
    report_id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "tree": self.tree,
            "from_cache": self.from_cache,
            "generated_at": self.generated_at,
            "report_id": self.report_id,
        }


class LineageBuilder:
    """Builds, persists and caches lineage trees for a set of projects.

    Usage::

        builder = LineageBuilder(db, cache=create_cache(config.cache))
        response = builder.build_lineage(["proj"], "orders", column="user_id")
        response.tree["children"]
    """

    def __init__(
        self,
        db: Database,
        cache: CacheService | None = None,
        config: LineageConfig | None = None,
    ) -> None:
        self.db = db
        self.cache = cache if cache is not None else create_cache()
        self.config = config or LineageConfig()

    # =========================================================================
    # Settings
    # =========================================================================

    def get_settings(self) -> LineageSettings:
        """Config defaults merged with system_control, cached for five minutes."""
        cached = self.cache.get(config_key())
        if isinstance(cached, dict):
            return LineageSettings.from_dict(cached)
        with self.db.session() as session:
            settings = load_settings(session, self.config)
        self.cache.set(config_key(), settings.to_dict(), CONFIG_CACHE_TTL_SEC)
        return settings

    # =========================================================================
    # Lineage
    # =========================================================================

    def build_lineage(
        self,
        project_ids: Sequence[str],
        table: str,
        column: str | None = None,
        regenerate: bool = False,
    ) -> LineageResponse:
        """Lineage tree for ``table`` (or ``table.column``) across ``project_ids``.

        Raises:
            LineageError: invalid_request before any state change;
                generation_failed when generation fails (report closed as failed).
        """
        ids = [str(p) for p in project_ids if str(p).strip()]
        if not ids:
            raise LineageError.invalid_request("at least one project id is required")
        if not table or not table.strip():
            raise LineageError.invalid_request("table name is required")
        column = column or None

        settings = self.get_settings()
        key = lineage_key(ids, table, column)

        if not regenerate:
            cached = self.cache.get(key)
            if isinstance(cached, dict) and "tree" in cached:
                log.info("lineage_cache_hit", table=table, column=column)
                return LineageResponse(
                    tree=cached["tree"],
                    from_cache=True,
                    generated_at=cached.get("generated_at"),
                )

            stored = self._load_result(ids, table, column)
            if stored is not None:
                tree_data = json.loads(stored.lineage_data)
                generated_at = stored.updated_at.isoformat()
                self.cache.set(
                    key,
                    {"tree": tree_data, "generated_at": generated_at},
                    settings.cache_ttl_sec,
                )
                log.info("lineage_result_hit", table=table, column=column)
                return LineageResponse(tree=tree_data, from_cache=True, generated_at=generated_at)

        report_id = self._open_report(ids, table, column)
        log.info("lineage_generation_started", table=table, column=column, report_id=report_id)
        try:
            tree = self._generate(ids, table, column, settings)
            tree_data = tree.to_dict()
            generated_at = self._save_result(ids, table, column, tree_data)
        except Exception as e:
            self._fail_report(report_id, traceback.format_exc())
            log.error(
                "lineage_generation_failed",
                table=table,
                column=column,
                report_id=report_id,
                error=str(e),
            )
            raise LineageError.generation_failed(table, column, str(e), report_id) from e

        self._complete_report(report_id, tree_data)
        self.cache.set(
            key, {"tree": tree_data, "generated_at": generated_at}, settings.cache_ttl_sec
        )
        log.info(
            "lineage_generated",
            table=table,
            column=column,
            nodes=len(tree),
            cycles=len(tree.cycle_placeholders()),
            report_id=report_id,
        )
        return LineageResponse(
            tree=tree_data, from_cache=False, generated_at=generated_at, report_id=report_id
        )

    def _generate(
        self,
        project_ids: list[str],
        table: str,
        column: str | None,
        settings: LineageSettings,
    ) -> LineageTree:
        with self.db.session() as session:
            graph = open_graph(session, project_ids)
            tree = LineageTree()
            tree.add_root(
                LineageNode(
                    name=table,
                    display_name=display_name(table),
                    node_type=NodeType.TABLE.value,
                    color=settings.color_for(NodeType.TABLE.value),
                    description=f"column: {column}" if column else None,
                )
            )
            visited: set[str] = set()
            if settings.max_hierarchy_depth > 0:
                self._expand(
                    tree, graph, iter(graph.referencing(table, column)), visited, settings
                )

            if column is None:
                tree.root.type_information = [
                    TypeInfo(
                        component_id=c.id,
                        name=c.name,
                        display_name=display_name(c.name),
                        color=TYPE_INFO_COLORS[i % len(TYPE_INFO_COLORS)],
                        data_type=c.data_type,
                    )
                    for i, c in enumerate(graph.table_columns(table))
                ]

            if settings.etl_enabled:
                flows = load_flows(session, project_ids, table)
                added = attach_etl_flows(tree, flows, settings.node_colors)
                log.debug("etl_flows_attached", table=table, flows=len(flows), nodes=added)
        return tree

    def _expand(
        self,
        tree: LineageTree,
        graph: ReferenceGraph,
        root_components: Iterator[GraphComponent],
        visited: set[str],
        settings: LineageSettings,
    ) -> None:
        """Depth-first expansion below the root.

        Each stack frame holds a parent index, the depth of its children, and
        the iterator over those children. A component already in ``visited``
        becomes a cycle placeholder leaf. Nodes at ``max_hierarchy_depth``
        are added but not expanded.
        """
        max_depth = settings.max_hierarchy_depth
        stack: list[tuple[int, int, Iterator[GraphComponent]]] = [(ROOT, 1, root_components)]
        while stack:
            parent, depth, pending = stack[-1]
            component = next(pending, None)
            if component is None:
                stack.pop()
                continue

            node_type = NodeType.for_component(component.component_type).value
            node = LineageNode(
                name=component.name,
                display_name=display_name(component.name),
                node_type=node_type,
                color=settings.color_for(node_type),
                component_id=component.id,
                description=component.description,
            )
            if component.id in visited:
                node.is_cycle = True
                tree.add_child(parent, node)
                continue

            visited.add(component.id)
            index = tree.add_child(parent, node)
            if depth < max_depth:
                stack.append((index, depth + 1, iter(graph.children(component.id))))

    # =========================================================================
    # Tables and sources
    # =========================================================================

    def table_exists(self, project_ids: Sequence[str], table: str) -> bool:
        with self.db.session() as session:
            return open_graph(session, project_ids).table_exists(table)

    def get_tables(
        self, project_ids: Sequence[str], regenerate: bool = False
    ) -> list[dict[str, Any]]:
        """Tables of the project set with their columns, ordered by name."""
        key = tables_key(project_ids)
        if not regenerate:
            cached = self.cache.get(key)
            if isinstance(cached, list):
                return cached

        with self.db.session() as session:
            graph = open_graph(session, project_ids)
            tables = [
                {
                    "table_name": name,
                    "columns": [
                        {"id": c.id, "name": c.name, "data_type": c.data_type}
                        for c in graph.table_columns(name)
                    ],
                }
                for name in graph.table_names()
            ]
        self.cache.set(key, tables, self.get_settings().cache_ttl_sec)
        return tables

    def get_component_source(self, component_id: str) -> dict[str, Any] | None:
        """Stored source snippet of a component, or the whole file for a file pseudo-component."""
        key = source_key(component_id)
        cached = self.cache.get(key)
        if isinstance(cached, dict):
            return cached

        source: dict[str, Any] | None = None
        with self.db.session() as session:
            if component_id.startswith(FILE_COMPONENT_PREFIX):
                file_id = component_id[len(FILE_COMPONENT_PREFIX) :]
                file = session.get(SourceFile, int(file_id)) if file_id.isdigit() else None
                if file is not None:
                    source = {
                        "component_id": component_id,
                        "parent_component_id": None,
                        "source_code": file.content,
                        "start_line": 1,
                        "end_line": len(file.content.splitlines()),
                        "path": file.path,
                    }
            else:
                row = session.exec(
                    select(ComponentSource).where(ComponentSource.component_id == component_id)
                ).first()
                if row is not None:
                    source = {
                        "component_id": row.component_id,
                        "parent_component_id": row.parent_component_id,
                        "source_code": row.source_code,
                        "start_line": row.start_line,
                        "end_line": row.end_line,
                    }

        if source is not None:
            self.cache.set(key, source, SOURCE_CACHE_TTL_SEC)
        return source

    # =========================================================================
    # Invalidation
    # =========================================================================

    def invalidate_project(self, project_id: str) -> int:
        """Drop cached entries and persisted results involving ``project_id``.

        Returns the number of persisted results deleted.
        """
        self.cache.invalidate_project(project_id)
        deleted = 0
        with self.db.immediate_transaction() as session:
            rows = session.exec(
                select(LineageResult).where(col(LineageResult.project_key).contains(project_id))
            )
            for row in rows:
                if project_id in json.loads(row.project_ids):
                    session.delete(row)
                    deleted += 1
        log.info("lineage_results_invalidated", project_id=project_id, results=deleted)
        return deleted

    # =========================================================================
    # Persistence helpers
    # =========================================================================

    def _load_result(
        self, project_ids: list[str], table: str, column: str | None
    ) -> LineageResult | None:
        with self.db.session() as session:
            return session.exec(
                select(LineageResult).where(
                    LineageResult.project_ids == _project_set(project_ids),
                    LineageResult.table_name == table,
                    LineageResult.column_key == (column or ALL_COLUMNS_KEY),
                )
            ).first()

    def _save_result(
        self,
        project_ids: list[str],
        table: str,
        column: str | None,
        tree_data: dict[str, Any],
    ) -> str:
        """Upsert the finished tree. Returns its timestamp."""
        now = _utcnow()
        payload = json.dumps(tree_data)
        with self.db.immediate_transaction() as session:
            row = session.exec(
                select(LineageResult).where(
                    LineageResult.project_ids == _project_set(project_ids),
                    LineageResult.table_name == table,
                    LineageResult.column_key == (column or ALL_COLUMNS_KEY),
                )
            ).first()
            if row is None:
                row = LineageResult(
                    project_key=project_key(project_ids),
                    project_ids=_project_set(project_ids),
                    table_name=table,
                    column_key=column or ALL_COLUMNS_KEY,
                    lineage_data=payload,
                )
            row.lineage_kind = (LineageKind.COLUMN if column else LineageKind.TABLE).value
            row.lineage_data = payload
            row.updated_at = now
            session.add(row)
        return now.isoformat()

    def _open_report(self, project_ids: list[str], table: str, column: str | None) -> int | None:
        with self.db.session() as session:
            report = LineageReport(
                project_key=project_key(project_ids),
                table_name=table,
                column_name=column,
                status=ReportStatus.RUNNING.value,
            )
            session.add(report)
            session.commit()
            return report.id

    def _close_report(self, report_id: int | None, **fields: Any) -> None:
        if report_id is None:
            return
        with self.db.session() as session:
            report = session.get(LineageReport, report_id)
            if report is None:
                return
            for name, value in fields.items():
                setattr(report, name, value)
            report.ended_at = _utcnow()
            session.add(report)
            session.commit()

    def _complete_report(self, report_id: int | None, tree_data: dict[str, Any]) -> None:
        self._close_report(
            report_id,
            status=ReportStatus.COMPLETED.value,
            lineage_json=json.dumps(tree_data),
        )

    def _fail_report(self, report_id: int | None, detail: str) -> None:
        try:
            self._close_report(report_id, status=ReportStatus.FAILED.value, error_detail=detail)
        except Exception as e:
            log.warning("lineage_report_update_failed", report_id=report_id, error=str(e))
