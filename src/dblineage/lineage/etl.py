"""ETL flow extension of a finished lineage tree.

Registered flows (table_flows) say that a procedure moves data from a source
table into a target table. Every PROCEDURE node whose name matches a flow
registered for the lineage's table gets one TABLE child per target table.
Cycle placeholders stay leaves.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from sqlmodel import Session, col, select

from dblineage.db.models import FlowType, NodeType, TableFlow
from dblineage.lineage.tree import LineageNode, LineageTree, display_name


def load_flows(session: Session, project_ids: Sequence[str], source_table: str) -> list[TableFlow]:
    stmt = (
        select(TableFlow)
        .where(
            col(TableFlow.project_id).in_(list(project_ids)),
            TableFlow.source_table == source_table,
        )
        .order_by(col(TableFlow.flow_sequence).is_(None), col(TableFlow.flow_sequence))
    )
    return list(session.exec(stmt))


def attach_etl_flows(
    tree: LineageTree, flows: Sequence[TableFlow], colors: Mapping[str, str]
) -> int:
    """Append ETL target tables under matching procedures. Returns nodes added."""
    by_procedure: dict[str, list[TableFlow]] = {}
    for flow in flows:
        if flow.procedure_name and flow.target_table:
            by_procedure.setdefault(flow.procedure_name.lower(), []).append(flow)
    if not by_procedure:
        return 0

    added = 0
    # Snapshot: nodes appended below are never matched themselves
    for index in range(len(tree.nodes)):
        node = tree.nodes[index]
        if node.node_type != NodeType.PROCEDURE.value or node.is_cycle:
            continue
        for flow in by_procedure.get(node.name.lower(), []):
            target = flow.target_table or ""
            tree.add_child(
                index,
                LineageNode(
                    name=target,
                    display_name=display_name(target),
                    node_type=NodeType.TABLE.value,
                    color=colors.get(NodeType.TABLE.value, ""),
                    description=f"ETL: {flow.flow_type or FlowType.TRANSFORM.value}",
                ),
            )
            added += 1
    return added
