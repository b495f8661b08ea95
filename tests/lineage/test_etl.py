"""Tests for ETL flow attachment."""

from dblineage.db import TableFlow
from dblineage.lineage.etl import attach_etl_flows
from dblineage.lineage.tree import LineageNode, LineageTree


def _node(name: str, node_type: str, is_cycle: bool = False) -> LineageNode:
    return LineageNode(
        name=name, display_name=name, node_type=node_type, color="", is_cycle=is_cycle
    )


def _flow(procedure: str | None, target: str | None) -> TableFlow:
    return TableFlow(
        project_id="p1", source_table="orders", target_table=target, procedure_name=procedure
    )


class TestAttachEtlFlows:
    def test_given_matching_procedures_when_attached_then_targets_added(self) -> None:
        # Given
        tree = LineageTree()
        root = tree.add_root(_node("orders", "TABLE"))
        proc = tree.add_child(root, _node("Nightly_Load", "PROCEDURE"))
        tree.add_child(root, _node("nightly_load", "FUNCTION"))
        tree.add_child(proc, _node("nightly_load", "PROCEDURE", is_cycle=True))
        flows = [_flow("nightly_load", "orders_dw"), _flow("nightly_load", "orders_audit")]

        # When
        added = attach_etl_flows(tree, flows, {"TABLE": "#82c158"})

        # Then
        assert added == 2
        targets = [n for n in tree.children_of(proc) if n.node_type == "TABLE"]
        assert [n.name for n in targets] == ["orders_dw", "orders_audit"]
        assert all(n.color == "#82c158" for n in targets)
        assert all(n.description == "ETL: TRANSFORM" for n in targets)

    def test_given_incomplete_flows_when_attached_then_nothing_added(self) -> None:
        tree = LineageTree()
        root = tree.add_root(_node("orders", "TABLE"))
        tree.add_child(root, _node("nightly_load", "PROCEDURE"))

        added = attach_etl_flows(tree, [_flow(None, "x"), _flow("nightly_load", None)], {})

        assert added == 0
        assert len(tree) == 2
