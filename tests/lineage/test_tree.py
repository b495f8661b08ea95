"""Tests for the lineage tree arena."""

import pytest

from dblineage.lineage.tree import LineageNode, LineageTree, TypeInfo, display_name


def _node(name: str, node_type: str = "FUNCTION", **kwargs: object) -> LineageNode:
    return LineageNode(
        name=name, display_name=display_name(name), node_type=node_type, color="", **kwargs
    )


def _chain(length: int) -> LineageTree:
    tree = LineageTree()
    parent = tree.add_root(_node("root", "TABLE"))
    for i in range(length):
        parent = tree.add_child(parent, _node(f"n{i}"))
    return tree


class TestDisplayName:
    def test_given_long_name_when_displayed_then_truncated(self) -> None:
        name = "x" * 45
        assert display_name(name) == "x" * 40 + "..."

    def test_given_name_at_limit_when_displayed_then_unchanged(self) -> None:
        assert display_name("y" * 40) == "y" * 40


class TestLineageTree:
    def test_given_second_root_when_added_then_rejected(self) -> None:
        tree = LineageTree()
        tree.add_root(_node("orders", "TABLE"))

        with pytest.raises(ValueError):
            tree.add_root(_node("users", "TABLE"))

    def test_given_branches_when_walked_then_preorder_with_depths(self) -> None:
        # Given
        tree = LineageTree()
        root = tree.add_root(_node("orders", "TABLE"))
        a = tree.add_child(root, _node("a"))
        tree.add_child(a, _node("a1"))
        tree.add_child(root, _node("b"))

        # When
        order = [(tree.nodes[i].name, d) for i, d in tree.walk()]

        # Then
        assert order == [("orders", 0), ("a", 1), ("a1", 2), ("b", 1)]
        assert tree.depth() == 2
        assert [n.name for n in tree.children_of(root)] == ["a", "b"]

    def test_given_tree_when_serialized_then_nested_dict_round_trips(self) -> None:
        # Given
        tree = LineageTree()
        root = tree.add_root(_node("orders", "TABLE"))
        tree.root.type_information = [
            TypeInfo(component_id="1", name="id", display_name="id", color="#fff", data_type="INT")
        ]
        proc = tree.add_child(root, _node("load_orders", "PROCEDURE", component_id="p"))
        tree.add_child(proc, _node("load_orders", "PROCEDURE", component_id="p", is_cycle=True))

        # When
        data = tree.to_dict()
        restored = LineageTree.from_dict(data)

        # Then
        assert data["type"] == "TABLE"
        assert data["children"][0]["children"][0]["is_cycle"] is True
        assert restored.to_dict() == data
        assert [n.name for n in restored.cycle_placeholders()] == ["load_orders"]
        assert restored.root.type_information[0].data_type == "INT"

    def test_given_very_deep_tree_when_serialized_then_no_recursion_error(self) -> None:
        tree = _chain(5000)

        restored = LineageTree.from_dict(tree.to_dict())

        assert len(restored) == 5001
        assert restored.depth() == 5000

    def test_given_empty_tree_when_serialized_then_empty_dict(self) -> None:
        assert LineageTree().to_dict() == {}
        assert len(LineageTree.from_dict({})) == 0
