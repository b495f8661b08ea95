"""Lineage tree as an index arena.

Nodes live in one list and are addressed by index; ``children`` maps a node
index to its ordered child indexes. A cycle placeholder is a plain leaf that
repeats the name and type of an already-expanded component. Serialization
to and from nested dicts is iterative, so tree depth never hits the
interpreter's recursion limit.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from dblineage.config.constants import MAX_DISPLAY_NAME_LENGTH

ROOT = 0


def display_name(name: str) -> str:
    """Names longer than the display limit are cut and suffixed with '...'."""
    if len(name) > MAX_DISPLAY_NAME_LENGTH:
        return name[:MAX_DISPLAY_NAME_LENGTH] + "..."
    return name


@dataclass(slots=True)
class TypeInfo:
    """One column listed on a whole-table root."""

    component_id: str
    name: str
    display_name: str
    color: str
    data_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "component_id": self.component_id,
            "name": self.name,
            "display_name": self.display_name,
            "color": self.color,
            "data_type": self.data_type,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TypeInfo:
        return cls(
            component_id=str(data.get("component_id", "")),
            name=data["name"],
            display_name=data.get("display_name", data["name"]),
            color=data.get("color", ""),
            data_type=data.get("data_type"),
        )


@dataclass(slots=True)
class LineageNode:
    """One displayed node. Children live in the owning LineageTree."""

    name: str
    display_name: str
    node_type: str
    color: str
    component_id: str | None = None
    description: str | None = None
    is_cycle: bool = False
    type_information: list[TypeInfo] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "display_name": self.display_name,
            "type": self.node_type,
            "color": self.color,
            "component_id": self.component_id,
            "description": self.description,
            "is_cycle": self.is_cycle,
            "type_information": [t.to_dict() for t in self.type_information],
            "children": [],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LineageNode:
        return cls(
            name=data["name"],
            display_name=data.get("display_name", display_name(data["name"])),
            node_type=data.get("type", "FUNCTION"),
            color=data.get("color", ""),
            component_id=data.get("component_id"),
            description=data.get("description"),
            is_cycle=bool(data.get("is_cycle", False)),
            type_information=[TypeInfo.from_dict(t) for t in data.get("type_information", [])],
        )


@dataclass
class LineageTree:
    """Arena of lineage nodes; index 0 is the root."""

    nodes: list[LineageNode] = field(default_factory=list)
    children: dict[int, list[int]] = field(default_factory=dict)

    @property
    def root(self) -> LineageNode:
        return self.nodes[ROOT]

    def add_root(self, node: LineageNode) -> int:
        if self.nodes:
            raise ValueError("Tree already has a root")
        self.nodes.append(node)
        self.children[ROOT] = []
        return ROOT

    def add_child(self, parent: int, node: LineageNode) -> int:
        index = len(self.nodes)
        self.nodes.append(node)
        self.children[index] = []
        self.children[parent].append(index)
        return index

    def children_of(self, index: int) -> list[LineageNode]:
        return [self.nodes[i] for i in self.children.get(index, [])]

    def walk(self) -> Iterator[tuple[int, int]]:
        """Pre-order (index, depth) pairs, root at depth 0."""
        if not self.nodes:
            return
        stack = [(ROOT, 0)]
        while stack:
            index, depth = stack.pop()
            yield index, depth
            for child in reversed(self.children.get(index, [])):
                stack.append((child, depth + 1))

    def depth(self) -> int:
        return max((d for _, d in self.walk()), default=0)

    def cycle_placeholders(self) -> list[LineageNode]:
        return [n for n in self.nodes if n.is_cycle]

    def __len__(self) -> int:
        return len(self.nodes)

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        """Nested dict form, as persisted and cached."""
        if not self.nodes:
            return {}
        dicts = [node.to_dict() for node in self.nodes]
        for index, child_indexes in self.children.items():
            dicts[index]["children"] = [dicts[i] for i in child_indexes]
        return dicts[ROOT]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LineageTree:
        tree = cls()
        if not data:
            return tree
        tree.add_root(LineageNode.from_dict(data))
        stack: list[tuple[int, dict[str, Any]]] = [(ROOT, data)]
        while stack:
            index, node_data = stack.pop()
            for child_data in node_data.get("children", []):
                child_index = tree.add_child(index, LineageNode.from_dict(child_data))
                stack.append((child_index, child_data))
        return tree
