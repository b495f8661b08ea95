"""Lineage tree building over the component graph or the flat usage tables."""

from dblineage.lineage.builder import LineageBuilder, LineageResponse
from dblineage.lineage.etl import attach_etl_flows, load_flows
from dblineage.lineage.graph import (
    ComponentGraph,
    GraphColumn,
    GraphComponent,
    ReferenceGraph,
    UsageGraph,
    open_graph,
)
from dblineage.lineage.settings import LineageSettings, load_settings
from dblineage.lineage.tree import LineageNode, LineageTree, TypeInfo, display_name

__all__ = [
    "ComponentGraph",
    "GraphColumn",
    "GraphComponent",
    "LineageBuilder",
    "LineageNode",
    "LineageResponse",
    "LineageSettings",
    "LineageTree",
    "ReferenceGraph",
    "TypeInfo",
    "UsageGraph",
    "attach_etl_flows",
    "display_name",
    "load_flows",
    "load_settings",
    "open_graph",
]
