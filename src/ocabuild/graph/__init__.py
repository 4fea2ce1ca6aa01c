"""Reference graph: parsing, storage, ordering and ancestor resolution."""

from ocabuild.graph.ancestors import resolve_ancestors, resolve_descendants
from ocabuild.graph.parser import parse_node, parse_source
from ocabuild.graph.snapshot import GraphSnapshot
from ocabuild.graph.sort import SortResult, topological_sort
from ocabuild.graph.store import DependencyGraph, MutableGraph

__all__ = [
    "DependencyGraph",
    "GraphSnapshot",
    "MutableGraph",
    "SortResult",
    "parse_node",
    "parse_source",
    "resolve_ancestors",
    "resolve_descendants",
    "topological_sort",
]
