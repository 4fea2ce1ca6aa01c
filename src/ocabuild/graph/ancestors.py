"""Ancestor resolution — which nodes must be rebuilt when others change."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable

from ocabuild.core.errors import UnknownIdentifier
from ocabuild.core.models import Node
from ocabuild.graph.snapshot import GraphSnapshot
from ocabuild.graph.sort import SortResult, topological_sort

logger = logging.getLogger(__name__)


def ancestor_closure(snapshot: GraphSnapshot, start: Iterable[str]) -> set[str]:
    """Start identifiers plus every node that transitively depends on one."""
    reverse = snapshot.dependents()
    closure: set[str] = set()
    queue: deque[str] = deque()
    for identifier in start:
        if identifier not in snapshot:
            raise UnknownIdentifier(identifier)
        if identifier not in closure:
            closure.add(identifier)
            queue.append(identifier)

    while queue:
        identifier = queue.popleft()
        for dependent in reverse[identifier]:
            if dependent not in closure:
                closure.add(dependent)
                queue.append(dependent)
    return closure


def order_closure(
    closure: set[str],
    snapshot: GraphSnapshot,
    sorted_graph: SortResult | None = None,
) -> list[Node]:
    """Order a closure build-ready, using the full graph sort.

    The full topological order is filtered to the closure, then grouped by
    depth inside the closure (one more than the deepest in-closure
    dependency). Nodes with nothing to wait for inside the closure come
    first; ties keep the full-sort order.
    """
    sorted_graph = sorted_graph or topological_sort(snapshot)
    filtered = [node for node in sorted_graph.order if node.identifier in closure]

    depth: dict[str, int] = {}
    for node in filtered:
        # Cycle back-edges point at nodes not yet placed and are ignored
        placed = [depth[dep] for dep in node.dependencies if dep in depth]
        depth[node.identifier] = max(placed) + 1 if placed else 0

    return sorted(filtered, key=lambda node: depth[node.identifier])


def resolve_ancestors(
    snapshot: GraphSnapshot,
    start: Iterable[str],
    include_starting_nodes: bool = True,
) -> list[Node]:
    """Every node that must be rebuilt when the start nodes change.

    Raises UnknownIdentifier if a start identifier is not in the graph, or
    if a node of the closure references a name the graph does not have.
    """
    start = list(dict.fromkeys(start))
    closure = ancestor_closure(snapshot, start)

    for identifier in sorted(closure):
        for dep in snapshot[identifier].dependencies:
            if dep not in snapshot:
                raise UnknownIdentifier(dep, referenced_by=identifier)

    sorted_graph = topological_sort(snapshot)
    in_closure = [edge for edge in sorted_graph.cycles if edge[0] in closure]
    if in_closure:
        logger.warning("Rebuild set contains a cycle; order is best effort: %s", in_closure)

    ordered = order_closure(closure, snapshot, sorted_graph)
    if include_starting_nodes:
        return ordered
    starting = set(start)
    return [node for node in ordered if node.identifier not in starting]


def resolve_descendants(snapshot: GraphSnapshot, identifier: str) -> list[Node]:
    """Everything the identifier depends on, transitively, dependencies first.

    The identifier itself is excluded. Unresolved references are skipped.
    """
    root = snapshot.node(identifier)
    seen: set[str] = set()
    queue: deque[str] = deque(root.dependencies)
    while queue:
        dep = queue.popleft()
        if dep in seen or dep not in snapshot or dep == identifier:
            continue
        seen.add(dep)
        queue.extend(snapshot[dep].dependencies)

    return [node for node in topological_sort(snapshot).order if node.identifier in seen]
