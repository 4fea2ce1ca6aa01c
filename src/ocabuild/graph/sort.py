"""Cycle-aware topological sort — deterministic build order over a snapshot."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ocabuild.core.errors import CycleDetected
from ocabuild.core.models import Node
from ocabuild.graph.snapshot import GraphSnapshot

logger = logging.getLogger(__name__)

_UNVISITED, _IN_PROGRESS, _DONE = 0, 1, 2


@dataclass
class SortResult:
    """Best-effort build order plus what the traversal had to skip.

    `cycles` holds (dependent, dependency) edges that pointed back into the
    node currently being descended; `missing` holds edges whose dependency
    is not a graph member. Neither prevents `order` from listing every node.
    """

    order: list[Node] = field(default_factory=list)
    cycles: list[tuple[str, str]] = field(default_factory=list)
    missing: list[tuple[str, str]] = field(default_factory=list)

    @property
    def has_cycles(self) -> bool:
        return bool(self.cycles)

    @property
    def identifiers(self) -> list[str]:
        return [node.identifier for node in self.order]

    def positions(self) -> dict[str, int]:
        return {node.identifier: i for i, node in enumerate(self.order)}

    def raise_for_cycles(self) -> None:
        if self.cycles:
            raise CycleDetected(self.cycles)


def topological_sort(snapshot: GraphSnapshot) -> SortResult:
    """Depth-first topological sort, dependencies before dependents.

    Roots are visited in lexicographic order and each node's dependencies
    are sorted before descending, so the same graph always yields the same
    order. An edge into an in-progress node is a cycle: it is recorded and
    not followed. Dependencies that name no node are recorded and skipped.
    """
    result = SortResult()
    state: dict[str, int] = {identifier: _UNVISITED for identifier in snapshot}

    for root in snapshot.identifiers():
        if state[root] != _UNVISITED:
            continue
        # Iterative DFS: (identifier, remaining sorted dependencies)
        state[root] = _IN_PROGRESS
        stack: list[tuple[str, list[str]]] = [(root, sorted(snapshot[root].dependencies, reverse=True))]
        while stack:
            identifier, pending = stack[-1]
            if not pending:
                stack.pop()
                state[identifier] = _DONE
                result.order.append(snapshot[identifier])
                continue
            dep = pending.pop()
            if dep not in state:
                if (identifier, dep) not in result.missing:
                    result.missing.append((identifier, dep))
                continue
            if state[dep] == _IN_PROGRESS:
                if (identifier, dep) not in result.cycles:
                    result.cycles.append((identifier, dep))
                continue
            if state[dep] == _DONE:
                continue
            state[dep] = _IN_PROGRESS
            stack.append((dep, sorted(snapshot[dep].dependencies, reverse=True)))

    if result.cycles:
        pairs = ", ".join(f"{a} -> {b}" for a, b in result.cycles)
        logger.warning("Cycle detected in reference graph: %s", pairs)
    if result.missing:
        logger.info("Unresolved references skipped: %s", result.missing)
    return result
