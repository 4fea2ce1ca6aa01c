"""Reference graph storage — nodes keyed by identifier, plus a lock-guarded handle."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from pathlib import Path

from ocabuild.core.errors import DuplicateIdentifier, ParseError, UnknownIdentifier
from ocabuild.core.models import Node, ParseFailure
from ocabuild.graph.ancestors import resolve_ancestors, resolve_descendants
from ocabuild.graph.parser import parse_node
from ocabuild.graph.snapshot import GraphSnapshot
from ocabuild.graph.sort import SortResult, topological_sort

logger = logging.getLogger(__name__)


class DependencyGraph:
    """Identifier -> Node map. The forward map is the only stored state."""

    def __init__(self) -> None:
        self._nodes: dict[str, Node] = {}

    @classmethod
    def from_paths(cls, paths: Iterable[Path]) -> tuple[DependencyGraph, list[ParseFailure]]:
        """Parse every path into a graph.

        Files that fail to parse are returned as failures and left out of
        the graph. A name declared by two files raises DuplicateIdentifier.
        """
        graph = cls()
        failures: list[ParseFailure] = []
        for path in paths:
            try:
                node = parse_node(Path(path))
            except ParseError as e:
                logger.info("Skipping %s: %s", path, e)
                failures.append(ParseFailure(path=Path(path), error=e))
                continue
            graph.insert(node)
        return graph, failures

    def insert(self, node: Node) -> None:
        existing = self._nodes.get(node.identifier)
        if existing is not None:
            raise DuplicateIdentifier(node.identifier, existing.path, node.path)
        self._nodes[node.identifier] = node

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def identifiers(self) -> list[str]:
        return sorted(self._nodes)

    def node(self, identifier: str) -> Node:
        try:
            return self._nodes[identifier]
        except KeyError:
            raise UnknownIdentifier(identifier) from None

    def lookup_path(self, identifier: str) -> Path:
        return self.node(identifier).path

    def identifier_for_path(self, path: Path) -> str | None:
        path = Path(path)
        for identifier in self.identifiers():
            if self._nodes[identifier].path == path:
                return identifier
        return None

    def rename(self, old: str, new: str) -> None:
        """Move a node to a new identifier and rewrite every reference to it."""
        node = self.node(old)
        if old == new:
            return
        if new in self._nodes:
            raise DuplicateIdentifier(new, self._nodes[new].path, node.path)

        nodes = {}
        for identifier, existing in self._nodes.items():
            if identifier == old:
                identifier, existing = new, existing.renamed(new)
            nodes[identifier] = existing.with_dependency_renamed(old, new)
        self._nodes = nodes
        logger.info("Renamed %s -> %s", old, new)

    def snapshot(self) -> GraphSnapshot:
        return GraphSnapshot(self._nodes)


class MutableGraph:
    """A DependencyGraph shared between a foreground driver and a worker.

    Every public method holds the lock for its whole duration; callers get
    Nodes (frozen) and snapshots back, never the interior dict.
    """

    def __init__(self, graph: DependencyGraph | None = None):
        self._graph = graph or DependencyGraph()
        self._lock = threading.RLock()
        self.parse_failures: list[ParseFailure] = []

    @classmethod
    def build(cls, paths: Iterable[Path]) -> MutableGraph:
        graph, failures = DependencyGraph.from_paths(paths)
        handle = cls(graph)
        handle.parse_failures = failures
        return handle

    def reload(self, paths: Iterable[Path]) -> list[ParseFailure]:
        """Replace the whole graph from a fresh scan."""
        graph, failures = DependencyGraph.from_paths(paths)
        with self._lock:
            self._graph = graph
            self.parse_failures = failures
        return failures

    def __len__(self) -> int:
        with self._lock:
            return len(self._graph)

    def __contains__(self, identifier: object) -> bool:
        with self._lock:
            return identifier in self._graph

    def snapshot(self) -> GraphSnapshot:
        with self._lock:
            return self._graph.snapshot()

    def identifiers(self) -> list[str]:
        with self._lock:
            return self._graph.identifiers()

    def node(self, identifier: str) -> Node:
        with self._lock:
            return self._graph.node(identifier)

    def lookup_path(self, identifier: str) -> Path:
        with self._lock:
            return self._graph.lookup_path(identifier)

    def identifier_for_path(self, path: Path) -> str | None:
        with self._lock:
            return self._graph.identifier_for_path(path)

    def insert(self, node: Node) -> None:
        with self._lock:
            self._graph.insert(node)

    def rename(self, old: str, new: str) -> None:
        with self._lock:
            self._graph.rename(old, new)

    def sort(self) -> SortResult:
        with self._lock:
            return topological_sort(self._graph.snapshot())

    def ancestors(self, identifiers: Iterable[str], include_starting_nodes: bool = True) -> list[Node]:
        with self._lock:
            return resolve_ancestors(self._graph.snapshot(), identifiers, include_starting_nodes)

    def descendants(self, identifier: str) -> list[Node]:
        with self._lock:
            return resolve_descendants(self._graph.snapshot(), identifier)
