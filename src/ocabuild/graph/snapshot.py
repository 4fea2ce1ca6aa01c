"""Immutable view of a reference graph."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from pathlib import Path
from types import MappingProxyType

from ocabuild.core.errors import UnknownIdentifier
from ocabuild.core.models import Node


class GraphSnapshot(Mapping[str, Node]):
    """Read-only identifier -> Node mapping.

    Sorting and ancestor resolution work on snapshots so they never observe
    a graph that is being renamed underneath them. The reverse view is
    derived on demand from the forward map.
    """

    def __init__(self, nodes: Mapping[str, Node]):
        self._nodes = MappingProxyType(dict(nodes))

    def __getitem__(self, identifier: str) -> Node:
        return self._nodes[identifier]

    def __iter__(self) -> Iterator[str]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def identifiers(self) -> list[str]:
        """All identifiers, lexicographically sorted."""
        return sorted(self._nodes)

    def node(self, identifier: str) -> Node:
        try:
            return self._nodes[identifier]
        except KeyError:
            raise UnknownIdentifier(identifier) from None

    def lookup_path(self, identifier: str) -> Path:
        return self.node(identifier).path

    def dependents(self) -> dict[str, set[str]]:
        """Reverse adjacency: identifier -> identifiers that depend on it.

        Only identifiers present in the graph appear as keys.
        """
        reverse: dict[str, set[str]] = {identifier: set() for identifier in self._nodes}
        for identifier, node in self._nodes.items():
            for dep in node.dependencies:
                if dep in reverse:
                    reverse[dep].add(identifier)
        return reverse

    def missing_references(self) -> list[tuple[str, str]]:
        """(dependent, dependency) pairs whose dependency is not in the graph."""
        missing = []
        for identifier in self.identifiers():
            for dep in sorted(set(self._nodes[identifier].dependencies)):
                if dep not in self._nodes:
                    missing.append((identifier, dep))
        return missing
