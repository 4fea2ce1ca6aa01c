"""Core data models for ocabuild."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path

from ocabuild.core.errors import ParseError


@dataclass(frozen=True)
class Node:
    """One source file with its declared name and the names it references."""

    identifier: str
    path: Path
    dependencies: tuple[str, ...] = ()

    def renamed(self, identifier: str) -> Node:
        return replace(self, identifier=identifier)

    def with_dependency_renamed(self, old: str, new: str) -> Node:
        if old not in self.dependencies:
            return self
        deps = tuple(new if dep == old else dep for dep in self.dependencies)
        return replace(self, dependencies=deps)


@dataclass
class ParseFailure:
    """A file excluded from the graph, with the reason."""

    path: Path
    error: ParseError

    @property
    def message(self) -> str:
        return str(self.error)

    def to_dict(self) -> dict:
        return {
            "path": str(self.path),
            "kind": type(self.error).__name__,
            "message": self.message,
        }


class ChangeStatus(str, Enum):
    """Result of comparing a file's digest against the build cache."""

    NEW = "new"
    CHANGED = "changed"
    UNCHANGED = "unchanged"

    @property
    def needs_build(self) -> bool:
        return self is not ChangeStatus.UNCHANGED


@dataclass
class BuildOutcome:
    """What the build facade returns for one file."""

    artifact_id: str | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.artifact_id is not None and not self.errors
