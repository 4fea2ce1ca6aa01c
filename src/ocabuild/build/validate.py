"""Whole-graph validation — check every file in build order, collect failures."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from ocabuild.build.facade import BuildFacade
from ocabuild.core.errors import ParseError
from ocabuild.core.models import Node
from ocabuild.graph.parser import read_source
from ocabuild.graph.store import MutableGraph

logger = logging.getLogger(__name__)


@dataclass
class ValidationIssue:
    """Everything wrong with one file."""

    path: Path
    messages: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"path": str(self.path), "messages": list(self.messages)}


@dataclass
class ValidationResult:
    valid: list[Node] = field(default_factory=list)
    issues: list[ValidationIssue] = field(default_factory=list)
    cycles: list[tuple[str, str]] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.issues


def validate_graph(graph: MutableGraph, facade: BuildFacade) -> ValidationResult:
    """Validate every node, dependencies first.

    One bad file never stops the others: parse failures recorded on the
    graph and facade rejections all come back as issues keyed by path.
    """
    result = ValidationResult()
    for failure in graph.parse_failures:
        result.issues.append(ValidationIssue(path=failure.path, messages=[failure.message]))

    sorted_graph = graph.sort()
    result.cycles = list(sorted_graph.cycles)
    for dependent, dependency in sorted_graph.cycles:
        result.issues.append(ValidationIssue(
            path=graph.lookup_path(dependent),
            messages=[f"Reference cycle: {dependent} -> {dependency}"],
        ))

    known = graph.identifiers()
    logger.info("Validating %d node(s)", len(sorted_graph.order))
    for node in sorted_graph.order:
        try:
            text = read_source(node.path)
        except ParseError as e:
            result.issues.append(ValidationIssue(path=node.path, messages=[str(e)]))
            continue
        errors = facade.validate(text, known_names=known)
        if errors:
            result.issues.append(ValidationIssue(path=node.path, messages=list(errors)))
        else:
            result.valid.append(node)
    return result
