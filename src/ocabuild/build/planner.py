"""Build planning and execution — changed files, their dependents, in order."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from ocabuild.build.cache import ContentHashCache, compute_digest
from ocabuild.build.facade import BuildFacade
from ocabuild.build.scan import DEFAULT_SUFFIX, collect_candidates
from ocabuild.core.errors import BuildFailure, GraphError, ParseError
from ocabuild.core.logging import BuildLogger
from ocabuild.core.models import ChangeStatus, Node, ParseFailure
from ocabuild.graph.parser import parse_source, read_source
from ocabuild.graph.store import MutableGraph

logger = logging.getLogger(__name__)


@dataclass
class BuildPlan:
    """What a run would build, and why."""

    root: str
    candidates: list[Path] = field(default_factory=list)
    statuses: dict[Path, ChangeStatus] = field(default_factory=dict)
    digests: dict[Path, str] = field(default_factory=dict)
    nodes: list[Node] = field(default_factory=list)
    parse_failures: list[ParseFailure] = field(default_factory=list)
    cycles: list[tuple[str, str]] = field(default_factory=list)
    full_scan: bool = True
    graph: MutableGraph | None = field(default=None, repr=False)

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    @property
    def identifiers(self) -> list[str]:
        return [node.identifier for node in self.nodes]

    def count(self, status: ChangeStatus) -> int:
        return sum(1 for s in self.statuses.values() if s is status)

    def to_dict(self) -> dict:
        """Serialize to a plain dict suitable for JSON output."""
        return {
            "root": self.root,
            "build_order": [
                {"identifier": node.identifier, "path": str(node.path)} for node in self.nodes
            ],
            "new": self.count(ChangeStatus.NEW),
            "changed": self.count(ChangeStatus.CHANGED),
            "unchanged": self.count(ChangeStatus.UNCHANGED),
            "parse_failures": [failure.to_dict() for failure in self.parse_failures],
            "cycles": [list(edge) for edge in self.cycles],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)


@dataclass
class BuildReport:
    """Result of executing a plan."""

    built: list[tuple[str, str]] = field(default_factory=list)  # (identifier, artifact id)
    renamed: list[tuple[str, str]] = field(default_factory=list)
    failure: BuildFailure | None = None
    pruned: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failure is None


class BuildPlanner:
    """Compose scan, graph, cache and facade into one incremental build."""

    def __init__(
        self,
        cache: ContentHashCache,
        facade: BuildFacade | None = None,
        logger: BuildLogger | None = None,
        suffix: str = DEFAULT_SUFFIX,
    ):
        self.cache = cache
        self.facade = facade
        self.run_logger = logger
        self.suffix = suffix

    def plan(self, directory: str | Path | None = None, file: str | Path | None = None) -> BuildPlan:
        """Work out which nodes to build, dependencies first.

        Raises DuplicateIdentifier if two files declare the same name and
        UnknownIdentifier if a node to rebuild references a missing name.
        Files that fail to parse or read are reported on the plan.
        """
        candidates, seed_only = collect_candidates(directory, file, self.suffix)
        plan = BuildPlan(
            root=str(directory or file),
            candidates=candidates,
            full_scan=seed_only is None,
        )
        if self.run_logger:
            self.run_logger.run_start(plan.root, len(candidates))

        graph = MutableGraph.build(candidates)
        plan.graph = graph
        plan.parse_failures = list(graph.parse_failures)
        failed_paths = {failure.path for failure in plan.parse_failures}

        for path in candidates:
            if path in failed_paths:
                continue
            try:
                digest = self.cache.digest_for(path)
            except ParseError as e:
                plan.parse_failures.append(ParseFailure(path=path, error=e))
                continue
            plan.digests[path] = digest
            plan.statuses[path] = self.cache.classify_digest(path, digest)

        if self.run_logger:
            for failure in plan.parse_failures:
                self.run_logger.parse_failed(failure.path, failure.message)
            for path, status in plan.statuses.items():
                self.run_logger.file_classified(path, graph.identifier_for_path(path), status.value)

        seed_paths = seed_only if seed_only is not None else candidates
        seeds = []
        for path in seed_paths:
            status = plan.statuses.get(path)
            if status is None or not status.needs_build:
                continue
            identifier = graph.identifier_for_path(path)
            if identifier is not None:
                seeds.append(identifier)

        sorted_graph = graph.sort()
        plan.cycles = list(sorted_graph.cycles)
        if plan.cycles and self.run_logger:
            self.run_logger.cycle_detected(plan.cycles)

        if not seeds:
            logger.info("No changes detected under %s", plan.root)
            return plan

        plan.nodes = graph.ancestors(seeds, include_starting_nodes=True)
        logger.info("Planned %d node(s): %s", len(plan.nodes), plan.identifiers)
        return plan

    def execute(self, plan: BuildPlan) -> BuildReport:
        """Build every planned node through the facade, in order.

        Digests are only committed to the cache, and the cache only
        persisted, once every node has built. The first rejection stops the
        run and leaves the cache untouched.
        """
        if self.facade is None:
            raise ValueError("A build facade is required to execute a plan")
        report = BuildReport()
        pending: dict[Path, str] = {}
        graph = plan.graph

        for node in plan.nodes:
            try:
                text = read_source(node.path)
                current = parse_source(text, node.path)
            except ParseError as e:
                report.failure = BuildFailure(node.path, [str(e)])
                break

            identifier = node.identifier
            if graph is not None and current.identifier != identifier:
                try:
                    graph.rename(identifier, current.identifier)
                except GraphError as e:
                    report.failure = BuildFailure(node.path, [str(e)])
                    break
                report.renamed.append((identifier, current.identifier))
                identifier = current.identifier

            if self.run_logger:
                self.run_logger.node_start(identifier, node.path)
            outcome = self.facade.build(text)
            if not outcome.ok:
                if self.run_logger:
                    self.run_logger.node_failed(identifier, outcome.errors)
                report.failure = BuildFailure(node.path, outcome.errors or ["build produced no artifact"])
                break

            pending[node.path] = compute_digest(text)
            report.built.append((identifier, outcome.artifact_id))
            if self.run_logger:
                self.run_logger.node_built(identifier, outcome.artifact_id)

        if report.ok:
            self.cache.update_many(pending)
            if plan.full_scan:
                report.pruned = self.cache.reconcile(plan.candidates)
            self.cache.persist()
        else:
            logger.warning("Build stopped at %s; cache not updated", report.failure.path)

        if self.run_logger:
            self.run_logger.run_finish()
        return report

    def run(self, directory: str | Path | None = None, file: str | Path | None = None) -> tuple[BuildPlan, BuildReport]:
        plan = self.plan(directory=directory, file=file)
        return plan, self.execute(plan)
