"""ocabuild - Incremental builds for interdependent ocafiles.

Usage:
    from ocabuild import BuildPlanner, BundleStore, ContentHashCache, LocalFacade

    planner = BuildPlanner(
        cache=ContentHashCache(".oca/build-cache.json"),
        facade=LocalFacade(BundleStore(".oca/bundles")),
    )
    plan, report = planner.run(directory="schemas")
"""

from ocabuild.build.bundles import BundleStore
from ocabuild.build.cache import ContentHashCache, compute_digest
from ocabuild.build.facade import BuildFacade, LocalFacade
from ocabuild.build.planner import BuildPlan, BuildPlanner, BuildReport
from ocabuild.core.models import BuildOutcome, ChangeStatus, Node, ParseFailure
from ocabuild.graph.store import DependencyGraph, MutableGraph

__all__ = [
    "BuildFacade",
    "BuildOutcome",
    "BuildPlan",
    "BuildPlanner",
    "BuildReport",
    "BundleStore",
    "ChangeStatus",
    "ContentHashCache",
    "DependencyGraph",
    "LocalFacade",
    "MutableGraph",
    "Node",
    "ParseFailure",
    "compute_digest",
]

__version__ = "0.1.0"
