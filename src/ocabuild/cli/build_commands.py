"""Build commands — ocabuild build, ocabuild plan."""

from __future__ import annotations

import sys
import time

import click
from rich import box
from rich.panel import Panel
from rich.table import Table

from ocabuild.build.bundles import BundleStore
from ocabuild.build.cache import ContentHashCache
from ocabuild.build.facade import LocalFacade
from ocabuild.build.planner import BuildPlan, BuildPlanner
from ocabuild.cli.main import console, require_source, resolve_settings, source_options, storage_option
from ocabuild.core.errors import OcaBuildError
from ocabuild.core.logging import BuildLogger, Verbosity
from ocabuild.core.models import ChangeStatus

STATUS_STYLES = {
    ChangeStatus.NEW: "green",
    ChangeStatus.CHANGED: "yellow",
    ChangeStatus.UNCHANGED: "dim",
}


def _display_parse_failures(plan: BuildPlan) -> None:
    if not plan.parse_failures:
        return
    table = Table(title="Skipped Files", box=box.ROUNDED)
    table.add_column("File", style="bold")
    table.add_column("Reason", style="red")
    for failure in plan.parse_failures:
        table.add_row(str(failure.path), failure.message)
    console.print(table)


def _display_plan(plan: BuildPlan) -> None:
    table = Table(title="Build Plan", box=box.ROUNDED)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Name", style="bold", no_wrap=True)
    table.add_column("File")
    table.add_column("Status", justify="center")

    for i, node in enumerate(plan.nodes, start=1):
        status = plan.statuses.get(node.path)
        if status is None or status is ChangeStatus.UNCHANGED:
            label = "[magenta]dependent[/magenta]"
        else:
            style = STATUS_STYLES[status]
            label = f"[{style}]{status.value}[/{style}]"
        table.add_row(str(i), node.identifier, str(node.path), label)
    console.print(table)


def _summary_line(plan: BuildPlan) -> str:
    return (
        f"{plan.count(ChangeStatus.NEW)} new, "
        f"{plan.count(ChangeStatus.CHANGED)} changed, "
        f"{plan.count(ChangeStatus.UNCHANGED)} unchanged, "
        f"{len(plan.parse_failures)} skipped"
    )


@click.command()
@source_options
@storage_option
@click.option("--verbose", "-v", count=True, help="Verbosity level: -v per-file status, -vv artifact ids and timing")
def build(directory: str | None, file: str | None, storage_dir: str | None, verbose: int):
    """Build changed ocafiles and everything that depends on them."""
    require_source(directory, file)
    settings = resolve_settings(storage_dir)
    settings.ensure_storage_dir()

    console.print(
        Panel(
            f"[bold]Source:[/bold] {directory or file}\n"
            f"[bold]Storage:[/bold] {settings.storage_dir}",
            title="[bold cyan]ocabuild[/bold cyan]",
            border_style="cyan",
        )
    )

    run_logger = BuildLogger(
        verbosity=Verbosity(min(verbose, Verbosity.DEBUG)),
        logs_dir=settings.logs_dir,
        console=console,
    )
    planner = BuildPlanner(
        cache=ContentHashCache(settings.cache_path),
        facade=LocalFacade(BundleStore(settings.bundles_dir)),
        logger=run_logger,
        suffix=settings.file_suffix,
    )

    start_time = time.time()
    try:
        plan, report = planner.run(directory=directory, file=file)
    except OcaBuildError as e:
        console.print(f"[red]Build failed:[/red] {e}")
        sys.exit(1)
    finally:
        run_logger.close()
    elapsed = time.time() - start_time

    _display_parse_failures(plan)

    if plan.is_empty:
        console.print("[dim]No changes detected — nothing to build.[/dim]")
        return

    table = Table(title="Build Summary", box=box.ROUNDED)
    table.add_column("Name", style="bold", no_wrap=True)
    table.add_column("Artifact", style="green")
    for name, artifact_id in report.built:
        table.add_row(name, artifact_id)
    console.print()
    console.print(table)

    for old, new in report.renamed:
        console.print(f"[yellow]Renamed:[/yellow] {old} -> {new}")

    if report.failure is not None:
        console.print(f"\n[red]Error while building[/red] [bold]{report.failure.path}[/bold]:")
        for message in report.failure.errors:
            console.print(f"  [red]-[/red] {message}")
        console.print("[dim]Cache not updated.[/dim]")
        sys.exit(1)

    console.print(f"\n[bold]Total:[/bold] {len(report.built)} built ({_summary_line(plan)})")
    console.print(f"[bold]Time:[/bold] {elapsed:.1f}s")


@click.command()
@source_options
@storage_option
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def plan(directory: str | None, file: str | None, storage_dir: str | None, output_json: bool):
    """Show what a build would do, without building anything."""
    require_source(directory, file)
    settings = resolve_settings(storage_dir)

    planner = BuildPlanner(cache=ContentHashCache(settings.cache_path), suffix=settings.file_suffix)
    try:
        build_plan = planner.plan(directory=directory, file=file)
    except OcaBuildError as e:
        console.print(f"[red]Planning failed:[/red] {e}")
        sys.exit(1)

    if output_json:
        click.echo(build_plan.to_json())
        return

    _display_parse_failures(build_plan)
    for dependent, dependency in build_plan.cycles:
        console.print(f"[yellow]Cycle:[/yellow] {dependent} -> {dependency}")
    if build_plan.is_empty:
        console.print("[dim]No changes detected — nothing to build.[/dim]")
        return
    _display_plan(build_plan)
    console.print(f"\n[bold]Total:[/bold] {len(build_plan.nodes)} to build ({_summary_line(build_plan)})")
