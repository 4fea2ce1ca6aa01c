"""Graph command — inspect build order, cycles and dependents."""

from __future__ import annotations

import sys

import click
from rich import box
from rich.table import Table
from rich.tree import Tree

from ocabuild.build.scan import scan_directory
from ocabuild.cli.main import console, resolve_settings
from ocabuild.core.errors import CycleDetected, OcaBuildError
from ocabuild.graph.store import MutableGraph


@click.command()
@click.option("-d", "--directory", required=True, type=click.Path(file_okay=False), help="Directory of ocafiles")
@click.option("--ancestors", "-a", multiple=True, help="Show what must be rebuilt if NAME changes (repeatable)")
@click.option("--descendants", "-D", multiple=True, help="Show everything NAME depends on, transitively (repeatable)")
@click.option("--strict", is_flag=True, help="Exit non-zero on cycles or unresolved references")
def graph(directory: str, ancestors: tuple[str, ...], descendants: tuple[str, ...], strict: bool):
    """Show the dependency-respecting build order of a directory."""
    settings = resolve_settings(None)
    try:
        handle = MutableGraph.build(scan_directory(directory, settings.file_suffix))
        sorted_graph = handle.sort()
        dependents = handle.ancestors(ancestors, include_starting_nodes=False) if ancestors else None
        dependencies = {name: handle.descendants(name) for name in descendants}
    except OcaBuildError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    table = Table(title="Build Order", box=box.ROUNDED)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Name", style="bold", no_wrap=True)
    table.add_column("References")
    table.add_column("File", style="dim")
    for i, node in enumerate(sorted_graph.order, start=1):
        refs = ", ".join(sorted(set(node.dependencies))) or "-"
        table.add_row(str(i), node.identifier, refs, str(node.path))
    console.print(table)

    for failure in handle.parse_failures:
        console.print(f"[red]Skipped[/red] {failure.path}: {failure.message}")
    for dependent, dependency in sorted_graph.cycles:
        console.print(f"[yellow]Cycle:[/yellow] {dependent} -> {dependency}")
    for dependent, dependency in sorted_graph.missing:
        console.print(f"[yellow]Unresolved:[/yellow] {dependent} references {dependency}")

    if dependents is not None:
        tree = Tree(f"[bold]Rebuilt when {', '.join(ancestors)} change[/bold]")
        for node in dependents:
            tree.add(node.identifier)
        if not dependents:
            tree.add("[dim]nothing depends on them[/dim]")
        console.print(tree)

    for name, nodes in dependencies.items():
        tree = Tree(f"[bold]{name} depends on[/bold]")
        for node in nodes:
            tree.add(node.identifier)
        if not nodes:
            tree.add("[dim]nothing[/dim]")
        console.print(tree)

    if strict:
        try:
            sorted_graph.raise_for_cycles()
        except CycleDetected as e:
            console.print(f"[red]Error:[/red] {e}")
            sys.exit(1)
        if sorted_graph.missing:
            console.print(f"[red]Error:[/red] {len(sorted_graph.missing)} unresolved reference(s)")
            sys.exit(1)
