"""Validate command — check every ocafile without building."""

from __future__ import annotations

import json
import sys
import time

import click
from rich import box
from rich.table import Table

from ocabuild.build.bundles import BundleStore
from ocabuild.build.facade import LocalFacade
from ocabuild.build.scan import collect_candidates
from ocabuild.build.worker import BackgroundChecker
from ocabuild.cli.main import console, require_source, resolve_settings, source_options, storage_option
from ocabuild.core.errors import OcaBuildError
from ocabuild.graph.store import MutableGraph

POLL_INTERVAL = 0.1


@click.command()
@source_options
@storage_option
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def validate(directory: str | None, file: str | None, storage_dir: str | None, output_json: bool):
    """Validate ocafiles in dependency order and list every problem by file."""
    require_source(directory, file)
    settings = resolve_settings(storage_dir)

    try:
        candidates, _ = collect_candidates(directory, file, settings.file_suffix)
        graph = MutableGraph.build(candidates)
    except OcaBuildError as e:
        console.print(f"[red]Validation failed:[/red] {e}")
        sys.exit(1)

    checker = BackgroundChecker()
    checker.validate(graph, LocalFacade(BundleStore(settings.bundles_dir)))

    if output_json:
        checker.wait()
    else:
        with console.status(f"Validating {len(candidates)} file(s)..."):
            while checker.busy:
                time.sleep(POLL_INTERVAL)

    errors = checker.messages.errors()
    if output_json:
        click.echo(json.dumps({
            "passed": not errors,
            "errors": [
                {"path": str(m.path) if m.path else None, "message": m.text} for m in errors
            ],
        }, indent=2))
    elif errors:
        table = Table(title="Validation Errors", box=box.ROUNDED)
        table.add_column("File", style="bold")
        table.add_column("Error", style="red")
        for message in errors:
            table.add_row(str(message.path) if message.path else "", message.text)
        console.print(table)
    else:
        for message in checker.messages.items():
            console.print(f"[green]✓[/green] {message.text}")

    if errors:
        sys.exit(1)
