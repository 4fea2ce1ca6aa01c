"""Clean command — forget what has been built."""

from __future__ import annotations

import click

from ocabuild.cli.main import console, resolve_settings, storage_option


@click.command()
@storage_option
@click.option("-y", "--yes", is_flag=True, help="Skip confirmation prompt")
def clean(storage_dir: str | None, yes: bool):
    """Remove the build cache so the next build rebuilds everything.

    Built bundles are kept.
    """
    settings = resolve_settings(storage_dir)
    cache_path = settings.cache_path

    if not cache_path.exists():
        console.print("[dim]Nothing to clean: no build cache.[/dim]")
        return

    if not yes:
        console.print(f"This will delete [bold]{cache_path}[/bold].")
        if not click.confirm("Continue?"):
            console.print("[dim]Aborted.[/dim]")
            return

    cache_path.unlink()
    console.print(f"[green]Cleaned:[/green] {cache_path}")
