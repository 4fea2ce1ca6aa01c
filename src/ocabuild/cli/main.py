"""ocabuild CLI — main entry point and shared utilities."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from rich.console import Console

from ocabuild.config import Settings, get_settings

console = Console()


def setup_logging(debug: bool) -> None:
    """Configure module loggers; warnings only unless --debug."""
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def resolve_settings(storage_dir: str | None) -> Settings:
    """Settings with an optional --storage-dir override applied."""
    settings = get_settings()
    if storage_dir:
        settings = settings.model_copy(update={"storage_dir": Path(storage_dir)})
    return settings


def require_source(directory: str | None, file: str | None) -> None:
    if directory is None and file is None:
        console.print(
            "[red]Error:[/red] Specify the directory holding your ocafiles "
            "([bold]-d[/bold]) or a single ocafile ([bold]-f[/bold])."
        )
        sys.exit(1)


def source_options(fn):
    """Shared -d/--directory and -f/--ocafile options."""
    fn = click.option(
        "-f", "--ocafile", "file", default=None,
        type=click.Path(dir_okay=False), help="Single ocafile (planned against its directory)",
    )(fn)
    fn = click.option(
        "-d", "--directory", default=None,
        type=click.Path(file_okay=False), help="Directory of ocafiles (recursive)",
    )(fn)
    return fn


def storage_option(fn):
    return click.option(
        "--storage-dir", default=None, help="Override storage directory (default .oca)",
    )(fn)


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool):
    """ocabuild — incremental builds for interdependent ocafiles."""
    setup_logging(debug)


def cli():
    """Entrypoint that loads .env before running the CLI."""
    from dotenv import load_dotenv

    load_dotenv()
    main()


# Import subcommand modules to register commands
from ocabuild.cli.build_commands import build, plan  # noqa: E402
from ocabuild.cli.clean_commands import clean  # noqa: E402
from ocabuild.cli.graph_commands import graph  # noqa: E402
from ocabuild.cli.validate_commands import validate  # noqa: E402

main.add_command(build)
main.add_command(plan)
main.add_command(validate)
main.add_command(graph)
main.add_command(clean)
