"""ocabuild command-line interface."""

from ocabuild.cli.main import cli, main

__all__ = ["cli", "main"]
