"""Structured logging and verbosity levels for ocabuild runs."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from pathlib import Path
from typing import Any

from rich.console import Console


class Verbosity(IntEnum):
    """Verbosity levels for console output."""

    DEFAULT = 0   # Summary table only
    VERBOSE = 1   # + per-file classification and build status
    DEBUG = 2     # + artifact ids, timing


@dataclass
class RunLog:
    """Structured log of a complete build run.

    The dict format is::

        {
            "run_id": "20240315T101500Z",
            "new": ["third"],
            "changed": ["first"],
            "unchanged": ["second", "fourth"],
            "built": ["first", "third", "fifth"],
            "failed": [],
            "parse_failures": ["broken.ocafile"],
            "cycles": [],
            "total_time": 0.4,
        }
    """

    run_id: str = ""
    new: list[str] = field(default_factory=list)
    changed: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    built: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    parse_failures: list[str] = field(default_factory=list)
    cycles: list[tuple[str, str]] = field(default_factory=list)
    total_time: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "new": list(self.new),
            "changed": list(self.changed),
            "unchanged": list(self.unchanged),
            "built": list(self.built),
            "failed": list(self.failed),
            "parse_failures": list(self.parse_failures),
            "cycles": [list(edge) for edge in self.cycles],
            "total_time": self.total_time,
        }


class BuildLogger:
    """Structured logger for ocabuild runs.

    Writes JSONL log files to logs_dir and optionally emits
    console output via Rich based on verbosity level.
    """

    def __init__(
        self,
        verbosity: Verbosity = Verbosity.DEFAULT,
        logs_dir: Path | None = None,
        console: Console | None = None,
    ):
        self.verbosity = verbosity
        self.console = console or Console()
        self.run_log = RunLog(
            run_id=datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ"),
        )
        self._log_file = None
        self._log_path: Path | None = None
        self._run_start: float = 0.0
        self._node_start: float = 0.0

        if logs_dir is not None:
            logs_dir.mkdir(parents=True, exist_ok=True)
            self._log_path = logs_dir / f"{self.run_log.run_id}.jsonl"
            self._log_file = open(self._log_path, "a")

    @property
    def log_path(self) -> Path | None:
        return self._log_path

    def _write_event(self, event: dict[str, Any]) -> None:
        """Write a JSON event to the JSONL log file."""
        if self._log_file is not None:
            event["timestamp"] = datetime.now(timezone.utc).isoformat()
            self._log_file.write(json.dumps(event) + "\n")
            self._log_file.flush()

    def _console_print(self, message: str, min_verbosity: Verbosity) -> None:
        if self.verbosity >= min_verbosity:
            self.console.print(message)

    # -- Scan events --

    def run_start(self, root: str, candidate_count: int) -> None:
        """Log the start of a build run."""
        self._run_start = time.time()
        self._write_event({
            "event": "run_start",
            "root": root,
            "candidate_count": candidate_count,
        })

    def file_classified(self, path: Path, identifier: str | None, status: str) -> None:
        """Record the cache classification of one candidate."""
        name = identifier or str(path)
        bucket = getattr(self.run_log, status, None)
        if isinstance(bucket, list):
            bucket.append(name)

        self._write_event({
            "event": "file_classified",
            "path": str(path),
            "identifier": identifier,
            "status": status,
        })

        marks = {"new": "[green]+[/green]", "changed": "[yellow]~[/yellow]", "unchanged": "[cyan]=[/cyan]"}
        self._console_print(
            f"  {marks.get(status, '?')} {name} [dim]({status})[/dim]",
            Verbosity.VERBOSE,
        )

    def parse_failed(self, path: Path, message: str) -> None:
        self.run_log.parse_failures.append(str(path))
        self._write_event({
            "event": "parse_failed",
            "path": str(path),
            "message": message,
        })
        self._console_print(f"  [red]![/red] {path}: {message}", Verbosity.VERBOSE)

    def cycle_detected(self, edges: list[tuple[str, str]]) -> None:
        self.run_log.cycles.extend(edges)
        self._write_event({
            "event": "cycle_detected",
            "edges": [list(edge) for edge in edges],
        })
        pairs = ", ".join(f"{a} -> {b}" for a, b in edges)
        self._console_print(f"  [yellow]Cycle detected:[/yellow] {pairs}", Verbosity.DEFAULT)

    # -- Node events --

    def node_start(self, identifier: str, path: Path) -> None:
        self._node_start = time.time()
        self._write_event({
            "event": "node_start",
            "identifier": identifier,
            "path": str(path),
        })
        self._console_print(f"  [bold]Building:[/bold] {identifier}", Verbosity.VERBOSE)

    def node_built(self, identifier: str, artifact_id: str) -> None:
        elapsed = time.time() - self._node_start
        self.run_log.built.append(identifier)
        self._write_event({
            "event": "node_built",
            "identifier": identifier,
            "artifact_id": artifact_id,
            "time_seconds": round(elapsed, 3),
        })
        self._console_print(
            f"    [dim]{identifier} -> {artifact_id} ({elapsed:.2f}s)[/dim]",
            Verbosity.DEBUG,
        )

    def node_failed(self, identifier: str, errors: list[str]) -> None:
        self.run_log.failed.append(identifier)
        self._write_event({
            "event": "node_failed",
            "identifier": identifier,
            "errors": list(errors),
        })
        self._console_print(f"    [red]x[/red] {identifier}", Verbosity.VERBOSE)

    # -- Run lifecycle --

    def run_finish(self) -> None:
        """Log the completion of a run and close the log file."""
        self.run_log.total_time = time.time() - self._run_start if self._run_start else 0.0
        self._write_event({
            "event": "run_finish",
            "total_time": round(self.run_log.total_time, 3),
            "built": len(self.run_log.built),
            "failed": len(self.run_log.failed),
        })
        self.close()

    def close(self) -> None:
        """Close the log file if open."""
        if self._log_file is not None:
            self._log_file.close()
            self._log_file = None
