"""ocabuild error types and utilities."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path


def atomic_write(path: Path, content: str) -> None:
    """Replace `path` with `content` in one step.

    The text goes to a temp file beside the target, is fsynced, then
    renamed over it, so readers see either the old file or the new one.
    Missing parent directories are created.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise


class OcaBuildError(Exception):
    """Base exception for ocabuild."""

    pass


# -- Per-file parse failures (collected, never abort a graph build) --


class ParseError(OcaBuildError):
    """A candidate file could not be turned into a graph node."""

    def __init__(self, path: Path, message: str):
        self.path = Path(path)
        super().__init__(message)


class UnreadableFile(ParseError):
    """I/O failure while reading a candidate file."""

    def __init__(self, path: Path, reason: str):
        self.reason = reason
        super().__init__(path, f"Cannot read file {path}: {reason}")


class MissingHeader(ParseError):
    """The first non-empty line does not declare `-- name=<identifier>`."""

    def __init__(self, path: Path):
        super().__init__(
            path,
            f"File doesn't declare a name: {path}. "
            "Insert `-- name=<name>` on the first line of the file.",
        )


class InvalidIdentifier(ParseError):
    """The declared identifier contains characters outside [A-Za-z0-9_-]."""

    def __init__(self, path: Path, identifier: str):
        self.identifier = identifier
        super().__init__(
            path,
            f"Name '{identifier}' in file {path} contains an invalid character. "
            "Only alphanumeric characters, '-' or '_' are allowed.",
        )


# -- Structural graph errors (fatal to the call that raised them) --


class GraphError(OcaBuildError):
    """Error in the reference graph structure or a query against it."""

    pass


class DuplicateIdentifier(GraphError):
    def __init__(self, identifier: str, first_path: Path, second_path: Path):
        self.identifier = identifier
        self.first_path = Path(first_path)
        self.second_path = Path(second_path)
        super().__init__(
            f"Duplicate name '{identifier}' in files {first_path} and {second_path}"
        )


class UnknownIdentifier(GraphError):
    def __init__(self, identifier: str, referenced_by: str | None = None):
        self.identifier = identifier
        self.referenced_by = referenced_by
        if referenced_by is None:
            message = f"Unknown name: {identifier}"
        else:
            message = f"Unknown name: {identifier} (referenced by {referenced_by})"
        super().__init__(message)


class CycleDetected(GraphError):
    """Raised only by callers that require an acyclic graph."""

    def __init__(self, edges: list[tuple[str, str]]):
        self.edges = list(edges)
        pairs = ", ".join(f"{a} -> {b}" for a, b in self.edges)
        super().__init__(f"Cycle detected: {pairs}")


# -- Cache, build and scan errors --


class CacheFormatError(OcaBuildError):
    """The cache file exists but does not hold a path -> digest object."""

    pass


class BuildFailure(OcaBuildError):
    """The build facade rejected a file."""

    def __init__(self, path: Path, errors: list[str]):
        self.path = Path(path)
        self.errors = list(errors)
        super().__init__(f"Error while building file {path}: " + "; ".join(self.errors))


class ScanError(OcaBuildError):
    """Error while collecting candidate files."""

    pass


class NonexistentPath(ScanError):
    def __init__(self, path: Path):
        self.path = Path(path)
        super().__init__(f"No such file or directory: {path}")


class NotDirectory(ScanError):
    def __init__(self, path: Path):
        self.path = Path(path)
        super().__init__(f"Not a directory: {path}")
