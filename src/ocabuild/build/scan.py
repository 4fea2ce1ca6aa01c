"""Candidate discovery — walk a directory for source files."""

from __future__ import annotations

from pathlib import Path

from ocabuild.core.errors import NonexistentPath, NotDirectory

DEFAULT_SUFFIX = "ocafile"


def _matches(path: Path, suffix: str) -> bool:
    return path.suffix == f".{suffix.lstrip('.')}"


def scan_directory(directory: str | Path, suffix: str = DEFAULT_SUFFIX) -> list[Path]:
    """Recursively collect files with the given extension, sorted."""
    directory = Path(directory)
    if not directory.exists():
        raise NonexistentPath(directory)
    if not directory.is_dir():
        raise NotDirectory(directory)

    paths = []
    for path in directory.rglob(f"*.{suffix.lstrip('.')}"):
        # Hidden directories hold storage (.oca) and VCS data, never sources
        if any(part.startswith(".") for part in path.relative_to(directory).parts[:-1]):
            continue
        if path.is_file():
            paths.append(path)
    return sorted(paths)


def scan_current_dir(directory: str | Path, suffix: str = DEFAULT_SUFFIX) -> list[Path]:
    """Collect matching files directly inside a directory, not recursing."""
    directory = Path(directory)
    if not directory.exists():
        raise NonexistentPath(directory)
    if not directory.is_dir():
        raise NotDirectory(directory)
    return sorted(p for p in directory.iterdir() if p.is_file() and _matches(p, suffix))


def collect_candidates(
    directory: str | Path | None = None,
    file: str | Path | None = None,
    suffix: str = DEFAULT_SUFFIX,
) -> tuple[list[Path], list[Path] | None]:
    """Resolve the candidate set for a run.

    Returns (candidates, seed_restriction). With a directory, every file
    under it is a candidate and any of them may seed the rebuild. With a
    single file, its siblings are candidates (so references resolve) but
    only the file itself may seed; when a directory is also given it is
    scanned recursively instead of the file's parent.
    """
    if directory is None and file is None:
        raise ValueError("Specify a directory or a file to build")

    if file is None:
        return scan_directory(directory, suffix), None

    file = Path(file)
    if not file.exists():
        raise NonexistentPath(file)
    if directory is not None:
        candidates = scan_directory(directory, suffix)
    else:
        candidates = scan_current_dir(file.parent, suffix)
    for candidate in candidates:
        if candidate.resolve() == file.resolve():
            return candidates, [candidate]
    return sorted([*candidates, file]), [file]
