"""Reference parsing — read a file's declared name and the names it references."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from pathlib import Path

from ocabuild.core.errors import InvalidIdentifier, MissingHeader, UnreadableFile
from ocabuild.core.models import Node

logger = logging.getLogger(__name__)

HEADER_MARKER = "--"

# `-- name=first`, `--name="first"` or `-- version=1 name=first`; the value runs
# to the next whitespace
_HEADER_RE = re.compile(re.escape(HEADER_MARKER) + r".*?\bname=(\S+)")

# `refn:first`, also inside array declarations such as `Array[refn:first]`
_REFERENCE_RE = re.compile(r"refn:([^\s\]]+)")

_IDENTIFIER_RE = re.compile(r"[\w-]+")


def find_header(text: str) -> str | None:
    """Return the declared name from the first non-empty line, or None."""
    for line in text.splitlines():
        if not line.strip():
            continue
        match = _HEADER_RE.search(line)
        if match is None:
            return None
        return match.group(1).strip("\"'")
    return None


def find_references(text: str) -> list[str]:
    """Every `refn:` token in the text, in file order, duplicates kept."""
    return _REFERENCE_RE.findall(text)


def parse_source(text: str, path: Path) -> Node:
    """Build a Node from already-read file text.

    Raises MissingHeader when the first non-empty line has no
    `-- name=<identifier>` declaration, InvalidIdentifier when the
    declared name uses characters outside letters, digits, '-' and '_'.
    """
    identifier = find_header(text)
    if not identifier:
        raise MissingHeader(path)
    if not _IDENTIFIER_RE.fullmatch(identifier):
        raise InvalidIdentifier(path, identifier)
    return Node(
        identifier=identifier,
        path=Path(path),
        dependencies=tuple(find_references(text)),
    )


def read_source(path: Path) -> str:
    """Read a candidate file, mapping I/O failures to UnreadableFile."""
    try:
        # Bytes first: line endings are part of the content digest
        return Path(path).read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as e:
        reason = e.strerror if isinstance(e, OSError) and e.strerror else str(e)
        raise UnreadableFile(path, reason) from e


def parse_node(path: Path) -> Node:
    """Read and parse one file."""
    node = parse_source(read_source(path), path)
    logger.debug("Parsed %s as %s (%d references)", path, node.identifier, len(node.dependencies))
    return node


def replace_references(text: str, resolve: Callable[[str], str]) -> str:
    """Substitute every `refn:<token>` with whatever `resolve(token)` returns."""
    return _REFERENCE_RE.sub(lambda match: resolve(match.group(1)), text)
