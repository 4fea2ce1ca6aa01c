"""Build facade — turn one file's text into a bundle, or reject it."""

from __future__ import annotations

import base64
import hashlib
from collections.abc import Iterable
from typing import Protocol

from ocabuild.build.bundles import BundleStore
from ocabuild.core.models import BuildOutcome
from ocabuild.graph.parser import find_header, find_references, replace_references


class BuildFacade(Protocol):
    """What the planner needs from whatever actually builds bundles.

    `build` is called once per node, dependencies first, and is never
    retried. `validate` checks a file without producing anything.
    """

    def build(self, text: str) -> BuildOutcome: ...

    def validate(self, text: str, known_names: Iterable[str] = ()) -> list[str]: ...


def compute_artifact_id(content: str) -> str:
    """Self-addressing id: 'E' + unpadded urlsafe base64 of SHA-256."""
    digest = hashlib.sha256(content.encode()).digest()
    return "E" + base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


class LocalFacade:
    """Builds bundles into a BundleStore.

    Every `refn:<name>` is replaced by `refs:<artifact id>` of the bundle
    that name was last built to, so a bundle's id changes whenever any of
    its dependencies' ids change.
    """

    def __init__(self, store: BundleStore):
        self.store = store

    def _resolve(
        self, text: str, known_names: Iterable[str] = ()
    ) -> tuple[str | None, str, list[str]]:
        errors: list[str] = []
        known = set(known_names)
        name = find_header(text)
        if not name:
            errors.append("Missing name declaration: insert `-- name=<name>` on the first line")

        for token in dict.fromkeys(find_references(text)):
            if token not in known and self.store.find(token) is None:
                errors.append(f"Unknown refn: {token}")

        body = [line for line in text.strip().splitlines()[1:] if line.strip()]
        if not body:
            errors.append("File contains no instructions")

        if errors:
            return name, text, errors
        resolved = replace_references(text.strip(), lambda token: f"refs:{self.store.find(token)}")
        return name, resolved, []

    def validate(self, text: str, known_names: Iterable[str] = ()) -> list[str]:
        """Check a file. Names in `known_names` count as resolvable references."""
        _, _, errors = self._resolve(text, known_names)
        return errors

    def build(self, text: str) -> BuildOutcome:
        name, resolved, errors = self._resolve(text)
        if errors:
            return BuildOutcome(errors=errors)
        artifact_id = compute_artifact_id(resolved)
        self.store.save_bundle(name, artifact_id, resolved)
        return BuildOutcome(artifact_id=artifact_id)
