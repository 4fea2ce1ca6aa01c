"""Bundle storage — save/load built artifacts (filesystem-backed)."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

from ocabuild.core.errors import atomic_write


class BundleStore:
    """Filesystem-backed bundle storage with manifest tracking.

    The manifest records which artifact id each name was last built to, so
    later builds can resolve `refn:<name>` against it.
    """

    def __init__(self, bundles_dir: str | Path):
        self.bundles_dir = Path(bundles_dir)
        self.bundles_dir.mkdir(parents=True, exist_ok=True)
        self._manifest_path = self.bundles_dir / "manifest.json"
        self._manifest: dict[str, dict] = self._load_manifest()

    def _load_manifest(self) -> dict[str, dict]:
        if self._manifest_path.exists():
            data = json.loads(self._manifest_path.read_text())
            return {"refs": data.get("refs", {}), "bundles": data.get("bundles", {})}
        return {"refs": {}, "bundles": {}}

    def _save_manifest(self) -> None:
        atomic_write(self._manifest_path, json.dumps(self._manifest, indent=2, sort_keys=True))

    def save_bundle(self, name: str, artifact_id: str, content: str) -> Path:
        """Write a built bundle and point `name` at it."""
        bundle_path = self.bundles_dir / f"{artifact_id}.json"
        bundle_data = {
            "artifact_id": artifact_id,
            "name": name,
            "created_at": datetime.now().isoformat(),
            "content": content,
        }
        bundle_path.write_text(json.dumps(bundle_data, indent=2))

        self._manifest["bundles"][artifact_id] = {
            "path": bundle_path.name,
            "name": name,
        }
        self._manifest["refs"][name] = artifact_id
        self._save_manifest()
        return bundle_path

    def load_bundle(self, artifact_id: str) -> dict | None:
        """Load a bundle by artifact id. Returns None if not found."""
        entry = self._manifest["bundles"].get(artifact_id)
        if entry is None:
            return None
        bundle_path = self.bundles_dir / entry["path"]
        if not bundle_path.exists():
            return None
        return json.loads(bundle_path.read_text())

    def find(self, name: str) -> str | None:
        """Artifact id the name was last built to."""
        return self._manifest["refs"].get(name)

    def references(self) -> dict[str, str]:
        return dict(self._manifest["refs"])
