"""Content-hash build cache — decide which files changed since the last build."""

from __future__ import annotations

import base64
import hashlib
import json
import logging
import threading
from collections.abc import Iterable
from pathlib import Path

from ocabuild.core.errors import CacheFormatError, atomic_write
from ocabuild.core.models import ChangeStatus
from ocabuild.graph.parser import read_source

logger = logging.getLogger(__name__)


def compute_digest(content: str) -> str:
    """SHA-256 of the trimmed content, standard base64.

    Trimming keeps a trailing newline or leading blank lines from
    triggering a rebuild.
    """
    digest = hashlib.sha256(content.strip().encode()).digest()
    return base64.b64encode(digest).decode("ascii")


def _cache_key(path: Path | str) -> str:
    return str(Path(path))


class ContentHashCache:
    """Persistent path -> digest map, loaded once and saved as a whole."""

    def __init__(self, cache_path: str | Path):
        self.cache_path = Path(cache_path)
        self._lock = threading.Lock()
        try:
            self._entries: dict[str, str] = self._load()
        except CacheFormatError as e:
            logger.warning("Ignoring cache %s: %s", self.cache_path, e)
            self._entries = {}

    def _load(self) -> dict[str, str]:
        """Read the cache file. Missing, empty or unreadable means cold start."""
        try:
            raw = self.cache_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Cannot read cache %s, starting cold: %s", self.cache_path, e)
            return {}
        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CacheFormatError(f"invalid JSON: {e}") from e
        if not isinstance(data, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in data.items()
        ):
            raise CacheFormatError("expected an object mapping paths to digests")
        return data

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        with self._lock:
            return _cache_key(path) in self._entries

    def get(self, path: Path | str) -> str | None:
        with self._lock:
            return self._entries.get(_cache_key(path))

    def entries(self) -> dict[str, str]:
        with self._lock:
            return dict(self._entries)

    def digest_for(self, path: Path) -> str:
        """Digest of the file as it is on disk now. Raises UnreadableFile."""
        return compute_digest(read_source(path))

    def classify_digest(self, path: Path, digest: str) -> ChangeStatus:
        stored = self.get(path)
        if stored is None:
            logger.info("New file: %s", path)
            return ChangeStatus.NEW
        if stored == digest:
            logger.info("Already built: %s. Skipping", path)
            return ChangeStatus.UNCHANGED
        logger.info("File changed: %s", path)
        return ChangeStatus.CHANGED

    def classify(self, path: Path) -> ChangeStatus:
        return self.classify_digest(path, self.digest_for(path))

    def classify_all(self, paths: Iterable[Path]) -> dict[Path, ChangeStatus]:
        return {Path(path): self.classify(path) for path in paths}

    def update(self, path: Path | str, digest: str) -> None:
        with self._lock:
            self._entries[_cache_key(path)] = digest

    def update_many(self, digests: dict[Path, str]) -> None:
        with self._lock:
            for path, digest in digests.items():
                self._entries[_cache_key(path)] = digest

    def reconcile(self, paths: Iterable[Path]) -> list[str]:
        """Drop entries for files that are no longer candidates. Returns dropped keys."""
        keep = {_cache_key(path) for path in paths}
        with self._lock:
            dropped = sorted(key for key in self._entries if key not in keep)
            for key in dropped:
                del self._entries[key]
        if dropped:
            logger.info("Pruned %d stale cache entries", len(dropped))
        return dropped

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def persist(self) -> None:
        """Write the whole map in one atomic replace."""
        with self._lock:
            content = json.dumps(self._entries, indent=2, sort_keys=True)
        atomic_write(self.cache_path, content)
        logger.debug("Saved %d cache entries to %s", len(self), self.cache_path)
