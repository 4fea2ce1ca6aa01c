"""Configuration settings for ocabuild.

Everything a build writes lives under one storage directory:
- build-cache.json: path -> content digest of the last successful build
- bundles/: built artifacts plus the name -> artifact id manifest
- logs/: one JSONL event log per run
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """ocabuild settings, read from OCABUILD_* variables and .env."""

    model_config = SettingsConfigDict(
        env_prefix="OCABUILD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Cache, bundles and logs all live here
    storage_dir: Path = Field(default=Path(".oca"))

    # Recognized source file extension, without the dot
    file_suffix: str = "ocafile"

    cache_filename: str = "build-cache.json"

    @property
    def cache_path(self) -> Path:
        """Path to the content-hash build cache."""
        return self.storage_dir / self.cache_filename

    @property
    def bundles_dir(self) -> Path:
        """Directory holding built bundles and their manifest."""
        return self.storage_dir / "bundles"

    @property
    def logs_dir(self) -> Path:
        return self.storage_dir / "logs"

    def ensure_storage_dir(self) -> None:
        """Create the storage directory and any missing parents."""
        self.storage_dir.mkdir(parents=True, exist_ok=True)


_settings: Settings | None = None


def get_settings() -> Settings:
    """Settings, read from the environment once per process."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Forget the loaded settings; the next get_settings() re-reads the environment."""
    global _settings
    _settings = None
