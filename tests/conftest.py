"""Shared test fixtures for ocabuild."""

from __future__ import annotations

import pytest

from ocabuild.config import reset_settings
from tests.helpers.ocafiles import SAMPLE_OCAFILES, SCENARIO_OCAFILES, write_ocafiles


@pytest.fixture(autouse=True)
def _fresh_settings():
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def sample_dir(tmp_path):
    """Directory holding the five-file sample set."""
    source = tmp_path / "schemas"
    write_ocafiles(source, SAMPLE_OCAFILES)
    return source


@pytest.fixture
def sample_paths(sample_dir):
    return {name: sample_dir / name for name in SAMPLE_OCAFILES}


@pytest.fixture
def scenario_dir(tmp_path):
    """Directory holding the A..E scenario set."""
    source = tmp_path / "scenario"
    write_ocafiles(source, SCENARIO_OCAFILES)
    return source


@pytest.fixture
def storage_dir(tmp_path):
    return tmp_path / ".oca"
