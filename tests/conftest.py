"""Shared pytest fixtures and configuration for the tfplan-wrap test suite.

Guidelines
----------
* No real terraform binary is required by any test.
* Runners are faked at the protocol boundary, or replaced by the running
  Python interpreter where a real process is needed.
* Temporary files are redirected to a per-test directory so leaks are
  observable.
"""

from __future__ import annotations

import tempfile
from pathlib import Path

import pytest


@pytest.fixture
def temp_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point :mod:`tempfile` at an empty directory for the test."""
    target = tmp_path / "tmp"
    target.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(target))
    return target


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove tfplan-wrap configuration variables from the environment."""
    for name in (
        "TFPLAN_WRAP_TERRAFORM",
        "TERRAFORM_BINARY",
        "TFPLAN_WRAP_IGNORE_OUTPUT_DIFFS",
    ):
        monkeypatch.delenv(name, raising=False)
