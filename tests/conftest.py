"""Pytest configuration for linearsync tests.

Ensures the in-repo `src` directory is on `sys.path` so the package can be
imported without an editable install (`pip install -e .`), and keeps every
test away from real credentials and `.env` files.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
TESTS = ROOT / "tests"
for path in (SRC, TESTS):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

_ENV_VARS = (
    "LINEAR_API_KEY",
    "GITHUB_TOKEN",
    "GH_TOKEN",
    "GITHUB_ACCESS_TOKEN",
    "GITHUB_PAT",
    "LINEAR_TEAM_ID",
    "GITHUB_OWNER",
    "GITHUB_REPO",
    "GITHUB_PROJECT_NUMBER",
    "GITHUB_PRIORITY_FIELD",
    "LINEARSYNC_QUIET",
)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # no stray linearsync.config.yaml or .env from the working tree
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def _fresh_logger(monkeypatch: pytest.MonkeyPatch) -> None:
    # handlers bind sys.stdout when built; capsys swaps it per test
    from linearsync import logging as sync_logging

    monkeypatch.setattr(sync_logging, "_GLOBAL", None)
