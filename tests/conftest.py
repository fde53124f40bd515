"""Pytest configuration for test isolation.

Tests import the workspace packages straight from the source tree, so
``packages/``, ``libs/db/src`` and the repo root (for ``tests.helpers``) go on
``sys.path`` here.

Every test gets a clean environment for the variables the application reads
(database URL, log level, category creation switch), fresh engine caches, and
an unconfigured ``ledger_import`` logger. Without this, a CLI test that
configures logging or a test that points the engine cache at its temporary
database would leak into later tests.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

_ROOT = Path(__file__).resolve().parents[1]
sys.path[:0] = [
    p
    for p in [str(_ROOT / "packages"), str(_ROOT / "libs/db/src"), str(_ROOT)]
    if p not in sys.path
]

_ENV_VARS = (
    "LEDGER_DATABASE_URL",
    "DATABASE_URL",
    "LEDGER_ALLOW_CATEGORY_CREATE",
    "LEDGER_IMPORT_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Drop ambient configuration and run each test from its own directory.

    The working directory matters because the CLI loads ``.env`` from it and
    the default database URL is a ``ledger.db`` file relative to it.
    """

    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def _reset_engines() -> Iterator[None]:
    from db.client import reset_engines

    reset_engines()
    yield
    reset_engines()


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    yield
    import ledger_import.logging_setup as logging_setup

    pkg_logger = logging.getLogger("ledger_import")
    for h in list(pkg_logger.handlers):
        pkg_logger.removeHandler(h)
    pkg_logger.setLevel(logging.NOTSET)
    pkg_logger.propagate = True
    logging_setup._CONFIGURED = False
