"""Pytest configuration for test isolation.

The state store defaults to ``./finance_tracker.db`` in the working
directory. Tests that go through the CLI or :class:`StateStore` would
otherwise share that file, so an autouse fixture points
``FINANCE_TRACKER_DATABASE_URL`` at a per-test SQLite database.

The CLI configures the package logger once per process with a handler bound
to whatever ``sys.stderr`` was at the time; under ``CliRunner`` that stream is
closed after the invocation. The second fixture undoes the configuration
after every test.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from finance_tracker.logging_setup import reset_logging


@pytest.fixture(autouse=True)
def _isolate_database(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    db_path = tmp_path / "state.db"
    monkeypatch.setenv("FINANCE_TRACKER_DATABASE_URL", f"sqlite:///{db_path}")
    monkeypatch.delenv("FINANCE_TRACKER_LOG_LEVEL", raising=False)
    # Keep a developer's .env out of the CLI tests.
    monkeypatch.chdir(tmp_path)
    return db_path


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    yield
    reset_logging()
