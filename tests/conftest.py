"""Shared pytest fixtures for milsto tests."""
from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List

import pytest
from typer.testing import CliRunner

from milsto.models import Milestone
from milsto.store import RecordStore, open_store

NOW = datetime(2026, 3, 14, 15, 9, 26, tzinfo=timezone.utc)


@pytest.fixture
def cli_runner() -> CliRunner:
    return CliRunner(env={"COLUMNS": "200"})


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def state_dir(tmp_path: Path) -> Path:
    return tmp_path / "state"


@pytest.fixture
def store(state_dir: Path) -> RecordStore:
    s = open_store(state_dir)
    try:
        yield s
    finally:
        s.close()


def make_milestone(title: str, created_at: datetime, target_in: timedelta = timedelta(hours=1), notes: str = "") -> Milestone:
    return Milestone(title=title, notes=notes, created_at=created_at, target=created_at + target_in)


@pytest.fixture
def three_days(now: datetime) -> List[Milestone]:
    """Milestones on today, yesterday and two days ago, newest first."""
    day = timedelta(days=1)
    return [
        make_milestone("Leave for airport", now, notes="Passport + ticket"),
        make_milestone("Project deadline", now - timedelta(hours=1), notes="Submit final report"),
        make_milestone("Gym", now - day, notes="Leg day"),
        make_milestone("Pay rent", now - 2 * day),
        make_milestone("Weekend trip", now - 2 * day - timedelta(hours=2), notes="Pack light"),
    ]


@pytest.fixture(autouse=True)
def _restore_root_logging():
    """CLI invocations reconfigure logging onto short-lived streams."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def berlin_tz(monkeypatch: pytest.MonkeyPatch):
    """Run with the system zone set to Europe/Berlin (CET winter, CEST summer)."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    monkeypatch.setenv("TZ", "Europe/Berlin")
    time.tzset()
    try:
        yield
    finally:
        monkeypatch.undo()
        time.tzset()
