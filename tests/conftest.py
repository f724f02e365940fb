"""Shared fixtures for Airtime tests."""

from datetime import datetime

import pytest

from airtime.core.clock import FixedClock
from airtime.core.database import init_database, set_database_path


@pytest.fixture
def test_db(tmp_path, monkeypatch):
    """Point the entity store at a fresh SQLite file for one test."""
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))

    db_path = tmp_path / "airtime.db"
    set_database_path(db_path)
    init_database()
    yield db_path
    set_database_path(None)


@pytest.fixture
def monday_morning() -> datetime:
    """Monday 2024-01-01 08:00, a fixed anchor for schedule tests."""
    return datetime(2024, 1, 1, 8, 0)


@pytest.fixture
def clock(monday_morning: datetime) -> FixedClock:
    return FixedClock(monday_morning)
