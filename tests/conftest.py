"""Shared fixtures for tests."""

from __future__ import annotations

from datetime import date, datetime
from pathlib import Path
from typing import Callable, Generator

import pytest
from fastapi.testclient import TestClient

from timecard_server.core.config import ServerConfig, TimecardConfig
from timecard_server.core.database import TimecardStore, get_store
from timecard_server.models.timecard import TimecardDay

WORK_DATE = date(2024, 1, 15)


def at(hour: int, minute: int = 0, day: date = WORK_DATE) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute)


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    """Path of a fresh SQLite database for one test."""
    return str(tmp_path / "timecards_test.db")


@pytest.fixture
def store(db_path: str) -> TimecardStore:
    """Initialised store with one project whose show day has passed."""
    store = TimecardStore(db_path)
    store.init_database()
    store.insert_project("proj-1", "Test Production", date(2024, 1, 1))
    return store


@pytest.fixture
def make_timecard() -> Callable[..., TimecardDay]:
    """Factory for a draft 09:00-17:00 timecard with no break."""

    def _make(**overrides) -> TimecardDay:
        values = {
            "id": "tc-1",
            "user_id": "user-1",
            "project_id": "proj-1",
            "date": WORK_DATE,
            "check_in_time": at(9),
            "check_out_time": at(17),
            "pay_rate": 25.0,
        }
        values.update(overrides)
        return TimecardDay(**values)

    return _make


@pytest.fixture
def client(store: TimecardStore, db_path: str, monkeypatch: pytest.MonkeyPatch) -> Generator[TestClient, None, None]:
    """TestClient bound to the per-test store, with the API key check off."""
    from timecard_server.main import app

    monkeypatch.setattr(ServerConfig, "API_SECRET", "")
    monkeypatch.setattr(ServerConfig, "DATABASE_PATH", db_path)
    monkeypatch.setattr(TimecardConfig, "APPLY_BREAK_GRACE_PERIOD", True)
    monkeypatch.setattr(TimecardConfig, "DEFAULT_BREAK_MINUTES", 30)

    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def user_headers() -> dict:
    return {"X-User-Id": "user-1", "X-User-Role": "talent_escort"}


@pytest.fixture
def other_user_headers() -> dict:
    return {"X-User-Id": "user-2", "X-User-Role": "talent_escort"}


@pytest.fixture
def admin_headers() -> dict:
    return {"X-User-Id": "admin-1", "X-User-Role": "admin"}
