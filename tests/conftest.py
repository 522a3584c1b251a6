from datetime import UTC, datetime, timedelta

import pytest

from shuriken.adapters.sqlite.migrator import SQLiteMigrator
from shuriken.adapters.sqlite.repos import (
    SQLiteNoticeQueue,
    SQLiteReservedPathRepo,
    SQLiteRuleRepo,
)


class MockClockPort:
    """Mock clock for deterministic testing."""

    def __init__(self, fixed_time: datetime | None = None) -> None:
        self._time = fixed_time or datetime(2024, 6, 15, 12, 0, 0, tzinfo=UTC)

    def now_utc(self) -> datetime:
        return self._time

    def advance(self, delta: timedelta) -> None:
        self._time = self._time + delta


@pytest.fixture
def clock():
    return MockClockPort()


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "shuriken.db")


@pytest.fixture
def migrated_db(db_path):
    # Assuming tests run from project root.
    SQLiteMigrator(db_path, "migrations").run_migrations()
    return db_path


@pytest.fixture
def rule_repo(migrated_db):
    return SQLiteRuleRepo(migrated_db)


@pytest.fixture
def reserved_repo(migrated_db):
    return SQLiteReservedPathRepo(migrated_db, system_paths=["admin", "api"])


@pytest.fixture
def notice_queue(migrated_db, clock):
    return SQLiteNoticeQueue(migrated_db, time_port=clock)
