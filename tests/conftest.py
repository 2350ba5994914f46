"""Общие фикстуры тестов."""

from datetime import datetime, timedelta, timezone
from itertools import count

import pytest
from fastapi.testclient import TestClient

from copyit.core.config import Settings
from copyit.domains.entries.entities import Entry
from copyit.domains.entries.errors import PersistenceError
from copyit.domains.entries.store import MemoryDocumentStore
from copyit.domains.identity.entities import Principal
from copyit.main import create_app

BASE_TIME = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


def ticking_clock(start: datetime = BASE_TIME, step: timedelta = timedelta(minutes=1)):
    """Часы, которые сдвигаются на шаг при каждом вызове"""
    ticks = count()
    return lambda: start + step * next(ticks)


def make_entry(id, title, minutes=None, user_id="user-1", content="text"):
    created_at = None if minutes is None else BASE_TIME + timedelta(minutes=minutes)
    return Entry(id=id, title=title, content=content, user_id=user_id, created_at=created_at)


class BrokenStore(MemoryDocumentStore):
    """Хранилище, у которого падают все операции записи"""

    async def add(self, record):
        raise PersistenceError("backend unavailable") from ConnectionError("refused")

    async def update(self, entry_id, fields):
        raise PersistenceError("backend unavailable") from ConnectionError("refused")

    async def delete(self, entry_id):
        raise PersistenceError("backend unavailable") from ConnectionError("refused")


class FailingReadStore(MemoryDocumentStore):
    """Хранилище, которое не может прочитать записи"""

    async def fetch(self, owner_id):
        raise PersistenceError("backend unavailable") from ConnectionError("connection refused")

    async def get(self, entry_id):
        raise PersistenceError("backend unavailable") from ConnectionError("connection refused")


@pytest.fixture
def alice():
    return Principal(uid="user-1", email="alice@example.com")


@pytest.fixture
def bob():
    return Principal(uid="user-2", email="bob@example.com")


@pytest.fixture
def memory_store():
    return MemoryDocumentStore(clock=ticking_clock())


@pytest.fixture
def live_settings(tmp_path):
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'copyit.db'}",
        jwt_secret="test-secret",
        bcrypt_rounds=4,
        log_level="DEBUG",
    )


@pytest.fixture
def demo_client():
    """Клиент приложения без настроенного бэкенда"""
    app = create_app(Settings(_env_file=None, database_url=None, jwt_secret=None))
    with TestClient(app) as client:
        yield client


@pytest.fixture
def live_client(live_settings):
    """Клиент приложения с базой SQLite во временном каталоге"""
    app = create_app(live_settings)
    with TestClient(app) as client:
        yield client
