"""
Хранилище записей с живыми запросами.

Живой запрос отдает полный снимок записей владельца при открытии и после
каждого изменения. Изменения приходят через ChangeFeed: каждая подписка
получает свою очередь единичного размера, поэтому серия записей подряд
может схлопнуться в один снимок, но снимок всегда полный.
"""
import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from copyit.db.repositories.entry_repository import EntryRepository
from copyit.domains.entries.entities import Entry
from copyit.domains.entries.errors import PersistenceError

logger = logging.getLogger(__name__)


class ChangeFeed:
    """Канал уведомлений об изменениях, сгруппированный по владельцу"""

    def __init__(self):
        self._listeners: Dict[str, Set[asyncio.Queue]] = {}

    def listen(self, owner_id: str) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=1)
        self._listeners.setdefault(owner_id, set()).add(queue)
        return queue

    def remove(self, owner_id: str, queue: asyncio.Queue) -> None:
        listeners = self._listeners.get(owner_id)
        if not listeners:
            return
        listeners.discard(queue)
        if not listeners:
            del self._listeners[owner_id]

    def publish(self, owner_id: str) -> None:
        for queue in self._listeners.get(owner_id, ()):
            # Непрочитанное уведомление уже означает "перечитать снимок"
            if queue.empty():
                queue.put_nowait(None)

    def listener_count(self) -> int:
        return sum(len(listeners) for listeners in self._listeners.values())


class LiveQuery:
    """Живой запрос записей одного владельца"""

    def __init__(self, store: "DocumentStore", owner_id: str):
        self.store = store
        self.owner_id = owner_id
        self._queue: Optional[asyncio.Queue] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> "LiveQuery":
        return self

    async def __anext__(self) -> List[Entry]:
        if self._closed:
            raise StopAsyncIteration

        if self._queue is None:
            # Подписываемся до первого чтения, чтобы не пропустить изменения
            self._queue = self.store.feed.listen(self.owner_id)
            logger.info(f"Live query opened for owner {self.owner_id}")
        else:
            await self._queue.get()
            if self._closed:
                raise StopAsyncIteration

        return await self.store.fetch(self.owner_id)

    def close(self) -> None:
        """Отписка от изменений; повторный вызов ничего не делает"""
        if self._closed:
            return
        self._closed = True
        if self._queue is not None:
            self.store.feed.remove(self.owner_id, self._queue)
            # Будим ожидающего итератора, чтобы он завершился
            if self._queue.empty():
                self._queue.put_nowait(None)
            logger.info(f"Live query closed for owner {self.owner_id}")

    async def __aenter__(self) -> "LiveQuery":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()


class DocumentStore(ABC):
    """Контракт хранилища документов"""

    def __init__(self):
        self.feed = ChangeFeed()

    def query(self, owner_id: str) -> LiveQuery:
        """Живой запрос записей владельца"""
        return LiveQuery(self, owner_id)

    @abstractmethod
    async def fetch(self, owner_id: str) -> List[Entry]:
        """Полный снимок записей владельца в порядке выдачи хранилища"""

    @abstractmethod
    async def get(self, entry_id: str) -> Optional[Entry]:
        """Запись по id"""

    @abstractmethod
    async def add(self, record: Dict[str, Any]) -> str:
        """Добавление записи, возвращает назначенный id"""

    @abstractmethod
    async def update(self, entry_id: str, fields: Dict[str, Any]) -> bool:
        """Частичное обновление, False если записи нет"""

    @abstractmethod
    async def delete(self, entry_id: str) -> bool:
        """Удаление, False если записи нет"""


class MemoryDocumentStore(DocumentStore):
    """Хранилище в памяти для демо-режима и тестов"""

    def __init__(
        self,
        seed: Iterable[Entry] = (),
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)
    ):
        super().__init__()
        self.clock = clock
        self._entries: Dict[str, Entry] = {entry.id: entry for entry in seed}

    async def fetch(self, owner_id: str) -> List[Entry]:
        return [entry for entry in self._entries.values() if entry.user_id == owner_id]

    async def get(self, entry_id: str) -> Optional[Entry]:
        return self._entries.get(entry_id)

    async def add(self, record: Dict[str, Any]) -> str:
        entry = Entry(
            id=uuid.uuid4().hex,
            title=record["title"],
            content=record["content"],
            user_id=record["user_id"],
            created_at=self.clock()
        )
        self._entries[entry.id] = entry
        self.feed.publish(entry.user_id)
        return entry.id

    async def update(self, entry_id: str, fields: Dict[str, Any]) -> bool:
        entry = self._entries.get(entry_id)
        if entry is None:
            return False
        self._entries[entry_id] = entry.with_changes(
            title=fields.get("title", entry.title),
            content=fields.get("content", entry.content)
        )
        self.feed.publish(entry.user_id)
        return True

    async def delete(self, entry_id: str) -> bool:
        entry = self._entries.pop(entry_id, None)
        if entry is None:
            return False
        self.feed.publish(entry.user_id)
        return True


class SqlDocumentStore(DocumentStore):
    """Хранилище на SQLAlchemy"""

    def __init__(self, session_factory: async_sessionmaker):
        super().__init__()
        self.session_factory = session_factory

    async def fetch(self, owner_id: str) -> List[Entry]:
        try:
            async with self.session_factory() as session:
                return await EntryRepository(session).get_by_owner(owner_id)
        except SQLAlchemyError as e:
            raise PersistenceError("Could not fetch entries") from e

    async def get(self, entry_id: str) -> Optional[Entry]:
        try:
            async with self.session_factory() as session:
                return await EntryRepository(session).get_by_id(entry_id)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not load entry {entry_id}") from e

    async def add(self, record: Dict[str, Any]) -> str:
        try:
            async with self.session_factory() as session:
                entry_id = await EntryRepository(session).create(
                    title=record["title"],
                    content=record["content"],
                    user_id=record["user_id"]
                )
        except (SQLAlchemyError, ValueError) as e:
            raise PersistenceError("Could not save entry") from e

        self.feed.publish(record["user_id"])
        return entry_id

    async def update(self, entry_id: str, fields: Dict[str, Any]) -> bool:
        try:
            async with self.session_factory() as session:
                repository = EntryRepository(session)
                entry = await repository.get_by_id(entry_id)
                if entry is None:
                    return False
                updated = await repository.update(entry_id, fields)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not update entry {entry_id}") from e

        if updated:
            self.feed.publish(entry.user_id)
        return updated

    async def delete(self, entry_id: str) -> bool:
        try:
            async with self.session_factory() as session:
                repository = EntryRepository(session)
                entry = await repository.get_by_id(entry_id)
                if entry is None:
                    return False
                deleted = await repository.delete(entry_id)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not delete entry {entry_id}") from e

        if deleted:
            self.feed.publish(entry.user_id)
        return deleted
