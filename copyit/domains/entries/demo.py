import logging
from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from copyit.domains.entries.entities import Entry
from copyit.domains.entries.store import MemoryDocumentStore

logger = logging.getLogger(__name__)


def demo_entries(owner_id: str, now: Optional[datetime] = None) -> List[Entry]:
    """Записи, которые видит посетитель, пока бэкенд не настроен"""
    now = now or datetime.now(timezone.utc)
    return [
        Entry(
            id="1",
            title="Welcome to CopyIt!",
            content=(
                "This is a demo of your personal clipboard manager. Since the backend is "
                "not configured, this is mock data and your changes will not be saved."
            ),
            user_id=owner_id,
            created_at=now - timedelta(minutes=5),
        ),
        Entry(
            id="2",
            title="How to use",
            content='Click "Add New" to create a new entry. You can edit, delete, and copy existing entries.',
            user_id=owner_id,
            created_at=now - timedelta(minutes=2),
        ),
        Entry(
            id="3",
            title="Example JavaScript Snippet",
            content='const greeting = "Hello, world!";\nconsole.log(greeting);',
            user_id=owner_id,
            created_at=now,
        ),
    ]


class DemoStores:
    """Песочницы демо-режима: у каждого посетителя свое хранилище в памяти.

    Хранилище заводится при первом обращении и заполняется демо-записями.
    Давно не заходившие посетители вытесняются, когда их больше `max_visitors`.
    """

    def __init__(self, max_visitors: int = 1000):
        self.max_visitors = max_visitors
        self._stores: "OrderedDict[str, MemoryDocumentStore]" = OrderedDict()

    def store_for(self, owner_id: str) -> MemoryDocumentStore:
        store = self._stores.get(owner_id)
        if store is not None:
            self._stores.move_to_end(owner_id)
            return store

        store = MemoryDocumentStore(seed=demo_entries(owner_id))
        self._stores[owner_id] = store
        logger.info(f"Demo sandbox created for {owner_id}")

        while len(self._stores) > self.max_visitors:
            evicted, _ = self._stores.popitem(last=False)
            logger.info(f"Demo sandbox of {evicted} evicted")
        return store

    def __len__(self) -> int:
        return len(self._stores)
