import logging
from typing import Optional

from copyit.domains.entries.entities import Entry
from copyit.domains.entries.errors import EntryNotFoundError
from copyit.domains.entries.store import DocumentStore, LiveQuery
from copyit.domains.identity.entities import Principal

logger = logging.getLogger(__name__)


class EntryStoreAdapter:
    """Доступ к записям хранилища от имени одного пользователя.
    
    Все операции ограничены записями текущего принципала: чужие записи
    не читаются и не изменяются, для вызывающего их просто нет.
    """
    
    def __init__(self, store: DocumentStore, principal: Principal):
        self.store = store
        self.principal = principal
    
    @property
    def user_id(self) -> str:
        return self.principal.uid
    
    def subscribe(self) -> LiveQuery:
        """Живая подписка на записи пользователя; закрывать при уходе со страницы"""
        return self.store.query(self.user_id)
    
    async def get(self, entry_id: str) -> Optional[Entry]:
        entry = await self.store.get(entry_id)
        if entry is None or entry.user_id != self.user_id:
            return None
        return entry
    
    async def create(self, title: str, content: str) -> str:
        """Создание записи. Сама запись придет в следующем снимке подписки"""
        entry_id = await self.store.add({
            "title": title,
            "content": content,
            "user_id": self.user_id,
        })
        logger.info(f"Entry {entry_id} created by {self.user_id}")
        return entry_id
    
    async def update(self, entry_id: str, title: str, content: str) -> None:
        """Обновление заголовка и содержимого; id, владелец и дата создания не меняются"""
        if await self.get(entry_id) is None:
            raise EntryNotFoundError(entry_id)
        
        if not await self.store.update(entry_id, {"title": title, "content": content}):
            # Запись удалили между проверкой и обновлением
            raise EntryNotFoundError(entry_id)
        logger.info(f"Entry {entry_id} updated by {self.user_id}")
    
    async def delete(self, entry_id: str) -> None:
        """Удаление записи; отсутствующая запись считается уже удаленной"""
        if await self.get(entry_id) is None:
            logger.info(f"Entry {entry_id} already absent for {self.user_id}")
            return
        
        await self.store.delete(entry_id)
        logger.info(f"Entry {entry_id} deleted by {self.user_id}")
