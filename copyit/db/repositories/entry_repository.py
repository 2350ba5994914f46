from typing import Optional, List, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete
import uuid

from copyit.db.models.entry import Entry as EntryModel
from copyit.domains.entries.entities import Entry


def _parse_uuid(value: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class EntryRepository:
    """Репозиторий для работы с записями"""
    
    def __init__(self, session: AsyncSession):
        self.session = session
    
    async def create(self, title: str, content: str, user_id: str) -> str:
        """Создание записи; id и время создания назначает сервер"""
        owner_uuid = _parse_uuid(user_id)
        if owner_uuid is None:
            raise ValueError(f"Invalid user_id: {user_id}")
        
        db_entry = EntryModel(
            uuid=uuid.uuid4(),
            title=title,
            content=content,
            user_id=owner_uuid
        )
        
        self.session.add(db_entry)
        await self.session.commit()
        return str(db_entry.uuid)
    
    async def get_by_id(self, entry_id: str) -> Optional[Entry]:
        """Получение записи по id"""
        entry_uuid = _parse_uuid(entry_id)
        if entry_uuid is None:
            return None
        
        result = await self.session.execute(
            select(EntryModel).where(EntryModel.uuid == entry_uuid)
        )
        db_entry = result.scalar_one_or_none()
        return self._to_domain(db_entry) if db_entry else None
    
    async def get_by_owner(self, user_id: str) -> List[Entry]:
        """Все записи владельца, без сортировки"""
        owner_uuid = _parse_uuid(user_id)
        if owner_uuid is None:
            return []
        
        result = await self.session.execute(
            select(EntryModel).where(EntryModel.user_id == owner_uuid)
        )
        return [self._to_domain(db_entry) for db_entry in result.scalars().all()]
    
    async def update(self, entry_id: str, fields: Dict[str, Any]) -> bool:
        """Обновление заголовка и содержимого"""
        entry_uuid = _parse_uuid(entry_id)
        if entry_uuid is None:
            return False
        
        values = {key: fields[key] for key in ("title", "content") if key in fields}
        if not values:
            return await self.get_by_id(entry_id) is not None
        
        result = await self.session.execute(
            update(EntryModel)
            .where(EntryModel.uuid == entry_uuid)
            .values(**values)
        )
        await self.session.commit()
        return result.rowcount > 0
    
    async def delete(self, entry_id: str) -> bool:
        """Удаление записи"""
        entry_uuid = _parse_uuid(entry_id)
        if entry_uuid is None:
            return False
        
        result = await self.session.execute(
            delete(EntryModel).where(EntryModel.uuid == entry_uuid)
        )
        await self.session.commit()
        return result.rowcount > 0
    
    def _to_domain(self, db_entry: EntryModel) -> Entry:
        """Преобразование модели БД в доменную сущность"""
        return Entry(
            id=str(db_entry.uuid),
            title=db_entry.title,
            content=db_entry.content,
            user_id=str(db_entry.user_id),
            created_at=db_entry.created_at
        )
