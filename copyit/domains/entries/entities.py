from datetime import datetime
from typing import Optional


class Entry:
    """Сущность записи буфера обмена"""
    
    def __init__(
        self,
        id: str,
        title: str,
        content: str,
        user_id: str,
        created_at: Optional[datetime] = None
    ):
        self.id = id
        self.title = title
        self.content = content
        self.user_id = user_id
        # None, пока сервер не подтвердил создание
        self.created_at = created_at
    
    def sort_timestamp(self) -> float:
        """Время создания для сортировки; без отметки запись считается самой старой"""
        if self.created_at is None:
            return 0.0
        return self.created_at.timestamp()
    
    def with_changes(self, title: str, content: str) -> "Entry":
        """Копия записи с новыми заголовком и содержимым"""
        return Entry(
            id=self.id,
            title=title,
            content=content,
            user_id=self.user_id,
            created_at=self.created_at
        )
    
    def __eq__(self, other) -> bool:
        if not isinstance(other, Entry):
            return False
        return (
            self.id == other.id
            and self.title == other.title
            and self.content == other.content
            and self.user_id == other.user_id
            and self.created_at == other.created_at
        )
    
    def __repr__(self) -> str:
        return f"Entry(id={self.id}, title={self.title!r}, user_id={self.user_id})"
