import logging
from typing import List, Literal

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class Notification(BaseModel):
    """Кратковременное уведомление для пользователя"""
    title: str
    description: str = ""
    variant: Literal["default", "destructive"] = "default"


class Notifier:
    """Накопитель уведомлений в рамках одного действия пользователя"""
    
    def __init__(self):
        self._pending: List[Notification] = []
    
    def toast(self, title: str, description: str = "", variant: str = "default") -> Notification:
        notification = Notification(title=title, description=description, variant=variant)
        self._pending.append(notification)
        logger.debug(f"Notification queued: {title}")
        return notification
    
    def error(self, title: str, description: str = "") -> Notification:
        return self.toast(title, description, variant="destructive")
    
    def drain(self) -> List[Notification]:
        """Забирает накопленные уведомления и очищает очередь"""
        pending, self._pending = self._pending, []
        return pending
    
    def __len__(self) -> int:
        return len(self._pending)
