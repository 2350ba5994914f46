import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from copyit.core.notifications import Notifier
from copyit.domains.entries.adapter import EntryStoreAdapter
from copyit.domains.entries.editor import EntryEditor
from copyit.domains.entries.entities import Entry
from copyit.domains.entries.errors import PersistenceError

logger = logging.getLogger(__name__)

CREATED_AT_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_created_at(created_at: Optional[datetime]) -> str:
    """Подпись карточки: время создания или "Just now", пока сервер его не назначил"""
    if created_at is None:
        return "Just now"
    return created_at.strftime(CREATED_AT_FORMAT)


class Clipboard(ABC):
    """Системный буфер обмена"""

    @abstractmethod
    def write_text(self, text: str) -> None:
        ...


class ResponseClipboard(Clipboard):
    """Буфер обмена на стороне браузера: текст уходит клиенту в ответе"""

    def __init__(self):
        self.writes: List[str] = []

    def write_text(self, text: str) -> None:
        self.writes.append(text)

    @property
    def text(self) -> Optional[str]:
        return self.writes[-1] if self.writes else None


class DeleteConfirmation:
    """Диалог подтверждения удаления записи"""

    def __init__(self, card: "EntryCard"):
        self.card = card
        self.title = "Are you sure?"
        self.description = (
            "This action cannot be undone. This will permanently delete "
            f'your entry titled "{card.entry.title}".'
        )

    async def confirm(self) -> bool:
        return await self.card._delete()

    def cancel(self) -> None:
        logger.debug(f"Deletion of entry {self.card.entry.id} cancelled")


class EntryCard:
    """Карточка одной записи: копирование, редактирование, удаление"""

    def __init__(
        self,
        entry: Entry,
        adapter: EntryStoreAdapter,
        clipboard: Clipboard,
        notifier: Notifier,
        demo: bool = False
    ):
        self.entry = entry
        self.adapter = adapter
        self.clipboard = clipboard
        self.notifier = notifier
        self.demo = demo

    @property
    def subtitle(self) -> str:
        return format_created_at(self.entry.created_at)

    def copy(self) -> None:
        """Копирует содержимое в буфер обмена без изменения записи"""
        self.clipboard.write_text(self.entry.content)
        self.notifier.toast(
            "Copied to clipboard!",
            f'"{self.entry.title}" content has been copied.'
        )

    def edit(self) -> EntryEditor:
        return EntryEditor(self.adapter, self.notifier, entry=self.entry, demo=self.demo)

    def request_delete(self) -> DeleteConfirmation:
        return DeleteConfirmation(self)

    async def _delete(self) -> bool:
        try:
            await self.adapter.delete(self.entry.id)
        except PersistenceError as e:
            logger.error(f"Error deleting entry: {e!r}", exc_info=e)
            self.notifier.error("Error", "Could not delete entry.")
            return False

        if self.demo:
            self.notifier.toast("Success (Demo)", "Entry deleted in demo mode.")
        else:
            self.notifier.toast("Success", "Entry deleted successfully.")
        return True
