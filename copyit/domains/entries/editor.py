import logging
from typing import Dict, Optional

from pydantic import ValidationError

from copyit.core.notifications import Notifier
from copyit.domains.entries.adapter import EntryStoreAdapter
from copyit.domains.entries.entities import Entry
from copyit.domains.entries.errors import EntryNotFoundError, FormValidationError, PersistenceError
from copyit.domains.entries.schemas import EntryForm

logger = logging.getLogger(__name__)


def validate_entry_form(title: str, content: str) -> EntryForm:
    """Проверка формы; ошибки собираются по полям"""
    try:
        return EntryForm(title=title, content=content)
    except ValidationError as e:
        errors: Dict[str, str] = {}
        for error in e.errors():
            field = str(error["loc"][0]) if error["loc"] else "__root__"
            errors.setdefault(field, error["msg"])
        raise FormValidationError(errors) from e


class EntryEditor:
    """Форма создания и редактирования записи"""

    def __init__(
        self,
        adapter: EntryStoreAdapter,
        notifier: Notifier,
        entry: Optional[Entry] = None,
        demo: bool = False
    ):
        self.adapter = adapter
        self.notifier = notifier
        self.entry = entry
        self.demo = demo

        self.title = entry.title if entry else ""
        self.content = entry.content if entry else ""
        self.errors: Dict[str, str] = {}
        self.failure: Optional[Exception] = None
        self.is_open = True
        self.is_submitting = False

    @property
    def is_editing(self) -> bool:
        return self.entry is not None

    @property
    def heading(self) -> str:
        return "Edit Entry" if self.is_editing else "Add New Entry"

    async def submit(self, title: str, content: str) -> Optional[str]:
        """Отправка формы. Возвращает id записи или None, если сохранить не удалось"""
        if self.is_submitting:
            return None

        self.title, self.content = title, content
        try:
            values = validate_entry_form(title, content)
        except FormValidationError as e:
            self.errors = e.errors
            return None
        self.errors = {}
        self.failure = None

        self.is_submitting = True
        try:
            if self.is_editing:
                await self.adapter.update(self.entry.id, values.title, values.content)
                entry_id = self.entry.id
                self._notify_success("Entry updated successfully.", "Entry updated in demo mode.")
            else:
                entry_id = await self.adapter.create(values.title, values.content)
                self._notify_success("Entry added successfully.", "Entry added in demo mode.")
        except (PersistenceError, EntryNotFoundError) as e:
            logger.error(f"Error saving entry: {e!r}", exc_info=e)
            self.failure = e
            self.notifier.error("Error", "Could not save entry.")
            return None
        finally:
            self.is_submitting = False

        self.close()
        return entry_id

    def cancel(self) -> None:
        """Закрытие формы без сохранения"""
        self.close()

    def close(self) -> None:
        self.is_open = False

    def _notify_success(self, message: str, demo_message: str) -> None:
        if self.demo:
            self.notifier.toast("Success (Demo)", demo_message)
        else:
            self.notifier.toast("Success", message)
