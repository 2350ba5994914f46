from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic_core import PydanticCustomError

from copyit.core.notifications import Notification
from copyit.domains.entries.view import SortOrder

TITLE_MAX_LENGTH = 255


class EntryForm(BaseModel):
    """Схема формы записи"""
    title: str = ""
    content: str = ""

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        if not v.strip():
            raise PydanticCustomError('required', 'Title is required.')
        if len(v.strip()) > TITLE_MAX_LENGTH:
            raise PydanticCustomError(
                'too_long', 'Title must be at most {limit} characters.', {'limit': TITLE_MAX_LENGTH}
            )
        return v.strip()

    @field_validator('content')
    @classmethod
    def validate_content(cls, v):
        # Содержимое хранится как есть, включая переводы строк
        if not v:
            raise PydanticCustomError('required', 'Content is required.')
        return v


class EntryResponse(BaseModel):
    """Схема для ответа с данными записи"""
    id: str
    title: str
    content: str
    user_id: str
    created_at: Optional[datetime] = None
    subtitle: str

    model_config = ConfigDict(from_attributes=True)


class EntryListResponse(BaseModel):
    """Схема для производного списка карточек"""
    entries: List[EntryResponse]
    total: int
    search: str
    sort: SortOrder
    empty_message: Optional[str] = None
    demo_mode: bool = False


class ActionResponse(BaseModel):
    """Результат действия пользователя с уведомлениями"""
    notifications: List[Notification] = []
    redirect: Optional[str] = None


class EntrySavedResponse(ActionResponse):
    id: Optional[str] = None


class FormErrorResponse(ActionResponse):
    errors: Dict[str, str]


class DeleteConfirmationResponse(BaseModel):
    """Схема подтверждения удаления"""
    entry_id: str
    title: str
    description: str


class CopyResponse(ActionResponse):
    clipboard: str
