import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from copyit.api.http.auth import get_current_principal, is_demo
from copyit.core.notifications import Notifier
from copyit.domains.entries.adapter import EntryStoreAdapter
from copyit.domains.entries.card import EntryCard, ResponseClipboard, format_created_at
from copyit.domains.entries.editor import EntryEditor
from copyit.domains.entries.entities import Entry
from copyit.domains.entries.errors import EntryNotFoundError, PersistenceError
from copyit.domains.entries.schemas import (
    ActionResponse, CopyResponse, DeleteConfirmationResponse, EntryListResponse,
    EntryResponse, EntrySavedResponse, FormErrorResponse
)
from copyit.domains.entries.store import DocumentStore
from copyit.domains.entries.view import DEFAULT_SORT_ORDER, EntryListController, SortOrder
from copyit.domains.identity.entities import Principal

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/entries", tags=["entries"])

# Ошибки заполнения формы
FORM_ERROR_STATUS = 422


class EntryPayload(BaseModel):
    """Тело запроса формы записи; проверку выполняет редактор"""
    title: str = ""
    content: str = ""


def store_for(state, principal: Principal) -> DocumentStore:
    """Хранилище записей принципала; в демо-режиме это его песочница"""
    if state.demo:
        return state.demo_stores.store_for(principal.uid)
    return state.store


async def get_adapter(
    request: Request,
    principal: Principal = Depends(get_current_principal)
) -> EntryStoreAdapter:
    """Адаптер хранилища, ограниченный текущим пользователем"""
    return EntryStoreAdapter(store_for(request.app.state, principal), principal)


def entry_response(entry: Entry) -> EntryResponse:
    return EntryResponse(
        id=entry.id,
        title=entry.title,
        content=entry.content,
        user_id=entry.user_id,
        created_at=entry.created_at,
        subtitle=format_created_at(entry.created_at)
    )


def list_response(controller: EntryListController, demo: bool) -> EntryListResponse:
    view = controller.view
    return EntryListResponse(
        entries=[entry_response(entry) for entry in view],
        total=len(view),
        search=controller.search_text,
        sort=controller.sort_order,
        empty_message=None if view else controller.empty_message,
        demo_mode=demo
    )


def action_failed(status_code: int, notifier: Notifier) -> JSONResponse:
    body = ActionResponse(notifications=notifier.drain())
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def fetch_failed(error: PersistenceError) -> JSONResponse:
    logger.error(f"Error fetching entries: {error!r}", exc_info=error)
    notifier = Notifier()
    notifier.error("Error", "Could not fetch entries.")
    return action_failed(status.HTTP_503_SERVICE_UNAVAILABLE, notifier)


async def load_entry(adapter: EntryStoreAdapter, entry_id: str) -> Entry:
    entry = await adapter.get(entry_id)
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Entry not found"
        )
    return entry


@router.get("/", response_model=EntryListResponse)
async def list_entries(
    request: Request,
    search: str = Query(""),
    sort: SortOrder = Query(DEFAULT_SORT_ORDER),
    adapter: EntryStoreAdapter = Depends(get_adapter)
):
    """Текущий снимок записей в виде отфильтрованного и отсортированного списка"""
    controller = EntryListController(search_text=search, sort_order=sort)

    async with adapter.subscribe() as live:
        try:
            snapshot = await anext(live)
        except PersistenceError as e:
            return fetch_failed(e)

    controller.set_entries(snapshot)
    return list_response(controller, is_demo(request))


@router.post(
    "/",
    response_model=EntrySavedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={422: {"model": FormErrorResponse}, 503: {"model": ActionResponse}}
)
async def create_entry(
    payload: EntryPayload,
    request: Request,
    adapter: EntryStoreAdapter = Depends(get_adapter)
):
    """Создание новой записи"""
    notifier = Notifier()
    editor = EntryEditor(adapter, notifier, demo=is_demo(request))

    entry_id = await editor.submit(payload.title, payload.content)
    if editor.errors:
        body = FormErrorResponse(errors=editor.errors, notifications=notifier.drain())
        return JSONResponse(status_code=FORM_ERROR_STATUS, content=body.model_dump(mode="json"))
    if entry_id is None:
        return action_failed(status.HTTP_503_SERVICE_UNAVAILABLE, notifier)

    return EntrySavedResponse(id=entry_id, notifications=notifier.drain())


@router.get("/{entry_id}", response_model=EntryResponse)
async def get_entry(entry_id: str, adapter: EntryStoreAdapter = Depends(get_adapter)):
    """Получение записи по id"""
    try:
        entry = await load_entry(adapter, entry_id)
    except PersistenceError as e:
        return fetch_failed(e)
    return entry_response(entry)


@router.put(
    "/{entry_id}",
    response_model=EntrySavedResponse,
    responses={404: {}, 422: {"model": FormErrorResponse}, 503: {"model": ActionResponse}}
)
async def update_entry(
    entry_id: str,
    payload: EntryPayload,
    request: Request,
    adapter: EntryStoreAdapter = Depends(get_adapter)
):
    """Обновление заголовка и содержимого записи"""
    try:
        entry = await load_entry(adapter, entry_id)
    except PersistenceError as e:
        return fetch_failed(e)

    notifier = Notifier()
    card = EntryCard(entry, adapter, ResponseClipboard(), notifier, demo=is_demo(request))
    editor = card.edit()

    saved_id = await editor.submit(payload.title, payload.content)
    if editor.errors:
        body = FormErrorResponse(errors=editor.errors, notifications=notifier.drain())
        return JSONResponse(status_code=FORM_ERROR_STATUS, content=body.model_dump(mode="json"))
    if saved_id is None:
        if isinstance(editor.failure, EntryNotFoundError):
            return action_failed(status.HTTP_404_NOT_FOUND, notifier)
        return action_failed(status.HTTP_503_SERVICE_UNAVAILABLE, notifier)

    return EntrySavedResponse(id=saved_id, notifications=notifier.drain())


@router.get("/{entry_id}/delete", response_model=DeleteConfirmationResponse)
async def confirm_delete_entry(
    entry_id: str,
    request: Request,
    adapter: EntryStoreAdapter = Depends(get_adapter)
):
    """Текст диалога подтверждения удаления"""
    try:
        entry = await load_entry(adapter, entry_id)
    except PersistenceError as e:
        return fetch_failed(e)

    card = EntryCard(entry, adapter, ResponseClipboard(), Notifier(), demo=is_demo(request))
    confirmation = card.request_delete()
    return DeleteConfirmationResponse(
        entry_id=entry.id,
        title=confirmation.title,
        description=confirmation.description
    )


@router.delete(
    "/{entry_id}",
    response_model=ActionResponse,
    responses={428: {"model": DeleteConfirmationResponse}, 503: {"model": ActionResponse}}
)
async def delete_entry(
    entry_id: str,
    request: Request,
    confirm: bool = Query(False),
    adapter: EntryStoreAdapter = Depends(get_adapter)
):
    """Удаление записи после явного подтверждения"""
    notifier = Notifier()
    try:
        entry = await adapter.get(entry_id)
    except PersistenceError as e:
        logger.error(f"Error deleting entry: {e!r}", exc_info=e)
        notifier.error("Error", "Could not delete entry.")
        return action_failed(status.HTTP_503_SERVICE_UNAVAILABLE, notifier)

    if entry is None:
        # Уже удалена: для пользователя это не ошибка
        return ActionResponse(notifications=notifier.drain())

    card = EntryCard(entry, adapter, ResponseClipboard(), notifier, demo=is_demo(request))
    confirmation = card.request_delete()

    if not confirm:
        body = DeleteConfirmationResponse(
            entry_id=entry.id,
            title=confirmation.title,
            description=confirmation.description
        )
        return JSONResponse(status_code=status.HTTP_428_PRECONDITION_REQUIRED, content=body.model_dump(mode="json"))

    if not await confirmation.confirm():
        return action_failed(status.HTTP_503_SERVICE_UNAVAILABLE, notifier)

    return ActionResponse(notifications=notifier.drain())


@router.post("/{entry_id}/copy", response_model=CopyResponse)
async def copy_entry(
    entry_id: str,
    request: Request,
    adapter: EntryStoreAdapter = Depends(get_adapter)
):
    """Копирование содержимого записи в буфер обмена браузера"""
    try:
        entry = await load_entry(adapter, entry_id)
    except PersistenceError as e:
        return fetch_failed(e)

    notifier = Notifier()
    clipboard = ResponseClipboard()
    EntryCard(entry, adapter, clipboard, notifier, demo=is_demo(request)).copy()

    return CopyResponse(clipboard=clipboard.text, notifications=notifier.drain())
