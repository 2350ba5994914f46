from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from typing import Dict, Optional
import asyncio
import json
import logging
import uuid

from copyit.api.http.entries import list_response, store_for
from copyit.core.notifications import Notification
from copyit.core.security import extract_token_from_header
from copyit.domains.entries.adapter import EntryStoreAdapter
from copyit.domains.entries.errors import PersistenceError
from copyit.domains.entries.store import LiveQuery
from copyit.domains.entries.view import DEFAULT_SORT_ORDER, EntryListController, SortOrder
from copyit.domains.identity.demo import is_visitor_id, new_visitor_id
from copyit.domains.identity.gate import LOGIN_ROUTE, SessionGate

logger = logging.getLogger(__name__)

router = APIRouter()

# Код закрытия сокета, когда сессии нет
SESSION_ENDED_CLOSE_CODE = 4401
# Внутренняя ошибка сервера
INTERNAL_ERROR_CLOSE_CODE = 1011


class LiveConnection:
    """Одно подключение живого списка записей"""

    def __init__(self, websocket: WebSocket, user_id: str):
        self.id = uuid.uuid4().hex
        self.websocket = websocket
        self.user_id = user_id
        self._send_lock = asyncio.Lock()

    async def send(self, message_type: str, data: Optional[dict] = None):
        message = {"type": message_type}
        if data is not None:
            message["data"] = data
        async with self._send_lock:
            await self.websocket.send_text(json.dumps(message))


class ConnectionManager:
    def __init__(self):
        # Хранилище активных соединений: {user_id: {connection_id: connection}}
        self.active_connections: Dict[str, Dict[str, LiveConnection]] = {}

    def connect(self, websocket: WebSocket, user_id: str) -> LiveConnection:
        """Регистрация подключения пользователя"""
        connection = LiveConnection(websocket, user_id)
        self.active_connections.setdefault(user_id, {})[connection.id] = connection
        logger.info(f"User {user_id} opened live view {connection.id}")
        return connection

    def disconnect(self, connection: LiveConnection):
        """Отключение пользователя"""
        connections = self.active_connections.get(connection.user_id)
        if connections is not None:
            connections.pop(connection.id, None)

            # Если подключений пользователя больше нет, очищаем данные
            if not connections:
                del self.active_connections[connection.user_id]

        logger.info(f"User {connection.user_id} closed live view {connection.id}")

    def active_count(self) -> int:
        return sum(len(connections) for connections in self.active_connections.values())


async def send_view(connection: LiveConnection, controller: EntryListController, demo: bool):
    await connection.send("snapshot", list_response(controller, demo).model_dump(mode="json"))


async def send_notification(connection: LiveConnection, notification: Notification):
    await connection.send("notification", notification.model_dump(mode="json"))


async def pump_snapshots(
    connection: LiveConnection,
    live: LiveQuery,
    controller: EntryListController,
    demo: bool
):
    """Пересчет списка на каждый новый снимок подписки"""
    try:
        async for snapshot in live:
            controller.set_entries(snapshot)
            await send_view(connection, controller, demo)
    except PersistenceError as e:
        logger.error(f"Error fetching entries: {e!r}", exc_info=e)
        await send_notification(connection, Notification(
            title="Error",
            description="Could not fetch entries.",
            variant="destructive"
        ))


async def receive_messages(
    connection: LiveConnection,
    controller: EntryListController,
    demo: bool
):
    """Обработка сообщений клиента до отключения"""
    while True:
        data = await connection.websocket.receive_text()
        try:
            message = json.loads(data)
        except json.JSONDecodeError:
            logger.warning(f"Malformed message from user {connection.user_id}")
            continue

        if not isinstance(message, dict):
            logger.warning(f"Non-object message from user {connection.user_id}")
            continue

        message_type = message.get("type")
        payload = message.get("data") or {}
        if not isinstance(payload, dict):
            logger.warning(f"Message {message_type!r} from user {connection.user_id} has non-object data")
            continue

        if message_type == "search":
            controller.set_search_text(str(payload.get("text", "")))
            await send_view(connection, controller, demo)

        elif message_type == "sort":
            try:
                controller.set_sort_order(SortOrder(payload.get("order")))
            except ValueError:
                await send_notification(connection, Notification(
                    title="Error",
                    description=f"Unknown sort order: {payload.get('order')}",
                    variant="destructive"
                ))
                continue
            await send_view(connection, controller, demo)

        elif message_type == "ping":
            # Ответ на ping для поддержания соединения
            await connection.send("pong")

        else:
            logger.debug(f"Ignored message type {message_type!r} from user {connection.user_id}")


@router.websocket("/entries/ws")
async def entries_websocket(
    websocket: WebSocket,
    token: Optional[str] = None,
    search: str = "",
    sort: SortOrder = DEFAULT_SORT_ORDER
):
    """Живой список записей текущего пользователя"""
    state = websocket.app.state
    # Браузер не умеет ставить заголовки сокету, поэтому токен можно передать в query
    token = token or extract_token_from_header(websocket.headers.get("authorization"))
    if state.demo and not token:
        # Без cookie у вкладки своя песочница на время подключения
        visitor_id = websocket.cookies.get(state.settings.demo_cookie_name)
        token = visitor_id if is_visitor_id(visitor_id) else new_visitor_id()
    await websocket.accept()

    async with SessionGate(state.identity, token) as gate:
        if not gate.is_authenticated:
            await websocket.send_text(json.dumps({"type": "redirect", "data": {"location": LOGIN_ROUTE}}))
            await websocket.close(code=SESSION_ENDED_CLOSE_CODE)
            return

        adapter = EntryStoreAdapter(store_for(state, gate.session), gate.session)
        controller = EntryListController(search_text=search, sort_order=sort)
        connection = state.connections.connect(websocket, gate.session.uid)
        live = adapter.subscribe()

        pump_task = asyncio.create_task(pump_snapshots(connection, live, controller, state.demo))
        receive_task = asyncio.create_task(receive_messages(connection, controller, state.demo))
        redirect_task = asyncio.create_task(gate.wait_for_redirect())

        try:
            done, _ = await asyncio.wait(
                {receive_task, redirect_task},
                return_when=asyncio.FIRST_COMPLETED
            )

            if redirect_task in done:
                await connection.send("redirect", {"location": redirect_task.result()})
                await websocket.close(code=SESSION_ENDED_CLOSE_CODE)
            elif receive_task.exception() is not None and not isinstance(receive_task.exception(), WebSocketDisconnect):
                error = receive_task.exception()
                logger.error(f"WebSocket error: {error!r}", exc_info=error)
                await websocket.close(code=INTERNAL_ERROR_CLOSE_CODE)
        finally:
            live.close()
            state.connections.disconnect(connection)
            for task in (pump_task, receive_task, redirect_task):
                task.cancel()
            await asyncio.gather(pump_task, receive_task, redirect_task, return_exceptions=True)
