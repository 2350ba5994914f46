import asyncio
import logging
from typing import Callable, Optional

from copyit.domains.identity.entities import Principal
from copyit.domains.identity.services import IdentityProvider

logger = logging.getLogger(__name__)

LOGIN_ROUTE = "/login"
HOME_ROUTE = "/"


class SessionGate:
    """Пропускает на главную только аутентифицированных посетителей.

    Подписывается на изменения сессии у провайдера: пока принципал есть,
    он хранится в `session`; когда сессии нет или она закончилась, гейт
    отправляет посетителя на экран входа. Слушатель снимается в `detach`,
    в том числе при выходе из `async with`.
    """

    def __init__(
        self,
        identity: IdentityProvider,
        token: Optional[str],
        navigate: Optional[Callable[[str], None]] = None
    ):
        self.identity = identity
        self.token = token
        self.session: Optional[Principal] = None
        self.redirect_to: Optional[str] = None
        self._navigate = navigate
        self._redirected = asyncio.Event()
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def is_authenticated(self) -> bool:
        return self.session is not None

    async def attach(self) -> Optional[Principal]:
        if self._unsubscribe is None:
            self._unsubscribe = await self.identity.on_session_change(self.token, self._on_session_change)
        return self.session

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def credential_screen_redirect(self) -> Optional[str]:
        """Куда увести посетителя с экрана входа: вошедшему там делать нечего"""
        return HOME_ROUTE if self.is_authenticated else None

    async def wait_for_redirect(self) -> str:
        await self._redirected.wait()
        return self.redirect_to

    def _on_session_change(self, principal: Optional[Principal]) -> None:
        if principal is not None:
            self.session = principal
            return

        if self.session is not None:
            logger.info(f"Session of {self.session.uid} ended")
        self.session = None
        self.redirect_to = LOGIN_ROUTE
        self._redirected.set()
        if self._navigate is not None:
            self._navigate(LOGIN_ROUTE)

    async def __aenter__(self) -> "SessionGate":
        await self.attach()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.detach()
