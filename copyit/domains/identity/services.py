import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional, Set

from pydantic import EmailStr, TypeAdapter, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from copyit.core.config import Settings
from copyit.core.security import build_password_context, create_access_token, verify_token
from copyit.db.repositories.user_repository import UserRepository
from copyit.domains.identity import errors
from copyit.domains.identity.entities import AuthSession, Principal, User
from copyit.domains.identity.errors import AuthError

logger = logging.getLogger(__name__)

SessionCallback = Callable[[Optional[Principal]], None]

MIN_PASSWORD_LENGTH = 6

_email_adapter = TypeAdapter(EmailStr)


def normalize_email(email: str) -> str:
    """Проверка формата email; неверный адрес дает auth/invalid-email"""
    try:
        return _email_adapter.validate_python((email or "").strip()).lower()
    except ValidationError:
        raise AuthError(errors.INVALID_EMAIL)


class IdentityProvider(ABC):
    """Контракт провайдера идентификации"""

    def __init__(self):
        self._listeners: Dict[str, Set[SessionCallback]] = {}

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> AuthSession:
        ...

    @abstractmethod
    async def sign_up(self, email: str, password: str) -> Principal:
        ...

    @abstractmethod
    async def resolve(self, token: Optional[str]) -> Optional[Principal]:
        """Принципал по токену или None для недействительной сессии"""

    async def sign_out(self, token: str) -> None:
        self._revoke(token)
        for callback in list(self._listeners.pop(token, ())):
            callback(None)

    async def on_session_change(self, token: Optional[str], callback: SessionCallback) -> Callable[[], None]:
        """Подписка на изменения сессии.

        Колбэк вызывается сразу с текущим состоянием и еще раз с None, когда
        сессия завершается. Возвращает функцию отписки.
        """
        principal = await self.resolve(token)
        key = token or ""
        if principal is not None:
            self._listeners.setdefault(key, set()).add(callback)
        callback(principal)

        def unsubscribe() -> None:
            listeners = self._listeners.get(key)
            if listeners is None:
                return
            listeners.discard(callback)
            if not listeners:
                del self._listeners[key]

        return unsubscribe

    def listener_count(self) -> int:
        return sum(len(listeners) for listeners in self._listeners.values())

    def _revoke(self, token: str) -> None:
        pass


class IdentityService(IdentityProvider):
    """Сервис идентификации и аутентификации пользователей поверх базы данных"""

    def __init__(self, session_factory: async_sessionmaker, settings: Settings):
        super().__init__()
        self.session_factory = session_factory
        self.settings = settings
        self.pwd_context = build_password_context(settings.bcrypt_rounds)
        # jti отозванного токена -> его срок действия (unix time)
        self._revoked: Dict[str, float] = {}

    async def sign_up(self, email: str, password: str) -> Principal:
        """Регистрация нового пользователя"""
        email = normalize_email(email)

        if not self.settings.allow_sign_up:
            raise AuthError(errors.OPERATION_NOT_ALLOWED)

        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise AuthError(errors.WEAK_PASSWORD)

        try:
            async with self.session_factory() as session:
                user_repository = UserRepository(session)
                if await user_repository.email_exists(email):
                    raise AuthError(errors.EMAIL_ALREADY_IN_USE)

                user = User.create_user(email=email, password=password, pwd_context=self.pwd_context)
                try:
                    user = await user_repository.create(user)
                except ValueError:
                    # Гонка двух регистраций с одним адресом
                    raise AuthError(errors.EMAIL_ALREADY_IN_USE)
        except SQLAlchemyError as e:
            logger.error(f"Sign up failed: {e!r}")
            raise AuthError(errors.INTERNAL_ERROR) from e

        logger.info(f"User {user.uuid} registered")
        return user.to_principal()

    async def sign_in(self, email: str, password: str) -> AuthSession:
        """Вход пользователя и создание JWT токена"""
        email = normalize_email(email)

        if not password:
            raise AuthError(errors.MISSING_PASSWORD)

        try:
            async with self.session_factory() as session:
                user = await UserRepository(session).get_by_email(email)
        except SQLAlchemyError as e:
            logger.error(f"Sign in failed: {e!r}")
            raise AuthError(errors.INTERNAL_ERROR) from e

        if user is None:
            raise AuthError(errors.USER_NOT_FOUND)

        if not user.is_active:
            raise AuthError(errors.USER_DISABLED)

        if not user.authenticate(password, self.pwd_context):
            raise AuthError(errors.WRONG_PASSWORD)

        token = create_access_token(
            data={"sub": str(user.uuid), "email": user.email},
            secret=self.settings.jwt_secret,
            algorithm=self.settings.jwt_algorithm,
            expires_delta=timedelta(minutes=self.settings.access_token_expire_minutes)
        )
        return AuthSession(principal=user.to_principal(), access_token=token)

    async def resolve(self, token: Optional[str]) -> Optional[Principal]:
        """Получение текущего пользователя из JWT токена"""
        if not token:
            return None

        payload = verify_token(token, self.settings.jwt_secret, self.settings.jwt_algorithm)
        if payload is None or payload.get("jti") in self._revoked:
            return None

        try:
            user_uuid = uuid.UUID(str(payload.get("sub")))
        except ValueError:
            return None

        try:
            async with self.session_factory() as session:
                user = await UserRepository(session).get_by_uuid(user_uuid)
        except SQLAlchemyError as e:
            logger.error(f"Session lookup failed: {e!r}")
            return None

        if user is None or not user.is_active:
            return None

        return user.to_principal()

    def _revoke(self, token: str) -> None:
        payload = verify_token(token, self.settings.jwt_secret, self.settings.jwt_algorithm)
        if not payload or not payload.get("jti"):
            return

        # Истекшие токены verify_token отвергает сам
        now = datetime.now(timezone.utc).timestamp()
        for jti, expires_at in list(self._revoked.items()):
            if expires_at <= now:
                del self._revoked[jti]

        self._revoked[payload["jti"]] = float(payload.get("exp") or now)
