import re
import uuid
from typing import Optional

from copyit.domains.identity.entities import AuthSession, Principal
from copyit.domains.identity.errors import AuthError, OPERATION_NOT_ALLOWED
from copyit.domains.identity.services import IdentityProvider

DEMO_UID_PREFIX = "mock-user"
DEMO_EMAIL = "demo@example.com"

_VISITOR_ID = re.compile(r"[0-9a-f]{32}")


def new_visitor_id() -> str:
    return uuid.uuid4().hex


def is_visitor_id(value: Optional[str]) -> bool:
    return bool(value) and _VISITOR_ID.fullmatch(value) is not None


def demo_principal(visitor_id: str) -> Principal:
    """Демо-пользователь одного посетителя"""
    return Principal(uid=f"{DEMO_UID_PREFIX}-{visitor_id}", email=DEMO_EMAIL)


class DemoIdentityProvider(IdentityProvider):
    """Провайдер демо-режима.

    Токеном служит id посетителя из cookie: каждый посетитель получает
    своего демо-пользователя и видит только свои записи.
    """

    async def sign_in(self, email: str, password: str) -> AuthSession:
        raise AuthError(OPERATION_NOT_ALLOWED, "Backend is not configured")

    async def sign_up(self, email: str, password: str) -> Principal:
        raise AuthError(OPERATION_NOT_ALLOWED, "Backend is not configured")

    async def resolve(self, token: Optional[str]) -> Optional[Principal]:
        if not is_visitor_id(token):
            return None
        return demo_principal(token)
