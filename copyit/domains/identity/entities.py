import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from passlib.context import CryptContext


@dataclass(frozen=True)
class Principal:
    """Аутентифицированная личность текущей сессии"""
    uid: str
    email: str


@dataclass(frozen=True)
class AuthSession:
    """Сессия: принципал и выданный ему токен доступа"""
    principal: Principal
    access_token: str


class User:
    """Сущность пользователя домена Identity"""

    def __init__(
        self,
        uuid: uuid.UUID,
        email: str,
        password_hash: str,
        is_active: bool = True,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None
    ):
        self.uuid = uuid
        self.email = email
        self.password_hash = password_hash
        self.is_active = is_active
        self.created_at = created_at
        self.updated_at = updated_at

    def authenticate(self, password: str, pwd_context: CryptContext) -> bool:
        """Проверка пароля пользователя"""
        # bcrypt учитывает только первые 72 байта
        return pwd_context.verify(password[:72], self.password_hash)

    def to_principal(self) -> Principal:
        return Principal(uid=str(self.uuid), email=self.email)

    @classmethod
    def create_user(cls, email: str, password: str, pwd_context: CryptContext) -> "User":
        """Создание нового пользователя с хешированием пароля"""
        return cls(
            uuid=uuid.uuid4(),
            email=email,
            password_hash=pwd_context.hash(password[:72])
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, User):
            return False
        return self.uuid == other.uuid

    def __repr__(self) -> str:
        return f"User(uuid={self.uuid}, email={self.email})"
