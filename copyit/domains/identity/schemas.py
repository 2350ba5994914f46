from pydantic import BaseModel, ConfigDict
from typing import List, Optional

from copyit.core.notifications import Notification


class Credentials(BaseModel):
    """Схема формы входа и регистрации"""
    # Формат email проверяет провайдер, чтобы вернуть auth/invalid-email
    email: str = ""
    password: str = ""


class PrincipalResponse(BaseModel):
    """Схема для ответа с данными пользователя"""
    uid: str
    email: str

    model_config = ConfigDict(from_attributes=True)


class Token(BaseModel):
    """Схема для JWT токена"""
    access_token: str
    token_type: str = "bearer"
    principal: PrincipalResponse
    redirect: Optional[str] = None
    notifications: List[Notification] = []


class SignUpResponse(BaseModel):
    """Схема для ответа на регистрацию"""
    principal: PrincipalResponse
    redirect: Optional[str] = None
    notifications: List[Notification] = []


class AuthErrorResponse(BaseModel):
    """Схема для ответа с ошибкой аутентификации"""
    code: Optional[str] = None
    message: str
    notifications: List[Notification] = []


class CredentialScreen(BaseModel):
    """Состояние экрана входа или регистрации"""
    screen: str
    configured: bool
    redirect: Optional[str] = None


class RedirectResponse(BaseModel):
    redirect: str
    notifications: List[Notification] = []
