from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional

from copyit.core.notifications import Notifier
from copyit.domains.identity.credentials import CredentialForm
from copyit.domains.identity.entities import Principal
from copyit.domains.identity.gate import LOGIN_ROUTE, SessionGate
from copyit.domains.identity.schemas import (
    AuthErrorResponse, Credentials, CredentialScreen, PrincipalResponse,
    RedirectResponse, SignUpResponse, Token
)
from copyit.domains.identity.services import IdentityProvider

router = APIRouter(prefix="/auth", tags=["authentication"])
security = HTTPBearer(auto_error=False)


def get_identity(request: Request) -> IdentityProvider:
    """Провайдер идентификации приложения"""
    return request.app.state.identity


def is_demo(request: Request) -> bool:
    return request.app.state.demo


async def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[str]:
    return credentials.credentials if credentials else None


async def get_session_token(
    request: Request,
    token: Optional[str] = Depends(get_bearer_token)
) -> Optional[str]:
    """Токен сессии; в демо-режиме без токена сессией служит id посетителя"""
    return token or getattr(request.state, "demo_visitor", None)


async def get_current_principal(
    token: Optional[str] = Depends(get_session_token),
    identity: IdentityProvider = Depends(get_identity)
) -> Principal:
    """Зависимость для получения текущего пользователя"""
    async with SessionGate(identity, token) as gate:
        if not gate.is_authenticated:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Could not validate credentials",
                headers={"WWW-Authenticate": "Bearer", "Location": gate.redirect_to or LOGIN_ROUTE},
            )
        return gate.session


def _auth_error(status_code: int, form: CredentialForm, notifier: Notifier) -> JSONResponse:
    notifications = notifier.drain()
    message = form.error_message or (notifications[0].description if notifications else "Request failed")
    body = AuthErrorResponse(
        code=form.error.code if form.error else None,
        message=message,
        notifications=notifications
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


async def _credential_screen(screen: str, token: Optional[str], request: Request) -> CredentialScreen:
    async with SessionGate(get_identity(request), token) as gate:
        return CredentialScreen(
            screen=screen,
            configured=not is_demo(request),
            redirect=gate.credential_screen_redirect()
        )


@router.get("/login", response_model=CredentialScreen)
async def login_screen(request: Request, token: Optional[str] = Depends(get_session_token)):
    """Состояние экрана входа"""
    return await _credential_screen("login", token, request)


@router.get("/register", response_model=CredentialScreen)
async def register_screen(request: Request, token: Optional[str] = Depends(get_session_token)):
    """Состояние экрана регистрации"""
    return await _credential_screen("register", token, request)


@router.post(
    "/register",
    response_model=SignUpResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": AuthErrorResponse}, 503: {"model": AuthErrorResponse}}
)
async def register(credentials: Credentials, request: Request):
    """Регистрация нового пользователя"""
    notifier = Notifier()
    form = CredentialForm(
        get_identity(request),
        notifier,
        configured=not is_demo(request),
        email=credentials.email,
        password=credentials.password
    )

    principal = await form.sign_up()
    if principal is None:
        code = status.HTTP_400_BAD_REQUEST if form.configured else status.HTTP_503_SERVICE_UNAVAILABLE
        return _auth_error(code, form, notifier)

    return SignUpResponse(
        principal=PrincipalResponse(uid=principal.uid, email=principal.email),
        redirect=form.redirect_to,
        notifications=notifier.drain()
    )


@router.post(
    "/login",
    response_model=Token,
    responses={401: {"model": AuthErrorResponse}, 503: {"model": AuthErrorResponse}}
)
async def login(credentials: Credentials, request: Request):
    """Вход пользователя"""
    notifier = Notifier()
    form = CredentialForm(
        get_identity(request),
        notifier,
        configured=not is_demo(request),
        email=credentials.email,
        password=credentials.password
    )

    session = await form.sign_in()
    if session is None:
        code = status.HTTP_401_UNAUTHORIZED if form.configured else status.HTTP_503_SERVICE_UNAVAILABLE
        return _auth_error(code, form, notifier)

    return Token(
        access_token=session.access_token,
        principal=PrincipalResponse(uid=session.principal.uid, email=session.principal.email),
        redirect=form.redirect_to,
        notifications=notifier.drain()
    )


@router.post("/logout", response_model=RedirectResponse)
async def logout(
    token: Optional[str] = Depends(get_bearer_token),
    identity: IdentityProvider = Depends(get_identity)
):
    """Выход пользователя"""
    if token:
        await identity.sign_out(token)
    return RedirectResponse(redirect=LOGIN_ROUTE)


@router.get("/me", response_model=PrincipalResponse)
async def get_current_user_info(principal: Principal = Depends(get_current_principal)):
    """Получение информации о текущем пользователе"""
    return PrincipalResponse(uid=principal.uid, email=principal.email)
