import logging
from typing import Dict, Optional

from copyit.core.notifications import Notifier
from copyit.domains.identity import errors
from copyit.domains.identity.entities import AuthSession, Principal
from copyit.domains.identity.errors import AuthError
from copyit.domains.identity.gate import HOME_ROUTE, LOGIN_ROUTE
from copyit.domains.identity.services import IdentityProvider

logger = logging.getLogger(__name__)

SIGN_IN_ERRORS: Dict[str, str] = {
    errors.INVALID_CREDENTIAL: "Invalid email or password.",
    errors.USER_DISABLED: "This user account has been disabled.",
    errors.USER_NOT_FOUND: "No account found with this email.",
    errors.WRONG_PASSWORD: "Incorrect password. Please try again.",
    errors.INVALID_EMAIL: "Please enter a valid email address.",
}

SIGN_UP_ERRORS: Dict[str, str] = {
    errors.EMAIL_ALREADY_IN_USE: "This email is already in use. Please sign in.",
    errors.WEAK_PASSWORD: "The password is too weak. Please use at least 6 characters.",
    errors.INVALID_EMAIL: "Please enter a valid email address.",
    errors.OPERATION_NOT_ALLOWED: "Sign up is currently disabled. Please contact the administrator.",
}


def sign_in_message(code: str) -> str:
    return SIGN_IN_ERRORS.get(code, f"An unexpected error occurred: {code}")


def sign_up_message(code: str) -> str:
    return SIGN_UP_ERRORS.get(code, f"An unexpected error occurred. (Code: {code})")


class CredentialForm:
    """Форма входа и регистрации по email и паролю"""

    def __init__(
        self,
        identity: IdentityProvider,
        notifier: Notifier,
        configured: bool = True,
        email: str = "",
        password: str = ""
    ):
        self.identity = identity
        self.notifier = notifier
        self.configured = configured
        self.email = email
        self.password = password
        self.is_loading = False
        self.redirect_to: Optional[str] = None
        self.error: Optional[AuthError] = None
        self.error_message: Optional[str] = None

    @property
    def inputs_disabled(self) -> bool:
        return self.is_loading

    async def sign_in(self) -> Optional[AuthSession]:
        """Вход; при успехе форма уводит на главную"""
        if not self._ready("Please provide backend configuration to sign in."):
            return None

        self._start()
        try:
            session = await self.identity.sign_in(self.email, self.password)
        except AuthError as e:
            self._fail(e, "Authentication Error", sign_in_message(e.code))
            return None
        finally:
            self.is_loading = False

        logger.info(f"User {session.principal.uid} signed in")
        self.redirect_to = HOME_ROUTE
        return session

    async def sign_up(self) -> Optional[Principal]:
        """Регистрация; сессия не создается, пользователь идет на экран входа"""
        if not self._ready("Please provide backend configuration to create an account."):
            return None

        self._start()
        try:
            principal = await self.identity.sign_up(self.email, self.password)
        except AuthError as e:
            self._fail(e, "Sign Up Error", sign_up_message(e.code))
            return None
        finally:
            self.is_loading = False

        self.notifier.toast(
            "Account Created",
            "You have successfully signed up. Redirecting to sign in..."
        )
        self.redirect_to = LOGIN_ROUTE
        return principal

    def _ready(self, description: str) -> bool:
        if self.is_loading:
            return False
        if not self.configured:
            self.notifier.error("Backend Not Configured", description)
            return False
        return True

    def _start(self) -> None:
        self.is_loading = True
        self.redirect_to = None
        self.error = None
        self.error_message = None

    def _fail(self, error: AuthError, title: str, message: str) -> None:
        logger.info(f"{title}: {error.code}")
        self.error = error
        self.error_message = message
        self.notifier.error(title, message)
