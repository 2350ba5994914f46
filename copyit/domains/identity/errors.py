class AuthError(Exception):
    """Ошибка провайдера идентификации с машинным кодом вида auth/..."""
    
    def __init__(self, code: str, message: str = ""):
        self.code = code
        super().__init__(message or code)


INVALID_CREDENTIAL = "auth/invalid-credential"
USER_DISABLED = "auth/user-disabled"
USER_NOT_FOUND = "auth/user-not-found"
WRONG_PASSWORD = "auth/wrong-password"
MISSING_PASSWORD = "auth/missing-password"
INVALID_EMAIL = "auth/invalid-email"
EMAIL_ALREADY_IN_USE = "auth/email-already-in-use"
WEAK_PASSWORD = "auth/weak-password"
OPERATION_NOT_ALLOWED = "auth/operation-not-allowed"
INTERNAL_ERROR = "auth/internal-error"
