from copyit.domains.identity.entities import AuthSession, Principal, User
from copyit.domains.identity.errors import AuthError

__all__ = [
    "AuthSession", "Principal", "User",
    "AuthError",
]
