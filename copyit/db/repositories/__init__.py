from copyit.db.repositories.user_repository import UserRepository
from copyit.db.repositories.entry_repository import EntryRepository

__all__ = [
    "UserRepository",
    "EntryRepository",
]
