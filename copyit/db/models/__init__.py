from copyit.db.models.user import User
from copyit.db.models.entry import Entry

__all__ = [
    "User",
    "Entry",
]
