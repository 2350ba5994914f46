from copyit.domains.entries.entities import Entry
from copyit.domains.entries.errors import EntryNotFoundError, FormValidationError, PersistenceError
from copyit.domains.entries.view import EntryListController, SortOrder, derive_view

__all__ = [
    "Entry",
    "EntryNotFoundError", "FormValidationError", "PersistenceError",
    "EntryListController", "SortOrder", "derive_view",
]
