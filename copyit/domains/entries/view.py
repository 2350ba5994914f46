from enum import Enum
from typing import Iterable, List

from copyit.domains.entries.entities import Entry


class SortOrder(str, Enum):
    LATEST = "latest"
    OLDEST = "oldest"
    ALPHABETICAL = "alphabetical"


DEFAULT_SORT_ORDER = SortOrder.OLDEST


def sort_entries(entries: Iterable[Entry], sort_order: SortOrder) -> List[Entry]:
    """Стабильная сортировка: при равных ключах сохраняется порядок хранилища"""
    if sort_order == SortOrder.ALPHABETICAL:
        return sorted(entries, key=lambda entry: entry.title.casefold())
    if sort_order == SortOrder.OLDEST:
        return sorted(entries, key=Entry.sort_timestamp)
    return sorted(entries, key=Entry.sort_timestamp, reverse=True)


def filter_entries(entries: Iterable[Entry], search_text: str) -> List[Entry]:
    """Фильтр по вхождению строки в заголовок без учета регистра"""
    if not search_text:
        return list(entries)
    needle = search_text.lower()
    return [entry for entry in entries if needle in entry.title.lower()]


def derive_view(
    entries: Iterable[Entry],
    search_text: str = "",
    sort_order: SortOrder = DEFAULT_SORT_ORDER
) -> List[Entry]:
    return filter_entries(sort_entries(entries, sort_order), search_text)


class EntryListController:
    """Текущий снимок, строка поиска и порядок сортировки списка карточек"""
    
    def __init__(self, search_text: str = "", sort_order: SortOrder = DEFAULT_SORT_ORDER):
        self._entries: List[Entry] = []
        self._search_text = search_text
        self._sort_order = SortOrder(sort_order)
        self._view: List[Entry] = []
    
    @property
    def entries(self) -> List[Entry]:
        return list(self._entries)
    
    @property
    def search_text(self) -> str:
        return self._search_text
    
    @property
    def sort_order(self) -> SortOrder:
        return self._sort_order
    
    @property
    def view(self) -> List[Entry]:
        return list(self._view)
    
    def set_entries(self, snapshot: Iterable[Entry]) -> List[Entry]:
        self._entries = list(snapshot)
        return self._refresh()
    
    def set_search_text(self, search_text: str) -> List[Entry]:
        self._search_text = search_text or ""
        return self._refresh()
    
    def set_sort_order(self, sort_order: SortOrder) -> List[Entry]:
        self._sort_order = SortOrder(sort_order)
        return self._refresh()
    
    @property
    def empty_message(self) -> str:
        if self._search_text:
            return f'No results for "{self._search_text}".'
        return 'Click "Add New" to create your first entry.'
    
    def _refresh(self) -> List[Entry]:
        self._view = derive_view(self._entries, self._search_text, self._sort_order)
        return self.view
