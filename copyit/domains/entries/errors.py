from typing import Dict


class PersistenceError(Exception):
    """Операция с хранилищем записей завершилась ошибкой"""


class EntryNotFoundError(Exception):
    """Запись не существует или принадлежит другому пользователю"""
    
    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Entry {entry_id} not found")


class FormValidationError(Exception):
    """Ошибки заполнения формы по полям"""
    
    def __init__(self, errors: Dict[str, str]):
        self.errors = errors
        super().__init__("; ".join(errors.values()))
