"""Тесты формы создания и редактирования записи."""

import pytest

from conftest import BrokenStore, make_entry

from copyit.core.notifications import Notifier
from copyit.domains.entries.adapter import EntryStoreAdapter
from copyit.domains.entries.editor import EntryEditor, validate_entry_form
from copyit.domains.entries.errors import FormValidationError, PersistenceError
from copyit.domains.entries.store import MemoryDocumentStore


class RecordingStore(MemoryDocumentStore):
    """Хранилище, которое запоминает вызовы записи"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls = []

    async def add(self, record):
        self.calls.append(("add", record))
        return await super().add(record)

    async def update(self, entry_id, fields):
        self.calls.append(("update", entry_id, fields))
        return await super().update(entry_id, fields)


def summaries(notifications):
    return [(n.title, n.description, n.variant) for n in notifications]


class TestValidateEntryForm:
    def test_collects_errors_per_field(self):
        with pytest.raises(FormValidationError) as exc_info:
            validate_entry_form("   ", "")

        assert exc_info.value.errors == {
            "title": "Title is required.",
            "content": "Content is required.",
        }

    def test_strips_title_and_keeps_content(self):
        form = validate_entry_form("  Title  ", "  body\n")

        assert form.title == "Title"
        assert form.content == "  body\n"

    def test_rejects_too_long_title(self):
        with pytest.raises(FormValidationError) as exc_info:
            validate_entry_form("x" * 256, "body")

        assert exc_info.value.errors == {"title": "Title must be at most 255 characters."}

    def test_content_has_no_length_limit(self):
        form = validate_entry_form("Dump", "x" * 2_000_000)

        assert len(form.content) == 2_000_000


class TestEntryEditor:
    @pytest.mark.asyncio
    async def test_empty_title_never_reaches_store(self, alice):
        store = RecordingStore()
        notifier = Notifier()
        editor = EntryEditor(EntryStoreAdapter(store, alice), notifier)

        result = await editor.submit("", "some content")

        assert result is None
        assert editor.errors == {"title": "Title is required."}
        assert editor.is_open
        assert store.calls == []
        assert len(notifier) == 0

    @pytest.mark.asyncio
    async def test_create_closes_form_and_notifies(self, alice):
        store = RecordingStore()
        notifier = Notifier()
        editor = EntryEditor(EntryStoreAdapter(store, alice), notifier)

        assert editor.heading == "Add New Entry"
        entry_id = await editor.submit("  Snippet ", "print(1)")

        assert entry_id is not None
        assert store.calls == [("add", {"title": "Snippet", "content": "print(1)", "user_id": alice.uid})]
        assert not editor.is_open
        assert not editor.is_submitting
        assert summaries(notifier.drain()) == [("Success", "Entry added successfully.", "default")]

    @pytest.mark.asyncio
    async def test_edit_prefills_and_updates(self, alice):
        store = RecordingStore(seed=[make_entry("7", "Draft", 1, content="old")])
        notifier = Notifier()
        entry = await store.get("7")
        editor = EntryEditor(EntryStoreAdapter(store, alice), notifier, entry=entry)

        assert editor.heading == "Edit Entry"
        assert (editor.title, editor.content) == ("Draft", "old")

        assert await editor.submit("Final", "new") == "7"

        assert store.calls == [("update", "7", {"title": "Final", "content": "new"})]
        assert (await store.get("7")).title == "Final"
        assert summaries(notifier.drain()) == [("Success", "Entry updated successfully.", "default")]

    @pytest.mark.asyncio
    async def test_demo_mode_notifications(self, alice):
        store = MemoryDocumentStore(seed=[make_entry("1", "Demo", 1)])
        notifier = Notifier()
        adapter = EntryStoreAdapter(store, alice)

        await EntryEditor(adapter, notifier, demo=True).submit("New", "x")
        await EntryEditor(adapter, notifier, entry=await store.get("1"), demo=True).submit("Demo 2", "y")

        assert summaries(notifier.drain()) == [
            ("Success (Demo)", "Entry added in demo mode.", "default"),
            ("Success (Demo)", "Entry updated in demo mode.", "default"),
        ]

    @pytest.mark.asyncio
    async def test_store_failure_keeps_form_open(self, alice):
        notifier = Notifier()
        editor = EntryEditor(EntryStoreAdapter(BrokenStore(), alice), notifier)

        result = await editor.submit("Title", "Content")

        assert result is None
        assert editor.is_open
        assert not editor.is_submitting
        assert isinstance(editor.failure, PersistenceError)
        assert summaries(notifier.drain()) == [("Error", "Could not save entry.", "destructive")]

    @pytest.mark.asyncio
    async def test_editing_deleted_entry_fails(self, alice):
        store = MemoryDocumentStore(seed=[make_entry("9", "Gone", 1)])
        entry = await store.get("9")
        await store.delete("9")
        notifier = Notifier()
        editor = EntryEditor(EntryStoreAdapter(store, alice), notifier, entry=entry)

        assert await editor.submit("Back", "again") is None
        assert editor.is_open
        assert summaries(notifier.drain()) == [("Error", "Could not save entry.", "destructive")]

    def test_cancel_closes_without_saving(self, alice):
        store = RecordingStore()
        editor = EntryEditor(EntryStoreAdapter(store, alice), Notifier())

        editor.cancel()

        assert not editor.is_open
        assert store.calls == []
