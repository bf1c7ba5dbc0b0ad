"""
Tests for the Persistence Backends

Durability across restarts, crash-safe snapshot writes, failure
reporting and the relational backend.
"""

import json
import os
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from peewee import OperationalError

from chat_server.errors import PersistenceFailure, RoomNotFound
from chat_server.models import SystemMessage
from chat_server.persistence import (
    JsonFileBackend,
    MemoryBackend,
    MessageRecord,
    RoomRecord,
    SqliteBackend,
)
from chat_server.store import ChatStore


@pytest.fixture
def snapshot_path(tmp_path):
    return tmp_path / "data" / "rooms.json"


def _open(backend, **kwargs):
    store = ChatStore(backend, **kwargs)
    store.initialize()
    return store


# ----------------------------------------------------------------------------
# JSON snapshot backend
# ----------------------------------------------------------------------------


class TestJsonFileBackend:
    def test_missing_file_starts_empty(self, snapshot_path):
        store = _open(JsonFileBackend(snapshot_path))
        assert store.rooms.list_rooms() == []
        assert not snapshot_path.exists()

    def test_state_survives_restart(self, snapshot_path):
        store = _open(JsonFileBackend(snapshot_path))
        store.rooms.create_or_get_room("abc123", "Lobby")
        first = store.messages.append("abc123", "alice", "hello")
        store.messages.append_system("abc123", "notice")
        store.shutdown()

        reopened = _open(JsonFileBackend(snapshot_path))
        room = reopened.rooms.get_room("abc123")
        assert room.name == "Lobby"
        assert room.message_count == 2

        messages = reopened.messages.list_messages("abc123")
        assert messages[0] == first
        assert isinstance(messages[1], SystemMessage)

    def test_generators_resume_after_restart(self, snapshot_path):
        store = _open(JsonFileBackend(snapshot_path))
        store.rooms.create_or_get_room("abc")
        last = store.messages.append("abc", "alice", "one")
        store.shutdown()

        reopened = _open(JsonFileBackend(snapshot_path))
        message = reopened.messages.append("abc", "alice", "two")
        assert message.sequence > last.sequence
        assert message.created_at > last.created_at

    def test_snapshot_document_format(self, snapshot_path):
        store = _open(JsonFileBackend(snapshot_path))
        store.rooms.create_or_get_room("abc")
        store.messages.append("abc", "alice", "hi")

        document = json.loads(snapshot_path.read_text(encoding="utf-8"))
        assert document["version"] == 1
        assert document["last_sequence"] == 1
        assert document["rooms"]["ABC"]["message_count"] == 1
        assert document["messages"]["ABC"][0]["kind"] == "user"

    def test_no_temp_files_left_behind(self, snapshot_path):
        store = _open(JsonFileBackend(snapshot_path))
        store.rooms.create_or_get_room("abc")
        assert os.listdir(snapshot_path.parent) == ["rooms.json"]

    def test_corrupt_file_raises(self, snapshot_path):
        snapshot_path.parent.mkdir(parents=True)
        snapshot_path.write_text("{not json", encoding="utf-8")

        with pytest.raises(PersistenceFailure, match="Corrupt"):
            _open(JsonFileBackend(snapshot_path))

    def test_corrupt_file_is_not_overwritten(self, snapshot_path):
        snapshot_path.parent.mkdir(parents=True)
        snapshot_path.write_text("[]", encoding="utf-8")
        backend = JsonFileBackend(snapshot_path)
        with pytest.raises(PersistenceFailure):
            backend.open()

        with pytest.raises(PersistenceFailure, match="never loaded"):
            ChatStore(backend).rooms.create_or_get_room("abc")
        assert snapshot_path.read_text(encoding="utf-8") == "[]"

    def test_failed_write_rolls_back(self, snapshot_path):
        store = _open(JsonFileBackend(snapshot_path))
        store.rooms.create_or_get_room("abc")
        store.messages.append("abc", "alice", "kept")

        with patch("chat_server.persistence.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(PersistenceFailure) as excinfo:
                store.messages.append("abc", "alice", "lost")

        assert isinstance(excinfo.value.__cause__, OSError)
        assert [m.text for m in store.messages.list_messages("abc")] == ["kept"]
        assert store.rooms.get_room("abc").message_count == 1
        assert os.listdir(snapshot_path.parent) == ["rooms.json"]

    def test_failed_clear_keeps_messages(self, snapshot_path):
        store = _open(JsonFileBackend(snapshot_path))
        store.rooms.create_or_get_room("abc")
        store.messages.append("abc", "alice", "kept")

        with patch("chat_server.persistence.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(PersistenceFailure):
                store.messages.clear("abc")

        assert store.rooms.get_room("abc").message_count == 1
        assert len(store.messages.list_messages("abc")) == 1

    def test_failed_delete_keeps_room(self, snapshot_path):
        store = _open(JsonFileBackend(snapshot_path))
        store.rooms.create_or_get_room("abc")

        with patch("chat_server.persistence.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(PersistenceFailure):
                store.rooms.delete_room("abc")

        assert store.rooms.room_exists("abc")

    def test_loads_legacy_camel_case_snapshot(self, snapshot_path):
        snapshot_path.parent.mkdir(parents=True)
        legacy = {
            "rooms": {
                "ABC123": {
                    "code": "ABC123",
                    "name": "Lobby",
                    "suspended": False,
                    "createdAt": "2025-01-01T00:00:00.000Z",
                    "messageCount": 99,
                }
            },
            "messages": {
                "ABC123": [
                    {
                        "id": "m2",
                        "roomCode": "ABC123",
                        "nickname": "SERVER",
                        "text": "notice",
                        "createdAt": "2025-01-01T00:00:02.000Z",
                        "isSystem": True,
                    },
                    {
                        "id": "m1",
                        "roomCode": "ABC123",
                        "nickname": "alice",
                        "text": "hello",
                        "createdAt": "2025-01-01T00:00:01.000Z",
                    },
                ]
            },
        }
        snapshot_path.write_text(json.dumps(legacy), encoding="utf-8")

        store = _open(JsonFileBackend(snapshot_path))
        room = store.rooms.get_room("abc123")
        messages = store.messages.list_messages("abc123")

        assert [m.id for m in messages] == ["m1", "m2"]
        assert messages[1].is_system is True
        assert room.message_count == 2
        assert room.last_message_at == messages[-1].created_at
        assert store.messages.append("abc123", "bob", "new").sequence == 3

    def test_orphaned_messages_recover_room(self, snapshot_path):
        snapshot_path.parent.mkdir(parents=True)
        document = {
            "rooms": {},
            "messages": {
                "LOST": [
                    {
                        "id": "m1",
                        "room_code": "LOST",
                        "nickname": "alice",
                        "text": "hi",
                        "created_at": "2025-01-01T00:00:01+00:00",
                        "sequence": 1,
                    }
                ]
            },
        }
        snapshot_path.write_text(json.dumps(document), encoding="utf-8")

        store = _open(JsonFileBackend(snapshot_path))
        assert store.rooms.get_room("lost").message_count == 1


# ----------------------------------------------------------------------------
# SQLite backend
# ----------------------------------------------------------------------------


@pytest.fixture
def sqlite_store(tmp_path):
    store = _open(SqliteBackend(tmp_path / "chat.db"))
    yield store
    store.shutdown()


class TestSqliteBackend:
    def test_create_and_append(self, sqlite_store):
        sqlite_store.rooms.create_or_get_room("abc", "Lobby")
        message = sqlite_store.messages.append("abc", "alice", "hello")

        room = sqlite_store.rooms.get_room("abc")
        assert room.message_count == 1
        assert room.last_message_at == message.created_at
        assert sqlite_store.messages.list_messages("abc") == [message]

    def test_listing_and_paging(self, sqlite_store):
        sqlite_store.rooms.create_or_get_room("abc")
        sent = [sqlite_store.messages.append("abc", "a", f"m{i}") for i in range(6)]

        after = sqlite_store.messages.list_messages("abc", after=sent[2].created_at, limit=2)
        assert [m.id for m in after] == [m.id for m in sent[3:5]]

        recent = sqlite_store.messages.recent_messages("abc", 2)
        assert [m.id for m in recent] == [m.id for m in sent[4:]]

    def test_system_messages_keep_kind(self, sqlite_store):
        sqlite_store.rooms.create_or_get_room("abc")
        sqlite_store.messages.append_system("abc", "notice")
        assert sqlite_store.messages.list_messages("abc")[0].is_system is True

    def test_suspend_rename_clear_delete(self, sqlite_store):
        sqlite_store.rooms.create_or_get_room("abc")
        sqlite_store.messages.append("abc", "alice", "hi")

        sqlite_store.rooms.rename_room("abc", "Renamed")
        sqlite_store.rooms.set_suspended("abc", True)
        room = sqlite_store.rooms.get_room("abc")
        assert (room.name, room.suspended) == ("Renamed", True)

        assert sqlite_store.messages.clear("abc") == 1
        assert sqlite_store.rooms.get_room("abc").message_count == 0

        assert sqlite_store.rooms.delete_room("abc") is True
        with pytest.raises(RoomNotFound):
            sqlite_store.messages.list_messages("abc")

    def test_database_error_becomes_persistence_failure(self, sqlite_store):
        sqlite_store.rooms.create_or_get_room("abc")
        kept = sqlite_store.messages.append("abc", "alice", "kept")

        with patch.object(
            MessageRecord, "insert", side_effect=OperationalError("database is locked")
        ):
            with pytest.raises(PersistenceFailure) as excinfo:
                sqlite_store.messages.append("abc", "alice", "lost")

        assert isinstance(excinfo.value.__cause__, OperationalError)
        room = sqlite_store.rooms.get_room("abc")
        assert room.message_count == 1
        assert room.last_message_at == kept.created_at
        assert sqlite_store.messages.list_messages("abc") == [kept]

    def test_failed_room_write_rolls_back_transaction(self, sqlite_store):
        sqlite_store.rooms.create_or_get_room("abc")

        with patch.object(
            RoomRecord, "replace", side_effect=OperationalError("disk I/O error")
        ):
            with pytest.raises(PersistenceFailure):
                sqlite_store.messages.append("abc", "alice", "lost")

        assert sqlite_store.rooms.get_room("abc").message_count == 0
        assert sqlite_store.messages.count("abc") == 0

    def test_state_survives_restart(self, tmp_path):
        path = tmp_path / "chat.db"
        store = _open(SqliteBackend(path))
        store.rooms.create_or_get_room("abc")
        last = store.messages.append("abc", "alice", "one")
        store.shutdown()

        reopened = _open(SqliteBackend(path))
        try:
            assert reopened.messages.list_messages("abc") == [last]
            message = reopened.messages.append("abc", "alice", "two")
            assert message.sequence == last.sequence + 1
            assert message.created_at > last.created_at
        finally:
            reopened.shutdown()


# ----------------------------------------------------------------------------
# Memory backend
# ----------------------------------------------------------------------------


def test_memory_backend_high_water_mark():
    backend = MemoryBackend()
    assert backend.high_water_mark() == (None, 0)

    store = _open(backend)
    store.rooms.create_or_get_room("abc")
    message = store.messages.append("abc", "alice", "hi")
    assert backend.high_water_mark() == (message.created_at, message.sequence)


# ----------------------------------------------------------------------------
# Timestamp floor across clear and restart
# ----------------------------------------------------------------------------


def _stepping_clock(start):
    state = {"now": start}

    def clock():
        state["now"] += timedelta(seconds=1)
        return state["now"]

    return clock


@pytest.mark.parametrize("backend_name", ["json", "sqlite"])
def test_cleared_timestamps_are_not_reissued_after_restart(tmp_path, backend_name):
    def make_backend():
        if backend_name == "json":
            return JsonFileBackend(tmp_path / "rooms.json")
        return SqliteBackend(tmp_path / "chat.db")

    store = _open(
        make_backend(), clock=_stepping_clock(datetime(2025, 1, 1, tzinfo=timezone.utc))
    )
    store.rooms.create_or_get_room("abc")
    cursor = [store.messages.append("abc", "alice", f"m{i}") for i in range(3)][-1]
    store.messages.clear("abc")
    store.shutdown()

    # Clock went backwards across the restart
    reopened = _open(
        make_backend(), clock=_stepping_clock(datetime(2020, 1, 1, tzinfo=timezone.utc))
    )
    try:
        message = reopened.messages.append("abc", "bob", "after restart")
        assert message.created_at > cursor.created_at
        assert reopened.messages.list_messages("abc", after=cursor.created_at) == [
            message
        ]
    finally:
        reopened.shutdown()


def test_memory_backend_remembers_cleared_timestamps():
    backend = MemoryBackend()
    store = _open(backend)
    store.rooms.create_or_get_room("abc")
    message = store.messages.append("abc", "alice", "hi")
    store.messages.clear("abc")

    assert backend.high_water_mark()[0] == message.created_at
