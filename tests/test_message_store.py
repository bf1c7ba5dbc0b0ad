"""
Tests for the Message Store

Covers appending, cursor listing and clearing, and how each one
updates the room counters.
"""

from datetime import datetime, timezone

import pytest

from chat_server.errors import InvalidInput, RoomNotFound, RoomSuspended
from chat_server.models import SYSTEM_NICKNAME, SystemMessage, UserMessage
from chat_server.store import ChatStore

FROZEN = datetime(2025, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def store():
    with ChatStore() as chat_store:
        chat_store.rooms.create_or_get_room("abc123", "Lobby")
        yield chat_store


@pytest.fixture
def frozen_store():
    """Store whose clock never moves, to force timestamp collisions."""
    with ChatStore(clock=lambda: FROZEN) as chat_store:
        chat_store.rooms.create_or_get_room("abc123")
        yield chat_store


def _room(store, code="ABC123"):
    return store.rooms.get_room(code)


# ----------------------------------------------------------------------------
# append
# ----------------------------------------------------------------------------


class TestAppend:
    def test_append_returns_user_message(self, store):
        message = store.messages.append("abc123", "alice", "  hi  ")

        assert isinstance(message, UserMessage)
        assert message.room_code == "ABC123"
        assert message.nickname == "alice"
        assert message.text == "hi"
        assert message.is_system is False
        assert message.id
        assert message.sequence == 1

    def test_append_updates_room_counters(self, store):
        message = store.messages.append("abc123", "alice", "hi")

        room = _room(store)
        assert room.message_count == 1
        assert room.last_message_at == message.created_at

    def test_message_count_matches_listing(self, store):
        for i in range(5):
            store.messages.append("abc123", "alice", f"m{i}")
        assert _room(store).message_count == len(store.messages.list_messages("abc123"))
        assert store.messages.count("abc123") == 5

    def test_timestamps_strictly_increase(self, frozen_store):
        messages = [frozen_store.messages.append("abc123", "a", str(i)) for i in range(3)]
        stamps = [m.created_at for m in messages]
        assert stamps == sorted(stamps)
        assert len(set(stamps)) == 3

    def test_text_length_boundary(self, store):
        store.messages.append("abc123", "alice", "a" * 200)
        with pytest.raises(InvalidInput):
            store.messages.append("abc123", "alice", "a" * 201)
        assert _room(store).message_count == 1

    def test_empty_text_rejected(self, store):
        with pytest.raises(InvalidInput):
            store.messages.append("abc123", "alice", "   ")

    def test_reserved_nickname_rejected(self, store):
        with pytest.raises(InvalidInput, match="reserved"):
            store.messages.append("abc123", "Server", "I am the server")

    def test_missing_room_without_auto_create(self, store):
        with pytest.raises(RoomNotFound):
            store.messages.append("nope", "alice", "hi")
        assert store.rooms.room_exists("nope") is False

    def test_missing_room_with_auto_create(self):
        with ChatStore(auto_create_on_send=True) as chat_store:
            message = chat_store.messages.append("fresh", "alice", "hi")
            room = chat_store.rooms.get_room("FRESH")
            assert room is not None
            assert room.message_count == 1
            assert room.last_message_at == message.created_at

    def test_suspended_room_rejects_and_leaves_state(self, store):
        store.messages.append("abc123", "alice", "before")
        store.rooms.set_suspended("abc123", True)
        before = _room(store)

        with pytest.raises(RoomSuspended) as excinfo:
            store.messages.append("abc123", "alice", "during")

        assert excinfo.value.status == 403
        assert _room(store) == before
        assert len(store.messages.list_messages("abc123")) == 1

    def test_system_message_allowed_while_suspended(self, store):
        store.rooms.set_suspended("abc123", True)
        message = store.messages.append_system("abc123", "This room has been suspended")

        assert isinstance(message, SystemMessage)
        assert message.is_system is True
        assert message.nickname == SYSTEM_NICKNAME
        assert _room(store).message_count == 1


# ----------------------------------------------------------------------------
# list_messages / recent_messages
# ----------------------------------------------------------------------------


class TestListMessages:
    def test_ascending_order(self, store):
        sent = [store.messages.append("abc123", "alice", f"m{i}") for i in range(5)]
        listed = store.messages.list_messages("abc123")
        assert [m.id for m in listed] == [m.id for m in sent]

    def test_after_is_exclusive(self, store):
        sent = [store.messages.append("abc123", "alice", f"m{i}") for i in range(5)]
        listed = store.messages.list_messages("abc123", after=sent[1].created_at)
        assert [m.id for m in listed] == [m.id for m in sent[2:]]

    def test_after_newest_is_empty(self, store):
        last = store.messages.append("abc123", "alice", "hi")
        assert store.messages.list_messages("abc123", after=last.created_at) == []

    def test_cursor_paging_has_no_gaps_or_overlaps(self, frozen_store):
        sent = [frozen_store.messages.append("abc123", "a", f"m{i}") for i in range(23)]

        received = []
        cursor = None
        while True:
            page = frozen_store.messages.list_messages("abc123", after=cursor, limit=5)
            received.extend(page)
            if len(page) < 5:
                break
            cursor = page[-1].created_at

        assert [m.id for m in received] == [m.id for m in sent]

    def test_limit_keeps_oldest(self, store):
        sent = [store.messages.append("abc123", "alice", f"m{i}") for i in range(5)]
        listed = store.messages.list_messages("abc123", limit=2)
        assert [m.id for m in listed] == [m.id for m in sent[:2]]

    def test_recent_keeps_newest_ascending(self, store):
        sent = [store.messages.append("abc123", "alice", f"m{i}") for i in range(5)]
        recent = store.messages.recent_messages("abc123", 2)
        assert [m.id for m in recent] == [m.id for m in sent[3:]]

    def test_missing_room_raises(self, store):
        with pytest.raises(RoomNotFound):
            store.messages.list_messages("nope")

    def test_invalid_cursor(self, store):
        with pytest.raises(InvalidInput):
            store.messages.list_messages("abc123", after="garbage")

    def test_cursor_in_other_format(self, store):
        message = store.messages.append("abc123", "alice", "hi")
        cursor = message.created_at.replace("+00:00", "Z")
        assert store.messages.list_messages("abc123", after=cursor) == []

    def test_rooms_are_isolated(self, store):
        store.rooms.create_or_get_room("other")
        store.messages.append("abc123", "alice", "here")
        store.messages.append("other", "bob", "there")
        assert [m.text for m in store.messages.list_messages("abc123")] == ["here"]


# ----------------------------------------------------------------------------
# clear
# ----------------------------------------------------------------------------


class TestClear:
    def test_clear(self, store):
        for i in range(3):
            store.messages.append("abc123", "alice", f"m{i}")

        assert store.messages.clear("abc123") == 3

        room = _room(store)
        assert room.message_count == 0
        assert room.last_message_at is None
        assert store.messages.list_messages("abc123") == []
        assert room.name == "Lobby"

    def test_clear_empty_room(self, store):
        assert store.messages.clear("abc123") == 0

    def test_clear_missing_room(self, store):
        with pytest.raises(RoomNotFound):
            store.messages.clear("nope")

    def test_append_after_clear(self, store):
        store.messages.append("abc123", "alice", "old")
        store.messages.clear("abc123")
        store.messages.append("abc123", "alice", "new")
        assert [m.text for m in store.messages.list_messages("abc123")] == ["new"]
        assert _room(store).message_count == 1


# ----------------------------------------------------------------------------
# End-to-end scenario
# ----------------------------------------------------------------------------


def test_room_lifecycle_scenario(store):
    """Create, chat, poll, suspend, clear and delete a room."""
    room = store.rooms.create_or_get_room("abc123")
    assert room.code == "ABC123"

    first = store.messages.append("ABC123", "alice", "hello")
    second = store.messages.append("abc123", "bob", "hi alice")
    assert store.messages.list_messages("abc123", after=first.created_at) == [second]

    store.rooms.set_suspended("abc123", True)
    with pytest.raises(RoomSuspended):
        store.messages.append("abc123", "alice", "still there?")
    store.rooms.set_suspended("abc123", False)

    assert store.messages.clear("abc123") == 2
    store.rooms.delete_room("abc123")

    assert store.rooms.get_room_info("abc123").exists is False
    with pytest.raises(RoomNotFound):
        store.messages.append("abc123", "alice", "anyone?")
