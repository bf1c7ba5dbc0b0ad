"""
Tests for Concurrent Store Access

Handlers call the store from a thread pool; these tests drive it the
same way.
"""

from concurrent.futures import ThreadPoolExecutor

import pytest

from chat_server.errors import RoomNotFound
from chat_server.persistence import JsonFileBackend, MemoryBackend, SqliteBackend
from chat_server.store import ChatStore


@pytest.fixture(params=["memory", "json", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        backend = MemoryBackend()
    elif request.param == "json":
        backend = JsonFileBackend(tmp_path / "rooms.json")
    else:
        backend = SqliteBackend(tmp_path / "chat.db")
    with ChatStore(backend) as chat_store:
        chat_store.rooms.create_or_get_room("abc123")
        yield chat_store


def test_two_concurrent_appends(store):
    with ThreadPoolExecutor(max_workers=2) as pool:
        futures = [
            pool.submit(store.messages.append, "abc123", "alice", "one"),
            pool.submit(store.messages.append, "abc123", "bob", "two"),
        ]
        messages = [future.result() for future in futures]

    assert messages[0].id != messages[1].id
    assert store.rooms.get_room("abc123").message_count == 2
    assert len(store.messages.list_messages("abc123")) == 2


def test_many_concurrent_appends_keep_counters_exact(store):
    with ThreadPoolExecutor(max_workers=8) as pool:
        futures = [
            pool.submit(store.messages.append, "abc123", f"user{i % 4}", f"m{i}")
            for i in range(100)
        ]
        messages = [future.result() for future in futures]

    listed = store.messages.list_messages("abc123")
    room = store.rooms.get_room("abc123")

    assert len({m.id for m in messages}) == 100
    assert len({m.created_at for m in messages}) == 100
    assert room.message_count == len(listed) == 100
    assert room.last_message_at == listed[-1].created_at
    assert [m.sort_key for m in listed] == sorted(m.sort_key for m in listed)


def test_concurrent_creates_yield_one_room():
    with ChatStore() as chat_store:
        with ThreadPoolExecutor(max_workers=8) as pool:
            rooms = list(pool.map(chat_store.rooms.create_or_get_room, ["new"] * 20))

        assert len({room.created_at for room in rooms}) == 1
        assert len(chat_store.rooms.list_rooms()) == 1


def test_append_racing_clear_is_all_or_nothing(store):
    for i in range(10):
        store.messages.append("abc123", "alice", f"old{i}")

    with ThreadPoolExecutor(max_workers=4) as pool:
        appends = [
            pool.submit(store.messages.append, "abc123", "bob", f"new{i}")
            for i in range(10)
        ]
        clear = pool.submit(store.messages.clear, "abc123")
        for future in appends:
            future.result()
        clear.result()

    listed = store.messages.list_messages("abc123")
    room = store.rooms.get_room("abc123")
    assert room.message_count == len(listed)
    assert all(m.text.startswith("new") for m in listed)


def test_append_racing_delete(store):
    def append():
        try:
            return store.messages.append("abc123", "alice", "hi")
        except RoomNotFound:
            return None

    with ThreadPoolExecutor(max_workers=4) as pool:
        appends = [pool.submit(append) for _ in range(20)]
        deleted = pool.submit(store.rooms.delete_room, "abc123")
        for future in appends:
            future.result()

    assert deleted.result() is True
    assert store.rooms.get_room_info("abc123").exists is False
    assert store.backend.count_messages("ABC123") == 0
