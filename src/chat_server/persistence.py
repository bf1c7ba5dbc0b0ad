"""
Persistence Backends

Durable representations behind the room and message stores. Every
backend honours the same contract, so the stores never change with the
backend choice:

    - MemoryBackend: dictionaries only, nothing survives a restart
    - JsonFileBackend: one JSON document rewritten atomically per mutation
    - SqliteBackend: rooms and messages tables through the peewee ORM

Backends return copies; mutating a returned Room never changes stored
state. Failures surface as PersistenceFailure.
"""

import bisect
import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from peewee import (
    BooleanField,
    CharField,
    EXCLUDED,
    DatabaseProxy,
    IntegerField,
    Model,
    PeeweeException,
    SqliteDatabase,
    TextField,
    fn,
)

from .errors import PersistenceFailure
from .ids import normalize_timestamp
from .models import Message, Room, SystemMessage, UserMessage

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


class StorageBackend(ABC):
    """Contract shared by all persistence backends."""

    name = "abstract"

    def open(self) -> None:
        """Load or connect to the underlying storage."""

    def close(self) -> None:
        """Release the underlying storage."""

    @abstractmethod
    def get_room(self, code: str) -> Optional[Room]:
        """Return a copy of the room, or None."""

    @abstractmethod
    def list_rooms(self) -> List[Room]:
        """Return copies of every room, in no particular order."""

    @abstractmethod
    def save_room(self, room: Room) -> None:
        """Insert or replace room metadata."""

    @abstractmethod
    def delete_room(self, code: str) -> bool:
        """Remove a room and all of its messages."""

    @abstractmethod
    def append_message(self, room: Room, message: Message) -> None:
        """Store a message together with the updated owning room."""

    @abstractmethod
    def list_messages(
        self,
        code: str,
        after: Optional[str] = None,
        limit: Optional[int] = None,
        newest: bool = False,
    ) -> List[Message]:
        """
        Return a room's messages in ascending (created_at, sequence) order.

        Args:
            code: Room code
            after: Only messages created strictly after this timestamp
            limit: Maximum number of messages
            newest: Keep the newest `limit` messages instead of the oldest
        """

    @abstractmethod
    def count_messages(self, code: str) -> int:
        """Return how many messages are stored for a room."""

    @abstractmethod
    def clear_messages(self, room: Room) -> int:
        """Drop a room's messages and store its reset metadata."""

    @abstractmethod
    def high_water_mark(self) -> Tuple[Optional[str], int]:
        """Return the latest timestamp ever issued and the highest sequence."""


class MemoryBackend(StorageBackend):
    """
    In-process backend.

    All state sits behind one re-entrant lock. Cross-room reads such as
    list_rooms() copy a snapshot while holding it and release it before
    returning. Each mutation registers an undo step that runs when
    _persist() fails, so memory never gets ahead of what was stored.
    """

    name = "memory"

    def __init__(self):
        self._rooms: Dict[str, Room] = {}
        self._messages: Dict[str, List[Message]] = {}
        self._last_sequence = 0
        self._last_timestamp: Optional[str] = None
        self._lock = threading.RLock()

    def get_room(self, code: str) -> Optional[Room]:
        with self._lock:
            room = self._rooms.get(code)
            return replace(room) if room else None

    def list_rooms(self) -> List[Room]:
        with self._lock:
            return [replace(room) for room in self._rooms.values()]

    def save_room(self, room: Room) -> None:
        with self._lock:
            previous = self._rooms.get(room.code)
            self._rooms[room.code] = replace(room)

            def undo():
                self._restore_room(room.code, previous)

            self._commit(undo)

    def delete_room(self, code: str) -> bool:
        with self._lock:
            if code not in self._rooms:
                return False
            room = self._rooms.pop(code)
            messages = self._messages.pop(code, None)

            def undo():
                self._rooms[code] = room
                if messages is not None:
                    self._messages[code] = messages

            self._commit(undo)
            return True

    def append_message(self, room: Room, message: Message) -> None:
        with self._lock:
            previous = self._rooms.get(room.code)
            previous_sequence = self._last_sequence
            previous_timestamp = self._last_timestamp
            log = self._messages.setdefault(room.code, [])
            bisect.insort(log, message, key=_message_sort_key)
            self._rooms[room.code] = replace(room)
            self._last_sequence = max(self._last_sequence, message.sequence)
            self._last_timestamp = _latest(self._last_timestamp, message.created_at)

            def undo():
                log.remove(message)
                if not log:
                    self._messages.pop(room.code, None)
                self._last_sequence = previous_sequence
                self._last_timestamp = previous_timestamp
                self._restore_room(room.code, previous)

            self._commit(undo)

    def list_messages(
        self,
        code: str,
        after: Optional[str] = None,
        limit: Optional[int] = None,
        newest: bool = False,
    ) -> List[Message]:
        with self._lock:
            log = self._messages.get(code, [])
            start = 0
            if after is not None:
                start = bisect.bisect_right(
                    log, after, key=lambda message: message.created_at
                )
            selected = log[start:]
        if limit is not None:
            selected = selected[-limit:] if newest else selected[:limit]
        return selected

    def count_messages(self, code: str) -> int:
        with self._lock:
            return len(self._messages.get(code, []))

    def clear_messages(self, room: Room) -> int:
        with self._lock:
            previous = self._rooms.get(room.code)
            removed = self._messages.pop(room.code, [])
            self._rooms[room.code] = replace(room)

            def undo():
                if removed:
                    self._messages[room.code] = removed
                self._restore_room(room.code, previous)

            self._commit(undo)
            return len(removed)

    def high_water_mark(self) -> Tuple[Optional[str], int]:
        with self._lock:
            stamps = [room.last_activity for room in self._rooms.values()]
            stamps.extend(
                log[-1].created_at for log in self._messages.values() if log
            )
            if self._last_timestamp:
                stamps.append(self._last_timestamp)
            return (max(stamps) if stamps else None), self._last_sequence

    def _restore_room(self, code: str, previous: Optional[Room]) -> None:
        if previous is None:
            self._rooms.pop(code, None)
        else:
            self._rooms[code] = previous

    def _commit(self, undo: Callable[[], None]) -> None:
        try:
            self._persist()
        except PersistenceFailure:
            undo()
            raise

    def _persist(self) -> None:
        """Write the current state out. Nothing to do in memory."""


class JsonFileBackend(MemoryBackend):
    """
    Full-snapshot backend.

    The whole store lives in one JSON document:

        {
            "version": 1,
            "rooms": {"ABC123": {...room...}},
            "messages": {"ABC123": [{...message...}, ...]},
            "last_sequence": 42,
            "last_timestamp": "2025-01-01T00:00:00.000000+00:00"
        }

    Every mutation rewrites the document to a temporary file in the same
    directory, fsyncs it and renames it over the previous one, so a crash
    mid-save leaves either the old or the new snapshot on disk.
    """

    name = "json"

    def __init__(self, path):
        super().__init__()
        self.path = Path(path)
        self._loaded = False

    def open(self) -> None:
        with self._lock:
            rooms, messages, last_sequence, last_timestamp = self._load()
            self._rooms = rooms
            self._messages = messages
            self._last_sequence = last_sequence
            self._last_timestamp = last_timestamp
            self._loaded = True
        logger.info(
            f"Loaded {len(rooms)} rooms and "
            f"{sum(len(log) for log in messages.values())} messages "
            f"from {self.path}"
        )

    def _load(self):
        if not self.path.exists():
            logger.info(f"No snapshot at {self.path}, starting empty")
            return {}, {}, 0, None

        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to read snapshot {self.path}: {e}")
            raise PersistenceFailure(f"Could not read {self.path}: {e}") from e

        if not text.strip():
            return {}, {}, 0, None

        try:
            return self._decode(json.loads(text))
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error(f"Snapshot {self.path} is corrupt: {e}")
            raise PersistenceFailure(f"Corrupt snapshot {self.path}: {e}") from e

    def _decode(self, document):
        if not isinstance(document, dict):
            raise ValueError("snapshot root must be an object")

        last_sequence = int(document.get("last_sequence", 0))
        last_timestamp = document.get("last_timestamp")
        if last_timestamp:
            last_timestamp = normalize_timestamp(last_timestamp)
        rooms: Dict[str, Room] = {}
        for code, data in (document.get("rooms") or {}).items():
            room = Room.from_dict({"code": code, **data})
            room.created_at = normalize_timestamp(room.created_at)
            if room.last_message_at:
                room.last_message_at = normalize_timestamp(room.last_message_at)
            rooms[code] = room

        messages: Dict[str, List[Message]] = {}
        for code, items in (document.get("messages") or {}).items():
            log = []
            for data in items:
                message = Message.from_dict(data)
                message = replace(
                    message,
                    room_code=code,
                    created_at=normalize_timestamp(message.created_at),
                )
                if message.sequence <= 0:
                    last_sequence += 1
                    message = replace(message, sequence=last_sequence)
                last_sequence = max(last_sequence, message.sequence)
                log.append(message)
            if not log:
                continue
            log.sort(key=_message_sort_key)
            messages[code] = log

            room = rooms.get(code)
            if room is None:
                logger.warning(f"Recovered room {code} from orphaned messages")
                room = Room(code=code, created_at=log[0].created_at)
                rooms[code] = room
            if room.message_count != len(log):
                logger.warning(
                    f"Room {code} message_count {room.message_count} "
                    f"corrected to {len(log)}"
                )
            room.message_count = len(log)
            room.last_message_at = log[-1].created_at

        for code, room in rooms.items():
            if code not in messages:
                room.message_count = 0
                room.last_message_at = None

        return rooms, messages, last_sequence, last_timestamp or None

    def _encode(self):
        return {
            "version": SNAPSHOT_VERSION,
            "rooms": {
                code: room.to_dict() for code, room in self._rooms.items()
            },
            "messages": {
                code: [message.to_dict() for message in log]
                for code, log in self._messages.items()
            },
            "last_sequence": self._last_sequence,
            "last_timestamp": self._last_timestamp,
        }

    def _persist(self) -> None:
        if not self._loaded:
            raise PersistenceFailure(
                f"Snapshot {self.path} was never loaded; call open() first"
            )
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=directory
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(self._encode(), handle, ensure_ascii=False, indent=2)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(tmp_path, self.path)
            except Exception:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to write snapshot {self.path}: {e}")
            raise PersistenceFailure(f"Could not write {self.path}: {e}") from e


# ===== Relational backend =====

database_proxy = DatabaseProxy()


class BaseRecord(Model):
    class Meta:
        database = database_proxy


class RoomRecord(BaseRecord):
    code = CharField(primary_key=True)
    name = CharField(null=True)
    suspended = BooleanField(default=False)
    created_at = CharField()
    last_message_at = CharField(null=True)
    message_count = IntegerField(default=0)

    class Meta:
        table_name = "rooms"


class MessageRecord(BaseRecord):
    sequence = IntegerField(primary_key=True)
    message_id = CharField(unique=True)
    room_code = CharField(index=True)
    kind = CharField(default=UserMessage.kind)
    nickname = CharField()
    text = TextField()
    created_at = CharField()

    class Meta:
        table_name = "messages"
        indexes = ((("room_code", "created_at", "sequence"), False),)


class MarkRecord(BaseRecord):
    """Named values that must outlive the rows they were derived from."""

    name = CharField(primary_key=True)
    value = CharField()

    class Meta:
        table_name = "marks"


LAST_TIMESTAMP_MARK = "last_timestamp"


class SqliteBackend(StorageBackend):
    """
    Relational backend on SQLite.

    Each mutation runs in one transaction. peewee keeps one connection
    per thread, so use a file path rather than ":memory:" when stores are
    called from a thread pool. Only one SqliteBackend can be open per
    process because the record models share a database proxy.
    """

    name = "sqlite"

    def __init__(self, path):
        self.path = Path(path)
        self._db: Optional[SqliteDatabase] = None

    def open(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceFailure(f"Could not create {self.path.parent}: {e}") from e

        self._db = SqliteDatabase(
            str(self.path), pragmas={"journal_mode": "wal"}, timeout=10
        )
        database_proxy.initialize(self._db)
        with self._guard("open database"):
            self._db.connect(reuse_if_open=True)
            self._db.create_tables([RoomRecord, MessageRecord, MarkRecord])
        logger.info(f"SQLite backend opened at {self.path}")

    def close(self) -> None:
        if self._db is not None:
            with self._guard("close database"):
                self._db.close()

    @contextmanager
    def _guard(self, action: str):
        try:
            yield
        except PeeweeException as e:
            logger.error(f"SQLite backend failed to {action}: {e}")
            raise PersistenceFailure(f"Could not {action}: {e}") from e

    def get_room(self, code: str) -> Optional[Room]:
        with self._guard("read room"):
            record = RoomRecord.get_or_none(RoomRecord.code == code)
        return _room_from_record(record) if record else None

    def list_rooms(self) -> List[Room]:
        with self._guard("list rooms"):
            return [_room_from_record(record) for record in RoomRecord.select()]

    def save_room(self, room: Room) -> None:
        with self._guard("save room"), self._db.atomic():
            RoomRecord.replace(**room.to_dict()).execute()

    def delete_room(self, code: str) -> bool:
        with self._guard("delete room"), self._db.atomic():
            deleted = RoomRecord.delete().where(RoomRecord.code == code).execute()
            MessageRecord.delete().where(MessageRecord.room_code == code).execute()
        return deleted > 0

    def append_message(self, room: Room, message: Message) -> None:
        with self._guard("append message"), self._db.atomic():
            MessageRecord.insert(
                sequence=message.sequence,
                message_id=message.id,
                room_code=message.room_code,
                kind=message.kind,
                nickname=message.nickname,
                text=message.text,
                created_at=message.created_at,
            ).execute()
            RoomRecord.replace(**room.to_dict()).execute()
            MarkRecord.insert(
                name=LAST_TIMESTAMP_MARK, value=message.created_at
            ).on_conflict(
                conflict_target=[MarkRecord.name],
                update={MarkRecord.value: fn.MAX(MarkRecord.value, EXCLUDED.value)},
            ).execute()

    def list_messages(
        self,
        code: str,
        after: Optional[str] = None,
        limit: Optional[int] = None,
        newest: bool = False,
    ) -> List[Message]:
        query = MessageRecord.select().where(MessageRecord.room_code == code)
        if after is not None:
            query = query.where(MessageRecord.created_at > after)
        if newest:
            query = query.order_by(
                MessageRecord.created_at.desc(), MessageRecord.sequence.desc()
            )
        else:
            query = query.order_by(
                MessageRecord.created_at, MessageRecord.sequence
            )
        if limit is not None:
            query = query.limit(limit)

        with self._guard("list messages"):
            messages = [_message_from_record(record) for record in query]
        if newest:
            messages.reverse()
        return messages

    def count_messages(self, code: str) -> int:
        with self._guard("count messages"):
            return (
                MessageRecord.select()
                .where(MessageRecord.room_code == code)
                .count()
            )

    def clear_messages(self, room: Room) -> int:
        with self._guard("clear messages"), self._db.atomic():
            removed = (
                MessageRecord.delete()
                .where(MessageRecord.room_code == room.code)
                .execute()
            )
            RoomRecord.replace(**room.to_dict()).execute()
        return removed

    def high_water_mark(self) -> Tuple[Optional[str], int]:
        with self._guard("read high-water mark"):
            last_sequence = (
                MessageRecord.select(fn.MAX(MessageRecord.sequence)).scalar() or 0
            )
            stamps = [
                MessageRecord.select(fn.MAX(MessageRecord.created_at)).scalar(),
                RoomRecord.select(fn.MAX(RoomRecord.created_at)).scalar(),
                MarkRecord.select(MarkRecord.value)
                .where(MarkRecord.name == LAST_TIMESTAMP_MARK)
                .scalar(),
            ]
        stamps = [stamp for stamp in stamps if stamp]
        return (max(stamps) if stamps else None), last_sequence


def _message_sort_key(message: Message):
    return message.sort_key


def _room_from_record(record: RoomRecord) -> Room:
    return Room(
        code=record.code,
        name=record.name,
        suspended=bool(record.suspended),
        created_at=record.created_at,
        last_message_at=record.last_message_at,
        message_count=record.message_count,
    )


def _message_from_record(record: MessageRecord) -> Message:
    message_cls = SystemMessage if record.kind == SystemMessage.kind else UserMessage
    return message_cls(
        id=record.message_id,
        room_code=record.room_code,
        nickname=record.nickname,
        text=record.text,
        created_at=record.created_at,
        sequence=record.sequence,
    )


def _latest(current: Optional[str], stamp: str) -> str:
    return stamp if current is None or stamp > current else current
