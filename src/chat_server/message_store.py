"""
Message Store

Append-only, per-room, time-ordered message log with cursor based
retrieval for polling clients.

Ordering: every message gets a creation timestamp later than any other
issued by the store and a store-wide sequence number. (created_at,
sequence) is the true ordering key; only created_at is used as the
client-facing cursor.
"""

import logging
from typing import List, Optional

from .errors import RoomNotFound, RoomSuspended
from .ids import (
    SequenceGenerator,
    TimestampGenerator,
    new_message_id,
    normalize_cursor,
)
from .locks import RoomLocks
from .models import SYSTEM_NICKNAME, Message, Room, SystemMessage, UserMessage
from .persistence import StorageBackend
from .utils.validation import (
    clean_message_text,
    clean_nickname,
    normalize_room_code,
    parse_limit,
)

logger = logging.getLogger(__name__)


class MessageStore:
    """
    Stores and retrieves room messages.

    Appending a message and updating the owning room's message_count and
    last_message_at happen under the room lock and in one backend write,
    so the counters always match the log.
    """

    def __init__(
        self,
        backend: StorageBackend,
        locks: RoomLocks,
        timestamps: TimestampGenerator,
        sequence: SequenceGenerator,
        auto_create_on_send: bool = False,
    ):
        """
        Initialize the message store.

        Args:
            backend: Persistence backend shared with the room store
            locks: Per-room lock registry shared with the room store
            timestamps: Creation timestamp generator
            sequence: Store-wide sequence number generator
            auto_create_on_send: Create a missing room on its first message
                instead of raising RoomNotFound
        """
        self._backend = backend
        self._locks = locks
        self._timestamps = timestamps
        self._sequence = sequence
        self.auto_create_on_send = auto_create_on_send

    def append(
        self,
        room_code: str,
        nickname: Optional[str],
        text: str,
        is_system: bool = False,
    ) -> Message:
        """
        Append a message to a room.

        Args:
            room_code: Room code
            nickname: Sender name (ignored for system messages)
            text: Message body, at most 200 characters after trimming
            is_system: Store an administrative notice instead of a user
                message; notices are accepted while the room is suspended

        Returns:
            The stored UserMessage or SystemMessage

        Raises:
            InvalidInput: If a field is missing or oversized
            RoomNotFound: If the room is missing and auto-create is off
            RoomSuspended: If a user message targets a suspended room
            PersistenceFailure: If the backend write failed
        """
        code = normalize_room_code(room_code)
        text = clean_message_text(text)
        if is_system:
            message_cls = SystemMessage
            nickname = SYSTEM_NICKNAME
        else:
            message_cls = UserMessage
            nickname = clean_nickname(nickname)

        with self._locks.hold(code):
            room = self._backend.get_room(code)
            if room is None:
                if not self.auto_create_on_send:
                    logger.warning(f"Cannot add message: Room {code} not found")
                    raise RoomNotFound(code)
                room = Room(code=code, created_at=self._timestamps.next())
                logger.info(f"Auto-creating room {code} on first message")

            if room.suspended and not is_system:
                logger.warning(f"Cannot add message: Room {code} is suspended")
                raise RoomSuspended(code)

            message = message_cls(
                id=new_message_id(),
                room_code=code,
                nickname=nickname,
                text=text,
                created_at=self._timestamps.next(),
                sequence=self._sequence.next(),
            )
            room.message_count += 1
            room.last_message_at = message.created_at
            self._backend.append_message(room, message)

        logger.info(
            f"Added {message.kind} message #{message.sequence} "
            f"from {nickname} to room {code}"
        )
        return message

    def append_system(self, room_code: str, text: str) -> Message:
        """Append an administrative notice to a room."""
        return self.append(room_code, SYSTEM_NICKNAME, text, is_system=True)

    def list_messages(
        self,
        room_code: str,
        after: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Message]:
        """
        Return messages in ascending order.

        Args:
            room_code: Room code
            after: Cursor; only messages created strictly after it
            limit: Return at most this many, oldest first, so that a
                poller following the cursor never skips a message

        Raises:
            InvalidInput: If the cursor or limit is malformed
            RoomNotFound: If the room does not exist
        """
        code = normalize_room_code(room_code)
        cursor = normalize_cursor(after)
        limit = parse_limit(limit)

        with self._locks.hold(code):
            self._require_room(code)
            messages = self._backend.list_messages(code, after=cursor, limit=limit)
        logger.debug(f"Listed {len(messages)} messages from room {code}")
        return messages

    def recent_messages(self, room_code: str, limit: int) -> List[Message]:
        """
        Return the most recent `limit` messages, in ascending order.

        Meant for a client's initial load; follow up with list_messages()
        using the last message's created_at as the cursor.
        """
        code = normalize_room_code(room_code)
        limit = parse_limit(limit)

        with self._locks.hold(code):
            self._require_room(code)
            return self._backend.list_messages(code, limit=limit, newest=True)

    def clear(self, room_code: str) -> int:
        """
        Delete every message in a room, keeping the room.

        Resets message_count to 0 and last_message_at to None.

        Returns:
            Number of messages removed

        Raises:
            RoomNotFound: If the room does not exist
        """
        code = normalize_room_code(room_code)
        with self._locks.hold(code):
            room = self._require_room(code)
            room.message_count = 0
            room.last_message_at = None
            removed = self._backend.clear_messages(room)
        logger.info(f"Cleared {removed} messages from room {code}")
        return removed

    def count(self, room_code: str) -> int:
        """Return the number of messages stored for a room."""
        code = normalize_room_code(room_code)
        with self._locks.hold(code):
            self._require_room(code)
            return self._backend.count_messages(code)

    def _require_room(self, code: str) -> Room:
        room = self._backend.get_room(code)
        if room is None:
            raise RoomNotFound(code)
        return room
