"""
Room Store

Single source of truth for room existence and metadata. Mutations for a
room code run under that room's lock and are persisted through the
backend before returning.
"""

import logging
from typing import List, Optional

from .errors import InvalidInput, RoomNotFound
from .ids import TimestampGenerator
from .locks import RoomLocks
from .models import Room, RoomInfo
from .persistence import StorageBackend
from .utils.validation import clean_room_name, normalize_room_code

logger = logging.getLogger(__name__)


class RoomStore:
    """
    Creates, reads, updates and deletes room metadata.

    Room codes are normalized (trimmed, uppercased) on every call, so
    "abc123 " and "ABC123" address the same room.
    """

    def __init__(
        self,
        backend: StorageBackend,
        locks: RoomLocks,
        timestamps: TimestampGenerator,
    ):
        self._backend = backend
        self._locks = locks
        self._timestamps = timestamps

    def create_or_get_room(self, code: str, name: Optional[str] = None) -> Room:
        """
        Create a room, or return the existing one.

        Calling this again for an existing room keeps its creation time.
        A non-empty name replaces the current display name.

        Args:
            code: Room code (any case, surrounding whitespace ignored)
            name: Optional display name, truncated to 40 characters

        Returns:
            The resulting Room
        """
        code = normalize_room_code(code)
        name = clean_room_name(name)

        with self._locks.hold(code):
            room = self._backend.get_room(code)
            if room is None:
                room = Room(code=code, name=name, created_at=self._timestamps.next())
                self._backend.save_room(room)
                logger.info(f"Created room {code} ({name or 'unnamed'})")
            elif name and room.name != name:
                room.name = name
                self._backend.save_room(room)
                logger.info(f"Room {code} renamed to '{name}' on create")
            return room

    def get_room(self, code: str) -> Optional[Room]:
        """Return the room, or None if it does not exist."""
        return self._backend.get_room(normalize_room_code(code))

    def room_exists(self, code: str) -> bool:
        return self.get_room(code) is not None

    def is_suspended(self, code: str) -> bool:
        room = self.get_room(code)
        return room is not None and room.suspended

    def get_room_info(self, code: str) -> RoomInfo:
        """
        Return a read-only projection of the room.

        A missing room yields a RoomInfo with exists=False rather than an
        error, so callers can show "no such room" without try/except.
        """
        code = normalize_room_code(code)
        room = self._backend.get_room(code)
        if room is None:
            return RoomInfo.missing(code)
        return RoomInfo.from_room(room)

    def rename_room(self, code: str, name: str) -> Room:
        """
        Change a room's display name.

        Raises:
            InvalidInput: If the name is empty
            RoomNotFound: If the room does not exist
        """
        code = normalize_room_code(code)
        name = clean_room_name(name)
        if not name:
            raise InvalidInput("name is required")

        with self._locks.hold(code):
            room = self._require(code)
            room.name = name
            self._backend.save_room(room)
        logger.info(f"Renamed room {code} to '{name}'")
        return room

    def set_suspended(self, code: str, suspended: bool) -> Room:
        """
        Suspend or resume a room.

        Raises:
            RoomNotFound: If the room does not exist
        """
        code = normalize_room_code(code)
        with self._locks.hold(code):
            room = self._require(code)
            room.suspended = bool(suspended)
            self._backend.save_room(room)
        logger.info(
            f"Room {code} {'suspended' if room.suspended else 'resumed'}"
        )
        return room

    def list_rooms(self) -> List[Room]:
        """
        List all rooms, most recently active first.

        Activity is the last message time, or the creation time for an
        empty room. Ties fall back to creation time (newest first), then
        to the room code.
        """
        rooms = sorted(self._backend.list_rooms(), key=lambda room: room.code)
        rooms.sort(
            key=lambda room: (room.last_activity, room.created_at), reverse=True
        )
        logger.debug(f"Listed {len(rooms)} rooms")
        return rooms

    def delete_room(self, code: str) -> bool:
        """
        Delete a room and every message in it.

        Returns:
            True if the room existed
        """
        code = normalize_room_code(code)
        with self._locks.hold(code):
            existed = self._backend.delete_room(code)
        if existed:
            logger.info(f"Deleted room {code}")
        return existed

    def _require(self, code: str) -> Room:
        room = self._backend.get_room(code)
        if room is None:
            raise RoomNotFound(code)
        return room
