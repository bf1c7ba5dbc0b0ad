"""
Store Errors

Exception hierarchy raised by the room and message stores. Each error
carries a stable error code and the HTTP-style status the boundary
reports for it.
"""


class ChatStoreError(Exception):
    """Base class for all store failures."""

    error_code = "INTERNAL_ERROR"
    status = 500


class RoomNotFound(ChatStoreError):
    """Operation referenced a room code with no corresponding room."""

    error_code = "ROOM_NOT_FOUND"
    status = 404

    def __init__(self, room_code: str):
        super().__init__(f"Room '{room_code}' not found")
        self.room_code = room_code


class RoomSuspended(ChatStoreError):
    """A user message was sent to a suspended room."""

    error_code = "ROOM_SUSPENDED"
    status = 403

    def __init__(self, room_code: str):
        super().__init__(f"Room '{room_code}' is suspended")
        self.room_code = room_code


class PersistenceFailure(ChatStoreError):
    """The storage backend could not complete a read or write."""

    error_code = "PERSISTENCE_FAILURE"
    status = 500


class InvalidInput(ChatStoreError, ValueError):
    """A field was missing, malformed or oversized."""

    error_code = "INVALID_INPUT"
    status = 400


class Unauthorized(ChatStoreError):
    """An admin request carried a missing or wrong secret."""

    error_code = "UNAUTHORIZED"
    status = 401
