"""
Room Schema Definitions

This module defines the message structures for room operations,
including the admin requests.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .base import BaseRequest, BaseResponse


@dataclass
class CreateRoomRequest(BaseRequest):
    """
    Request to create a room, or fetch it when the code is taken.

    Attributes:
        room_code: Code of the room
        name: Optional display name
    """

    room_code: str
    name: Optional[str] = None

    @property
    def _message_type(self) -> str:
        return "create_room"

    @property
    def response_type(self) -> str:
        return "room_created"


@dataclass
class JoinRoomRequest(BaseRequest):
    """Request to join a room by code."""

    room_code: str

    @property
    def _message_type(self) -> str:
        return "join_room"

    @property
    def response_type(self) -> str:
        return "room_joined"


@dataclass
class RoomInfoRequest(BaseRequest):
    room_code: str

    @property
    def _message_type(self) -> str:
        return "room_info"

    @property
    def response_type(self) -> str:
        return "room_info"


@dataclass
class ListRoomsRequest(BaseRequest):
    """Request to list all rooms."""

    @property
    def _message_type(self) -> str:
        return "list_rooms"

    @property
    def response_type(self) -> str:
        return "rooms_list"


@dataclass
class RoomInfo(BaseResponse):
    """
    Room information as returned by the server.

    Attributes:
        code: Normalized room code
        exists: False when the server has no room with this code
        name: Display name, if any
        suspended: Whether new messages are rejected
        created_at: ISO 8601 creation timestamp
        last_message_at: Timestamp of the newest message
        message_count: Number of stored messages
    """

    code: str
    exists: bool = True
    name: Optional[str] = None
    suspended: bool = False
    created_at: Optional[str] = None
    last_message_at: Optional[str] = None
    message_count: int = 0

    @property
    def display_name(self) -> str:
        return self.name or self.code

    @classmethod
    def _from_data(cls, data: Dict[str, Any]) -> "RoomInfo":
        room = data.get("room", data)
        return cls(
            code=room["code"],
            exists=room.get("exists", True),
            name=room.get("name"),
            suspended=room.get("suspended", False),
            created_at=room.get("created_at"),
            last_message_at=room.get("last_message_at"),
            message_count=room.get("message_count", 0),
        )


@dataclass
class RoomsListResponse(BaseResponse):
    """
    Response containing list of rooms.

    Attributes:
        rooms: Rooms, most recently active first
        total_count: Total number of rooms
    """

    rooms: List[RoomInfo] = field(default_factory=list)
    total_count: int = 0

    @classmethod
    def _from_data(cls, data: Dict[str, Any]) -> "RoomsListResponse":
        rooms = [RoomInfo._from_data(room) for room in data.get("rooms", [])]
        return cls(rooms=rooms, total_count=data.get("total_count", len(rooms)))


# Admin requests


@dataclass
class RenameRoomRequest(BaseRequest):
    room_code: str
    name: str
    admin_secret: str

    @property
    def _message_type(self) -> str:
        return "rename_room"

    @property
    def response_type(self) -> str:
        return "room_renamed"


@dataclass
class SuspendRoomRequest(BaseRequest):
    """
    Request to suspend or resume a room.

    Attributes:
        room_code: Code of the room
        suspended: True to suspend, False to resume
        admin_secret: Shared admin secret
    """

    room_code: str
    suspended: bool
    admin_secret: str

    @property
    def _message_type(self) -> str:
        return "suspend_room"

    @property
    def response_type(self) -> str:
        return "room_suspension_changed"


@dataclass
class ClearRoomRequest(BaseRequest):
    room_code: str
    admin_secret: str

    @property
    def _message_type(self) -> str:
        return "clear_room"

    @property
    def response_type(self) -> str:
        return "room_cleared"


@dataclass
class DeleteRoomRequest(BaseRequest):
    room_code: str
    admin_secret: str

    @property
    def _message_type(self) -> str:
        return "delete_room"

    @property
    def response_type(self) -> str:
        return "room_deleted"


@dataclass
class RoomClearedResponse(BaseResponse):
    """
    Confirmation that a room's messages were removed.

    Attributes:
        room_code: Code of the room
        removed: Number of messages deleted
    """

    room_code: str
    removed: int
