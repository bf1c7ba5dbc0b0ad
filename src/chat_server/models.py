"""
Room and Message Models

Data structures shared by the stores, the persistence backends and the
service layer.
"""

from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Optional

# Sender name carried by every system notice
SYSTEM_NICKNAME = "SERVER"


def _pick(data: Dict[str, Any], key: str, legacy_key: str, default=None):
    """Read a field by its stored name, falling back to the camelCase name."""
    if key in data:
        return data[key]
    return data.get(legacy_key, default)


@dataclass
class Room:
    """
    A chat room.

    Attributes:
        code: Normalized room code, the primary key
        name: Optional display name
        suspended: Whether new user messages are rejected
        created_at: ISO 8601 timestamp when the room was created
        last_message_at: Timestamp of the newest message, None when empty
        message_count: Number of messages currently stored for the room
    """

    code: str
    created_at: str
    name: Optional[str] = None
    suspended: bool = False
    last_message_at: Optional[str] = None
    message_count: int = 0

    @property
    def last_activity(self) -> str:
        """Timestamp used to order rooms by recent activity."""
        return self.last_message_at or self.created_at

    def to_dict(self) -> Dict[str, Any]:
        """Convert room to dictionary for serialization."""
        return {
            "code": self.code,
            "name": self.name,
            "suspended": self.suspended,
            "created_at": self.created_at,
            "last_message_at": self.last_message_at,
            "message_count": self.message_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Room":
        return cls(
            code=data["code"],
            name=data.get("name"),
            suspended=bool(data.get("suspended", False)),
            created_at=_pick(data, "created_at", "createdAt"),
            last_message_at=_pick(data, "last_message_at", "lastMessageAt"),
            message_count=int(_pick(data, "message_count", "messageCount", 0)),
        )


@dataclass
class RoomInfo:
    """Read-only projection of a room, including whether it exists."""

    exists: bool
    code: str
    name: Optional[str] = None
    suspended: bool = False
    created_at: Optional[str] = None
    last_message_at: Optional[str] = None
    message_count: int = 0

    @classmethod
    def from_room(cls, room: Room) -> "RoomInfo":
        return cls(
            exists=True,
            code=room.code,
            name=room.name,
            suspended=room.suspended,
            created_at=room.created_at,
            last_message_at=room.last_message_at,
            message_count=room.message_count,
        )

    @classmethod
    def missing(cls, code: str) -> "RoomInfo":
        return cls(exists=False, code=code)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "exists": self.exists,
            "code": self.code,
            "name": self.name,
            "suspended": self.suspended,
            "created_at": self.created_at,
            "last_message_at": self.last_message_at,
            "message_count": self.message_count,
        }


@dataclass(frozen=True)
class Message:
    """
    A message stored in a room.

    Use UserMessage or SystemMessage; the kind discriminant tells them
    apart, never the nickname.

    Attributes:
        id: Unique message identifier
        room_code: Code of the owning room
        nickname: Sender display name
        text: Message body (already filtered)
        created_at: ISO 8601 timestamp, the pagination cursor
        sequence: Store-wide sequence number used to break timestamp ties
    """

    kind: ClassVar[str] = "user"

    id: str
    room_code: str
    nickname: str
    text: str
    created_at: str
    sequence: int = 0

    @property
    def is_system(self) -> bool:
        return self.kind == SystemMessage.kind

    @property
    def sort_key(self):
        return (self.created_at, self.sequence)

    def to_dict(self) -> Dict[str, Any]:
        """Convert message to dictionary for serialization."""
        return {
            "id": self.id,
            "room_code": self.room_code,
            "nickname": self.nickname,
            "text": self.text,
            "kind": self.kind,
            "is_system": self.is_system,
            "created_at": self.created_at,
            "sequence": self.sequence,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Message":
        """Build the right message variant from its stored form."""
        kind = data.get("kind")
        if kind is None:
            is_system = _pick(data, "is_system", "isSystem", False)
            kind = SystemMessage.kind if is_system else UserMessage.kind
        message_cls = SystemMessage if kind == SystemMessage.kind else UserMessage
        return message_cls(
            id=data["id"],
            room_code=_pick(data, "room_code", "roomCode"),
            nickname=data.get("nickname", SYSTEM_NICKNAME),
            text=data.get("text", ""),
            created_at=_pick(data, "created_at", "createdAt"),
            sequence=int(data.get("sequence", 0)),
        )


@dataclass(frozen=True)
class UserMessage(Message):
    """A message posted by a chat participant."""

    kind: ClassVar[str] = "user"


@dataclass(frozen=True)
class SystemMessage(Message):
    """An administrative or automated notice."""

    kind: ClassVar[str] = "system"
