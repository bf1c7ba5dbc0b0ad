"""
Message Schema Definitions

This module defines the message structures for chat message operations
including sending messages and polling for new ones.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .base import BaseRequest, BaseResponse


@dataclass
class SendMessageRequest(BaseRequest):
    """
    Request to send a message to a room.

    Attributes:
        room_code: Code of the room to send the message to
        nickname: Display name of the sender
        text: The message body
    """

    room_code: str
    nickname: str
    text: str

    @property
    def _message_type(self) -> str:
        return "send_message"

    @property
    def response_type(self) -> str:
        return "message_sent"


@dataclass
class GetMessagesRequest(BaseRequest):
    """
    Request for messages created after a cursor.

    Attributes:
        room_code: Code of the room
        after: created_at of the last message already seen, or None
        limit: Maximum number of messages to return, oldest first
    """

    room_code: str
    after: Optional[str] = None
    limit: Optional[int] = None

    @property
    def _message_type(self) -> str:
        return "get_messages"

    @property
    def response_type(self) -> str:
        return "messages"


@dataclass
class GetRecentMessagesRequest(BaseRequest):
    """Request for the newest messages of a room."""

    room_code: str
    limit: Optional[int] = None

    @property
    def _message_type(self) -> str:
        return "get_recent_messages"

    @property
    def response_type(self) -> str:
        return "messages"


@dataclass
class ChatMessage(BaseResponse):
    """
    A message received from the server.

    Attributes:
        id: Unique identifier for the message
        room_code: Code of the room
        nickname: Sender display name
        text: The message body
        created_at: ISO 8601 timestamp, used as the poll cursor
        sequence: Server sequence number breaking timestamp ties
        kind: "user" or "system"
    """

    id: str
    room_code: str
    nickname: str
    text: str
    created_at: str
    sequence: int = 0
    kind: str = "user"

    @property
    def is_system(self) -> bool:
        return self.kind == "system"

    @property
    def sort_key(self):
        return (self.created_at, self.sequence)

    @classmethod
    def _from_data(cls, data: Dict[str, Any]) -> "ChatMessage":
        message = data.get("message", data)
        return cls(
            id=message["id"],
            room_code=message["room_code"],
            nickname=message["nickname"],
            text=message["text"],
            created_at=message["created_at"],
            sequence=message.get("sequence", 0),
            kind=message.get("kind", "user"),
        )


@dataclass
class MessagesResponse(BaseResponse):
    """
    A page of messages.

    Attributes:
        room_code: Code of the room
        messages: Messages in ascending order
        cursor: Value to send as `after` on the next poll
    """

    room_code: str
    messages: List[ChatMessage] = field(default_factory=list)
    cursor: Optional[str] = None

    @classmethod
    def _from_data(cls, data: Dict[str, Any]) -> "MessagesResponse":
        return cls(
            room_code=data["room_code"],
            messages=[ChatMessage._from_data(m) for m in data.get("messages", [])],
            cursor=data.get("cursor"),
        )
