"""
Schemas Package

This package contains protocol message schemas for client-server communication.
Schemas are organized by category: room and message operations.
"""

from .base import BaseRequest, BaseResponse, ErrorResponse
from .message import (
    ChatMessage,
    GetMessagesRequest,
    GetRecentMessagesRequest,
    MessagesResponse,
    SendMessageRequest,
)
from .room import (
    ClearRoomRequest,
    CreateRoomRequest,
    DeleteRoomRequest,
    JoinRoomRequest,
    ListRoomsRequest,
    RenameRoomRequest,
    RoomClearedResponse,
    RoomInfo,
    RoomInfoRequest,
    RoomsListResponse,
    SuspendRoomRequest,
)

__all__ = [
    # Base classes
    "BaseRequest",
    "BaseResponse",
    "ErrorResponse",
    # Room schemas
    "CreateRoomRequest",
    "JoinRoomRequest",
    "RoomInfoRequest",
    "ListRoomsRequest",
    "RoomInfo",
    "RoomsListResponse",
    "RenameRoomRequest",
    "SuspendRoomRequest",
    "ClearRoomRequest",
    "DeleteRoomRequest",
    "RoomClearedResponse",
    # Message schemas
    "SendMessageRequest",
    "GetMessagesRequest",
    "GetRecentMessagesRequest",
    "ChatMessage",
    "MessagesResponse",
]
