"""
Chat Server Package

This package contains the room and message stores, their persistence
backends, and the WebSocket service that exposes them to clients.
"""

__version__ = "0.1.0"

from .config import Settings
from .errors import (
    ChatStoreError,
    InvalidInput,
    PersistenceFailure,
    RoomNotFound,
    RoomSuspended,
    Unauthorized,
)
from .models import Message, Room, RoomInfo, SystemMessage, UserMessage
from .persistence import JsonFileBackend, MemoryBackend, SqliteBackend
from .store import ChatStore

__all__ = [
    "Settings",
    "ChatStoreError",
    "InvalidInput",
    "PersistenceFailure",
    "RoomNotFound",
    "RoomSuspended",
    "Unauthorized",
    "Message",
    "Room",
    "RoomInfo",
    "SystemMessage",
    "UserMessage",
    "JsonFileBackend",
    "MemoryBackend",
    "SqliteBackend",
    "ChatStore",
]
