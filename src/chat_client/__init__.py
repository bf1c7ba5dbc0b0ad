"""
Chat Client Package

This package provides client-side functionality for the chat system,
including:
- ClientService: request/response communication with the server
- ChatClient: room membership and cursor-based polling
- MessageLog: ordered, de-duplicated log of received messages
- Terminal UI (chat-client) and admin tool (chat-admin)

Usage:
    from chat_client import ChatClient

    client = ChatClient("ws://localhost:8080")
    await client.connect()
    client.set_nickname("alice")
    await client.enter_room("ABC123")
    await client.post("Hello!")
"""

__version__ = "0.1.0"

from .chat_client import ChatClient
from .message_log import MessageLog
from .schemas import ChatMessage, MessagesResponse, RoomInfo, RoomsListResponse
from .service import ClientService, RequestError

__all__ = [
    "ChatClient",
    "ClientService",
    "RequestError",
    "MessageLog",
    "ChatMessage",
    "MessagesResponse",
    "RoomInfo",
    "RoomsListResponse",
]
