"""
Client Service for the Chat System

This module provides the main client service class that handles communication
with the chat server via a WebSocket connection. It covers room operations,
sending messages, polling for messages and the admin operations.

Architecture:
    - Uses WebSocket for request/response communication; the server never
      pushes, clients poll
    - Supports dependency injection for the network layer (for testability)
    - Async/await pattern for non-blocking I/O operations
"""

import asyncio
import itertools
import json
import logging
from typing import Any, Callable, Dict, Optional

from websockets.asyncio.client import ClientConnection, connect

from .schemas import (
    BaseRequest,
    ChatMessage,
    ClearRoomRequest,
    CreateRoomRequest,
    DeleteRoomRequest,
    ErrorResponse,
    GetMessagesRequest,
    GetRecentMessagesRequest,
    JoinRoomRequest,
    ListRoomsRequest,
    MessagesResponse,
    RenameRoomRequest,
    RoomClearedResponse,
    RoomInfo,
    RoomInfoRequest,
    RoomsListResponse,
    SendMessageRequest,
    SuspendRoomRequest,
)

logger = logging.getLogger(__name__)

# Responses skipped while waiting for a matching request_id
MAX_SKIPPED_RESPONSES = 10


class RequestError(Exception):
    """
    The server answered a request with an error response.

    Attributes:
        error_code: Error code (e.g., ROOM_NOT_FOUND)
        message: Human readable error message
        status: HTTP-style status
    """

    def __init__(self, error_code: str, message: str, status: int = 500):
        super().__init__(f"{error_code}: {message}")
        self.error_code = error_code
        self.message = message
        self.status = status

    @classmethod
    def from_response(cls, response: ErrorResponse) -> "RequestError":
        return cls(response.error_code, response.message, response.status)


class ClientService:
    """
    Main client service for interacting with the chat server.

    Attributes:
        server_url: WebSocket URL of the server (e.g., ws://localhost:8080)
        websocket: Active WebSocket connection (None if not connected)
    """

    def __init__(
        self,
        server_url: str,
        websocket_factory: Optional[Callable] = None,
    ):
        """
        Initialize the client service.

        Args:
            server_url: WebSocket URL of the chat server
            websocket_factory: Optional factory for creating WebSocket
                             connections (for dependency injection/testing)
        """
        self.server_url = server_url
        self.websocket: Optional[ClientConnection] = None
        self._websocket_factory = websocket_factory or connect
        self._connected = False
        self._request_lock = asyncio.Lock()
        self._request_ids = itertools.count(1)

        logger.info("ClientService initialized for server: %s", server_url)

    async def connect(self) -> None:
        """
        Establish WebSocket connection to the chat server.

        Raises:
            ConnectionError: If connection fails
        """
        try:
            logger.info("Connecting to %s...", self.server_url)
            self.websocket = await self._websocket_factory(self.server_url)
            self._connected = True
            logger.info("Successfully connected to chat server")
        except Exception as e:
            logger.error("Failed to connect to server: %s", e)
            raise ConnectionError(f"Could not connect to {self.server_url}: {e}")

    async def disconnect(self) -> None:
        """Close the WebSocket connection."""
        if self.websocket:
            if hasattr(self.websocket, "close"):
                await self.websocket.close()
            self.websocket = None
            self._connected = False
            logger.info("Disconnected from chat server")

    @property
    def is_connected(self) -> bool:
        """Check if currently connected to the server."""
        return self._connected and self.websocket is not None

    def _set_test_mode(self, mock_websocket: object = None) -> None:
        """
        Set the service in test mode with a mock connection.

        Args:
            mock_websocket: Required mock websocket object with send/recv

        Raises:
            ValueError: If mock_websocket is not provided
        """
        if mock_websocket is None:
            raise ValueError("_set_test_mode requires a mock_websocket object")
        self._connected = True
        self.websocket = mock_websocket

    async def _request(self, request: BaseRequest) -> Dict[str, Any]:
        """
        Send a request and wait for its response.

        One request is in flight at a time; responses carrying another
        request_id (left over from a cancelled call) are skipped.

        Returns:
            The response message as a dict

        Raises:
            ConnectionError: If not connected to the server
            RequestError: If the server answered with an error
            ValueError: If no matching response arrived
        """
        if not self.is_connected:
            raise ConnectionError("Not connected to the chat server")

        async with self._request_lock:
            request_id = str(next(self._request_ids))
            await self.websocket.send(request.to_json(request_id))

            for _ in range(MAX_SKIPPED_RESPONSES):
                response_json = await self.websocket.recv()
                response = json.loads(response_json)
                if response.get("request_id") != request_id:
                    logger.debug(
                        "Skipping response for request %s",
                        response.get("request_id"),
                    )
                    continue

                response_type = response.get("type")
                if response_type == "error":
                    error = ErrorResponse.from_dict(response)
                    logger.warning(
                        "Request %s failed: %s %s",
                        request._message_type,
                        error.error_code,
                        error.message,
                    )
                    raise RequestError.from_response(error)
                if response_type != request.response_type:
                    raise ValueError(
                        f"Unexpected response type '{response_type}' "
                        f"for {request._message_type}"
                    )
                return response

        logger.error("Timed out waiting for %s response", request._message_type)
        raise ValueError(f"Timed out waiting for {request._message_type} response")

    # Rooms

    async def create_room(self, room_code: str, name: Optional[str] = None) -> RoomInfo:
        """
        Create a room, or fetch it if the code is already in use.

        Args:
            room_code: Code of the room
            name: Optional display name; renames an existing room

        Returns:
            RoomInfo for the created or existing room
        """
        logger.info("Sending create_room request for '%s'", room_code)
        response = await self._request(CreateRoomRequest(room_code, name))
        return RoomInfo.from_dict(response)

    async def join_room(self, room_code: str) -> RoomInfo:
        """
        Ask the server about a room before entering it.

        Returns:
            RoomInfo; `exists` is False when the room has not been created
        """
        logger.info("Sending join_room request for '%s'", room_code)
        response = await self._request(JoinRoomRequest(room_code))
        return RoomInfo.from_dict(response)

    async def room_info(self, room_code: str) -> RoomInfo:
        response = await self._request(RoomInfoRequest(room_code))
        return RoomInfo.from_dict(response)

    async def list_rooms(self) -> RoomsListResponse:
        """
        Request a list of all rooms.

        Returns:
            RoomsListResponse containing the rooms, most recently active first
        """
        response = await self._request(ListRoomsRequest())
        rooms = RoomsListResponse.from_dict(response)
        logger.info("Received rooms_list response with %s rooms", rooms.total_count)
        return rooms

    # Messages

    async def send_message(self, room_code: str, nickname: str, text: str) -> ChatMessage:
        """
        Send a message to a room.

        Returns:
            The stored message (text already masked by the server)

        Raises:
            RequestError: ROOM_SUSPENDED, ROOM_NOT_FOUND or INVALID_INPUT
        """
        logger.info("Sending message to room '%s'", room_code)
        response = await self._request(SendMessageRequest(room_code, nickname, text))
        return ChatMessage.from_dict(response)

    async def get_messages(
        self,
        room_code: str,
        after: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> MessagesResponse:
        """
        Fetch messages created after a cursor, oldest first.

        Args:
            room_code: Code of the room
            after: Cursor from the previous page, or None for the start
            limit: Page size (the server caps it)
        """
        response = await self._request(GetMessagesRequest(room_code, after, limit))
        return MessagesResponse.from_dict(response)

    async def get_recent_messages(
        self, room_code: str, limit: Optional[int] = None
    ) -> MessagesResponse:
        """Fetch the newest messages of a room, in ascending order."""
        response = await self._request(GetRecentMessagesRequest(room_code, limit))
        return MessagesResponse.from_dict(response)

    # Admin

    async def rename_room(self, room_code: str, name: str, admin_secret: str) -> RoomInfo:
        response = await self._request(RenameRoomRequest(room_code, name, admin_secret))
        return RoomInfo.from_dict(response)

    async def set_suspended(
        self, room_code: str, suspended: bool, admin_secret: str
    ) -> RoomInfo:
        """Suspend (True) or resume (False) a room."""
        response = await self._request(
            SuspendRoomRequest(room_code, suspended, admin_secret)
        )
        return RoomInfo.from_dict(response)

    async def clear_room(self, room_code: str, admin_secret: str) -> int:
        """
        Delete all messages in a room.

        Returns:
            Number of messages removed
        """
        response = await self._request(ClearRoomRequest(room_code, admin_secret))
        return RoomClearedResponse.from_dict(response).removed

    async def delete_room(self, room_code: str, admin_secret: str) -> None:
        await self._request(DeleteRoomRequest(room_code, admin_secret))
        logger.info("Deleted room '%s'", room_code)
