"""
Chat Client with Polling

This module provides a ChatClient class that extends the base ClientService
with room membership and polling. It keeps an ordered log of the current
room's messages and provides callbacks for UI integration.

Architecture:
    - Extends ClientService for basic WebSocket operations
    - Uses MessageLog for ordering and de-duplicating messages
    - Polls with a cursor; each poll drains pages until a short page
    - Provides callback hooks for UI integration

Usage:
    client = ChatClient("ws://localhost:8080")
    await client.connect()
    client.set_nickname("alice")
    await client.enter_room("ABC123")
    await client.run_polling()
"""

import asyncio
import logging
from typing import Callable, List, Optional

from websockets.exceptions import ConnectionClosed

from .message_log import MessageLog
from .schemas import ChatMessage, RoomInfo
from .service import ClientService, RequestError

logger = logging.getLogger(__name__)

# Messages requested per page when polling
DEFAULT_PAGE_SIZE = 50

# Messages loaded when entering a room
DEFAULT_HISTORY_SIZE = 50

# Seconds between polls
DEFAULT_POLL_INTERVAL = 2.0


class ChatClient(ClientService):
    """
    Chat client that polls the current room for new messages.

    Attributes:
        nickname: Display name used when sending
        current_room: RoomInfo of the joined room, or None
        message_log: Ordered log of the current room's messages
        page_size: Messages requested per poll page
        poll_interval: Seconds between polls in run_polling()
    """

    def __init__(
        self,
        server_url: str,
        websocket_factory: Optional[Callable] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        history_size: int = DEFAULT_HISTORY_SIZE,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        """
        Initialize the chat client.

        Args:
            server_url: WebSocket URL of the chat server
            websocket_factory: Optional factory for creating WebSocket
                             connections (for dependency injection/testing)
            page_size: Messages requested per poll page
            history_size: Messages loaded when entering a room
            poll_interval: Seconds between polls
        """
        super().__init__(server_url, websocket_factory)

        self.nickname: Optional[str] = None
        self.current_room: Optional[RoomInfo] = None
        self.message_log = MessageLog()
        self.page_size = page_size
        self.history_size = history_size
        self.poll_interval = poll_interval

        # Callbacks for UI integration
        self._on_new_messages: Optional[Callable[[List[ChatMessage]], None]] = None
        self._on_room_updated: Optional[Callable[[RoomInfo], None]] = None
        self._on_room_gone: Optional[Callable[[str], None]] = None
        self._on_error: Optional[Callable[[Exception], None]] = None

        logger.info("ChatClient initialized for server: %s", server_url)

    @property
    def room_code(self) -> Optional[str]:
        return self.current_room.code if self.current_room else None

    def set_nickname(self, nickname: str) -> None:
        """
        Set the nickname for this client.

        Args:
            nickname: The nickname to send messages with
        """
        self.nickname = nickname
        logger.info("Nickname set to: %s", nickname)

    def set_on_new_messages(
        self, callback: Callable[[List[ChatMessage]], None]
    ) -> None:
        """
        Register callback for newly received messages.

        Args:
            callback: Function that receives the new messages, oldest first
        """
        self._on_new_messages = callback

    def set_on_room_updated(self, callback: Callable[[RoomInfo], None]) -> None:
        """Register callback for room info changes (rename, suspension)."""
        self._on_room_updated = callback

    def set_on_room_gone(self, callback: Callable[[str], None]) -> None:
        """
        Register callback for when the current room was deleted.

        Args:
            callback: Function that receives the room code
        """
        self._on_room_gone = callback

    def set_on_error(self, callback: Callable[[Exception], None]) -> None:
        self._on_error = callback

    async def enter_room(self, room_code: str, name: Optional[str] = None) -> RoomInfo:
        """
        Join a room, creating it when it does not exist yet.

        Loads the most recent messages and sets the poll cursor after them.

        Args:
            room_code: Code of the room
            name: Display name used when the room is created

        Returns:
            RoomInfo of the joined room
        """
        info = await self.join_room(room_code)
        if not info.exists:
            logger.info("Room %s does not exist, creating it", info.code)
            info = await self.create_room(info.code, name)

        self.current_room = info
        self.message_log = MessageLog()
        await self.load_initial()
        logger.info("Entered room: %s", info.code)
        return info

    def leave_room(self) -> None:
        """Leave the current room and clear its message log."""
        if self.current_room:
            logger.info("Left room: %s", self.current_room.code)
        self.current_room = None
        self.message_log.clear()

    async def load_initial(self) -> List[ChatMessage]:
        """Load the most recent messages of the current room."""
        if not self.current_room:
            return []
        page = await self.get_recent_messages(self.current_room.code, self.history_size)
        new_messages = self.message_log.add_messages(page.messages)
        self._notify_new(new_messages)
        return new_messages

    async def poll_once(self) -> List[ChatMessage]:
        """
        Fetch every message created after the cursor.

        Requests pages until one comes back short, so a burst larger
        than the page size is picked up in a single poll.

        Returns:
            The new messages, oldest first
        """
        if not self.current_room:
            return []

        code = self.current_room.code
        received: List[ChatMessage] = []
        while True:
            try:
                page = await self.get_messages(
                    code, after=self.message_log.cursor, limit=self.page_size
                )
            except RequestError as e:
                if e.error_code == "ROOM_NOT_FOUND":
                    self._room_gone(code)
                    break
                raise

            received.extend(self.message_log.add_messages(page.messages))
            self.message_log.advance_cursor(page.cursor)
            if len(page.messages) < self.page_size:
                break

        self._notify_new(received)
        return received

    async def refresh_room(self) -> Optional[RoomInfo]:
        """
        Re-read the current room's info.

        Returns:
            The updated RoomInfo, or None if the room no longer exists
        """
        if not self.current_room:
            return None

        code = self.current_room.code
        info = await self.room_info(code)
        if not info.exists:
            self._room_gone(code)
            return None

        changed = (info.name, info.suspended) != (
            self.current_room.name,
            self.current_room.suspended,
        )
        self.current_room = info
        if changed and self._on_room_updated:
            self._on_room_updated(info)
        return info

    async def post(self, text: str) -> ChatMessage:
        """
        Send a message to the current room and poll for it.

        The cursor is only advanced by polling, so messages other clients
        posted just before this one are not skipped.

        Raises:
            ValueError: If no room is joined or no nickname is set
            RequestError: If the server rejects the message
        """
        if not self.current_room:
            raise ValueError("Not in a room")
        if not self.nickname:
            raise ValueError("Nickname is not set")

        message = await self.send_message(self.current_room.code, self.nickname, text)
        await self.poll_once()
        return message

    async def run_polling(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """
        Poll the current room until it is left, deleted or the connection
        closes.

        Request errors are passed to the error callback and polling goes on.
        """
        logger.info("Starting polling loop")
        while self.current_room and not (stop_event and stop_event.is_set()):
            try:
                await self.refresh_room()
                await self.poll_once()
            except ConnectionClosed:
                logger.warning("Connection closed by server")
                self._connected = False
                break
            except RequestError as e:
                logger.error("Polling failed: %s", e)
                if self._on_error:
                    self._on_error(e)

            await asyncio.sleep(self.poll_interval)
        logger.info("Polling loop stopped")

    def _room_gone(self, code: str) -> None:
        logger.info("Room %s has been deleted", code)
        self.leave_room()
        if self._on_room_gone:
            self._on_room_gone(code)

    def _notify_new(self, messages: List[ChatMessage]) -> None:
        if messages and self._on_new_messages:
            self._on_new_messages(messages)
