"""
Chat Service

Handles all client -> server WebSocket messages.
Supports:
    - create_room, join_room, room_info, list_rooms
    - get_messages, get_recent_messages, send_message
    - rename_room, suspend_room, clear_room, delete_room (admin)

Architecture:
    - Async/await for non-blocking I/O
    - Store calls run on a thread pool so file and database writes never
      block the event loop
"""

import asyncio
import hmac
import json
import logging
from concurrent.futures import Executor
from typing import Any, Callable, Dict, Optional

from .config import Settings
from .content_filter import ContentFilter
from .errors import ChatStoreError, InvalidInput, RoomNotFound, Unauthorized
from .ids import normalize_cursor
from .schemas import (
    create_error_response,
    create_message_sent_data,
    create_messages_data,
    create_room_cleared_data,
    create_room_data,
    create_room_deleted_data,
    create_room_info_data,
    create_rooms_list_data,
    create_success_response,
)
from .store import ChatStore
from .utils import (
    clean_message_text,
    clean_nickname,
    clean_room_name,
    normalize_room_code,
    parse_limit,
)

logger = logging.getLogger(__name__)

# Page size limits for message retrieval
DEFAULT_RECENT_LIMIT = 50
MAX_PAGE_SIZE = 200

ADMIN_REQUEST_TYPES = frozenset(
    {"rename_room", "suspend_room", "clear_room", "delete_room"}
)


class ChatService:
    """
    Main chat service for handling requests from clients
    """

    def __init__(
        self,
        store: ChatStore,
        settings: Optional[Settings] = None,
        content_filter: Optional[ContentFilter] = None,
        executor: Optional[Executor] = None,
    ):
        """
        Initialize the chat service

        Args:
            store: Initialized ChatStore holding rooms and messages
            settings: Server settings (admin secret, banned words)
            content_filter: Filter applied to message text; built from
                the settings when omitted
            executor: Thread pool for store calls (loop default if None)
        """
        self.store = store
        self.settings = settings or Settings(storage_backend="memory")
        self.content_filter = content_filter or ContentFilter(
            self.settings.banned_words
        )
        self.executor = executor
        self._handlers: Dict[str, Callable] = {
            "create_room": self.handle_create_room,
            "join_room": self.handle_join_room,
            "room_info": self.handle_room_info,
            "list_rooms": self.handle_list_rooms,
            "get_messages": self.handle_get_messages,
            "get_recent_messages": self.handle_get_recent_messages,
            "send_message": self.handle_send_message,
            "rename_room": self.handle_rename_room,
            "suspend_room": self.handle_suspend_room,
            "clear_room": self.handle_clear_room,
            "delete_room": self.handle_delete_room,
        }

        logger.info(
            f"ChatService initialized (admin operations "
            f"{'enabled' if self.settings.admin_enabled else 'disabled'})"
        )

    async def handle_message(self, websocket, message: str):
        """
        Entry point for handling incoming WebSocket messages
        """
        response = await self.process(message)
        await websocket.send(json.dumps(response))

    async def process(self, message: str) -> Dict[str, Any]:
        """
        Parse a raw request and return the response to send back.

        Never raises for a bad request; every failure becomes an error
        response.
        """
        try:
            request = json.loads(message)
        except (json.JSONDecodeError, TypeError):
            return self._error("INVALID_JSON", "Message must be valid JSON.", 400)

        if not isinstance(request, dict):
            return self._error("INVALID_JSON", "Message must be a JSON object.", 400)

        request_id = request.get("request_id")
        msg_type = request.get("type")
        data = request.get("data") or {}

        handler = self._handlers.get(msg_type)
        if handler is None:
            return self._error(
                "UNKNOWN_TYPE",
                f"Unknown message type '{msg_type}'.",
                400,
                request_id,
            )
        if not isinstance(data, dict):
            return self._error(
                "INVALID_INPUT", "data must be a JSON object.", 400, request_id
            )

        try:
            if msg_type in ADMIN_REQUEST_TYPES:
                self._check_admin(data)
            response_type, payload = await handler(data)
        except ChatStoreError as e:
            return self._error(e.error_code, str(e), e.status, request_id)
        except Exception as e:
            logger.exception(f"Unexpected error processing {msg_type}: {e}")
            return self._error(
                "INTERNAL_ERROR", "Internal server error", 500, request_id
            )

        return create_success_response(response_type, payload, request_id)

    async def _run(self, func, *args):
        """Run a blocking store call on the executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, func, *args)

    def _check_admin(self, data: Dict[str, Any]):
        expected = self.settings.admin_secret
        if not expected:
            raise Unauthorized("Admin operations are disabled on this server")
        provided = data.get("admin_secret")
        if not isinstance(provided, str) or not hmac.compare_digest(
            provided.encode("utf-8"), expected.encode("utf-8")
        ):
            raise Unauthorized("Invalid admin secret")

    # ------------------------------------------------------------------
    # Rooms
    # ------------------------------------------------------------------

    async def handle_create_room(self, data):
        """
        Handles room creation

        Returns the existing room when the code is already taken, updating
        its name if one is given.

        Expected request format:
        {
            "type": "create_room",
            "data": {"room_code": "...", "name": "..."}
        }
        """
        code = normalize_room_code(data.get("room_code"))
        name = clean_room_name(data.get("name"))
        room = await self._run(self.store.rooms.create_or_get_room, code, name)
        return "room_created", create_room_data(room)

    async def handle_join_room(self, data):
        """
        Handles a join request.

        Only validates the code and reports whether the room exists; the
        client creates the room with create_room when it does not.
        """
        code = normalize_room_code(data.get("room_code"))
        info = await self._run(self.store.rooms.get_room_info, code)
        logger.info(f"Join requested for room {code} (exists={info.exists})")
        return "room_joined", create_room_info_data(info)

    async def handle_room_info(self, data):
        code = normalize_room_code(data.get("room_code"))
        info = await self._run(self.store.rooms.get_room_info, code)
        return "room_info", create_room_info_data(info)

    async def handle_list_rooms(self, data):
        rooms = await self._run(self.store.rooms.list_rooms)
        logger.debug(f"Listing {len(rooms)} rooms")
        return "rooms_list", create_rooms_list_data(rooms)

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def handle_get_messages(self, data):
        """
        Handles polling for new messages.

        Expected request format:
        {
            "type": "get_messages",
            "data": {"room_code": "...", "after": "<created_at>", "limit": 50}
        }
        """
        code = normalize_room_code(data.get("room_code"))
        after = normalize_cursor(data.get("after"))
        limit = parse_limit(data.get("limit"), MAX_PAGE_SIZE) or MAX_PAGE_SIZE
        messages = await self._run(
            self.store.messages.list_messages, code, after, limit
        )
        return "messages", create_messages_data(code, messages, after)

    async def handle_get_recent_messages(self, data):
        code = normalize_room_code(data.get("room_code"))
        limit = (
            parse_limit(data.get("limit"), MAX_PAGE_SIZE) or DEFAULT_RECENT_LIMIT
        )
        messages = await self._run(self.store.messages.recent_messages, code, limit)
        return "messages", create_messages_data(code, messages, None)

    async def handle_send_message(self, data):
        """
        Handles a user message.

        The text is trimmed and checked before masking; masking keeps the
        length, so the stored text is within the same limit.
        """
        code = normalize_room_code(data.get("room_code"))
        nickname = clean_nickname(data.get("nickname"))
        text = self.content_filter.mask(clean_message_text(data.get("text")))
        message = await self._run(self.store.messages.append, code, nickname, text)
        return "message_sent", create_message_sent_data(message)

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    async def handle_rename_room(self, data):
        code = normalize_room_code(data.get("room_code"))
        name = clean_room_name(data.get("name"))
        if name is None:
            raise InvalidInput("name is required")
        room = await self._run(self.store.rooms.rename_room, code, name)
        await self._notify(code, f"The room was renamed to \"{name}\"")
        logger.info(f"Admin renamed room {code} to '{name}'")
        return "room_renamed", create_room_data(room)

    async def handle_suspend_room(self, data):
        code = normalize_room_code(data.get("room_code"))
        suspended = data.get("suspended")
        if not isinstance(suspended, bool):
            raise InvalidInput("suspended must be a boolean")
        room = await self._run(self.store.rooms.set_suspended, code, suspended)
        await self._notify(
            code,
            "This room has been suspended"
            if suspended
            else "This room has been resumed",
        )
        logger.info(f"Admin {'suspended' if suspended else 'resumed'} room {code}")
        # Re-read so the returned counters include the notice
        room = await self._run(self.store.rooms.get_room, code) or room
        return "room_suspension_changed", create_room_data(room)

    async def handle_clear_room(self, data):
        code = normalize_room_code(data.get("room_code"))
        removed = await self._run(self.store.messages.clear, code)
        await self._notify(
            code, "All messages in this room were deleted by an administrator"
        )
        return "room_cleared", create_room_cleared_data(code, removed)

    async def handle_delete_room(self, data):
        code = normalize_room_code(data.get("room_code"))
        deleted = await self._run(self.store.rooms.delete_room, code)
        if not deleted:
            raise RoomNotFound(code)
        logger.info(f"Admin deleted room {code}")
        return "room_deleted", create_room_deleted_data(code)

    async def _notify(self, code: str, text: str):
        """Post a system notice; a room deleted in between is not an error."""
        try:
            await self._run(self.store.messages.append_system, code, text)
        except RoomNotFound:
            logger.warning(f"Room {code} vanished before notice could be posted")

    def _error(
        self,
        code: str,
        message: str,
        status: int,
        request_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Unified error response format
        """
        logger.warning(f"Error {code}: {message}")
        return create_error_response(code, message, status, request_id)
