"""
Message Log for Client-Side Message Ordering

This module keeps the messages a client has received for one room, in
server order, and tracks the cursor used for the next poll.

Architecture:
    - Uses binary search for efficient insertion (O(log n))
    - Maintains sorted order by (created_at, sequence)
    - Ignores duplicates, so overlapping polls are harmless
    - Limits log size to prevent memory exhaustion

Usage:
    log = MessageLog()
    added = log.add_messages(page.messages)
    next_page = await service.get_messages(code, after=log.cursor)
"""

import bisect
import logging
from typing import Iterable, List, Optional, Set

from .schemas import ChatMessage

logger = logging.getLogger(__name__)

# Maximum number of messages to keep in the log
DEFAULT_MAX_LOG_SIZE = 1000


class MessageLog:
    """
    Ordered, de-duplicated log of the messages received for a room.

    Attributes:
        messages: Messages sorted by (created_at, sequence)
        cursor: created_at of the newest message received, or None
        max_size: Maximum number of messages to keep
    """

    def __init__(self, max_size: int = DEFAULT_MAX_LOG_SIZE):
        """
        Initialize the message log.

        Args:
            max_size: Maximum number of messages to keep. The oldest
                      messages are dropped when exceeded.
        """
        self.messages: List[ChatMessage] = []
        self.cursor: Optional[str] = None
        self.max_size = max_size
        self._seen_ids: Set[str] = set()

    def add_message(self, message: ChatMessage) -> bool:
        """
        Insert a message at its position.

        Returns:
            bool: True if the message was added, False if it was a duplicate
        """
        if message.id in self._seen_ids:
            logger.debug("Duplicate message ignored: %s", message.id)
            return False

        bisect.insort(self.messages, message, key=lambda m: m.sort_key)
        self._seen_ids.add(message.id)
        if self.cursor is None or message.created_at > self.cursor:
            self.cursor = message.created_at

        self._enforce_size_limit()
        return True

    def add_messages(self, messages: Iterable[ChatMessage]) -> List[ChatMessage]:
        """
        Add a page of messages.

        Returns:
            The messages that were new, in the order given
        """
        return [message for message in messages if self.add_message(message)]

    def advance_cursor(self, cursor: Optional[str]) -> None:
        """Move the cursor forward without adding messages."""
        if cursor and (self.cursor is None or cursor > self.cursor):
            self.cursor = cursor

    def __len__(self) -> int:
        return len(self.messages)

    def __contains__(self, message_id: str) -> bool:
        return message_id in self._seen_ids

    def clear(self) -> None:
        """
        Clear the log and reset the cursor.

        This should be called when leaving a room or when the room's
        messages were cleared on the server.
        """
        self.messages.clear()
        self._seen_ids.clear()
        self.cursor = None
        logger.debug("Message log cleared")

    def _enforce_size_limit(self) -> None:
        """Drop the oldest messages if the log exceeds its maximum size."""
        if len(self.messages) > self.max_size:
            excess = len(self.messages) - self.max_size
            for message in self.messages[:excess]:
                self._seen_ids.discard(message.id)
            self.messages = self.messages[excess:]
            logger.debug("Log limit exceeded, removed %s oldest messages", excess)
