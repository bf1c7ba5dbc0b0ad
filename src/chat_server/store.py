"""
Chat Store

Wires the room store, message store, generators and persistence backend
together and owns their lifecycle.

Usage:
    store = ChatStore(JsonFileBackend("data/rooms.json"))
    store.initialize()
    store.rooms.create_or_get_room("abc123", "Lobby")
    store.messages.append("ABC123", "alice", "hello")
    store.shutdown()
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from .config import Settings
from .ids import SequenceGenerator, TimestampGenerator
from .locks import RoomLocks
from .message_store import MessageStore
from .persistence import (
    JsonFileBackend,
    MemoryBackend,
    SqliteBackend,
    StorageBackend,
)
from .room_store import RoomStore

logger = logging.getLogger(__name__)


def create_backend(settings: Settings) -> StorageBackend:
    """Build the persistence backend named by the settings."""
    if settings.storage_backend == "memory":
        return MemoryBackend()
    if settings.storage_backend == "sqlite":
        return SqliteBackend(settings.database_path)
    if settings.storage_backend == "json":
        return JsonFileBackend(settings.data_file)
    raise ValueError(f"Unknown storage backend: {settings.storage_backend}")


class ChatStore:
    """
    Process-wide room and message state.

    Attributes:
        backend: The persistence backend
        rooms: RoomStore for room metadata
        messages: MessageStore for room messages
    """

    def __init__(
        self,
        backend: Optional[StorageBackend] = None,
        auto_create_on_send: bool = False,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the store.

        Args:
            backend: Persistence backend (in-memory when omitted)
            auto_create_on_send: Create a missing room on its first message
            clock: Optional replacement for the UTC wall clock
        """
        self.backend = backend or MemoryBackend()
        self.locks = RoomLocks()
        self.timestamps = TimestampGenerator(clock)
        self.sequence = SequenceGenerator()
        self.rooms = RoomStore(self.backend, self.locks, self.timestamps)
        self.messages = MessageStore(
            self.backend,
            self.locks,
            self.timestamps,
            self.sequence,
            auto_create_on_send=auto_create_on_send,
        )
        self._initialized = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "ChatStore":
        return cls(
            create_backend(settings),
            auto_create_on_send=settings.auto_create_on_send,
        )

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def auto_create_on_send(self) -> bool:
        return self.messages.auto_create_on_send

    def initialize(self) -> None:
        """
        Open the backend and seed the generators from stored data.

        Raises:
            PersistenceFailure: If stored state cannot be loaded
        """
        if self._initialized:
            return
        self.backend.open()
        latest, last_sequence = self.backend.high_water_mark()
        self.timestamps.observe(latest)
        self.sequence.observe(last_sequence)
        self._initialized = True
        logger.info(
            f"ChatStore initialized with {self.backend.name} backend "
            f"(auto_create_on_send={self.auto_create_on_send})"
        )

    def shutdown(self) -> None:
        """Close the backend."""
        if not self._initialized:
            return
        self.backend.close()
        self._initialized = False
        logger.info("ChatStore shut down")

    def __enter__(self) -> "ChatStore":
        self.initialize()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()
