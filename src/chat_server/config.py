"""
Server Configuration

Settings are read once from the environment at startup.

Environment variables:
    CHAT_HOST: Address to bind the WebSocket server to (0.0.0.0)
    CHAT_PORT: Port to listen on (8080)
    STORAGE_BACKEND: json, sqlite or memory (json)
    DATA_FILE: Snapshot path for the json backend (data/rooms.json)
    DATABASE_PATH: Database path for the sqlite backend (data/chat.db)
    AUTO_CREATE_ON_SEND: Create missing rooms on first message (false)
    ADMIN_SECRET: Shared secret for admin requests; empty disables them
    BANNED_WORDS: Comma separated words to mask (built-in list)
    STORE_WORKERS: Threads used for store calls (8)
    LOG_LEVEL: Logging level name (INFO)
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from .content_filter import DEFAULT_BANNED_WORDS

STORAGE_BACKENDS = ("json", "sqlite", "memory")

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off", "")


@dataclass
class Settings:
    """Runtime configuration for the chat server."""

    host: str = "0.0.0.0"
    port: int = 8080
    storage_backend: str = "json"
    data_file: str = "data/rooms.json"
    database_path: str = "data/chat.db"
    auto_create_on_send: bool = False
    admin_secret: str = ""
    banned_words: Tuple[str, ...] = DEFAULT_BANNED_WORDS
    store_workers: int = 8
    log_level: str = "INFO"

    def __post_init__(self):
        if self.storage_backend not in STORAGE_BACKENDS:
            raise ValueError(
                f"STORAGE_BACKEND must be one of {', '.join(STORAGE_BACKENDS)}, "
                f"got '{self.storage_backend}'"
            )
        if not 0 <= self.port <= 65535:
            raise ValueError(f"CHAT_PORT out of range: {self.port}")
        if self.store_workers < 1:
            raise ValueError("STORE_WORKERS must be at least 1")

    @property
    def admin_enabled(self) -> bool:
        return bool(self.admin_secret)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        Raises:
            ValueError: If a variable holds an invalid value
        """
        env = os.environ if environ is None else environ

        banned_words = DEFAULT_BANNED_WORDS
        if "BANNED_WORDS" in env:
            banned_words = tuple(
                word.strip() for word in env["BANNED_WORDS"].split(",") if word.strip()
            )

        return cls(
            host=env.get("CHAT_HOST", "0.0.0.0"),
            port=_parse_int(env, "CHAT_PORT", 8080),
            storage_backend=env.get("STORAGE_BACKEND", "json").strip().lower(),
            data_file=env.get("DATA_FILE", "data/rooms.json"),
            database_path=env.get("DATABASE_PATH", "data/chat.db"),
            auto_create_on_send=_parse_bool(env, "AUTO_CREATE_ON_SEND", False),
            admin_secret=env.get("ADMIN_SECRET", ""),
            banned_words=banned_words,
            store_workers=_parse_int(env, "STORE_WORKERS", 8),
            log_level=env.get("LOG_LEVEL", "INFO").strip().upper(),
        )


def _parse_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got '{raw}'") from None


def _parse_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = env.get(key)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{key} must be a boolean, got '{raw}'")
