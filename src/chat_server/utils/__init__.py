"""
Utilities for the Chat Server

This module contains utility functions for validating and normalizing
request fields before they reach the stores.
"""

from .validation import (
    MAX_MESSAGE_LENGTH,
    MAX_NICKNAME_LENGTH,
    MAX_ROOM_CODE_LENGTH,
    MAX_ROOM_NAME_LENGTH,
    clean_message_text,
    clean_nickname,
    clean_room_name,
    normalize_room_code,
    parse_limit,
    validate_message_content,
    validate_nickname,
)

__all__ = [
    "MAX_MESSAGE_LENGTH",
    "MAX_NICKNAME_LENGTH",
    "MAX_ROOM_CODE_LENGTH",
    "MAX_ROOM_NAME_LENGTH",
    "clean_message_text",
    "clean_nickname",
    "clean_room_name",
    "normalize_room_code",
    "parse_limit",
    "validate_message_content",
    "validate_nickname",
]
