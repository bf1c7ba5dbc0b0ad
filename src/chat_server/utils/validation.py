"""
Validation Utilities

Contains utility functions for validating and normalizing room codes,
nicknames, room names and message content.
"""

from typing import Optional, Tuple

from ..errors import InvalidInput
from ..models import SYSTEM_NICKNAME

# Field limits
MAX_MESSAGE_LENGTH = 200
MAX_NICKNAME_LENGTH = 20
MAX_ROOM_NAME_LENGTH = 40
MAX_ROOM_CODE_LENGTH = 32


def normalize_room_code(code) -> str:
    """
    Canonicalize a room code: trimmed and uppercased.

    Raises:
        InvalidInput: If the code is not a string, empty after trimming,
            or longer than MAX_ROOM_CODE_LENGTH
    """
    if not isinstance(code, str):
        raise InvalidInput("room_code must be a string")
    normalized = code.strip().upper()
    if not normalized:
        raise InvalidInput("room_code is required")
    if len(normalized) > MAX_ROOM_CODE_LENGTH:
        raise InvalidInput(
            f"room_code too long (max {MAX_ROOM_CODE_LENGTH} characters)"
        )
    return normalized


def validate_message_content(content) -> Tuple[bool, Optional[str]]:
    """
    Validate message content.

    Args:
        content: The message content to validate

    Returns:
        tuple: (is_valid, error_message)
            - is_valid: True if content is valid, False otherwise
            - error_message: Error message if invalid, None if valid
    """
    if not isinstance(content, str) or not content.strip():
        return False, "Message content cannot be empty"

    if len(content.strip()) > MAX_MESSAGE_LENGTH:
        return (
            False,
            f"Message content too long (max {MAX_MESSAGE_LENGTH} characters)",
        )

    return True, None


def validate_nickname(nickname) -> Tuple[bool, Optional[str]]:
    """
    Validate a user nickname.

    The reserved system sender name is refused so a participant can never
    pass as the server.

    Returns:
        tuple: (is_valid, error_message)
    """
    if not isinstance(nickname, str) or not nickname.strip():
        return False, "Nickname cannot be empty"

    if nickname.strip().casefold() == SYSTEM_NICKNAME.casefold():
        return False, f"Nickname '{SYSTEM_NICKNAME}' is reserved"

    return True, None


def clean_message_text(content) -> str:
    """Return trimmed message text or raise InvalidInput."""
    is_valid, error = validate_message_content(content)
    if not is_valid:
        raise InvalidInput(error)
    return content.strip()


def clean_nickname(nickname) -> str:
    """
    Return the trimmed nickname truncated to MAX_NICKNAME_LENGTH.

    Validation runs on the truncated value, which is what gets stored.
    """
    if isinstance(nickname, str):
        nickname = nickname.strip()[:MAX_NICKNAME_LENGTH].strip()
    is_valid, error = validate_nickname(nickname)
    if not is_valid:
        raise InvalidInput(error)
    return nickname


def clean_room_name(name) -> Optional[str]:
    """
    Trim and truncate a room display name.

    Returns:
        The cleaned name, or None when no usable name was given
    """
    if name is None:
        return None
    if not isinstance(name, str):
        raise InvalidInput("name must be a string")
    cleaned = name.strip()[:MAX_ROOM_NAME_LENGTH]
    return cleaned or None


def parse_limit(limit, maximum: Optional[int] = None) -> Optional[int]:
    """
    Validate an optional page size.

    Raises:
        InvalidInput: If the limit is not a positive integer
    """
    if limit is None:
        return None
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise InvalidInput("limit must be a positive integer")
    if maximum is not None:
        return min(limit, maximum)
    return limit
