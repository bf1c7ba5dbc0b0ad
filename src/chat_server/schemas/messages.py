"""
Message Schema Definitions

Contains functions for creating message related response payloads.
"""

from typing import Any, Dict, List, Optional

from ..models import Message


def create_message_sent_data(message: Message) -> Dict[str, Any]:
    """
    Create the payload confirming a stored message.

    Args:
        message: The stored message

    Returns:
        dict: Confirmation payload
    """
    return {"message": message.to_dict()}


def create_messages_data(
    room_code: str,
    messages: List[Message],
    cursor: Optional[str],
) -> Dict[str, Any]:
    """
    Create the payload for a page of messages.

    The cursor is the created_at of the last message returned, or the
    cursor the client sent when the page is empty, so the client can
    always pass it back unchanged on the next poll.

    Args:
        room_code: Normalized room code
        messages: Messages in ascending order
        cursor: Cursor to fall back on for an empty page

    Returns:
        dict: Messages payload
    """
    if messages:
        cursor = messages[-1].created_at
    return {
        "room_code": room_code,
        "messages": [message.to_dict() for message in messages],
        "count": len(messages),
        "cursor": cursor,
    }
