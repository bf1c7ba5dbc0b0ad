"""
Schemas for the Chat Server

This module contains the functions that build response envelopes and
payloads for rooms and messages.
"""

from .messages import create_message_sent_data, create_messages_data
from .responses import create_error_response, create_success_response
from .rooms import (
    create_room_cleared_data,
    create_room_data,
    create_room_deleted_data,
    create_room_info_data,
    create_rooms_list_data,
)

__all__ = [
    "create_message_sent_data",
    "create_messages_data",
    "create_error_response",
    "create_success_response",
    "create_room_cleared_data",
    "create_room_data",
    "create_room_deleted_data",
    "create_room_info_data",
    "create_rooms_list_data",
]
