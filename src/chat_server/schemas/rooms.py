"""
Room Schema Definitions

Contains functions for creating room related response payloads.
"""

from typing import Any, Dict, List

from ..models import Room, RoomInfo


def create_room_data(room: Room) -> Dict[str, Any]:
    """Payload carrying one room."""
    return {"room": room.to_dict()}


def create_room_info_data(info: RoomInfo) -> Dict[str, Any]:
    """Payload carrying a room projection, including exists=False."""
    return {"room": info.to_dict()}


def create_rooms_list_data(rooms: List[Room]) -> Dict[str, Any]:
    """
    Payload for the room list.

    Args:
        rooms: Rooms in display order

    Returns:
        dict: Room list payload
    """
    return {
        "rooms": [room.to_dict() for room in rooms],
        "total_count": len(rooms),
    }


def create_room_cleared_data(room_code: str, removed: int) -> Dict[str, Any]:
    return {"room_code": room_code, "removed": removed}


def create_room_deleted_data(room_code: str) -> Dict[str, Any]:
    return {"room_code": room_code, "message": f"Room '{room_code}' has been deleted"}
