"""
Response Schema Definitions

Contains functions for creating the response envelope shared by every
request type.
"""

from typing import Any, Dict, Optional


def create_success_response(
    response_type: str,
    data: Dict[str, Any],
    request_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Create a success response.

    Args:
        response_type: Type of success response
        data: Response payload
        request_id: Identifier echoed back from the request, if any

    Returns:
        dict: Success response
    """
    response = {"type": response_type, "data": data}
    if request_id is not None:
        response["request_id"] = request_id
    return response


def create_error_response(
    error_code: str,
    message: str,
    status: int,
    request_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Create an error response.

    Args:
        error_code: Stable error code (e.g., ROOM_NOT_FOUND)
        message: Human readable error message
        status: HTTP-style status for the failure class
        request_id: Identifier echoed back from the request, if any

    Returns:
        dict: Error response
    """
    response = {
        "type": "error",
        "data": {
            "error_code": error_code,
            "message": message,
            "status": status,
        },
    }
    if request_id is not None:
        response["request_id"] = request_id
    return response
