"""
Base Schema Classes

This module provides base classes for request and response schemas with
common serialization and deserialization methods to avoid code duplication.
"""

import json
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional, TypeVar

T = TypeVar("T", bound="BaseResponse")


class BaseRequest:
    """
    Base class for request schemas.

    Provides common serialization methods for converting request objects
    to dictionary and JSON formats.
    """

    def to_dict(self, request_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Convert to dictionary for JSON serialization.

        Args:
            request_id: Optional identifier the server echoes back

        Returns:
            Dictionary with 'type' key and optional 'data' key.
            If the request has no fields, only 'type' is included.
        """
        if hasattr(self, "__dataclass_fields__") and fields(self):
            message = {"type": self._message_type, "data": asdict(self)}
        else:
            message = {"type": self._message_type}
        if request_id is not None:
            message["request_id"] = request_id
        return message

    def to_json(self, request_id: Optional[str] = None) -> str:
        """
        Convert to JSON string.

        Returns:
            JSON string representation of the request.
        """
        return json.dumps(self.to_dict(request_id))

    @property
    def _message_type(self) -> str:
        """
        Message type identifier for the request.

        Should be overridden by subclasses to provide the specific type.
        """
        raise NotImplementedError("Subclasses must define _message_type")

    @property
    def response_type(self) -> str:
        """Type of the success response the server answers with."""
        raise NotImplementedError("Subclasses must define response_type")


class BaseResponse:
    """
    Base class for response schemas.

    Provides common deserialization methods for creating response objects
    from dictionary and JSON formats.
    """

    @classmethod
    def from_dict(cls: type[T], data: Dict[str, Any]) -> T:
        """
        Create instance from dictionary.

        Args:
            data: Dictionary containing response data.

        Returns:
            Instance of the response class.
        """
        response_data = data.get("data", data)
        return cls._from_data(response_data)

    @classmethod
    def from_json(cls: type[T], json_str: str) -> T:
        """
        Create instance from JSON string.

        Args:
            json_str: JSON string containing response data.

        Returns:
            Instance of the response class.
        """
        data = json.loads(json_str)
        return cls.from_dict(data)

    @classmethod
    def _from_data(cls: type[T], data: Dict[str, Any]) -> T:
        """
        Create instance from response data dictionary.

        Should be overridden by subclasses for custom deserialization.
        """
        return cls(**data)


@dataclass
class ErrorResponse(BaseResponse):
    """
    Error returned by the server for any failed request.

    Attributes:
        error_code: Error code (e.g., ROOM_NOT_FOUND, ROOM_SUSPENDED)
        message: Human readable error message
        status: HTTP-style status (400, 401, 403, 404, 500)
    """

    error_code: str
    message: str
    status: int = 500

    @classmethod
    def _from_data(cls, data: Dict[str, Any]) -> "ErrorResponse":
        return cls(
            error_code=data.get("error_code", "INTERNAL_ERROR"),
            message=data.get("message", "Unknown error"),
            status=int(data.get("status", 500)),
        )
