"""Shared constants and payload builders for SmartRoom tests."""

from typing import Any

BASE_URL = "http://smartroom.test/api/v1"
TEST_TOKEN = "test_token"


def envelope(data: Any, message: str = "OK") -> dict:
    """Wrap a payload in the SmartRoom response envelope.

    Args:
        data: Value of the envelope's data field.
        message: Human-readable status message.

    Returns:
        A dictionary representing a SmartRoom API response.

    """
    return {
        "status": 200,
        "message": message,
        "data": data,
        "timestamp": "2024-05-01T10:00:00",
    }


def page(content: list[dict]) -> dict:
    """Wrap items in a paginated envelope."""
    return envelope(
        {
            "content": content,
            "totalElements": len(content),
            "totalPages": 1,
            "number": 0,
            "size": len(content),
        }
    )
