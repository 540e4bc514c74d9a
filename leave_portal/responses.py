"""
Standard API response envelope.
"""

from typing import Any


def success_response(data: Any = None, message: str = "Success") -> dict:
    return {"success": True, "message": message, "data": data}


def isoformat(value):
    return value.isoformat() if value else None
