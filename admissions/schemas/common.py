"""
Response envelope shared by every endpoint

    {"success": bool, "data": ..., "message": ..., "error": ...}
"""

from pydantic import BaseModel
from typing import Any, Optional
import math


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    limit: int
    total_count: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(
            current_page=page,
            total_pages=math.ceil(total / limit) if limit else 0,
            limit=limit,
            total_count=total,
        )


def success_response(data: Any = None, message: Optional[str] = None, **extra) -> dict:
    """Builds the success envelope; extra keys (count, pagination) are merged in"""
    body = {"success": True}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    body.update(extra)
    return body


def error_response(message: str, error: Any = None) -> dict:
    body = {"success": False, "message": message}
    if error is not None:
        body["error"] = error
    return body
