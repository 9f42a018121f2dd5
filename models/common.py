"""Response envelope shared by every JSON endpoint."""

from __future__ import annotations

from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    data: Optional[T] = None
    error: Optional[str] = None
    details: Optional[list[Any]] = None
    count: Optional[int] = None


def ok(data: Any = None, count: int | None = None) -> dict:
    body = {"success": True, "data": data}
    if count is not None:
        body["count"] = count
    return body


def fail(error: str, details: list[Any] | None = None) -> dict:
    body = {"success": False, "error": error}
    if details:
        body["details"] = details
    return body
