"""Response envelope of the diagnostics HTTP surface.

Shape: { success: bool, data: T | None, error: str | None, meta: dict | None }.
Exception handlers build the same shape for failures.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """JSON envelope wrapping every diagnostics response."""

    success: bool
    data: T | None = None
    error: str | None = None
    meta: dict | None = None

    @classmethod
    def ok(cls, data: Any, meta: dict | None = None) -> dict:
        return cls(success=True, data=data, meta=meta).model_dump(mode="json")

    @classmethod
    def fail(cls, error: str, data: Any = None) -> dict:
        return cls(success=False, data=data, error=error).model_dump(mode="json")
