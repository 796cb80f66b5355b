"""Common Pydantic schemas."""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ResponseEnvelope(BaseModel, Generic[T]):
    """Standard API envelope."""

    success: bool = True
    data: T | None = None
    message: str | None = None


def envelope(data: Any = None, message: str | None = None) -> dict[str, Any]:
    """Raw envelope; FastAPI validates ORM payloads against the route's response_model."""
    return {"success": True, "data": data, "message": message}
