"""Response envelope shared by every endpoint, success or error."""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class SuccessResponse(BaseModel):
    success: bool = True
    data: Any = None
    message: str | None = None
    timestamp: str = Field(default_factory=_now_iso)


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    errors: dict[str, list[str]] | None = None
    timestamp: str = Field(default_factory=_now_iso)


def success_response(data: Any = None, message: str | None = None) -> dict[str, Any]:
    """Serialize a success envelope, omitting unset fields."""
    return SuccessResponse(data=data, message=message).model_dump(exclude_none=True)


def error_response(
    message: str, errors: dict[str, list[str]] | None = None
) -> dict[str, Any]:
    """Serialize an error envelope; errors is included only when non-empty."""
    return ErrorResponse(message=message, errors=errors or None).model_dump(exclude_none=True)
