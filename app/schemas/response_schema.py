"""Unified API response envelopes."""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ErrorResponse(BaseModel):
    """Error body: HTTP status, human-readable message, machine code."""

    status: int
    message: str
    code: str


class ApiResponse(BaseModel, Generic[T]):
    """Success envelope wrapping the endpoint payload in ``data``."""

    status: int = 200
    message: str = "Success"
    data: T | None = None


def success_response(data: T, status: int = 200, message: str = "Success") -> dict:
    """Build a success response dict for returning from endpoints."""
    return {"status": status, "message": message, "data": data}


def error_body(status: int, message: str, code: str) -> dict[str, Any]:
    """Serialise an error in the shape every handler and middleware returns."""
    return ErrorResponse(status=status, message=message, code=code).model_dump()


ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    401: {"model": ErrorResponse, "description": "Missing or invalid token"},
    403: {"model": ErrorResponse, "description": "Not the session owner"},
    404: {"model": ErrorResponse, "description": "Session not found"},
}
