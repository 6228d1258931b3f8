"""HTTP-aware error types raised by the service layer."""

from typing import Any, Dict, Iterable, Optional

from fastapi import HTTPException, status


class ServiceError(HTTPException):
    """Base class carrying a default status code and client-facing message."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Internal server error"

    def __init__(self, detail: Optional[str] = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(
            status_code=type(self).status_code,
            detail=detail or type(self).message,
            headers=headers,
        )


class Unauthorized(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Access Denied: No Token Provided"


class Forbidden(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Access Denied"


class ValidationError(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid input"


class Conflict(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "User already exists"


class InvalidCredentials(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid credentials"


class NotFound(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Sweet not found"


class OutOfStock(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Item is out of stock"


class InternalError(ServiceError):
    pass


def describe_validation_errors(errors: Iterable[Dict[str, Any]]) -> str:
    """Collapse pydantic error entries into one readable line."""
    parts = []
    for error in errors:
        loc = [str(p) for p in error.get("loc", ()) if p not in ("body", "query", "path")]
        field = ".".join(loc)
        msg = error.get("msg", "invalid value")
        parts.append(f"{field}: {msg}" if field else msg)
    return "; ".join(parts) or ValidationError.message
