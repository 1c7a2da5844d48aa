"""
================================================================================
Taiga API Error Taxonomy
================================================================================

Exceptions raised by the transport and the Taiga resource clients.

Hierarchy:
    TaigaError
    ├── TransportError          network failure, 5xx, unusable client
    │   └── AuthenticationError 401/403 or failed login
    ├── ValidationError         400/422 or local precondition failure
    ├── NotFoundError           404
    └── ConflictError           409 or duplicate relation

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

from typing import Any, Optional


class TaigaError(Exception):
    """Base exception for every Taiga client failure."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        method: Optional[str] = None,
        url: Optional[str] = None,
        detail: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.method = method
        self.url = url
        self.detail = detail

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"{self.message} [{self.method} {self.url} -> {self.status_code}]"


class TransportError(TaigaError):
    """Raised on network errors, 5xx responses and unexpected statuses."""
    pass


class AuthenticationError(TransportError):
    """Raised when the server rejects our credentials."""
    pass


class ValidationError(TaigaError):
    """Raised when a payload is rejected, locally or by the server."""
    pass


class NotFoundError(TaigaError):
    """Raised when the requested entity does not exist."""
    pass


class ConflictError(TaigaError):
    """Raised when the request conflicts with existing server state."""
    pass


# Status codes with a dedicated exception type; everything else >= 400
# becomes a TransportError.
STATUS_ERRORS = {
    400: ValidationError,
    401: AuthenticationError,
    403: AuthenticationError,
    404: NotFoundError,
    409: ConflictError,
    422: ValidationError,
}


def error_for_status(status_code: int) -> type:
    """Return the exception class matching an HTTP error status."""
    return STATUS_ERRORS.get(status_code, TransportError)


__all__ = [
    "TaigaError",
    "TransportError",
    "AuthenticationError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "error_for_status",
]
