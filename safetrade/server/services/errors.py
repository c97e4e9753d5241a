"""Error types raised by the service layer.

Routes translate these into HTTP responses; services never build responses
themselves.
"""

from __future__ import annotations

from typing import Any, Optional


class AuthServiceError(Exception):
    """Token verification against the auth service failed.

    Args:
        message: Human-readable error description.
        status_code: HTTP status returned by the auth service, if any.
        details: Raw response body for diagnosis.
    """

    def __init__(self, message: str, *, status_code: Optional[int] = None, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class ServiceError(Exception):
    """A business rule rejected the request.

    Args:
        message: Human-readable error description, safe to return to clients.
        status_code: HTTP status the API layer should answer with.
        details: Extra keys merged into the error body.
    """

    def __init__(self, message: str, *, status_code: int = 400, details: Optional[dict] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or {}

    def to_detail(self) -> Any:
        """HTTPException detail: the bare message, or a dict when extra keys are attached."""
        if not self.details:
            return self.message
        return {"error": self.message, **self.details}
