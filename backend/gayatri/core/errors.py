from __future__ import annotations

from typing import Any, Dict, Optional


class ServiceError(Exception):
    """
    Base error raised by the service layer.

    Rendered by the API as ``{"success": false, "message": ...}`` with
    ``status_code``. ``extra`` is merged into the response body.
    """

    status_code = 400

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "message": self.message, **self.extra}


class AuthenticationError(ServiceError):
    status_code = 401


class PermissionDeniedError(ServiceError):
    status_code = 403


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    status_code = 409


class InvalidStateError(ServiceError):
    """The target exists but is not in a state that allows the operation."""

    status_code = 409


class IntegrationError(ServiceError):
    """A third-party platform API returned something we cannot use."""

    status_code = 502
