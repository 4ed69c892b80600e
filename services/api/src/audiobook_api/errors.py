"""Application exceptions mapped onto JSON error responses."""

from __future__ import annotations

from typing import Any

from fastapi import status


class AppError(Exception):
    """Base class for errors that become a ``{success: false, ...}`` response.

    Args:
        message: Client-facing message.
        code: Optional machine-readable code, e.g. ``USER_NOT_FOUND``.
        extra: Additional top-level fields merged into the response body.
        status_code: Overrides the class default status.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: str | None = None,
        extra: dict[str, Any] | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.extra = extra or {}
        if status_code is not None:
            self.status_code = status_code

    def to_content(self, correlation_id: str | None = None) -> dict[str, Any]:
        content: dict[str, Any] = {"success": False, "message": self.message}
        if self.code:
            content["code"] = self.code
        if correlation_id:
            content["correlation_id"] = correlation_id
        content.update(self.extra)
        return content


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Authentication failed", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class AuthorizationError(AppError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND

