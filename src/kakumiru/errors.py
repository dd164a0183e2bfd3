"""Exception types raised by the Kakumiru client."""

from __future__ import annotations

from typing import Optional


class KakumiruError(Exception):
    """Base exception for the Kakumiru client."""


class ApiError(KakumiruError):
    """A request to the Kakumiru API failed.

    ``status`` is ``None`` when the request never produced an HTTP response
    (connection refused, DNS failure and the like).
    """

    def __init__(self, message: str, *, status: Optional[int] = None) -> None:
        self.message = message
        self.status = status
        super().__init__(message)


class UnauthorizedError(ApiError):
    """The API rejected the request because no user is logged in."""

    def __init__(self, message: str = "login required", *, status: Optional[int] = 401) -> None:
        super().__init__(message, status=status)


class ValidationError(KakumiruError, ValueError):
    """Client-side input was rejected before any request was sent."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class ConfigurationError(KakumiruError):
    """Required client configuration is missing."""


class UploadError(KakumiruError):
    """The image host did not accept an upload."""


__all__ = [
    "ApiError",
    "ConfigurationError",
    "KakumiruError",
    "UnauthorizedError",
    "UploadError",
    "ValidationError",
]
