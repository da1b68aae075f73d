"""Error taxonomy for the platform client."""

from __future__ import annotations

from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Client-side failure classification."""

    NO_COOKIE_BY_NAME = 1
    NETWORK_ERROR = 2
    NO_CSRF_TOKEN = 3
    CORRUPT_RESPONSE = 4
    NO_COOKIE_PROVIDER = 5
    UNKNOWN = 6


class PlatformError(Exception):
    """Base exception for failures surfaced to callers of the platform."""

    code: ErrorCode = ErrorCode.UNKNOWN

    def __init__(self, message: str = "", code: ErrorCode | None = None, data: Any = None):
        super().__init__(message or self.__class__.__doc__ or "")
        if code is not None:
            self.code = code
        self.data = data


class CookieNotFoundError(PlatformError):
    """No cookie with the requested name exists."""

    code = ErrorCode.NO_COOKIE_BY_NAME


class NetworkError(PlatformError):
    """Transport failure or non-success HTTP status."""

    code = ErrorCode.NETWORK_ERROR

    def __init__(self, message: str = "", *, status_code: int | None = None, data: Any = None):
        super().__init__(message, data=data)
        self.status_code = status_code


class NoCsrfTokenError(PlatformError):
    """Value required for the X-CSRF header was not found."""

    code = ErrorCode.NO_CSRF_TOKEN


class CorruptResponseError(PlatformError):
    """Response body could not be parsed as a platform envelope."""

    code = ErrorCode.CORRUPT_RESPONSE


class NoCookieProviderError(PlatformError):
    """No cookie provider was configured."""

    code = ErrorCode.NO_COOKIE_PROVIDER


class RequestEncodingError(PlatformError):
    """Request body could not be serialised as JSON."""

    code = ErrorCode.UNKNOWN


class LifecycleError(RuntimeError):
    """Raised when a request lifecycle event would be emitted out of order."""


class FrameStateError(RuntimeError):
    """Raised when a frame's state or settlement invariant would be broken."""
