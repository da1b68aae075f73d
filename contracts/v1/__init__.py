"""v1 contract schemas for the platform request/response envelope."""

__version__ = "1.0.0"

from .schemas import (
    PLATFORM_SUCCESS,
    THROTTLE_ERROR_CODES,
    PlatformErrorCode,
    Request,
    Response,
)

__all__ = [
    "__version__",
    "PLATFORM_SUCCESS",
    "THROTTLE_ERROR_CODES",
    "PlatformErrorCode",
    "Request",
    "Response",
]
