"""Pydantic contracts for the v1 platform request/response envelope."""

from enum import IntEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class PlatformErrorCode(IntEnum):
    """Subset of the remote ``ErrorCode`` values the client acts upon."""

    NONE = 0
    SUCCESS = 1
    TRANSPORT_EXCEPTION = 2
    UNHANDLED_EXCEPTION = 3
    THROTTLE_LIMIT_EXCEEDED = 31
    THROTTLE_LIMIT_EXCEEDED_MINUTES = 35
    THROTTLE_LIMIT_EXCEEDED_MOMENTARILY = 36
    THROTTLE_LIMIT_EXCEEDED_SECONDS = 37
    PER_ENDPOINT_REQUEST_THROTTLE_EXCEEDED = 51


PLATFORM_SUCCESS = PlatformErrorCode.SUCCESS

THROTTLE_ERROR_CODES = frozenset(
    {
        PlatformErrorCode.THROTTLE_LIMIT_EXCEEDED,
        PlatformErrorCode.THROTTLE_LIMIT_EXCEEDED_MINUTES,
        PlatformErrorCode.THROTTLE_LIMIT_EXCEEDED_MOMENTARILY,
        PlatformErrorCode.THROTTLE_LIMIT_EXCEEDED_SECONDS,
        PlatformErrorCode.PER_ENDPOINT_REQUEST_THROTTLE_EXCEEDED,
    }
)


class _FrozenModel(BaseModel):
    """Base model whose instances reject attribute assignment.

    Instances compare by value but are not hashable when a field holds a
    container such as ``Request.headers``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Request(_FrozenModel):
    """Endpoint descriptor handed to the platform pipeline.

    ``uri`` is relative to the platform base path, e.g.
    ``"/User/GetBungieNetUser/"``. The pipeline replaces it with the fully
    qualified URI on a copy; the caller's instance is never mutated.
    """

    uri: str
    method: str = "GET"
    data: Any = None
    headers: dict[str, str] = Field(default_factory=dict)


class Response(_FrozenModel):
    """Application response envelope returned by the platform.

    A response whose ``is_error`` is true is still a successful call as far
    as the pipeline is concerned; inspecting ``error_code`` is up to the
    caller.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    error_code: int | None = Field(default=None, alias="ErrorCode")
    error_status: str | None = Field(default=None, alias="ErrorStatus")
    message: str | None = Field(default=None, alias="Message")
    message_data: dict[str, Any] | None = Field(default=None, alias="MessageData")
    response: Any = Field(default=None, alias="Response")
    throttle_seconds: int | None = Field(default=None, alias="ThrottleSeconds")

    @property
    def is_error(self) -> bool:
        return self.error_code != PLATFORM_SUCCESS

    @property
    def is_throttled(self) -> bool:
        return self.error_code in THROTTLE_ERROR_CODES
