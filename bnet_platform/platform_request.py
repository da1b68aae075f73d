"""Lifecycle driver for the network call of a single frame.

This does NOT represent a response from the platform. It owns the workflow
between issuing a request and classifying what came back, emitting one
lifecycle event per step (see ``bnet_platform.lifecycle``).
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional

import httpx
from pydantic import ValidationError

from contracts.v1.schemas import Response

from .errors import (
    CorruptResponseError,
    LifecycleError,
    NetworkError,
    PlatformError,
    RequestEncodingError,
)
from .lifecycle import LifecycleEvent, advance

if TYPE_CHECKING:
    from .frame import Frame


@dataclass(frozen=True)
class RequestOptions:
    """Outgoing transport options.

    Values are immutable; plugins derive a new instance with the ``with_*``
    helpers instead of editing one in place.
    """

    url: str = ""
    method: str = "GET"
    headers: Mapping[str, str] = field(default_factory=dict)
    content: Optional[str] = None
    # None disables the timeout; USE_CLIENT_DEFAULT defers to the client
    timeout: Any = httpx.USE_CLIENT_DEFAULT
    cookies: Optional[httpx.Cookies] = None

    def with_header(self, name: str, value: str) -> "RequestOptions":
        return replace(self, headers={**self.headers, name: value})

    def with_headers(self, headers: Mapping[str, str]) -> "RequestOptions":
        return replace(self, headers={**self.headers, **headers})

    def with_cookies(self, cookies: httpx.Cookies) -> "RequestOptions":
        return replace(self, cookies=cookies)


@dataclass(frozen=True)
class LifecycleEventData:
    target: "PlatformRequest"


Listener = Callable[[str, LifecycleEventData], None]
OptionsTransform = Callable[[RequestOptions], RequestOptions]


def encode_body(data: Any) -> Optional[str]:
    """Serialise a request body as JSON; None means no body.

    Raises ``RequestEncodingError`` for values JSON cannot represent.
    """
    if data is None:
        return None
    try:
        return json.dumps(data)
    except (TypeError, ValueError) as e:
        raise RequestEncodingError(f"Request body is not JSON serialisable: {e}", data=data) from e


def parse_response(text: Optional[str]) -> Response:
    """Parse a response body into the platform envelope.

    Raises ``CorruptResponseError`` when the body is not a JSON object or does
    not validate as an envelope.
    """
    try:
        payload: Any = json.loads(text or "")
    except ValueError as e:
        raise CorruptResponseError(f"Response body is not valid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise CorruptResponseError("Response body is not a JSON object")
    try:
        return Response.model_validate(payload)
    except ValidationError as e:
        raise CorruptResponseError(f"Response envelope failed validation: {e}") from e


class PlatformRequest:
    """Drive one frame through ``beforeSend`` ... ``done`` exactly once."""

    events = LifecycleEvent

    def __init__(
        self,
        frame: "Frame",
        options: Optional[RequestOptions] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ):
        self._frame = frame
        self._options = options or RequestOptions()
        self._logger = logger if logger is not None else logging.getLogger(__name__)
        self._listeners: list[Listener] = []
        self._transforms: list[OptionsTransform] = []
        self._state: Optional[LifecycleEvent] = None
        self._history: list[LifecycleEvent] = []
        self._executed = False

        self.http_response: Optional[httpx.Response] = None
        self.response_text: Optional[str] = None
        self.error_message: Optional[str] = None
        self.error: Optional[PlatformError] = None

        frame.platform_request = self

    @property
    def frame(self) -> "Frame":
        return self._frame

    @property
    def options(self) -> RequestOptions:
        return self._options

    @property
    def state(self) -> Optional[LifecycleEvent]:
        """Last emitted lifecycle event, or None before ``execute``."""
        return self._state

    @property
    def history(self) -> tuple[LifecycleEvent, ...]:
        return tuple(self._history)

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        self._listeners = [registered for registered in self._listeners if registered is not listener]

    def add_transform(self, transform: OptionsTransform) -> None:
        """Register a ``RequestOptions -> RequestOptions`` step run at beforeSend."""
        self._transforms.append(transform)

    # ------------------------------------------------------------------
    # Workflow
    # ------------------------------------------------------------------

    async def execute(self, client: httpx.AsyncClient) -> None:
        """Perform the call and emit the lifecycle events."""
        if self._executed:
            raise LifecycleError(f"Frame {self._frame.id} has already been executed")
        self._executed = True

        self._before_send()
        try:
            self._bind()
        except RequestEncodingError as e:
            self.error_message = str(e)
            self._http_fail(e)
            return

        opts = self._options
        self._logger.info("Executing request: frame=%d %s %s", self._frame.id, opts.method, opts.url)

        try:
            http_request = client.build_request(opts.method, opts.url, **self._build_kwargs())
            if opts.cookies is not None:
                opts.cookies.set_cookie_header(http_request)
            response = await client.send(http_request)
        except httpx.HTTPError as e:
            self.error_message = str(e) or e.__class__.__name__
            self._http_fail(NetworkError(f"Request failed: {self.error_message}"))
            return

        self.http_response = response
        self.response_text = response.text
        self._logger.debug(
            "HTTP response: frame=%d status=%d body=%r",
            self._frame.id,
            response.status_code,
            self.response_text,
        )

        if not response.is_success:
            self.error_message = f"HTTP {response.status_code}"
            self._http_fail(
                NetworkError(
                    f"Platform returned HTTP {response.status_code}",
                    status_code=response.status_code,
                    data=self.response_text,
                )
            )
            return

        self._http_success()

    def _build_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"headers": dict(self._options.headers)}
        if self._options.content is not None:
            kwargs["content"] = self._options.content
        kwargs["timeout"] = self._options.timeout
        return kwargs

    def _before_send(self) -> None:
        self._transition(LifecycleEvent.BEFORE_SEND)
        for transform in self._transforms:
            updated = transform(self._options)
            if not isinstance(updated, RequestOptions):
                raise TypeError(
                    f"Options transform {transform!r} returned {type(updated).__name__}, "
                    "expected RequestOptions"
                )
            self._options = updated
        self._notify(LifecycleEvent.BEFORE_SEND)

    def _bind(self) -> None:
        request = self._frame.request
        if request is None:
            raise LifecycleError(f"Frame {self._frame.id} has no request bound")
        self._options = replace(
            self._options,
            url=str(request.uri),
            method=request.method,
            content=encode_body(request.data),
        )

    def _http_fail(self, error: PlatformError) -> None:
        self._logger.warning(
            "HTTP failed: frame=%d error=%s status=%s",
            self._frame.id,
            self.error_message,
            self.http_response.status_code if self.http_response is not None else None,
        )
        self.error = error
        self._emit(LifecycleEvent.HTTP_FAIL)
        self._emit(LifecycleEvent.HTTP_DONE)
        self._emit(LifecycleEvent.ERROR)
        self._emit(LifecycleEvent.DONE)

    def _http_success(self) -> None:
        self._logger.info(
            "HTTP success: frame=%d status=%d",
            self._frame.id,
            self.http_response.status_code,
        )
        self._emit(LifecycleEvent.HTTP_SUCCESS)
        self._emit(LifecycleEvent.HTTP_DONE)

        try:
            response = parse_response(self.response_text)
        except CorruptResponseError as e:
            self._logger.warning("Corrupt response: frame=%d %s", self._frame.id, e)
            self.error = e
            self._emit(LifecycleEvent.ERROR)
            self._emit(LifecycleEvent.DONE)
            return

        self._frame.response = response
        self._emit(LifecycleEvent.RESPONSE_PARSED)
        self._emit(LifecycleEvent.SUCCESS)
        self._emit(LifecycleEvent.DONE)

    # ------------------------------------------------------------------
    # Event plumbing
    # ------------------------------------------------------------------

    def _transition(self, event: LifecycleEvent) -> None:
        self._state = advance(self._state, event, history=tuple(self._history))
        self._history.append(event)

    def _notify(self, event: LifecycleEvent) -> None:
        data = LifecycleEventData(target=self)
        for listener in list(self._listeners):
            listener(event, data)

    def _emit(self, event: LifecycleEvent) -> None:
        self._transition(event)
        self._notify(event)
