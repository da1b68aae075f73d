"""Platform orchestrator: queues frames, admits them, and settles callers.

Request workflow:

1. an endpoint method builds a ``Request`` and calls ``_service_request``;
2. a ``Frame`` is created, the locale (and CSRF token, for user-context
   requests) is looked up and the fully qualified URI is resolved;
3. the frame is queued as ``WAITING``;
4. ``_try_frame`` admits waiting frames FIFO while the concurrency limit,
   pause flag and throttling allow it, and runs their ``PlatformRequest``;
5. lifecycle events are fanned out to plugins and to the bookkeeping
   handlers, which settle the caller's awaitable and dequeue the frame;
6. a finished frame triggers another ``_try_frame``.

Changing ``max_concurrent``, un-pausing, toggling ``respect_throttle`` and
the end of a throttling window also re-run ``_try_frame``.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import time
from dataclasses import replace
from typing import Any, Iterable, Mapping, Optional, Union
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import httpx

from contracts.v1.schemas import Request, Response

from .config import (
    API_KEY_HEADER,
    CONTENT_TYPE,
    CONTENT_TYPE_HEADER,
    CSRF_HEADER,
    PlatformOptions,
)
from .cookies import CookieProvider, Cookies, CurrentUser
from .errors import PlatformError
from .frame import Frame, FrameState
from .frame_manager import FrameManager
from .frame_set import FrameSet
from .lifecycle import LifecycleEvent
from .platform_request import LifecycleEventData, PlatformRequest, RequestOptions, encode_body
from .plugins import Plugin


def build_platform_uri(base_url: str, endpoint: str, locale: str) -> str:
    """Join ``base_url`` and ``endpoint`` into the URI actually requested.

    Empty path segments are dropped, the endpoint's query string is kept, the
    ``lc`` parameter is set to ``locale`` and the path always ends with ``/``.
    """
    base = urlsplit(base_url)
    endpoint = endpoint.split("#", 1)[0]
    path_part, _, query_part = endpoint.partition("?")

    segments = [s for s in base.path.split("/") if s]
    segments += [s for s in path_part.split("/") if s]
    path = "/" + "/".join(segments)
    if not path.endswith("/"):
        path += "/"

    query = [(k, v) for k, v in parse_qsl(query_part, keep_blank_values=True) if k != "lc"]
    query.append(("lc", locale))

    return urlunsplit((base.scheme, base.netloc, path, urlencode(query), ""))


class Platform:
    """Client for the platform JSON API.

    Example::

        async with Platform({"api_key": "...", "max_concurrent": 4}) as p:
            r = await p.hello_world()
            if not r.is_error:
                print(r.response)
    """

    def __init__(
        self,
        options: Union[PlatformOptions, Mapping[str, Any], None] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        client: Optional[httpx.AsyncClient] = None,
        cookie_provider: Optional[CookieProvider] = None,
        plugins: Iterable[Plugin] = (),
        logger: Optional[logging.Logger] = None,
    ):
        if options is None:
            self._options = PlatformOptions()
        elif isinstance(options, PlatformOptions):
            self._options = replace(options)
        else:
            self._options = PlatformOptions.from_mapping(options)

        self._logger = logger if logger is not None else logging.getLogger(__name__)
        self._frames = FrameSet()
        self._frame_manager = FrameManager(self._frames)
        self._plugins: list[Plugin] = []
        for plugin in plugins:
            self.add_plugin(plugin)

        self._cookies = Cookies(cookie_provider)
        self._current_user = CurrentUser(self._cookies)

        self._owns_client = client is None
        self._client = client if client is not None else httpx.AsyncClient(transport=transport)

        self._tasks: dict[int, asyncio.Task] = {}
        self._throttle_until: Optional[float] = None
        self._throttle_handle: Optional[asyncio.TimerHandle] = None

    async def __aenter__(self) -> "Platform":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Cancel outstanding work and close the HTTP client we created."""
        self.cancel_all()
        if self._throttle_handle is not None:
            self._throttle_handle.cancel()
            self._throttle_handle = None
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Service requests
    # ------------------------------------------------------------------

    async def _service_request(self, request: Request) -> Response:
        """Run ``request`` through the frame pipeline and return its response.

        Raises ``PlatformError`` subclasses for credential, transport and
        parse failures. Application-level errors (``Response.is_error``) are
        returned, not raised.

        Cancelling the caller drops the frame: a waiting frame is never sent
        and an active one has its network call cancelled.
        """
        frame = Frame(request)
        self._logger.info("Received service request: frame=%d endpoint=%s", frame.id, request.uri)
        encode_body(request.data)

        locale = await self._resolve_locale()
        csrf_token = None
        if self._options.user_context:
            csrf_token = await self._current_user.get_csrf_token()

        frame.request = request.model_copy(
            update={"uri": build_platform_uri(self._options.base_url, request.uri, locale)}
        )

        future: asyncio.Future = asyncio.get_running_loop().create_future()

        def _resolve(value: Any) -> None:
            if not future.done():
                future.set_result(value)

        def _reject(error: BaseException) -> None:
            if not future.done():
                future.set_exception(error)

        frame.bind(_resolve, _reject)
        future.add_done_callback(functools.partial(self._on_caller_done, frame))
        self._prepare_request(frame, csrf_token)
        return await future

    def _on_caller_done(self, frame: Frame, future: asyncio.Future) -> None:
        if not future.cancelled() or frame not in self._frames:
            return

        self._logger.info("Caller cancelled: dropping frame=%d state=%s", frame.id, frame.state.name)
        task = self._tasks.pop(frame.id, None)
        if task is not None:
            task.cancel()
        frame.state = FrameState.DONE
        self._frame_manager.remove_frame(frame)
        self._try_frame()

    async def _resolve_locale(self) -> str:
        locale = await self._current_user.get_locale()
        return locale or self._options.default_locale

    def _prepare_request(self, frame: Frame, csrf_token: Optional[str]) -> None:
        platform_request = PlatformRequest(frame, logger=self._logger)
        platform_request.add_transform(
            functools.partial(self._apply_platform_options, frame=frame, csrf_token=csrf_token)
        )
        platform_request.add_transform(self._apply_plugins)
        platform_request.add_listener(self._on_frame_event)

        self._queue_frame(frame)
        self._try_frame()

    def _apply_platform_options(
        self,
        options: RequestOptions,
        *,
        frame: Frame,
        csrf_token: Optional[str],
    ) -> RequestOptions:
        headers = dict(frame.request.headers) if frame.request is not None else {}
        headers[CONTENT_TYPE_HEADER] = CONTENT_TYPE
        headers[API_KEY_HEADER] = self._options.api_key
        if csrf_token is not None:
            headers[CSRF_HEADER] = csrf_token
        return replace(
            options.with_headers(headers),
            timeout=self._options.timeout_seconds,
        )

    def _apply_plugins(self, options: RequestOptions) -> RequestOptions:
        for plugin in list(self._plugins):
            options = plugin.before_send(options)
        return options

    # ------------------------------------------------------------------
    # Queue and admission control
    # ------------------------------------------------------------------

    def _queue_frame(self, frame: Frame) -> None:
        frame.state = FrameState.WAITING
        self._frame_manager.add_frame(frame)
        self._logger.debug("Frame queued: frame=%d", frame.id)

    def _try_frame(self) -> int:
        """Admit as many waiting frames as the current limits allow.

        Returns the number of frames started. Admission only happens here;
        frames already active are never preempted.
        """
        admitted = 0
        while True:
            if self._options.paused:
                break
            if self._options.respect_throttle and self.throttled:
                break
            limit = self._options.max_concurrent
            if limit >= 0 and self.active_request_count >= limit:
                self._logger.debug("Cannot admit a frame: %d active requests", self.active_request_count)
                break
            frame = self._frame_manager.get_frame()
            if frame is None:
                break
            self._activate_frame(frame)
            admitted += 1
        return admitted

    def _activate_frame(self, frame: Frame) -> None:
        frame.state = FrameState.ACTIVE
        self._logger.debug("Frame is active: frame=%d", frame.id)
        task = asyncio.get_running_loop().create_task(frame.platform_request.execute(self._client))
        self._tasks[frame.id] = task
        task.add_done_callback(functools.partial(self._on_task_done, frame))

    def _on_task_done(self, frame: Frame, task: asyncio.Task) -> None:
        if self._tasks.get(frame.id) is task:
            del self._tasks[frame.id]
        if task.cancelled():
            return
        error = task.exception()
        if error is None:
            return

        self._logger.error("Request task failed: frame=%d error=%r", frame.id, error)
        if not frame.settled:
            frame.reject(error)
        if frame.state < FrameState.DONE:
            frame.state = FrameState.DONE
        self._frame_manager.remove_frame(frame)
        self._try_frame()

    # ------------------------------------------------------------------
    # Lifecycle fan-out
    # ------------------------------------------------------------------

    def _notify_plugins(self, event_name: str, event_data: LifecycleEventData) -> None:
        for plugin in list(self._plugins):
            plugin.update(event_name, event_data)

    def _on_frame_event(self, event_name: str, event_data: LifecycleEventData) -> None:
        frame = event_data.target.frame

        if event_name == LifecycleEvent.HTTP_DONE:
            frame.state = FrameState.DONE

        self._notify_plugins(event_name, event_data)

        if event_name == LifecycleEvent.ERROR:
            self._frame_error(frame, event_data.target)
        elif event_name == LifecycleEvent.SUCCESS:
            self._frame_success(frame)
        elif event_name == LifecycleEvent.DONE:
            self._frame_done(frame)

    def _frame_error(self, frame: Frame, platform_request: PlatformRequest) -> None:
        error = platform_request.error or PlatformError("Platform request failed")
        frame.reject(error)
        self._frame_manager.remove_frame(frame)

    def _frame_success(self, frame: Frame) -> None:
        response = frame.response
        if (
            self._options.respect_throttle
            and response is not None
            and response.is_throttled
            and response.throttle_seconds
        ):
            self._throttle_for(response.throttle_seconds)
        frame.resolve(response)
        self._frame_manager.remove_frame(frame)

    def _frame_done(self, frame: Frame) -> None:
        self._frame_manager.remove_frame(frame)
        self._try_frame()

    # ------------------------------------------------------------------
    # Throttling
    # ------------------------------------------------------------------

    def _throttle_for(self, seconds: float) -> None:
        until = time.monotonic() + seconds
        if self._throttle_until is not None and until <= self._throttle_until:
            return
        self._logger.warning("Platform throttled for %s seconds", seconds)
        self._throttle_until = until
        if self._throttle_handle is not None:
            self._throttle_handle.cancel()
        self._throttle_handle = asyncio.get_running_loop().call_later(seconds, self._throttle_expired)

    def _throttle_expired(self) -> None:
        self._throttle_handle = None
        self._throttle_until = None
        self._try_frame()

    @property
    def throttled(self) -> bool:
        return self._throttle_until is not None and time.monotonic() < self._throttle_until

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def cancel_all(self) -> None:
        """Abort every in-flight call and clear the queue.

        Callers awaiting the dropped frames are not settled by this; they
        keep waiting unless they apply their own timeout.
        """
        unsettled = [f for f in self._frames if not f.settled]
        for task in list(self._tasks.values()):
            task.cancel()
        self._tasks.clear()
        self._frame_manager.clear()
        if unsettled:
            self._logger.warning(
                "cancel_all dropped %d unsettled frame(s): %s",
                len(unsettled),
                ", ".join(str(f.id) for f in unsettled),
            )

    def add_plugin(self, plugin: Plugin) -> None:
        if not any(p is plugin for p in self._plugins):
            self._plugins.append(plugin)

    def remove_plugin(self, plugin: Plugin) -> None:
        self._plugins = [p for p in self._plugins if p is not plugin]

    @property
    def plugins(self) -> tuple[Plugin, ...]:
        return tuple(self._plugins)

    @property
    def options(self) -> PlatformOptions:
        return self._options

    @property
    def current_user(self) -> CurrentUser:
        return self._current_user

    @property
    def active_request_count(self) -> int:
        return self._frame_manager.get_active().size

    @property
    def queued_count(self) -> int:
        return self._frame_manager.get_waiting().size

    @property
    def api_key(self) -> str:
        return self._options.api_key

    @api_key.setter
    def api_key(self, value: str) -> None:
        self._options.api_key = value

    @property
    def timeout(self) -> int:
        """Network timeout in milliseconds."""
        return self._options.timeout

    @timeout.setter
    def timeout(self, value: int) -> None:
        self._options.timeout = value

    @property
    def user_context(self) -> bool:
        return self._options.user_context

    @user_context.setter
    def user_context(self, value: bool) -> None:
        self._options.user_context = value

    @property
    def max_concurrent(self) -> int:
        return self._options.max_concurrent

    @max_concurrent.setter
    def max_concurrent(self, value: int) -> None:
        self._options.max_concurrent = value
        self._try_frame()

    @property
    def paused(self) -> bool:
        return self._options.paused

    @paused.setter
    def paused(self, value: bool) -> None:
        self._options.paused = value
        if not value:
            self._try_frame()

    @property
    def respect_throttle(self) -> bool:
        return self._options.respect_throttle

    @respect_throttle.setter
    def respect_throttle(self, value: bool) -> None:
        self._options.respect_throttle = value
        self._try_frame()

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    async def hello_world(self) -> Response:
        return await self._service_request(Request(uri="/HelloWorld/"))

    async def get_available_locales(self) -> Response:
        return await self._service_request(Request(uri="/GetAvailableLocales/"))

    async def get_global_alerts(self, include_streaming: bool = True) -> Response:
        query = urlencode({"includestreaming": str(include_streaming).lower()})
        return await self._service_request(Request(uri=f"/GlobalAlerts/?{query}"))

    async def get_current_user(self) -> Response:
        return await self._service_request(Request(uri="/User/GetBungieNetUser/"))

    async def get_bungie_net_user_by_id(self, membership_id: int) -> Response:
        return await self._service_request(
            Request(uri=f"/User/GetBungieNetUserById/{membership_id}/")
        )

    async def search_users(self, username: str) -> Response:
        query = urlencode({"q": username})
        return await self._service_request(Request(uri=f"/User/SearchUsers/?{query}"))
