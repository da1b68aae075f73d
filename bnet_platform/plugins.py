"""Plugin base class and stock plugins.

A plugin observes every lifecycle event of every request a platform runs
(``update``) and may contribute outgoing options when a request is about to
be sent (``before_send``). Plugins never drive frame state themselves.
"""

from __future__ import annotations

import httpx

from .lifecycle import LifecycleEvent
from .platform_request import LifecycleEventData, RequestOptions


class Plugin:
    """Base class; override either or both hooks."""

    def update(self, event_name: str, event_data: LifecycleEventData) -> None:
        """Called once per lifecycle event. The return value is ignored."""

    def before_send(self, options: RequestOptions) -> RequestOptions:
        """Return the options to send with; must not edit ``options`` in place."""
        return options


class CookieJarPlugin(Plugin):
    """Keep cookies set by the platform in a jar and send them back."""

    def __init__(self, jar: httpx.Cookies | None = None):
        self.jar = jar if jar is not None else httpx.Cookies()

    def before_send(self, options: RequestOptions) -> RequestOptions:
        return options.with_cookies(self.jar)

    def update(self, event_name: str, event_data: LifecycleEventData) -> None:
        if event_name != LifecycleEvent.HTTP_DONE:
            return
        response = event_data.target.http_response
        if response is not None:
            self.jar.extract_cookies(response)


class OAuthPlugin(Plugin):
    """Authorise requests with a bearer access token."""

    header = "Authorization"

    def __init__(self, access_token: str):
        self.access_token = access_token

    def before_send(self, options: RequestOptions) -> RequestOptions:
        return options.with_header(self.header, f"Bearer {self.access_token}")
