"""
Shared fixtures for platform client tests.
"""

import asyncio

import httpx
import pytest

from bnet_platform.platform import Platform
from bnet_platform.plugins import Plugin


class RecordingPlugin(Plugin):
    """Plugin that records every event it is notified of, with the frame state."""

    def __init__(self):
        self.events: list[str] = []
        self.states: dict[str, object] = {}

    def update(self, event_name, event_data):
        name = getattr(event_name, "value", event_name)
        self.events.append(name)
        self.states[name] = event_data.target.frame.state


@pytest.fixture
def make_envelope():
    """Build a platform JSON envelope.

    Usage:
        httpx.Response(200, json=make_envelope("Hello World"))
        httpx.Response(200, json=make_envelope(None, error_code=31, ThrottleSeconds=2))
    """
    def _make(response=None, *, error_code: int = 1, error_status: str = "Success", **extra):
        payload = {
            "ErrorCode": error_code,
            "ErrorStatus": error_status,
            "Message": "Ok",
            "MessageData": {},
            "Response": response,
            "ThrottleSeconds": 0,
        }
        payload.update(extra)
        return payload

    return _make


@pytest.fixture
def spin():
    """Let pending tasks and loop callbacks run a few rounds."""
    async def _spin(times: int = 10):
        for _ in range(times):
            await asyncio.sleep(0)

    return _spin


@pytest.fixture
def recording_plugin():
    return RecordingPlugin()


@pytest.fixture
def make_platform():
    """Create a Platform whose transport is an ``httpx.MockTransport``.

    Usage:
        platform = make_platform(handler, max_concurrent=1)
    """
    def _make(handler, **options):
        return Platform(options, transport=httpx.MockTransport(handler))

    return _make


@pytest.fixture
def ok_handler(make_envelope):
    """MockTransport handler answering every call with a success envelope.

    Requests seen are kept on ``ok_handler.calls``.
    """
    calls: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json=make_envelope("Hello World"))

    _handler.calls = calls
    return _handler
