"""Tests for the PlatformRequest lifecycle driver."""

import json
from dataclasses import replace
from decimal import Decimal

import httpx
import pytest

from contracts.v1.schemas import Request
from bnet_platform.errors import (
    CorruptResponseError,
    LifecycleError,
    NetworkError,
    RequestEncodingError,
)
from bnet_platform.frame import Frame
from bnet_platform.platform_request import (
    PlatformRequest,
    RequestOptions,
    encode_body,
    parse_response,
)

URI = "https://www.bungie.net/Platform/HelloWorld/?lc=en"


def _platform_request(request=None):
    frame = Frame(request or Request(uri=URI))
    pr = PlatformRequest(frame)
    events = []
    pr.add_listener(lambda name, data: events.append(name))
    return pr, events


async def _execute(pr, handler):
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        await pr.execute(client)


@pytest.mark.asyncio
async def test_http_500_emits_failure_sequence():
    pr, events = _platform_request()

    await _execute(pr, lambda r: httpx.Response(500, text="oops"))

    assert events == ["beforeSend", "httpFail", "httpDone", "error", "done"]
    assert isinstance(pr.error, NetworkError)
    assert pr.error.status_code == 500
    assert pr.frame.response is None


@pytest.mark.asyncio
async def test_transport_exception_emits_failure_sequence():
    pr, events = _platform_request()

    def _raise(request):
        raise httpx.ConnectError("connection refused", request=request)

    await _execute(pr, _raise)

    assert events == ["beforeSend", "httpFail", "httpDone", "error", "done"]
    assert isinstance(pr.error, NetworkError)
    assert "connection refused" in pr.error_message


@pytest.mark.asyncio
async def test_timeout_is_observed_as_http_fail():
    pr, events = _platform_request()

    def _raise(request):
        raise httpx.ReadTimeout("timed out", request=request)

    await _execute(pr, _raise)

    assert events[1] == "httpFail"
    assert isinstance(pr.error, NetworkError)


@pytest.mark.asyncio
async def test_malformed_body_emits_error_without_parsed():
    pr, events = _platform_request()

    await _execute(pr, lambda r: httpx.Response(200, text="not json"))

    assert events == ["beforeSend", "httpSuccess", "httpDone", "error", "done"]
    assert isinstance(pr.error, CorruptResponseError)
    assert pr.frame.response is None


@pytest.mark.asyncio
async def test_valid_envelope_emits_success_sequence(make_envelope):
    pr, events = _platform_request()

    await _execute(pr, lambda r: httpx.Response(200, json=make_envelope("Hello World")))

    assert events == ["beforeSend", "httpSuccess", "httpDone", "responseParsed", "success", "done"]
    assert pr.frame.response.response == "Hello World"
    assert pr.frame.response.is_error is False
    assert pr.error is None


@pytest.mark.asyncio
async def test_execute_twice_raises(ok_handler):
    pr, _ = _platform_request()
    await _execute(pr, ok_handler)

    with pytest.raises(LifecycleError):
        await _execute(pr, ok_handler)


@pytest.mark.asyncio
async def test_transforms_apply_before_send(ok_handler):
    pr, _ = _platform_request()
    pr.add_transform(lambda o: o.with_header("X-Test", "1"))
    pr.add_transform(lambda o: o.with_header("X-Other", "2"))

    await _execute(pr, ok_handler)

    sent = ok_handler.calls[0]
    assert sent.headers["X-Test"] == "1"
    assert sent.headers["X-Other"] == "2"
    assert pr.options.headers == {"X-Test": "1", "X-Other": "2"}


@pytest.mark.asyncio
async def test_transform_must_return_options(ok_handler):
    pr, _ = _platform_request()
    pr.add_transform(lambda o: None)

    with pytest.raises(TypeError):
        await _execute(pr, ok_handler)
    assert ok_handler.calls == []


@pytest.mark.asyncio
async def test_post_body_is_json_serialised(ok_handler):
    pr, _ = _platform_request(Request(uri=URI, method="POST", data={"ownerMembershipId": 7}))

    await _execute(pr, ok_handler)

    sent = ok_handler.calls[0]
    assert sent.method == "POST"
    assert json.loads(sent.content) == {"ownerMembershipId": 7}


@pytest.mark.asyncio
async def test_get_without_data_sends_no_body(ok_handler):
    pr, _ = _platform_request()

    await _execute(pr, ok_handler)

    assert ok_handler.calls[0].content == b""
    assert str(ok_handler.calls[0].url) == URI


def test_request_options_helpers_return_new_values():
    base = RequestOptions(headers={"A": "1"})
    updated = base.with_header("B", "2")

    assert base.headers == {"A": "1"}
    assert updated.headers == {"A": "1", "B": "2"}


def test_parse_response_rejects_non_object_json():
    with pytest.raises(CorruptResponseError):
        parse_response("[1, 2, 3]")


def test_parse_response_rejects_invalid_envelope():
    with pytest.raises(CorruptResponseError):
        parse_response('{"ErrorCode": "not-a-number"}')


@pytest.mark.asyncio
async def test_unserialisable_body_still_reaches_done(ok_handler):
    pr, events = _platform_request(Request(uri=URI, method="POST", data={"amount": Decimal("1.5")}))

    await _execute(pr, ok_handler)

    assert events == ["beforeSend", "httpFail", "httpDone", "error", "done"]
    assert isinstance(pr.error, RequestEncodingError)
    assert ok_handler.calls == []


def test_encode_body():
    assert encode_body(None) is None
    assert json.loads(encode_body({"a": [1, 2]})) == {"a": [1, 2]}
    with pytest.raises(RequestEncodingError):
        encode_body({1, 2})


@pytest.mark.asyncio
async def test_none_timeout_disables_client_timeout(ok_handler):
    pr, _ = _platform_request()
    pr.add_transform(lambda o: replace(o, timeout=None))

    await _execute(pr, ok_handler)

    assert ok_handler.calls[0].extensions["timeout"]["read"] is None


@pytest.mark.asyncio
async def test_default_timeout_defers_to_client(ok_handler):
    pr, _ = _platform_request()

    async with httpx.AsyncClient(transport=httpx.MockTransport(ok_handler), timeout=7.0) as client:
        await pr.execute(client)

    assert ok_handler.calls[0].extensions["timeout"]["read"] == 7.0


@pytest.mark.asyncio
async def test_removed_listener_is_not_called(ok_handler):
    pr, events = _platform_request()
    seen = []

    def _listener(name, data):
        seen.append(name)

    pr.add_listener(_listener)
    pr.remove_listener(_listener)
    await _execute(pr, ok_handler)

    assert seen == []
    assert events[-1] == "done"
