"""Contract validation tests for contracts.v1."""

import pytest
from pydantic import ValidationError

from contracts.v1.schemas import (
    PLATFORM_SUCCESS,
    THROTTLE_ERROR_CODES,
    PlatformErrorCode,
    Request,
    Response,
)


class TestResponseEnvelope:
    def test_wire_aliases_are_parsed(self):
        resp = Response.model_validate(
            {
                "ErrorCode": 1,
                "ErrorStatus": "Success",
                "Message": "Ok",
                "MessageData": {},
                "Response": {"displayName": "Guardian"},
                "ThrottleSeconds": 0,
            }
        )

        assert resp.error_code == PLATFORM_SUCCESS
        assert resp.error_status == "Success"
        assert resp.response == {"displayName": "Guardian"}
        assert resp.throttle_seconds == 0
        assert resp.is_error is False
        assert resp.is_throttled is False

    def test_field_names_also_accepted(self):
        resp = Response(error_code=5, error_status="SystemDisabled")

        assert resp.is_error is True

    def test_missing_error_code_is_an_error(self):
        assert Response.model_validate({}).is_error is True

    def test_unknown_fields_are_ignored(self):
        resp = Response.model_validate({"ErrorCode": 1, "DetailedErrorTrace": "..."})

        assert "DetailedErrorTrace" not in resp.model_dump()

    @pytest.mark.parametrize("code", sorted(THROTTLE_ERROR_CODES))
    def test_throttle_codes(self, code):
        resp = Response.model_validate({"ErrorCode": int(code), "ThrottleSeconds": 3})

        assert resp.is_throttled is True
        assert resp.is_error is True

    def test_envelope_is_frozen(self):
        resp = Response.model_validate({"ErrorCode": 1})

        with pytest.raises(ValidationError):
            resp.error_code = 2

    def test_invalid_error_code_rejected(self):
        with pytest.raises(ValidationError):
            Response.model_validate({"ErrorCode": "abc"})


class TestRequest:
    def test_defaults(self):
        req = Request(uri="/HelloWorld/")

        assert req.method == "GET"
        assert req.data is None
        assert req.headers == {}

    def test_request_is_frozen(self):
        req = Request(uri="/HelloWorld/")

        with pytest.raises(ValidationError):
            req.uri = "/Other/"

    def test_copy_with_new_uri_leaves_original(self):
        req = Request(uri="/HelloWorld/", headers={"X-A": "1"})
        copy = req.model_copy(update={"uri": "https://example.test/Platform/HelloWorld/"})

        assert req.uri == "/HelloWorld/"
        assert copy.headers == {"X-A": "1"}


def test_success_code_value():
    assert PlatformErrorCode.SUCCESS == 1
    assert PLATFORM_SUCCESS not in THROTTLE_ERROR_CODES


def test_requests_compare_by_value():
    assert Request(uri="/A/", headers={"X": "1"}) == Request(uri="/A/", headers={"X": "1"})
    assert Request(uri="/A/") != Request(uri="/B/")
