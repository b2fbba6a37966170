"""Tests for the generic endpoint protocol and envelope decoding.

WHY: Every SeaTalk call funnels through decode_envelope() and
query_async(). A wrong branch here would either hand callers a payload
from a failed call or misclassify the failure.

HOW: decode_envelope() is tested on raw bytes for each step of the
decision chain. query_async()/ignore_async() run against FakeSeatalk to
check request building, auth routing and result validation.

RULES:
- asyncio.run() drives coroutines inside synchronous tests
- No network; FakeSeatalk answers every request
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest
from pydantic import ValidationError

from conftest import FakeSeatalk
from seatalk_stickers.api.endpoint import JsonEndpoint, decode_envelope
from seatalk_stickers.api.errors import (
    BodyError,
    DataTypeError,
    JsonError,
    SeatalkError,
    SeatalkObjectError,
    SeatalkServiceError,
    SeatalkUnrecognizedError,
)
from seatalk_stickers.api.messaging import Code, MessageCode, SendGroupMessage


class _Anonymous(JsonEndpoint):
    name: str

    def method(self) -> str:
        return "POST"

    def endpoint(self) -> str:
        return "test/anonymous"

    def require_auth(self) -> bool:
        return False


class _Opaque(JsonEndpoint):
    value: Any

    def method(self) -> str:
        return "POST"

    def endpoint(self) -> str:
        return "test/opaque"

    def require_auth(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# decode_envelope
# ---------------------------------------------------------------------------


class TestDecodeEnvelope:
    """The decision chain: JSON → status → code present → code == 0."""

    def test_success_returns_envelope(self):
        assert decode_envelope(200, b'{"code": 0, "message_id": "m"}') == {
            "code": 0,
            "message_id": "m",
        }

    def test_non_json_error_status_is_service_error(self):
        with pytest.raises(SeatalkServiceError) as exc_info:
            decode_envelope(502, b"<html>Bad Gateway</html>")
        assert exc_info.value.status == 502
        assert exc_info.value.data == b"<html>Bad Gateway</html>"

    def test_non_json_success_status_is_json_error(self):
        with pytest.raises(JsonError) as exc_info:
            decode_envelope(200, b"not json")
        assert exc_info.value.status == 200
        assert exc_info.value.data == b"not json"

    def test_error_status_with_json_is_remote_error(self):
        with pytest.raises(SeatalkError) as exc_info:
            decode_envelope(500, b'{"code": 1, "message": "internal"}')
        assert exc_info.value.msg == "internal"

    def test_error_status_wins_over_code_zero(self):
        with pytest.raises(SeatalkUnrecognizedError):
            decode_envelope(401, b'{"code": 0}')

    def test_missing_code_is_remote_error(self):
        with pytest.raises(SeatalkUnrecognizedError):
            decode_envelope(200, b'{"message_id": "m"}')

    def test_non_object_body_is_remote_error(self):
        with pytest.raises(SeatalkUnrecognizedError):
            decode_envelope(200, b"[0]")

    def test_nonzero_code_with_object_message(self):
        with pytest.raises(SeatalkObjectError):
            decode_envelope(200, b'{"code": 2, "message": {"field": "group_id"}}')

    def test_nonzero_code_with_string_message(self):
        with pytest.raises(SeatalkError) as exc_info:
            decode_envelope(200, b'{"code": 101, "message": "rate limited"}')
        assert exc_info.value.code == 101


# ---------------------------------------------------------------------------
# Request building
# ---------------------------------------------------------------------------


class TestJsonEndpointBody:
    """JsonEndpoint serializes its own fields."""

    def test_body_is_json_with_content_type(self):
        content_type, data = _Anonymous(name="x").body()
        assert content_type == "application/json"
        assert json.loads(data) == {"name": "x"}

    def test_none_fields_are_omitted(self):
        endpoint = SendGroupMessage.new_text_message("g1", None, "hello")
        body = json.loads(endpoint.body()[1])
        assert "thread_id" not in body["message"]
        assert "quoted_message_id" not in body["message"]

    def test_unserializable_field_raises_body_error(self):
        with pytest.raises(BodyError):
            _Opaque(value=object()).body()

    def test_endpoint_is_frozen(self):
        endpoint = _Anonymous(name="x")
        with pytest.raises(ValidationError):
            endpoint.name = "y"


# ---------------------------------------------------------------------------
# query_async / ignore_async
# ---------------------------------------------------------------------------


class TestQuery:
    """query_async() and ignore_async() through a fake client."""

    def test_query_returns_typed_result(self):
        client = FakeSeatalk(replies=[(200, {"code": 0, "message_id": "m-9"})])
        endpoint = SendGroupMessage.new_text_message("g1", "t1", "hello")
        result = asyncio.run(endpoint.query_async(client, MessageCode))
        assert result == MessageCode(code=0, message_id="m-9")

    def test_request_carries_method_url_and_body(self):
        client = FakeSeatalk(replies=[(200, {"code": 0})])
        asyncio.run(_Anonymous(name="abc").ignore_async(client))
        request = client.requests[0]
        assert request.method == "POST"
        assert str(request.url) == "https://seatalk.test/test/anonymous"
        assert request.headers["Content-Type"] == "application/json"
        assert json.loads(request.content) == {"name": "abc"}

    def test_auth_flag_selects_transport(self):
        client = FakeSeatalk(default=(200, {"code": 0, "message_id": "m"}))
        asyncio.run(_Anonymous(name="a").ignore_async(client))
        asyncio.run(SendGroupMessage.new_text_message("g", None, "t").ignore_async(client))
        assert client.authenticated == [False, True]

    def test_shape_mismatch_raises_data_type_error(self):
        client = FakeSeatalk(replies=[(200, {"code": 0})])
        endpoint = SendGroupMessage.new_text_message("g1", None, "hello")
        with pytest.raises(DataTypeError) as exc_info:
            asyncio.run(endpoint.query_async(client, MessageCode))
        assert exc_info.value.typename.endswith("MessageCode")

    def test_remote_error_never_yields_payload(self):
        client = FakeSeatalk(replies=[(200, {"code": 3, "message": "no such group"})])
        endpoint = SendGroupMessage.new_text_message("g1", None, "hello")
        with pytest.raises(SeatalkError):
            asyncio.run(endpoint.query_async(client, Code))

    def test_ignore_runs_same_checks(self):
        client = FakeSeatalk(replies=[(503, b"unavailable")])
        endpoint = SendGroupMessage.new_text_message("g1", None, "hello")
        with pytest.raises(SeatalkServiceError):
            asyncio.run(endpoint.ignore_async(client))

    def test_ignore_discards_payload(self):
        client = FakeSeatalk(replies=[(200, {"code": 0, "anything": [1, 2]})])
        assert asyncio.run(_Anonymous(name="a").ignore_async(client)) is None
