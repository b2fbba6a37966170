"""Tests for the messaging endpoints' request bodies.

WHY: SeaTalk rejects bodies with the wrong shape, and a misplaced
thread_id posts a sticker into the wrong conversation.

HOW: Build each endpoint through its constructor and compare the JSON
body with the documented shape, and check that a body parses back
into an equal endpoint.
"""

from __future__ import annotations

import json

from seatalk_stickers.api.messaging import (
    MessageType,
    SendGroupMessage,
    SendSubscriberMessage,
)


def _body(endpoint):
    return json.loads(endpoint.body()[1])


class TestSendSubscriberMessage:
    def test_text_message_body(self):
        endpoint = SendSubscriberMessage.new("emp-1", MessageType.TEXT, "hello")
        assert _body(endpoint) == {
            "employee_code": "emp-1",
            "message": {"tag": "text", "text": {"format": 1, "content": "hello"}},
        }

    def test_image_message_body(self):
        endpoint = SendSubscriberMessage.new("emp-1", MessageType.IMAGE, "aGVsbG8=")
        assert _body(endpoint) == {
            "employee_code": "emp-1",
            "message": {"tag": "image", "image": {"content": "aGVsbG8="}},
        }

    def test_path_and_auth(self):
        endpoint = SendSubscriberMessage.new("emp-1", MessageType.TEXT, "x")
        assert endpoint.endpoint() == "messaging/v2/single_chat"
        assert endpoint.require_auth() is True


class TestSendGroupMessage:
    def test_text_in_thread(self):
        endpoint = SendGroupMessage.new("g1", "thread-9", "Done", MessageType.TEXT)
        assert _body(endpoint) == {
            "group_id": "g1",
            "message": {
                "tag": "text",
                "text": {"format": 1, "content": "Done"},
                "thread_id": "thread-9",
            },
        }

    def test_text_quoting_without_thread(self):
        endpoint = SendGroupMessage.new(
            "g1", None, "Found 3 stickers", MessageType.TEXT, quoted_message_id="msg-1"
        )
        message = _body(endpoint)["message"]
        assert message["quoted_message_id"] == "msg-1"
        assert "thread_id" not in message

    def test_image_in_thread(self):
        endpoint = SendGroupMessage.new_image_message("g1", "thread-9", "aW1n")
        assert _body(endpoint)["message"] == {
            "tag": "image",
            "image": {"content": "aW1n"},
            "thread_id": "thread-9",
        }

    def test_path_and_auth(self):
        endpoint = SendGroupMessage.new_text_message("g1", None, "x")
        assert endpoint.method() == "POST"
        assert endpoint.endpoint() == "messaging/v2/group_chat"
        assert endpoint.require_auth() is True


class TestBodyRoundTrip:
    """A serialized body parses back into an equal endpoint."""

    def test_group_text_quoted_in_thread(self):
        endpoint = SendGroupMessage.new(
            "g1", "thread-9", "Done", MessageType.TEXT, quoted_message_id="msg-1"
        )
        assert SendGroupMessage.model_validate(_body(endpoint)) == endpoint

    def test_group_image_without_thread(self):
        endpoint = SendGroupMessage.new_image_message("g1", None, "aW1n")
        assert SendGroupMessage.model_validate(_body(endpoint)) == endpoint

    def test_subscriber_text(self):
        endpoint = SendSubscriberMessage.new("emp-1", MessageType.TEXT, "hello")
        assert SendSubscriberMessage.model_validate(_body(endpoint)) == endpoint
