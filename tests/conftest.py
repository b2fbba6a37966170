"""Shared test fixtures for the seatalk_stickers test suite.

WHY: Most modules talk to SeaTalk through the AsyncClient interface and
react to the same three webhook event shapes. Centralizing a fake client
and sample event payloads keeps the tests short and consistent.

HOW: FakeSeatalk implements AsyncClient without any network: it records
every request and answers from a scripted queue of (status, body) pairs
or exceptions, falling back to a default success envelope. Event
builders return plain dicts in the exact shape SeaTalk POSTs.

RULES:
- No test touches the real network or runs external processes
- Event builders accept overrides for the fields tests care about
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Union

import httpx
import pytest

from seatalk_stickers.api.client import AsyncClient

Reply = Union[Exception, tuple]

DEFAULT_REPLY = (200, {"code": 0, "message_id": "progress-1"})

# Valid gzip header, then a deflate block with the reserved block type.
CORRUPT_TGS = b"\x1f\x8b\x08\x00\x00\x00\x00\x00\x00\xff" + b"\x07" + b"\x00" * 16


class FakeSeatalk(AsyncClient):
    """In-memory AsyncClient that records requests and returns scripted replies."""

    def __init__(self, replies: Optional[List[Reply]] = None, default: Reply = DEFAULT_REPLY) -> None:
        self.replies = list(replies or [])
        self.default = default
        self.requests: List[httpx.Request] = []
        self.authenticated: List[bool] = []

    def rest_endpoint(self, endpoint: str) -> httpx.URL:
        return httpx.URL("https://seatalk.test/").join(endpoint)

    async def rest_async_no_auth(self, request: httpx.Request) -> httpx.Response:
        return self._reply(request, authenticated=False)

    async def rest_async(self, request: httpx.Request) -> httpx.Response:
        return self._reply(request, authenticated=True)

    def _reply(self, request: httpx.Request, authenticated: bool) -> httpx.Response:
        self.requests.append(request)
        self.authenticated.append(authenticated)
        reply = self.replies.pop(0) if self.replies else self.default
        if isinstance(reply, Exception):
            raise reply
        status, body = reply
        content = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")
        return httpx.Response(status, content=content, request=request)

    @property
    def bodies(self) -> List[Dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests]

    @property
    def paths(self) -> List[str]:
        return [r.url.path for r in self.requests]


@pytest.fixture
def fake_seatalk():
    return FakeSeatalk()


# ---------------------------------------------------------------------------
# Sample webhook payloads
# ---------------------------------------------------------------------------


def verification_event(challenge: str = "challenge-123") -> Dict[str, Any]:
    return {
        "event_id": "evt-1",
        "event_type": "event_verification",
        "timestamp": 1700000000,
        "app_id": "app-1",
        "event": {"seatalk_challenge": challenge},
    }


def subscriber_event(employee_code: str = "emp-42", content: str = "hi") -> Dict[str, Any]:
    return {
        "event_id": "evt-2",
        "event_type": "message_from_bot_subscriber",
        "timestamp": 1700000001,
        "app_id": "app-1",
        "event": {
            "employee_code": employee_code,
            "message": {"tag": "text", "text": {"content": content}},
        },
    }


def group_mention_event(
    group_id: str = "group-1",
    message_id: str = "msg-1",
    plain_text: str = "@StickersBot /convert https://t.me/addstickers/Foo",
    thread_id: Optional[str] = None,
) -> Dict[str, Any]:
    message: Dict[str, Any] = {
        "message_id": message_id,
        "quoted_message_id": "",
        "sender": {"seatalk_id": "st-7", "employee_code": "emp-7", "sender_type": 1},
        "message_sent_time": 1700000002,
        "tag": "text",
        "text": {
            "plain_text": plain_text,
            "mentioned_list": [{"username": "StickersBot", "seatalk_id": "bot-1"}],
        },
    }
    if thread_id is not None:
        message["thread_id"] = thread_id
    return {
        "event_id": "evt-3",
        "event_type": "new_mentioned_message_received_from_group_chat",
        "timestamp": 1700000002,
        "app_id": "app-1",
        "event": {"group_id": group_id, "message": message},
    }
