"""Generic endpoint protocol and the query operation built on it.

WHY: Every SeaTalk call follows the same recipe: resolve a URL, build a
request with an optional JSON body, send it through the authenticated or
anonymous path, then decode and validate the ``{"code": 0, ...}``
envelope. Writing that once means each concrete API call is just a typed
request value.

HOW: Endpoint is an ABC describing one call (method, relative path, body,
auth flag). JsonEndpoint is a frozen pydantic model that serializes its
own fields as the JSON body. query_async() runs the full chain and
validates the envelope into the caller's pydantic result model;
ignore_async() runs the identical chain and discards the payload.

RULES:
- Decision chain: JSON parse → HTTP status → "code" present → code == 0
  → result model validation; the first failing step decides the error
- Unparseable body: SeatalkServiceError for non-2xx, JsonError for 2xx
- Remote errors are classified by errors.from_seatalk()
- Validation failures raise DataTypeError naming the expected type
- Only the async path exists; there is no blocking variant
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic_core import PydanticSerializationError

from seatalk_stickers.api.client import AsyncClient
from seatalk_stickers.api.errors import (
    BodyError,
    DataTypeError,
    JsonError,
    SeatalkServiceError,
    from_seatalk,
)

T = TypeVar("T", bound=BaseModel)

JSON_CONTENT_TYPE = "application/json"


class Endpoint(ABC):
    """Typed description of one outbound SeaTalk call.

    To add a new API call:
    1. Subclass JsonEndpoint with the request fields
    2. Implement method(), endpoint() and require_auth()
    3. Define a pydantic model for the success envelope (or use ignore_async)
    """

    @abstractmethod
    def method(self) -> str:
        """HTTP method, e.g. ``"POST"``."""

    @abstractmethod
    def endpoint(self) -> str:
        """Path relative to the API base URL, e.g. ``"auth/app_access_token"``."""

    def body(self) -> tuple[str, bytes] | None:
        """Return ``(content_type, body_bytes)`` or None for an empty body."""
        return None

    @abstractmethod
    def require_auth(self) -> bool:
        """Whether the call goes through the authenticated transport."""

    async def query_async(self, client: AsyncClient, result_type: type[T]) -> T:
        """Execute the call and validate the success envelope into ``result_type``.

        Raises:
            ApiError: the classified failure (see module RULES).
        """
        value = await _execute(self, client)
        try:
            return result_type.model_validate(value)
        except ValidationError as exc:
            raise DataTypeError(_typename(result_type), exc) from exc

    async def ignore_async(self, client: AsyncClient) -> None:
        """Execute the call, validate the envelope, and discard the payload."""
        await _execute(self, client)


class JsonEndpoint(BaseModel, Endpoint):
    """Endpoint whose request body is the JSON form of its own fields.

    RULES:
    - Instances are frozen; build a new one instead of mutating
    - None-valued optional fields are left out of the body
    """

    model_config = ConfigDict(frozen=True)

    def body(self) -> tuple[str, bytes] | None:
        try:
            data = self.model_dump_json(exclude_none=True)
        except PydanticSerializationError as exc:
            raise BodyError(exc) from exc
        return JSON_CONTENT_TYPE, data.encode("utf-8")


async def _execute(endpoint: Endpoint, client: AsyncClient) -> dict[str, Any]:
    """Send ``endpoint`` through ``client`` and return the validated envelope."""
    url = client.rest_endpoint(endpoint.endpoint())

    headers: dict[str, str] = {}
    content = b""
    body = endpoint.body()
    if body is not None:
        content_type, content = body
        headers["Content-Type"] = content_type

    request = httpx.Request(endpoint.method(), url, headers=headers, content=content)

    if endpoint.require_auth():
        response = await client.rest_async(request)
    else:
        response = await client.rest_async_no_auth(request)

    return decode_envelope(response.status_code, response.content)


def decode_envelope(status: int, data: bytes) -> dict[str, Any]:
    """Validate a raw SeaTalk reply and return the parsed envelope.

    HOW: Mirrors the decision chain in the module RULES. Kept separate
    from the transport so it can be tested on plain bytes.
    """
    try:
        value = json.loads(data)
    except ValueError as exc:
        if 200 <= status < 300:
            raise JsonError(status, data, exc) from exc
        raise SeatalkServiceError(status, data) from exc

    if not 200 <= status < 300:
        raise from_seatalk(value)

    if not isinstance(value, dict) or "code" not in value:
        raise from_seatalk(value)

    if value["code"] != 0:
        raise from_seatalk(value)

    return value


def _typename(result_type: type) -> str:
    return f"{result_type.__module__}.{result_type.__qualname__}"
