"""Concrete SeaTalk Open API client.

WHY: The webhook dispatcher and the conversion jobs all share one
SeaTalk connection: one HTTP pool, one token cache and one rate limiter.
This module wires those together behind the AsyncClient interface so
endpoints can be executed through it.

HOW: AsyncSeatalk wraps httpx.AsyncClient and is an async context
manager. Entering it opens the pool and bootstraps the access token
through the anonymous path; exiting closes the pool. Both transport paths
wait on the shared RateLimiter right before each send.

RULES:
- Always use the async context manager (async with AsyncSeatalk(...) as seatalk:)
- Entry fails (and the pool is closed) if the first token cannot be fetched
- Every send, including token exchange, goes through the rate limiter
- httpx errors are wrapped in ClientError
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from seatalk_stickers.api.auth import Auth
from seatalk_stickers.api.client import AsyncClient
from seatalk_stickers.api.errors import ClientError, UrlParseError
from seatalk_stickers.api.rate_limit import DEFAULT_INTERVAL_S, RateLimiter

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = httpx.Timeout(30.0, connect=10.0)


class AsyncSeatalk(AsyncClient):
    """Authenticated, rate-limited SeaTalk client.

    RULES:
    - host is a bare host name, e.g. "openapi.seatalk.io"
    - transport is only for tests (httpx.MockTransport)
    """

    def __init__(
        self,
        host: str,
        auth: Auth,
        *,
        protocol: str = "https",
        rate_limit_interval_s: float = DEFAULT_INTERVAL_S,
        limiter: Optional[RateLimiter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: httpx.Timeout = _DEFAULT_TIMEOUT,
    ) -> None:
        raw_url = f"{protocol}://{host}/"
        try:
            self._base_url = httpx.URL(raw_url)
        except httpx.InvalidURL as exc:
            raise UrlParseError(raw_url, exc) from exc
        self._auth = auth
        self._limiter = limiter or RateLimiter(rate_limit_interval_s)
        self._transport = transport
        self._timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> AsyncSeatalk:
        self._client = httpx.AsyncClient(transport=self._transport, timeout=self._timeout)
        try:
            await self._auth.bootstrap(self)
        except BaseException:
            await self._client.aclose()
            self._client = None
            raise
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def base_url(self) -> httpx.URL:
        return self._base_url

    @property
    def auth(self) -> Auth:
        return self._auth

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError(
                "AsyncSeatalk must be used as an async context manager"
            )
        return self._client

    # -------------------------------------------------------------------
    # AsyncClient implementation
    # -------------------------------------------------------------------

    def rest_endpoint(self, endpoint: str) -> httpx.URL:
        try:
            return self._base_url.join(endpoint)
        except httpx.InvalidURL as exc:
            raise UrlParseError(endpoint, exc) from exc

    async def rest_async_no_auth(self, request: httpx.Request) -> httpx.Response:
        return await self._send(request)

    async def rest_async(self, request: httpx.Request) -> httpx.Response:
        request.headers["Authorization"] = await self._auth.authorization_header(self)
        return await self._send(request)

    async def _send(self, request: httpx.Request) -> httpx.Response:
        client = self._ensure_client()
        await self._limiter.until_ready()
        logger.debug("SeaTalk %s %s", request.method, request.url.path)
        try:
            return await client.send(request)
        except httpx.HTTPError as exc:
            raise ClientError(exc) from exc
