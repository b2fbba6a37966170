"""Transport capability interfaces for the SeaTalk API layer.

WHY: Endpoint logic (build request, decode envelope, classify errors)
should not depend on the concrete HTTP client, its token cache or its
rate limiter. Tests and future clients plug in by implementing these
small interfaces.

HOW: Three ABCs. RestClient resolves relative endpoint paths against a
base URL. UnauthenticatedTransport sends a request as-is;
AuthenticatedTransport attaches a bearer token first. AsyncClient is the
combination an Endpoint needs, implemented once by AsyncSeatalk.

RULES:
- Transports return the fully read httpx.Response, whatever its status
- Transport failures are raised as ClientError, never as raw httpx errors
- Implementations must rate-limit both paths
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import httpx


class RestClient(ABC):
    """Something that knows the SeaTalk base URL."""

    @abstractmethod
    def rest_endpoint(self, endpoint: str) -> httpx.URL:
        """Resolve a relative endpoint path to an absolute URL.

        Raises:
            UrlParseError: if the path cannot be joined to the base URL.
        """


class UnauthenticatedTransport(RestClient):
    """Sends requests without credentials (token exchange)."""

    @abstractmethod
    async def rest_async_no_auth(self, request: httpx.Request) -> httpx.Response:
        """Send ``request`` as-is and return the response."""


class AuthenticatedTransport(RestClient):
    """Sends requests carrying a valid bearer token."""

    @abstractmethod
    async def rest_async(self, request: httpx.Request) -> httpx.Response:
        """Attach a fresh Authorization header, send, and return the response."""


class AsyncClient(AuthenticatedTransport, UnauthenticatedTransport):
    """Both transport paths; what Endpoint.query_async() dispatches through."""
