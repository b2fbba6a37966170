"""App credentials, access tokens, and the lock-protected token cache.

WHY: Every bot call needs a short-lived app access token. Many jobs and
webhook requests run concurrently, so the token must be refreshed safely:
nobody may ever see a half-replaced token, and nobody may send with an
expired one.

HOW: Credentials is an immutable (app_id, app_secret) pair. AccessToken is
a frozen pydantic model parsed from the token endpoint reply. Auth owns
both plus an asyncio.Lock guarding the single cached token. The only way
to read the cache is authorization_header(), which holds the lock across
the whole check-and-refresh sequence, network round trip included.

RULES:
- A token is expired when now + 60s >= expire
- The cached token is replaced wholesale, never mutated
- Concurrent callers may refresh back to back; that is tolerated, the
  token endpoint is idempotent and the last token is as good as any
- Secrets never show up in repr() or logs (SecretStr, repr=False)
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, SecretStr, field_serializer

from seatalk_stickers.api.client import AsyncClient, UnauthenticatedTransport
from seatalk_stickers.api.endpoint import JsonEndpoint

logger = logging.getLogger(__name__)

TOKEN_EXPIRY_SKEW = timedelta(seconds=60)


@dataclass(frozen=True)
class Credentials:
    """SeaTalk app credentials, loaded once at startup."""

    app_id: str
    app_secret: str = field(repr=False)


class AccessToken(BaseModel):
    """App access token returned by ``auth/app_access_token``.

    RULES:
    - expire is parsed from seconds-since-epoch into an aware UTC datetime
    - app_access_token is a SecretStr so it is masked in repr and logs
    """

    model_config = ConfigDict(frozen=True)

    app_access_token: SecretStr
    expire: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """True if the token expires within the 60 second skew window."""
        if now is None:
            now = datetime.now(timezone.utc)
        return now + TOKEN_EXPIRY_SKEW >= self.expire

    def authorization_header(self) -> str:
        return f"Bearer {self.app_access_token.get_secret_value()}"


class GetAccessToken(JsonEndpoint):
    """Exchange app credentials for an app access token (no auth)."""

    app_id: str
    app_secret: SecretStr

    @field_serializer("app_secret", when_used="json")
    def _reveal_secret(self, value: SecretStr) -> str:
        return value.get_secret_value()

    def method(self) -> str:
        return "POST"

    def endpoint(self) -> str:
        return "auth/app_access_token"

    def require_auth(self) -> bool:
        return False


class Auth:
    """Owner of the credentials and the cached access token.

    WHY: The token cell is shared by every concurrent caller. Keeping it
    private to this class, behind a single read-or-refresh operation, is
    what makes torn reads impossible.

    HOW: bootstrap() fetches the first token. authorization_header()
    takes the lock, refreshes if the token is missing or expired, and
    builds the header from the token it now holds.
    """

    def __init__(self, credentials: Credentials) -> None:
        self._credentials = credentials
        self._token: Optional[AccessToken] = None
        self._lock = asyncio.Lock()

    @property
    def app_id(self) -> str:
        return self._credentials.app_id

    async def get_access_token_async(self, client: UnauthenticatedTransport) -> AccessToken:
        """Exchange the credentials for a new token via the anonymous path."""
        endpoint = GetAccessToken(
            app_id=self._credentials.app_id,
            app_secret=self._credentials.app_secret,
        )
        return await endpoint.query_async(client, AccessToken)  # type: ignore[arg-type]

    async def bootstrap(self, client: UnauthenticatedTransport) -> None:
        """Fetch the initial token; raises the classified ApiError on failure."""
        async with self._lock:
            self._token = await self.get_access_token_async(client)
        logger.info("Obtained SeaTalk access token for app %s", self.app_id)

    async def authorization_header(self, client: AsyncClient) -> str:
        """Return a ``Bearer`` header value built from a non-expired token."""
        async with self._lock:
            if self._token is None or self._token.is_expired():
                logger.info("SeaTalk access token missing or expired, refreshing")
                self._token = await self.get_access_token_async(client)
            return self._token.authorization_header()
