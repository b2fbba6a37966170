"""SeaTalk Open API package: async client for the bot's outbound calls.

WHY: The bridge needs to exchange app credentials for access tokens and
send text/image messages to subscribers and group chats, all under a
strict rate limit. This package keeps every SeaTalk HTTP detail in one
place.

HOW: AsyncSeatalk (seatalk.py) owns the httpx pool, the token cache
(auth.py) and the rate limiter (rate_limit.py). Each API call is a typed
Endpoint value (endpoint.py, messaging.py) executed through it. Every
failure surfaces as an ApiError subclass (errors.py). Inbound webhook
bodies are parsed by webhooks.py.

RULES:
- All SeaTalk HTTP calls go through AsyncSeatalk (no direct httpx usage elsewhere)
- Authentication is via a cached, auto-refreshed Bearer token
- Callers catch ApiError (or a subclass), never httpx errors
"""

from seatalk_stickers.api.auth import Auth, Credentials
from seatalk_stickers.api.errors import ApiError, ClientError
from seatalk_stickers.api.messaging import MessageType, SendGroupMessage, SendSubscriberMessage
from seatalk_stickers.api.seatalk import AsyncSeatalk

__all__ = [
    "ApiError",
    "AsyncSeatalk",
    "Auth",
    "ClientError",
    "Credentials",
    "MessageType",
    "SendGroupMessage",
    "SendSubscriberMessage",
]
