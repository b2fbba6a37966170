"""Error taxonomy for the SeaTalk API layer.

WHY: SeaTalk answers every call with an ad hoc JSON envelope, and calls
can also fail before a reply exists (network, bad URL, unserializable
body). Callers need to tell these apart without string matching, so this
module classifies every failure into exactly one typed exception.

HOW: ApiError is the common base. Each concrete subclass is one kind of
failure and carries the data needed to diagnose it (wrapped source
exception, HTTP status, raw bytes, remote message/object, expected type
name). from_seatalk() turns a parsed error envelope into the matching
remote error.

RULES:
- Every failure raised by the api package is an ApiError subclass
- Exactly one concrete class per failure kind; no multi-kind errors
- Classification happens here, handling is the caller's job
- The remote error message lives at the top-level "message" key
"""

from __future__ import annotations

from typing import Any


class ApiError(Exception):
    """Base class for every error raised by the SeaTalk API layer."""


class ClientError(ApiError):
    """Transport-level failure (network, TLS, protocol) from httpx.

    WHY: The request never produced a usable HTTP response. This is the
    only kind the webhook treats as a hard failure.
    """

    def __init__(self, source: Exception) -> None:
        self.source = source
        super().__init__(f"client error: {source}")


class UrlParseError(ApiError):
    """The base URL or an endpoint path could not be turned into a URL."""

    def __init__(self, url: str, source: Exception) -> None:
        self.url = url
        self.source = source
        super().__init__(f"failed to parse url {url!r}: {source}")


class BodyError(ApiError):
    """The request body could not be serialized."""

    def __init__(self, source: Exception) -> None:
        self.source = source
        super().__init__(f"failed to create request body: {source}")


class JsonError(ApiError):
    """A 2xx response whose body is not valid JSON.

    RULES:
    - status and raw data are kept so the reply can be inspected later
    """

    def __init__(self, status: int, data: bytes, source: Exception) -> None:
        self.status = status
        self.data = data
        self.source = source
        super().__init__(f"could not parse JSON response: {source}")


class SeatalkServiceError(ApiError):
    """A non-2xx response whose body is not JSON (proxy page, 502, ...)."""

    def __init__(self, status: int, data: bytes) -> None:
        self.status = status
        self.data = data
        super().__init__(f"seatalk internal server error {status}")


class SeatalkRemoteError(ApiError):
    """Base for errors reported by SeaTalk inside a JSON envelope.

    WHY: Callers that only care "SeaTalk said no" can catch this one base
    instead of the three shapes below.
    """

    def __init__(self, message: str, code: Any = None) -> None:
        self.code = code
        super().__init__(message)


class SeatalkError(SeatalkRemoteError):
    """SeaTalk reported an error with a plain string message."""

    def __init__(self, msg: str, code: Any = None) -> None:
        self.msg = msg
        super().__init__(f"seatalk server error: {msg}", code)


class SeatalkObjectError(SeatalkRemoteError):
    """SeaTalk reported an error whose "message" is not a string."""

    def __init__(self, obj: Any, code: Any = None) -> None:
        self.obj = obj
        super().__init__(f"seatalk server error {obj!r}", code)


class SeatalkUnrecognizedError(SeatalkRemoteError):
    """SeaTalk replied with an error envelope of unknown shape."""

    def __init__(self, obj: Any, code: Any = None) -> None:
        self.obj = obj
        super().__init__(f"seatalk server error: {obj!r}", code)


class DataTypeError(ApiError):
    """Valid success envelope that does not match the expected result type."""

    def __init__(self, typename: str, source: Exception) -> None:
        self.typename = typename
        self.source = source
        super().__init__(f"could not parse {typename} data from JSON: {source}")


def from_seatalk(value: Any) -> SeatalkRemoteError:
    """Classify a parsed error envelope into a remote error.

    RULES:
    - "message" is a string → SeatalkError
    - "message" present but not a string → SeatalkObjectError
    - no "message" (or not a JSON object at all) → SeatalkUnrecognizedError
    """
    if not isinstance(value, dict):
        return SeatalkUnrecognizedError(value)

    code = value.get("code")
    if "message" not in value:
        return SeatalkUnrecognizedError(value, code)

    message = value["message"]
    if isinstance(message, str):
        return SeatalkError(message, code)
    return SeatalkObjectError(message, code)
