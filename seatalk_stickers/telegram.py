"""Minimal async Telegram Bot API client for sticker sets.

WHY: The bridge only needs four Bot API calls: validate the token, look
up a sticker set by name, resolve a sticker's file path, and download the
file. A thin httpx client keeps that surface small and mockable.

HOW: TelegramStickerDownloader is an async context manager around
httpx.AsyncClient. Entering it calls getMe so a bad token fails at
startup. Bot API methods go through _call(), which unwraps the
``{"ok": ..., "result": ...}`` envelope. Downloads stream to disk.
download_sticker_retry() wraps a download in with_backoff().

RULES:
- Always use the async context manager (async with TelegramStickerDownloader(...) as tg:)
- Every failure raises TelegramError (API refusal or transport error)
- The bot token is part of every URL, so URLs are never logged
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx

from seatalk_stickers.convert import StickerKind
from seatalk_stickers.retry import RetryPolicy, with_backoff

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.telegram.org"

DOWNLOAD_RETRY_POLICY = RetryPolicy(max_attempts=4, min_wait_s=1.0, max_wait_s=10.0)


class TelegramError(Exception):
    """Raised when a Bot API call fails.

    RULES:
    - description is Telegram's own error text when it sent one
    """

    def __init__(self, method: str, description: str) -> None:
        self.method = method
        self.description = description
        super().__init__(f"Telegram {method} failed: {description}")


@dataclass
class Sticker:
    """One sticker of a set, as returned by getStickerSet."""

    file_id: str
    file_unique_id: str
    is_animated: bool = False
    is_video: bool = False
    emoji: Optional[str] = None

    @property
    def kind(self) -> StickerKind:
        if self.is_video:
            return StickerKind.VIDEO
        if self.is_animated:
            return StickerKind.ANIMATED
        return StickerKind.STATIC

    @property
    def source_suffix(self) -> str:
        return {
            StickerKind.STATIC: ".webp",
            StickerKind.ANIMATED: ".tgs",
            StickerKind.VIDEO: ".webm",
        }[self.kind]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Sticker:
        return cls(
            file_id=data["file_id"],
            file_unique_id=data.get("file_unique_id", ""),
            is_animated=bool(data.get("is_animated", False)),
            is_video=bool(data.get("is_video", False)),
            emoji=data.get("emoji"),
        )


@dataclass
class StickerSet:
    name: str
    title: str
    stickers: List[Sticker] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> StickerSet:
        return cls(
            name=data["name"],
            title=data.get("title", data["name"]),
            stickers=[Sticker.from_dict(s) for s in data.get("stickers", [])],
        )


class TelegramStickerDownloader:
    """Looks up Telegram sticker sets and downloads their files."""

    def __init__(
        self,
        api_token: str,
        base_url: str = DEFAULT_BASE_URL,
        *,
        retry_policy: RetryPolicy = DOWNLOAD_RETRY_POLICY,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._api_token = api_token
        self._base_url = base_url.rstrip("/")
        self._retry_policy = retry_policy
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def __repr__(self) -> str:
        return f"TelegramStickerDownloader(base_url={self._base_url!r})"

    async def __aenter__(self) -> TelegramStickerDownloader:
        self._client = httpx.AsyncClient(
            transport=self._transport,
            timeout=httpx.Timeout(60.0, connect=10.0),
        )
        try:
            me = await self._call("getMe")
        except BaseException:
            await self._client.aclose()
            self._client = None
            raise
        logger.info("Telegram bot authorized as @%s", me.get("username", "?"))
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError(
                "TelegramStickerDownloader must be used as an async context manager"
            )
        return self._client

    async def _call(self, method: str, **params: Any) -> Any:
        """POST a Bot API method and return its ``result``."""
        client = self._ensure_client()
        url = f"{self._base_url}/bot{self._api_token}/{method}"
        try:
            response = await client.post(url, json=params)
        except httpx.HTTPError as exc:
            raise TelegramError(method, type(exc).__name__) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise TelegramError(method, f"HTTP {response.status_code}, non-JSON body") from exc

        if not isinstance(payload, dict) or not payload.get("ok"):
            description = "unknown error"
            if isinstance(payload, dict):
                description = payload.get("description", description)
            raise TelegramError(method, description)
        return payload.get("result")

    # -------------------------------------------------------------------
    # Bot API
    # -------------------------------------------------------------------

    async def get_sticker_set(self, name: str) -> StickerSet:
        result = await self._call("getStickerSet", name=name)
        try:
            return StickerSet.from_dict(result)
        except (KeyError, TypeError) as exc:
            raise TelegramError("getStickerSet", f"malformed sticker set: {exc}") from exc

    async def get_file_path(self, file_id: str) -> str:
        result = await self._call("getFile", file_id=file_id)
        if not isinstance(result, dict) or not result.get("file_path"):
            raise TelegramError("getFile", "file has no file_path")
        return result["file_path"]

    async def download_sticker(self, sticker: Sticker, path: Path) -> None:
        """Download ``sticker`` to ``path``, overwriting it."""
        client = self._ensure_client()
        file_path = await self.get_file_path(sticker.file_id)
        url = f"{self._base_url}/file/bot{self._api_token}/{file_path}"
        try:
            async with client.stream("GET", url) as response:
                if response.status_code != 200:
                    raise TelegramError("download", f"HTTP {response.status_code}")
                with open(path, "wb") as f:
                    async for chunk in response.aiter_bytes():
                        f.write(chunk)
        except httpx.HTTPError as exc:
            raise TelegramError("download", type(exc).__name__) from exc

    async def download_sticker_retry(self, sticker: Sticker, path: Path) -> None:
        """download_sticker() with exponential backoff on TelegramError."""
        policy = replace(self._retry_policy, retry_on=(TelegramError, OSError))
        await with_backoff(lambda: self.download_sticker(sticker, path), policy)
