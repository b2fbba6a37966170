"""Sticker-set conversion job: Telegram set → images in a SeaTalk thread.

WHY: This is the work a /convert command triggers. It must report back
into the group chat, survive individual bad stickers, and never leave
temporary files behind.

HOW: StickerConversionJob is created per triggering group message and
run as a background task by the JobRunner. run() follows a fixed
pipeline:
  1. parse the command → sticker set name (usage hint on failure)
  2. look up the set on Telegram ("invalid set" reply on failure)
  3. post "Found N stickers..." quoting the trigger; the returned
     message id becomes the thread id for everything after
  4. make a private temp directory
  5. per sticker, in order: download (with retry) → convert in a worker
     thread → base64 → post as image in the thread; any failure bumps
     the failure counter and moves on
  6. post "Done" or "Converted X of N stickers..."
  7. remove the temp directory, whatever happened

RULES:
- Stickers are processed strictly sequentially, in set order
- failed is bumped at most once per sticker, so it never exceeds the total
- The summary is posted only after every sticker was attempted once
- Errors outside the per-sticker loop get a best-effort chat reply and
  are then re-raised so the JobRunner logs them
- Temp dir cleanup failures are logged, never raised
"""

from __future__ import annotations

import asyncio
import base64
import logging
import re
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from seatalk_stickers.api.client import AsyncClient
from seatalk_stickers.api.errors import ApiError
from seatalk_stickers.api.messaging import Code, MessageCode, MessageType, SendGroupMessage
from seatalk_stickers.convert import ConvertError, convert_sticker
from seatalk_stickers.server.messages import (
    INVALID_SET,
    JOB_FAILED,
    USAGE_HINT,
    build_found_message,
    build_summary,
)
from seatalk_stickers.telegram import Sticker, TelegramError, TelegramStickerDownloader

logger = logging.getLogger(__name__)

# Optional leading mention, then /convert and a sticker or emoji set link.
COMMAND_PATTERN = re.compile(
    r"^\s*(?:@.*?\s*)?/convert\s*https://t\.me/(?:addstickers|addemoji)/([^/\s]+)/?\s*$"
)


def parse_sticker_set_name(text: str) -> Optional[str]:
    """Extract the sticker set name from a /convert command, or None.

    >>> parse_sticker_set_name("@Bot /convert  https://t.me/addstickers/Foo")
    'Foo'
    >>> parse_sticker_set_name("@Bot /convert https://t.me/addemoji/Bar/")
    'Bar'
    >>> parse_sticker_set_name("@Bot https://t.me/addstickers/Foo") is None
    True
    """
    match = COMMAND_PATTERN.match(text)
    if match is None:
        return None
    return match.group(1)


@dataclass
class StickerConversionJob:
    """One /convert request from a group chat.

    RULES:
    - thread_id starts out as the triggering message id and is replaced
      by the progress message id once that is posted
    - failed counts download, convert and post failures together
    """

    seatalk: AsyncClient
    telegram: TelegramStickerDownloader
    group_id: str
    message_id: str
    text: str
    thread_id: Optional[str] = None
    total: int = 0
    failed: int = 0

    def __post_init__(self) -> None:
        if self.thread_id is None:
            self.thread_id = self.message_id

    async def run(self) -> None:
        """Run the whole pipeline; see the module docstring."""
        try:
            await self._run()
        except asyncio.CancelledError:
            raise
        except Exception:
            await self._report_failure()
            raise

    async def _run(self) -> None:
        set_name = parse_sticker_set_name(self.text)
        if set_name is None:
            logger.info("Message %s is not a valid /convert command", self.message_id)
            await self._reply_to_trigger(USAGE_HINT)
            return
        logger.info("Parsed sticker set: %s", set_name)

        try:
            sticker_set = await self.telegram.get_sticker_set(set_name)
        except TelegramError as exc:
            logger.info("Sticker set %s not found: %s", set_name, exc)
            await self._reply_to_trigger(INVALID_SET)
            return

        stickers = sticker_set.stickers
        self.total = len(stickers)
        progress = await SendGroupMessage.new_text_message(
            self.group_id,
            None,
            build_found_message(self.total, sticker_set.name),
            quoted_message_id=self.message_id,
        ).query_async(self.seatalk, MessageCode)
        self.thread_id = progress.message_id

        work_dir = Path(tempfile.mkdtemp(prefix="stickers_"))
        try:
            for index, sticker in enumerate(stickers, start=1):
                logger.info("Processing %s: %d/%d", sticker_set.name, index, self.total)
                if not await self._process_sticker(sticker, index, work_dir):
                    self.failed += 1

            await self._post_text(build_summary(self.total, self.failed))
        finally:
            _remove_work_dir(work_dir)

    async def _process_sticker(self, sticker: Sticker, index: int, work_dir: Path) -> bool:
        """Download, convert and post one sticker; False on any failure."""
        source = work_dir / "{:03d}{}".format(index, sticker.source_suffix)

        try:
            await self.telegram.download_sticker_retry(sticker, source)
        except (TelegramError, OSError) as exc:
            logger.error("Failed to download sticker %s: %s", sticker.file_id, exc)
            return False

        try:
            converted = await asyncio.to_thread(convert_sticker, source, sticker.kind, work_dir)
            image_b64 = base64.b64encode(converted.read_bytes()).decode("ascii")
        except (ConvertError, OSError) as exc:
            logger.error("Failed to convert sticker %s: %s", sticker.file_id, exc)
            return False

        try:
            await SendGroupMessage.new_image_message(
                self.group_id, self.thread_id, image_b64
            ).query_async(self.seatalk, Code)
        except ApiError as exc:
            logger.error("Failed to send converted sticker %s: %s", sticker.file_id, exc)
            return False
        return True

    async def _reply_to_trigger(self, text: str) -> None:
        await SendGroupMessage.new_text_message(
            self.group_id, None, text, quoted_message_id=self.message_id
        ).ignore_async(self.seatalk)

    async def _post_text(self, text: str) -> None:
        await SendGroupMessage.new_text_message(
            self.group_id, self.thread_id, text
        ).ignore_async(self.seatalk)

    async def _report_failure(self) -> None:
        """Best-effort error message; a failure here is only logged."""
        thread_id = None if self.thread_id == self.message_id else self.thread_id
        try:
            await SendGroupMessage.new_text_message(
                self.group_id, thread_id, JOB_FAILED, quoted_message_id=self.message_id
            ).ignore_async(self.seatalk)
        except ApiError as exc:
            logger.warning("Could not report job failure for %s: %s", self.message_id, exc)


def _remove_work_dir(work_dir: Path) -> None:
    try:
        shutil.rmtree(work_dir)
    except OSError:
        logger.warning("Failed to clean up temp dir: %s", work_dir)
