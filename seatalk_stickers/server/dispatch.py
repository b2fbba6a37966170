"""Webhook event dispatch: decide what to do with each SeaTalk event.

WHY: SeaTalk delivers every bot event to one URL. Each event kind needs
a different reaction, some answered inline (challenge echo, promo
messages) and one handed off to a background job (/convert in an
allow-listed group). Keeping that routing in one class, separate from
FastAPI, makes it testable with plain mocks.

HOW: WebhookDispatcher.dispatch() branches on the parsed event class:
  EventVerification                → return the challenge to echo
  MessageFromBotSubscriber         → promo text + invite image to the user
  NewMentionedMessageFromGroupChat → group not allow-listed: promo to the group
                                     allow-listed, top-level message: start a
                                     StickerConversionJob, return immediately
                                     already in a thread: ignored

RULES:
- Only ClientError (no HTTP response at all) escalates, as WebhookError;
  other ApiErrors from promo sends are logged and ignored per message
- Mentions inside a thread never start a job, so the bot's own thread
  replies cannot trigger recursive jobs
- The job is keyed by the triggering message id
- The invite image is skipped when none is configured
"""

from __future__ import annotations

import logging
from typing import Callable, FrozenSet, Optional, Union

from seatalk_stickers.api.client import AsyncClient
from seatalk_stickers.api.errors import ApiError, ClientError
from seatalk_stickers.api.messaging import MessageType, SendGroupMessage, SendSubscriberMessage
from seatalk_stickers.api.webhooks import (
    EventVerification,
    MessageFromBotSubscriber,
    NewMentionedMessageFromGroupChat,
    WebhookEvent,
)
from seatalk_stickers.server.conversion import StickerConversionJob
from seatalk_stickers.server.jobs import JobRunner
from seatalk_stickers.server.messages import PROMO_TEXT
from seatalk_stickers.server.models import VerificationResponse
from seatalk_stickers.telegram import TelegramStickerDownloader

logger = logging.getLogger(__name__)


class WebhookError(Exception):
    """Unrecoverable failure while handling a webhook; answered with HTTP 500."""


class WebhookDispatcher:
    """Routes inbound SeaTalk events to their handlers."""

    def __init__(
        self,
        seatalk: AsyncClient,
        telegram: TelegramStickerDownloader,
        runner: JobRunner,
        allowed_group_ids: FrozenSet[str],
        invite_image: Optional[str] = None,
    ) -> None:
        self._seatalk = seatalk
        self._telegram = telegram
        self._runner = runner
        self._allowed_group_ids = allowed_group_ids
        self._invite_image = invite_image

    async def dispatch(self, event: WebhookEvent) -> Optional[VerificationResponse]:
        """Handle one event; returns a body only for verification events.

        Raises:
            WebhookError: a promo message hit a transport-level failure.
        """
        if isinstance(event, EventVerification):
            logger.info("Answering SeaTalk callback verification")
            return VerificationResponse(seatalk_challenge=event.event.seatalk_challenge)

        if isinstance(event, MessageFromBotSubscriber):
            employee_code = event.event.employee_code
            logger.info("Direct message from subscriber %s", employee_code)
            await self._send_promo(
                lambda message_type, content: SendSubscriberMessage.new(
                    employee_code, message_type, content
                )
            )
            return None

        if isinstance(event, NewMentionedMessageFromGroupChat):
            await self._on_group_mention(event)
            return None

        logger.warning("Unhandled event type: %s", type(event).__name__)
        return None

    async def _on_group_mention(self, event: NewMentionedMessageFromGroupChat) -> None:
        group_id = event.event.group_id
        message = event.event.message

        if group_id not in self._allowed_group_ids:
            logger.info("Mention from group %s outside the allow-list", group_id)
            await self._send_promo(
                lambda message_type, content: SendGroupMessage.new(
                    group_id, None, content, message_type
                )
            )
            return

        if message.in_thread:
            logger.debug("Ignoring mention %s inside thread %s", message.message_id, message.thread_id)
            return

        job = StickerConversionJob(
            seatalk=self._seatalk,
            telegram=self._telegram,
            group_id=group_id,
            message_id=message.message_id,
            text=message.text.plain_text,
        )
        self._runner.submit(message.message_id, job.run())

    async def _send_promo(
        self,
        build: Callable[[MessageType, str], Union[SendGroupMessage, SendSubscriberMessage]],
    ) -> None:
        """Send the promo text, then the invite image if one is configured."""
        await self._send_ignoring_remote_errors(build(MessageType.TEXT, PROMO_TEXT))
        if self._invite_image is None:
            return
        await self._send_ignoring_remote_errors(build(MessageType.IMAGE, self._invite_image))

    async def _send_ignoring_remote_errors(
        self, endpoint: Union[SendGroupMessage, SendSubscriberMessage]
    ) -> None:
        try:
            await endpoint.ignore_async(self._seatalk)
        except ClientError as exc:
            raise WebhookError("failed to reach SeaTalk: {}".format(exc)) from exc
        except ApiError as exc:
            logger.warning("Promo message not delivered: %s", exc)
