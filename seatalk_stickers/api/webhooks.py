"""Inbound SeaTalk webhook event models.

WHY: SeaTalk POSTs every event for the bot to a single callback URL. The
body is one JSON object whose ``event_type`` decides the shape of the
nested ``event`` payload. Parsing it into a closed set of typed models
lets the dispatcher branch on the class instead of poking at dicts.

HOW: One pydantic model per handled event type, each with a Literal
``event_type``. InboundEvent is a RootModel over their discriminated
union, so FastAPI validates the request body and rejects anything else
with 422 before the dispatcher runs.

RULES:
- Only three event types are handled; any other event_type is invalid
- Unknown extra fields are ignored (SeaTalk adds fields over time)
- thread_id and quoted_message_id may be absent or empty
"""

from __future__ import annotations

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, RootModel

EVENT_VERIFICATION = "event_verification"
MESSAGE_FROM_BOT_SUBSCRIBER = "message_from_bot_subscriber"
NEW_MENTIONED_MESSAGE_FROM_GROUP_CHAT = "new_mentioned_message_received_from_group_chat"


# ---------------------------------------------------------------------------
# Event payloads
# ---------------------------------------------------------------------------


class SeatalkChallengeEvent(BaseModel):
    seatalk_challenge: str


class SubscriberMessageContent(BaseModel):
    content: str = ""


class SubscriberMessage(BaseModel):
    tag: str
    text: Optional[SubscriberMessageContent] = None


class SubscriberMessageEvent(BaseModel):
    employee_code: str
    message: SubscriberMessage


class Sender(BaseModel):
    seatalk_id: str
    employee_code: str
    sender_type: Optional[int] = None


class Mention(BaseModel):
    username: str
    seatalk_id: str


class MentionedMessageContent(BaseModel):
    plain_text: str
    mentioned_list: List[Mention] = Field(default_factory=list)


class MentionedMessage(BaseModel):
    """A group message that mentions the bot."""

    message_id: str
    quoted_message_id: Optional[str] = None
    thread_id: Optional[str] = None
    sender: Sender
    message_sent_time: int
    tag: str
    text: MentionedMessageContent

    @property
    def in_thread(self) -> bool:
        """True if the message was posted inside an existing thread."""
        return bool(self.thread_id)


class MentionedFromGroupChatEvent(BaseModel):
    group_id: str
    message: MentionedMessage


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------


class EventVerification(BaseModel):
    """Callback URL verification; the challenge must be echoed back."""

    event_type: Literal["event_verification"]
    event_id: str
    timestamp: int
    app_id: str
    event: SeatalkChallengeEvent


class MessageFromBotSubscriber(BaseModel):
    """A direct message from an employee subscribed to the bot."""

    event_type: Literal["message_from_bot_subscriber"]
    event_id: str
    timestamp: int
    app_id: str
    event: SubscriberMessageEvent


class NewMentionedMessageFromGroupChat(BaseModel):
    """A group chat message that mentions the bot."""

    event_type: Literal["new_mentioned_message_received_from_group_chat"]
    event_id: str
    timestamp: int
    app_id: str
    event: MentionedFromGroupChatEvent


WebhookEvent = Annotated[
    Union[EventVerification, MessageFromBotSubscriber, NewMentionedMessageFromGroupChat],
    Field(discriminator="event_type"),
]


class InboundEvent(RootModel[WebhookEvent]):
    """Request body of the webhook endpoint; ``.root`` is the typed event."""
