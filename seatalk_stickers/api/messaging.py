"""Messaging endpoints: bot → subscriber and bot → group chat.

WHY: The bot talks back in two places: a direct chat with a subscriber
(employee) and a group chat, optionally inside a thread. Both accept the
same text/image message shapes, tagged by a "tag" field.

HOW: Message payloads are pydantic models with a Literal ``tag`` and form
closed discriminated unions. SendSubscriberMessage and SendGroupMessage
are JsonEndpoints whose ``new()`` constructors pick the right variant
from a MessageType. Code and MessageCode are the success envelopes.

RULES:
- Text messages always use format 1 (markdown-ish SeaTalk text)
- Image content is the base64-encoded image bytes
- quoted_message_id / thread_id are left out of the body when None
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

from seatalk_stickers.api.endpoint import JsonEndpoint

TEXT_FORMAT_MARKDOWN = 1


class MessageType(str, Enum):
    """Kind of message content the bot can send."""

    TEXT = "text"
    IMAGE = "image"


# ---------------------------------------------------------------------------
# Response envelopes
# ---------------------------------------------------------------------------


class Code(BaseModel):
    """Bare success envelope."""

    code: int


class MessageCode(BaseModel):
    """Success envelope of a group message send, carrying the new message id."""

    code: int
    message_id: str


# ---------------------------------------------------------------------------
# Message content
# ---------------------------------------------------------------------------


class TextContent(BaseModel):
    format: int = TEXT_FORMAT_MARKDOWN
    content: str


class ImageContent(BaseModel):
    content: str


class TextSubscriberMessage(BaseModel):
    tag: Literal["text"] = "text"
    text: TextContent


class ImageSubscriberMessage(BaseModel):
    tag: Literal["image"] = "image"
    image: ImageContent


SubscriberMessage = Annotated[
    Union[TextSubscriberMessage, ImageSubscriberMessage],
    Field(discriminator="tag"),
]


class TextGroupMessage(BaseModel):
    tag: Literal["text"] = "text"
    text: TextContent
    quoted_message_id: Optional[str] = None
    thread_id: Optional[str] = None


class ImageGroupMessage(BaseModel):
    tag: Literal["image"] = "image"
    image: ImageContent
    quoted_message_id: Optional[str] = None
    thread_id: Optional[str] = None


GroupMessage = Annotated[
    Union[TextGroupMessage, ImageGroupMessage],
    Field(discriminator="tag"),
]


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


class SendSubscriberMessage(JsonEndpoint):
    """Send a message to one subscriber in the bot's direct chat."""

    employee_code: str
    message: SubscriberMessage

    @classmethod
    def new(
        cls,
        employee_code: str,
        message_type: MessageType,
        content: str,
    ) -> SendSubscriberMessage:
        if message_type == MessageType.TEXT:
            message = TextSubscriberMessage(text=TextContent(content=content))
        else:
            message = ImageSubscriberMessage(image=ImageContent(content=content))
        return cls(employee_code=employee_code, message=message)

    def method(self) -> str:
        return "POST"

    def endpoint(self) -> str:
        return "messaging/v2/single_chat"

    def require_auth(self) -> bool:
        return True


class SendGroupMessage(JsonEndpoint):
    """Send a message to a group chat, optionally quoting or in a thread."""

    group_id: str
    message: GroupMessage

    @classmethod
    def new(
        cls,
        group_id: str,
        thread_id: Optional[str],
        content: str,
        message_type: MessageType,
        quoted_message_id: Optional[str] = None,
    ) -> SendGroupMessage:
        if message_type == MessageType.TEXT:
            return cls.new_text_message(group_id, thread_id, content, quoted_message_id)
        return cls.new_image_message(group_id, thread_id, content, quoted_message_id)

    @classmethod
    def new_text_message(
        cls,
        group_id: str,
        thread_id: Optional[str],
        text: str,
        quoted_message_id: Optional[str] = None,
    ) -> SendGroupMessage:
        return cls(
            group_id=group_id,
            message=TextGroupMessage(
                text=TextContent(content=text),
                quoted_message_id=quoted_message_id,
                thread_id=thread_id,
            ),
        )

    @classmethod
    def new_image_message(
        cls,
        group_id: str,
        thread_id: Optional[str],
        image_b64: str,
        quoted_message_id: Optional[str] = None,
    ) -> SendGroupMessage:
        return cls(
            group_id=group_id,
            message=ImageGroupMessage(
                image=ImageContent(content=image_b64),
                quoted_message_id=quoted_message_id,
                thread_id=thread_id,
            ),
        )

    def method(self) -> str:
        return "POST"

    def endpoint(self) -> str:
        return "messaging/v2/group_chat"

    def require_auth(self) -> bool:
        return True
