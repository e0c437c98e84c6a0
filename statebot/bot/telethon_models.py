"""
Telegram-specific Pydantic models for the bot.

This module contains the transport-neutral update model the dispatcher works
on, the sent message model returned by the transport and the bot
configuration. Telethon events are converted into these models by
``TelethonAPI`` so that dispatch and tests never touch Telethon objects.
"""

from enum import Enum
from typing import Optional, Any, Callable, Dict
from pydantic import BaseModel, Field


class UpdateKind(str, Enum):
    """Kind of an incoming update."""
    MESSAGE = "message"
    EDITED_MESSAGE = "edited_message"
    CHANNEL_POST = "channel_post"
    CHAT_MEMBER = "chat_member"
    CALLBACK_QUERY = "callback_query"
    OTHER = "other"


class ChatType(str, Enum):
    """Type of the chat an update belongs to."""
    PRIVATE = "private"
    GROUP = "group"
    CHANNEL = "channel"
    UNKNOWN = "unknown"


class ChatScope(str, Enum):
    """Chats the dispatcher accepts messages from."""
    PRIVATE = "private"
    GROUP = "group"
    ANY = "any"

    def allows(self, chat_type: ChatType) -> bool:
        if self is ChatScope.ANY:
            return True
        return chat_type.value == self.value


class UpdateMessage(BaseModel):
    """A message carried by an update (incoming, edited or the callback's message)."""
    id: int = Field(..., description="Message ID")
    chat_id: int = Field(..., description="Chat the message belongs to")
    chat_type: ChatType = Field(default=ChatType.UNKNOWN, description="Type of the chat")
    user_id: Optional[int] = Field(default=None, description="Sender of the message")
    text: Optional[str] = Field(default=None, description="Text of a plain text message, None for media")


class CallbackQueryModel(BaseModel):
    """An inline button press."""
    id: str = Field(..., description="Callback query ID used to answer it")
    user_id: Optional[int] = Field(default=None, description="User who pressed the button")
    data: Optional[str] = Field(default=None, description="Callback payload")
    message: Optional[UpdateMessage] = Field(default=None, description="Message the button belongs to")


class ChatMemberModel(BaseModel):
    """A chat membership change."""
    chat_id: int
    user_id: Optional[int] = None


class Update(BaseModel):
    """
    One inbound event from Telegram.

    Chat, user and message identifiers are extracted per kind through a fixed
    mapping table; kinds without a mapping (or missing payloads) yield None.
    """
    kind: UpdateKind = Field(..., description="Kind of the update")
    message: Optional[UpdateMessage] = Field(default=None, description="Payload of message, edited message and channel post updates")
    callback_query: Optional[CallbackQueryModel] = Field(default=None, description="Payload of callback query updates")
    chat_member: Optional[ChatMemberModel] = Field(default=None, description="Payload of chat member updates")

    @property
    def is_callback(self) -> bool:
        return self.kind is UpdateKind.CALLBACK_QUERY and self.callback_query is not None

    @property
    def is_text_message(self) -> bool:
        return self.kind is UpdateKind.MESSAGE and self.message is not None and self.message.text is not None

    @property
    def text(self) -> Optional[str]:
        return self.message.text if self.is_text_message else None

    @property
    def callback_data(self) -> Optional[str]:
        return self.callback_query.data if self.is_callback else None

    @property
    def chat_type(self) -> ChatType:
        message = self.callback_query.message if self.is_callback else self.message
        return message.chat_type if message else ChatType.UNKNOWN

    def get_chat_id(self) -> Optional[int]:
        return _extract(self, _CHAT_ID_MAP)

    def get_user_id(self) -> Optional[int]:
        return _extract(self, _USER_ID_MAP)

    def get_message_id(self) -> Optional[int]:
        return _extract(self, _MESSAGE_ID_MAP)


def _extract(update: Update, mapping: Dict[UpdateKind, Callable[[Update], Any]]) -> Optional[int]:
    getter = mapping.get(update.kind)
    if getter is None:
        return None
    try:
        return getter(update)
    except AttributeError:
        # payload of the kind is missing
        return None


_CHAT_ID_MAP: Dict[UpdateKind, Callable[[Update], Any]] = {
    UpdateKind.CALLBACK_QUERY: lambda u: u.callback_query.message.chat_id,
    UpdateKind.EDITED_MESSAGE: lambda u: u.message.chat_id,
    UpdateKind.CHANNEL_POST: lambda u: u.message.chat_id,
    UpdateKind.CHAT_MEMBER: lambda u: u.chat_member.chat_id,
    UpdateKind.MESSAGE: lambda u: u.message.chat_id,
}

_USER_ID_MAP: Dict[UpdateKind, Callable[[Update], Any]] = {
    UpdateKind.CALLBACK_QUERY: lambda u: u.callback_query.user_id,
    UpdateKind.EDITED_MESSAGE: lambda u: u.message.user_id,
    UpdateKind.CHANNEL_POST: lambda u: u.message.user_id,
    UpdateKind.CHAT_MEMBER: lambda u: u.chat_member.user_id,
    UpdateKind.MESSAGE: lambda u: u.message.user_id,
}

_MESSAGE_ID_MAP: Dict[UpdateKind, Callable[[Update], Any]] = {
    UpdateKind.CALLBACK_QUERY: lambda u: u.callback_query.message.id,
    UpdateKind.EDITED_MESSAGE: lambda u: u.message.id,
    UpdateKind.CHANNEL_POST: lambda u: u.message.id,
    UpdateKind.MESSAGE: lambda u: u.message.id,
}


class MessageModel(BaseModel):
    """Represents a message sent or edited by the bot.

    Wraps the Telegram message object returned by the client so that
    callers only depend on its identity.
    """
    id: int = Field(..., description="Message ID")
    chat_id: int = Field(..., description="Chat the message was sent to")
    text: Optional[str] = Field(default=None, description="Message text content")

    # Store reference to the original Telegram message
    telegram_message: Optional[Any] = Field(default=None, exclude=True)

    @classmethod
    def from_telegram_message(cls, telegram_message: Any, chat_id: Optional[int] = None) -> "MessageModel":
        """Create MessageModel from a Telegram message object.

        Args:
            telegram_message: Original Telegram message object
            chat_id: Chat ID to use when the message does not carry one

        Returns:
            MessageModel instance with properties extracted from telegram_message
        """
        return cls(
            id=getattr(telegram_message, 'id'),
            chat_id=getattr(telegram_message, 'chat_id', None) or chat_id,
            text=getattr(telegram_message, 'text', None),
            telegram_message=telegram_message
        )


class BotConfiguration(BaseModel):
    """Configuration settings for the TelethonAPI bot."""
    api_id: int = Field(..., description="Telegram API ID")
    api_hash: str = Field(..., min_length=1, description="Telegram API hash")
    bot_token: str = Field(..., min_length=1, description="Bot token from BotFather")
    session_name: str = Field(default="stateful_bot_session", min_length=1, description="Telethon session file name")
    parse_mode: Optional[str] = Field(default="md", description="Default parse mode for outgoing messages")
