"""
Telethon API module for Telegram bot functionality.

This module connects the stateful dispatcher to Telegram through the Telethon
library. It is responsible for:

- Converting Telethon events into transport-neutral ``Update`` models
- Forwarding every update to the dispatcher from a single entry point
- Sending and editing messages with reply and inline keyboards
- Answering callback queries
- Catching everything that escapes update handling, so one failing update
  never stops the bot

Classes:
    - TelethonAPI: Telegram transport and update loop
"""

from typing import Any, Awaitable, Callable, Optional, Union

from telethon import TelegramClient, events, errors
from telethon.tl.functions.messages import SetBotCallbackAnswerRequest
from telethon.tl.types import MessageMediaWebPage

from .base_transport import BaseTransport
from ..bot.keyboards import Keyboard, InlineKeyboard
from ..bot.telethon_models import (
    BotConfiguration, CallbackQueryModel, ChatMemberModel, ChatType, MessageModel,
    Update, UpdateKind, UpdateMessage
)
from ..exceptions.dispatch_exceptions import StateStoreError
from ..common.log import (
    log_telegram_bot_started, log_telegram_message_sent, log_telegram_message_not_modified,
    log_telegram_api_error, log_database_error, log_unexpected_error, Logger
)


UpdateCallback = Callable[[Update], Awaitable[None]]


def get_chat_type(event: Any) -> ChatType:
    if getattr(event, "is_private", False):
        return ChatType.PRIVATE
    if getattr(event, "is_group", False):
        return ChatType.GROUP
    if getattr(event, "is_channel", False):
        return ChatType.CHANNEL
    return ChatType.UNKNOWN


def get_message_text(message: Any) -> Optional[str]:
    """Text of a plain text message; None for media messages (captions are not text)."""
    media = getattr(message, "media", None)
    if media is not None and not isinstance(media, MessageMediaWebPage):
        return None
    return getattr(message, "message", None)


def update_from_message_event(event: Any, edited: bool = False) -> Update:
    message = event.message
    if edited:
        kind = UpdateKind.EDITED_MESSAGE
    elif getattr(message, "post", False):
        kind = UpdateKind.CHANNEL_POST
    else:
        kind = UpdateKind.MESSAGE

    return Update(
        kind=kind,
        message=UpdateMessage(
            id=message.id,
            chat_id=event.chat_id,
            chat_type=get_chat_type(event),
            user_id=event.sender_id,
            text=get_message_text(message)
        )
    )


def update_from_callback_event(event: Any) -> Update:
    data = event.data.decode("utf-8", errors="replace") if event.data is not None else None
    return Update(
        kind=UpdateKind.CALLBACK_QUERY,
        callback_query=CallbackQueryModel(
            id=str(event.query.query_id),
            user_id=event.sender_id,
            data=data,
            message=UpdateMessage(
                id=event.message_id,
                chat_id=event.chat_id,
                chat_type=get_chat_type(event),
            ) if event.chat_id is not None else None
        )
    )


def update_from_chat_action_event(event: Any) -> Update:
    return Update(
        kind=UpdateKind.CHAT_MEMBER,
        chat_member=ChatMemberModel(chat_id=event.chat_id, user_id=event.user_id)
    )


### API Handler

class TelethonAPI(BaseTransport):
    """
    Telegram transport based on Telethon.

    Updates are forwarded to the callback set with ``set_update_handler``,
    usually ``StatefulBot.handle_update``.
    """

    def __init__(self, api_id: Union[int, str], api_hash: str, bot_token: str,
                 session_name: str = "stateful_bot_session") -> None:
        """
        Initialize the TelethonAPI transport.

        Args:
            api_id: Telegram API ID from my.telegram.org (can be string or int)
            api_hash: Telegram API hash from my.telegram.org
            bot_token: Bot token from @BotFather
            session_name: Telethon session file name
        """
        if isinstance(api_id, str):
            api_id = int(api_id)

        self.config = BotConfiguration(
            api_id=api_id,
            api_hash=api_hash,
            bot_token=bot_token,
            session_name=session_name
        )

        self.bot: TelegramClient = TelegramClient(
            self.config.session_name,
            self.config.api_id,
            self.config.api_hash
        )
        self.logger = Logger("TelethonAPI")
        self.on_update: Optional[UpdateCallback] = None

    ### SECTION: update loop

    def set_update_handler(self, on_update: UpdateCallback) -> None:
        """Register the callback receiving all updates and subscribe to Telegram events."""
        self.on_update = on_update

        self.add_handler(lambda event: update_from_message_event(event), events.NewMessage(incoming=True))
        self.add_handler(lambda event: update_from_message_event(event, edited=True), events.MessageEdited(incoming=True))
        self.add_handler(update_from_callback_event, events.CallbackQuery())
        self.add_handler(update_from_chat_action_event, events.ChatAction())

    def add_handler(self, converter: Callable[[Any], Update], event: Any) -> None:
        """
        Subscribe to a Telethon event, converting it into an ``Update``.

        Args:
            converter: Builds the update from the Telethon event
            event: Telethon event builder
        """
        async def wrapped_handler(event_obj) -> None:
            update = converter(event_obj)
            if self.on_update is not None:
                await self.on_update(update)

        self.bot.add_event_handler(self.exception_handler(wrapped_handler), event)

    def exception_handler(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """
        Wrap a handler with exception handling logic.

        This is the top level of update processing: errors are logged and the
        update is lost, the next update is handled normally.
        """
        async def wrapper(event, *args, **kwargs) -> Any:
            chat_id = getattr(event, "chat_id", None)
            try:
                return await func(event, *args, **kwargs)
            except StateStoreError as e:
                log_database_error(e.operation, str(e), {"chat_id": chat_id})
            except errors.rpcerrorlist.FloodWaitError as e:
                log_telegram_api_error("flood_wait", str(e), chat_id)
            except errors.RPCError as e:
                log_telegram_api_error("handle_update", str(e), chat_id)
            except Exception as e:
                log_unexpected_error("handle_update", str(e), {"chat_id": chat_id})

        return wrapper

    async def start(self) -> None:
        await self.bot.start(bot_token=self.config.bot_token)
        log_telegram_bot_started(self.config.api_id)

    async def run(self) -> None:
        """Start the client and run until disconnected."""
        await self.start()
        await self.bot.run_until_disconnected()

    async def stop(self) -> None:
        await self.bot.disconnect()

    ### SECTION: transport

    async def send_text(self, chat_id: int, text: str, keyboard: Optional[Keyboard] = None) -> MessageModel:
        telegram_message = await self.bot.send_message(
            chat_id,
            text,
            buttons=keyboard.to_telethon() if keyboard is not None else None,
            parse_mode=self.config.parse_mode
        )
        log_telegram_message_sent(chat_id, "keyboard" if keyboard is not None else "text", text)
        return MessageModel.from_telegram_message(telegram_message, chat_id)

    async def edit_text(self, chat_id: int, message_id: int, text: str,
                        keyboard: Optional[InlineKeyboard] = None) -> Optional[MessageModel]:
        try:
            telegram_message = await self.bot.edit_message(
                chat_id,
                message_id,
                text,
                buttons=keyboard.to_telethon() if keyboard is not None else None,
                parse_mode=self.config.parse_mode
            )
        except errors.MessageNotModifiedError:
            log_telegram_message_not_modified(chat_id, message_id)
            return None
        return MessageModel.from_telegram_message(telegram_message, chat_id)

    async def edit_buttons(self, chat_id: int, message_id: int,
                           keyboard: Optional[InlineKeyboard]) -> Optional[MessageModel]:
        try:
            telegram_message = await self.bot.edit_message(
                chat_id,
                message_id,
                buttons=keyboard.to_telethon() if keyboard is not None else None
            )
        except errors.MessageNotModifiedError:
            log_telegram_message_not_modified(chat_id, message_id)
            return None
        return MessageModel.from_telegram_message(telegram_message, chat_id)

    async def answer_callback(self, callback_id: str) -> None:
        await self.bot(SetBotCallbackAnswerRequest(query_id=int(callback_id), cache_time=0))
