"""
Per-update handler.

A fresh ``UpdateHandler`` is created for every update and every module the
dispatcher tries. It binds the transport, the dispatcher, the conversation
state and the update together and is what handler methods receive. It is
never reused, so attributes set on it are only visible for the current update.
"""

from typing import Optional, Sequence, Tuple, TYPE_CHECKING

from .keyboards import InlineKeyboard, Keyboard, ReplyKeyboard
from . import keyboard_generator
from .paginator import PaginatorData, PAGINATOR_KEY
from .telethon_models import MessageModel, Update
from .handler_module import HandlerModule
from ..models.state_models import MessageState

if TYPE_CHECKING:
    from ..api.base_transport import BaseTransport
    from .stateful import StatefulBot


class UpdateHandler:
    """Context a handler method runs in."""

    def __init__(self, module_id: str, module: HandlerModule, client: "BaseTransport",
                 stateful: "StatefulBot", state: MessageState, update: Update):
        self.module_id = module_id
        self.module = module
        self.client = client
        self.stateful = stateful
        self.state = state
        self.update = update

    def __repr__(self) -> str:
        return f"UpdateHandler(module={self.module_id!r}, chat_id={self.chat_id}, message_id={self.message_id})"

    @property
    def chat_id(self) -> Optional[int]:
        return self.update.get_chat_id()

    @property
    def user_id(self) -> Optional[int]:
        return self.update.get_user_id()

    @property
    def message_id(self) -> Optional[int]:
        return self.update.get_message_id()

    # ---------------------------
    #     State
    # ---------------------------

    async def apply_changes(self) -> None:
        """Persist changes made to ``self.state``."""
        await self.stateful.state_manager.apply_changes(self.state)

    async def change_handler(self, handler_id: str, run_default: bool = True) -> None:
        """
        Switch the conversation to another handler module.

        The new handler ID is persisted first. With ``run_default`` the default
        method of the new module runs right away for the same update.
        """
        self.stateful.get_module(handler_id)
        await self.stateful.state_manager.set_handler(self.state, handler_id)
        if run_default:
            await self.stateful.run_default(self, handler_id)

    # ---------------------------
    #     Communication
    # ---------------------------

    def _require_chat_id(self, chat_id: Optional[int]) -> int:
        chat_id = chat_id if chat_id is not None else self.chat_id
        if chat_id is None:
            raise ValueError("both chat_id and the update's chat ID are None")
        return chat_id

    async def send_message(self, text: str, keyboard: Optional[Keyboard] = None,
                           chat_id: Optional[int] = None) -> MessageModel:
        """
        Send a new message and move the conversation state onto it.

        The sent message gets its own state record carrying the current handler
        and values; further changes in this update go to that record.
        """
        chat_id = self._require_chat_id(chat_id)
        message = await self.client.send_text(chat_id, text, keyboard)
        self.state = await self.stateful.state_manager.fork(self.state, message.chat_id or chat_id, message.id)
        return message

    async def edit_message(self, text: str, keyboard: Optional[InlineKeyboard] = None,
                           chat_id: Optional[int] = None, message_id: Optional[int] = None) -> Optional[MessageModel]:
        """
        Edit a message (the update's message by default) and persist the state.

        Returns None if Telegram reports the message as not modified.
        """
        chat_id = self._require_chat_id(chat_id)
        message_id = message_id if message_id is not None else self.message_id
        if message_id is None:
            raise ValueError("both message_id and the update's message ID are None")

        message = await self.client.edit_text(chat_id, message_id, text, keyboard)
        if message is not None:
            await self.apply_changes()
        return message

    async def send_or_edit_message(self, text: str, keyboard: Optional[InlineKeyboard] = None,
                                   chat_id: Optional[int] = None) -> Optional[MessageModel]:
        """Edit the current message for callbacks, send a new one otherwise."""
        if self.update.is_callback:
            return await self.edit_message(text, keyboard, chat_id=chat_id)
        return await self.send_message(text, keyboard, chat_id=chat_id)

    # ---------------------------
    #     Keyboards
    # ---------------------------

    async def generate_reply(self) -> ReplyKeyboard:
        return await keyboard_generator.generate_reply(self)

    async def generate_inline(self) -> InlineKeyboard:
        return await keyboard_generator.generate_inline(self)

    async def send_paginated(self, text: str, buttons: Sequence[Tuple[str, str]], page_size: int = 5,
                             chat_id: Optional[int] = None) -> MessageModel:
        """Send an inline menu split into pages; page switches are handled by the paginator."""
        data = PaginatorData(buttons=[list(button) for button in buttons], page_size=page_size)
        self.state.set_state(PAGINATOR_KEY, data)
        return await self.send_message(text, InlineKeyboard.from_pairs(data.get_buttons()), chat_id=chat_id)
