from abc import ABC, abstractmethod
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..bot.keyboards import Keyboard, InlineKeyboard
    from ..bot.telethon_models import MessageModel


class BaseTransport(ABC):
    """Outbound calls the dispatcher and handlers make to Telegram."""

    @abstractmethod
    async def send_text(self, chat_id: int, text: str, keyboard: Optional["Keyboard"] = None) -> "MessageModel":
        pass

    @abstractmethod
    async def edit_text(self, chat_id: int, message_id: int, text: str,
                        keyboard: Optional["InlineKeyboard"] = None) -> Optional["MessageModel"]:
        """Edit a message. Returns None when Telegram reports the message as not modified."""
        pass

    @abstractmethod
    async def edit_buttons(self, chat_id: int, message_id: int,
                           keyboard: Optional["InlineKeyboard"]) -> Optional["MessageModel"]:
        """Replace only the inline keyboard of a message. Returns None when not modified."""
        pass

    @abstractmethod
    async def answer_callback(self, callback_id: str) -> None:
        pass
