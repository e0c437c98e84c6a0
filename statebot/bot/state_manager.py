"""
Conversation state lifecycle.

Loads the state record an update belongs to, persists changes made by
handlers and forks a new record for every message the bot sends.
"""

from typing import TYPE_CHECKING

from ..models.state_models import MessageState
from ..common.log import (
    log_state_created, log_state_forked, log_state_fallback, log_handler_changed
)

if TYPE_CHECKING:
    from ..database.base_repo import BaseRepository
    from .telethon_models import Update


class StateManager:
    """Reads and writes message states through a repository."""

    def __init__(self, repo: "BaseRepository"):
        self.repo = repo

    async def load(self, update: "Update") -> MessageState:
        """
        Get the state an update should be handled with.

        Lookup order:
        1. the state of the exact (chat, message) pair,
        2. the latest state of the chat,
        3. a new state, inserted right away.

        Raises:
            ValueError: If the update carries no chat ID
        """
        chat_id = update.get_chat_id()
        message_id = update.get_message_id()
        if chat_id is None:
            raise ValueError(f"Update of kind '{update.kind.value}' has no chat ID")

        state = await self.repo.find_state_by_message(chat_id, message_id)
        if state is not None:
            return state

        state = await self.repo.find_latest_state(chat_id)
        if state is not None:
            log_state_fallback(chat_id, message_id, state.message_id)
            return state

        state = await self.repo.insert_state(MessageState(chat_id=chat_id, message_id=message_id))
        log_state_created(chat_id, message_id)
        return state

    async def apply_changes(self, state: MessageState) -> None:
        await self.repo.replace_state(state)

    async def set_handler(self, state: MessageState, handler_id: str) -> None:
        old_id = state.handler_id
        state.handler_id = handler_id
        state.touch()
        await self.apply_changes(state)
        log_handler_changed(state.chat_id, old_id, handler_id)

    async def fork(self, state: MessageState, chat_id: int, message_id: int) -> MessageState:
        """Insert the state of a newly sent message, carrying the current handler and values forward."""
        new_state = await self.repo.insert_state(state.fork(chat_id, message_id))
        log_state_forked(chat_id, message_id, new_state.handler_id)
        return new_state
