"""
Dummy classes and fixtures for integration tests.

The dummies implement the real transport and repository interfaces in memory,
so the dispatcher runs unchanged without Telegram or MongoDB.
"""

import itertools
from typing import Dict, List, Optional, Tuple

import pytest

from statebot.api.base_transport import BaseTransport
from statebot.bot.keyboards import InlineKeyboard, Keyboard
from statebot.bot.stateful import StatefulBot
from statebot.bot.telethon_models import (
    CallbackQueryModel, ChatType, MessageModel, Update, UpdateKind, UpdateMessage
)
from statebot.database.base_repo import BaseRepository
from statebot.models.state_models import MessageState


GROUP_CHAT_ID = -100500
USER_ID = 4242


class DummyTransport(BaseTransport):
    """
    Transport recording everything the bot sends.

    Message IDs are handed out from 1000 upwards. Editing a message with the
    exact text and keyboard it already has behaves like Telegram's
    "message is not modified" and returns None.
    """

    def __init__(self) -> None:
        self.sent: List[Tuple[int, str, Optional[Keyboard]]] = []
        self.edits: List[Tuple[int, int, Optional[str], Optional[InlineKeyboard]]] = []
        self.answered: List[str] = []
        self.messages: Dict[Tuple[int, int], Tuple[Optional[str], Optional[InlineKeyboard]]] = {}
        self.fail_for: List[int] = []
        self._ids = itertools.count(1000)

    async def send_text(self, chat_id: int, text: str, keyboard: Optional[Keyboard] = None) -> MessageModel:
        if chat_id in self.fail_for:
            raise ConnectionError(f"chat {chat_id} is unreachable")
        message_id = next(self._ids)
        self.sent.append((chat_id, text, keyboard))
        self.messages[(chat_id, message_id)] = (text, keyboard if isinstance(keyboard, InlineKeyboard) else None)
        return MessageModel(id=message_id, chat_id=chat_id, text=text)

    async def edit_text(self, chat_id: int, message_id: int, text: str,
                        keyboard: Optional[InlineKeyboard] = None) -> Optional[MessageModel]:
        if self.messages.get((chat_id, message_id)) == (text, keyboard):
            return None
        self.messages[(chat_id, message_id)] = (text, keyboard)
        self.edits.append((chat_id, message_id, text, keyboard))
        return MessageModel(id=message_id, chat_id=chat_id, text=text)

    async def edit_buttons(self, chat_id: int, message_id: int,
                           keyboard: Optional[InlineKeyboard]) -> Optional[MessageModel]:
        text, current = self.messages.get((chat_id, message_id), (None, None))
        if current == keyboard:
            return None
        self.messages[(chat_id, message_id)] = (text, keyboard)
        self.edits.append((chat_id, message_id, None, keyboard))
        return MessageModel(id=message_id, chat_id=chat_id, text=text)

    async def answer_callback(self, callback_id: str) -> None:
        self.answered.append(callback_id)

    @property
    def last_sent(self) -> Tuple[int, str, Optional[Keyboard]]:
        return self.sent[-1]


class InMemoryRepository(BaseRepository):
    """State store keeping records in insertion order, like ObjectIds do."""

    def __init__(self) -> None:
        self.records: Dict[str, MessageState] = {}
        self.replaced: List[str] = []
        self._ids = itertools.count(1)

    async def connect(self, uri: str) -> None:
        pass

    async def close(self) -> None:
        pass

    async def find_state_by_message(self, chat_id: int, message_id: Optional[int]) -> Optional[MessageState]:
        if message_id is None:
            return None
        for state in self.records.values():
            if state.chat_id == chat_id and state.message_id == message_id:
                return state.model_copy(deep=True)
        return None

    async def find_latest_state(self, chat_id: int) -> Optional[MessageState]:
        states = [state for state in self.records.values() if state.chat_id == chat_id]
        return states[-1].model_copy(deep=True) if states else None

    async def insert_state(self, state: MessageState) -> MessageState:
        state_id = f"{next(self._ids):024x}"
        stored = state.model_copy(deep=True, update={"state_id": state_id})
        self.records[state_id] = stored
        return stored.model_copy(deep=True)

    async def replace_state(self, state: MessageState) -> None:
        self.records[state.state_id] = state.model_copy(deep=True)
        self.replaced.append(state.state_id)

    def states_of(self, chat_id: int) -> List[MessageState]:
        return [state for state in self.records.values() if state.chat_id == chat_id]


_update_ids = itertools.count(1)


def make_message(text: Optional[str], message_id: int = 1, chat_id: int = GROUP_CHAT_ID,
                 chat_type: ChatType = ChatType.GROUP, user_id: int = USER_ID,
                 kind: UpdateKind = UpdateKind.MESSAGE) -> Update:
    return Update(
        kind=kind,
        message=UpdateMessage(id=message_id, chat_id=chat_id, chat_type=chat_type, user_id=user_id, text=text)
    )


def make_callback(data: Optional[str], message_id: int, chat_id: int = GROUP_CHAT_ID,
                  user_id: int = USER_ID) -> Update:
    return Update(
        kind=UpdateKind.CALLBACK_QUERY,
        callback_query=CallbackQueryModel(
            id=str(next(_update_ids)),
            user_id=user_id,
            data=data,
            message=UpdateMessage(id=message_id, chat_id=chat_id, chat_type=ChatType.GROUP)
        )
    )


@pytest.fixture
def transport() -> DummyTransport:
    return DummyTransport()


@pytest.fixture
def repo() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def stateful(transport: DummyTransport, repo: InMemoryRepository) -> StatefulBot:
    return StatefulBot(transport, repo)


@pytest.fixture
def message_update():
    return make_message


@pytest.fixture
def callback_update():
    return make_callback
