from abc import ABC, abstractmethod
from typing import Optional

from ..models.state_models import MessageState

class BaseRepository(ABC):
    @abstractmethod
    async def connect(self, uri: str) -> None:
        pass

    @abstractmethod
    async def close(self) -> None:
        pass

    ### Message States

    @abstractmethod
    async def find_state_by_message(self, chat_id: int, message_id: Optional[int]) -> Optional[MessageState]:
        """Find the state of a specific message in a chat."""
        pass

    @abstractmethod
    async def find_latest_state(self, chat_id: int) -> Optional[MessageState]:
        """Find the most recently created state of a chat."""
        pass

    @abstractmethod
    async def insert_state(self, state: MessageState) -> MessageState:
        """Insert a new state; the returned state carries the assigned ``state_id``."""
        pass

    @abstractmethod
    async def replace_state(self, state: MessageState) -> None:
        """Replace the stored state with the same ``state_id``."""
        pass
