from datetime import datetime
from typing import Dict, Optional

from beanie import Document, PydanticObjectId
from pymongo import IndexModel, ASCENDING, DESCENDING
from pydantic import Field

from .state_models import MessageState


#---------------------------
# *      Conversation State
#---------------------------

class MessageStateDocument(Document):
    """Persisted conversation state of one bot message."""
    chat_id: int = Field(..., description="Telegram chat ID")
    message_id: Optional[int] = Field(default=None, description="Telegram message ID")
    handler_id: Optional[str] = Field(default=None, description="Active handler module ID")
    state: Dict[str, str] = Field(default_factory=dict, description="Serialized per-conversation values")
    last_updated: datetime = Field(default_factory=datetime.now)

    class Settings:
        name = "states"
        use_cache = False  # states are replaced from several updates, never serve stale copies
        indexes = [
            IndexModel(
                [("chat_id", ASCENDING), ("message_id", ASCENDING)],
                unique=True,
                partialFilterExpression={"message_id": {"$type": "number"}},
                name="chat_message_unique",
            ),
            IndexModel([("chat_id", ASCENDING), ("_id", DESCENDING)], name="chat_latest"),
        ]

    def to_state(self) -> MessageState:
        return MessageState(
            state_id=str(self.id) if self.id is not None else None,
            chat_id=self.chat_id,
            message_id=self.message_id,
            handler_id=self.handler_id,
            state=dict(self.state),
            last_updated=self.last_updated,
        )

    @classmethod
    def from_state(cls, state: MessageState) -> "MessageStateDocument":
        document = cls(
            chat_id=state.chat_id,
            message_id=state.message_id,
            handler_id=state.handler_id,
            state=dict(state.state),
            last_updated=state.last_updated,
        )
        if state.state_id is not None:
            document.id = PydanticObjectId(state.state_id)
        return document
