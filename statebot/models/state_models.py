"""
Conversation state models.

``MessageState`` is the store-independent representation of one persisted
conversation state record. It is what handlers see and mutate; repositories
translate it to and from their own document types.
"""

from datetime import datetime
from typing import Any, Dict, Optional, Type, TypeVar, overload

import pydantic_core
from pydantic import BaseModel, Field, TypeAdapter

T = TypeVar("T")


class MessageState(BaseModel):
    """
    State of the conversation tracked for one bot message.

    ``state`` maps keys to serialized (JSON) values. The store never looks
    into the values, so callers have to agree on the shape stored under each
    key and read it back with the matching type.
    """
    state_id: Optional[str] = Field(default=None, description="Store-assigned identifier, set once on insert")
    chat_id: int = Field(..., description="Telegram chat ID")
    message_id: Optional[int] = Field(default=None, description="Telegram message ID this state belongs to")
    handler_id: Optional[str] = Field(default=None, description="ID of the active handler module, None for the first registered one")
    state: Dict[str, str] = Field(default_factory=dict, description="Arbitrary serialized per-conversation values")
    last_updated: datetime = Field(default_factory=datetime.now, description="When this state was last changed")

    def touch(self) -> None:
        self.last_updated = datetime.now()

    @overload
    def get_state(self, key: str) -> Any: ...
    @overload
    def get_state(self, key: str, type_: Type[T], default: Optional[T] = None) -> Optional[T]: ...

    def get_state(self, key: str, type_: Any = None, default: Any = None) -> Any:
        """
        Get a stored value.

        Args:
            key: State key
            type_: Type to validate the stored JSON against (models, dates, ...).
                Without it the plain JSON value is returned.
            default: Returned when the key is not set

        Returns:
            The decoded value or ``default``
        """
        raw = self.state.get(key)
        if raw is None:
            return default
        if type_ is None:
            return pydantic_core.from_json(raw)
        return TypeAdapter(type_).validate_json(raw)

    def set_state(self, key: str, value: Any) -> None:
        self.state[key] = pydantic_core.to_json(value).decode("utf-8")
        self.touch()

    def remove_state(self, key: str) -> None:
        self.state.pop(key, None)
        self.touch()

    def has_state(self, key: str) -> bool:
        return key in self.state

    def fork(self, chat_id: int, message_id: int) -> "MessageState":
        """Create the unsaved state of a new bot message, carrying over handler and values."""
        return MessageState(
            chat_id=chat_id,
            message_id=message_id,
            handler_id=self.handler_id,
            state=dict(self.state),
        )
