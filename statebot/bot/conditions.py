"""
Conditions guarding handler methods.

A handler method runs only when every condition attached to it matches the
incoming update. Conditions receive the per-update handler, so they can look
at the update, the conversation state and anything else bound to it. A
condition may be synchronous or asynchronous; dispatch awaits it either way.
"""

import inspect
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional, Union, TYPE_CHECKING

if TYPE_CHECKING:
    from .update_handler import UpdateHandler


INTERNAL_PREFIX = "stinternal-"


class Condition(ABC):
    """Base class for all handler conditions."""

    @abstractmethod
    def match(self, handler: "UpdateHandler") -> Union[bool, Awaitable[bool]]:
        pass

    async def matches(self, handler: "UpdateHandler") -> bool:
        result = self.match(handler)
        if inspect.isawaitable(result):
            result = await result
        return bool(result)


class MessageCondition(Condition):
    """
    Matches plain text messages.

    Args:
        text: Text the message must equal. Trailing newlines are ignored, so
            ``"Settings\\n"`` matches ``"Settings"`` while still ending the
            row in a generated reply keyboard. ``None`` matches any text.
        hidden: Hide the method from the keyboard generator.
    """

    def __init__(self, text: Optional[str] = None, hidden: bool = False):
        self.text = text
        self.hidden = hidden

    def match(self, handler: "UpdateHandler") -> bool:
        update = handler.update
        if not update.is_text_message:
            return False
        return self.text is None or update.text == self.text.rstrip("\n")

    def __repr__(self) -> str:
        return f"MessageCondition(text={self.text!r}, hidden={self.hidden})"


class CallbackCondition(Condition):
    """
    Matches inline button presses.

    Args:
        data: Callback data the press must carry (trailing newlines ignored).
            ``None`` matches any callback.
        name: Button label for the keyboard generator, defaults to ``data``.
        hidden: Hide the method from the keyboard generator.
    """

    def __init__(self, data: Optional[str] = None, name: Optional[str] = None, hidden: bool = False):
        self.data = data
        self.name = name
        self.hidden = hidden

    def match(self, handler: "UpdateHandler") -> bool:
        update = handler.update
        if not update.is_callback:
            return False
        return self.data is None or update.callback_data == self.data.rstrip("\n")

    def __repr__(self) -> str:
        return f"CallbackCondition(data={self.data!r}, name={self.name!r}, hidden={self.hidden})"


class InternalCallbackCondition(Condition):
    """Matches callbacks addressed to a built-in module: ``stinternal-<marker>...``."""

    def __init__(self, marker: str):
        self.marker = marker

    @property
    def prefix(self) -> str:
        return f"{INTERNAL_PREFIX}{self.marker}"

    def match(self, handler: "UpdateHandler") -> bool:
        data = handler.update.callback_data
        return data is not None and data.startswith(self.prefix)

    def __repr__(self) -> str:
        return f"InternalCallbackCondition(marker={self.marker!r})"


class When(Condition):
    """Wraps a plain (sync or async) predicate taking the handler."""

    def __init__(self, predicate: Callable[["UpdateHandler"], Any]):
        self.predicate = predicate

    def match(self, handler: "UpdateHandler") -> Any:
        return self.predicate(handler)

    def __repr__(self) -> str:
        return f"When({getattr(self.predicate, '__name__', self.predicate)!r})"


def as_condition(value: Union[Condition, Callable[["UpdateHandler"], Any]]) -> Condition:
    if isinstance(value, Condition):
        return value
    if callable(value):
        return When(value)
    raise TypeError(f"Expected a Condition or a callable, got {type(value).__name__}")
