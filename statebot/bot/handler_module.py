"""
Handler modules.

A handler module is one phase of a conversation ("main menu", "settings",
...). Its methods are registered with decorators and kept in declaration
order, which is the order the dispatcher and the keyboard generator walk.

Usage:
    main = HandlerModule("main")

    @main.default()
    async def greet(handler: UpdateHandler):
        await handler.send_message("Hi!", handler.generate_reply())

    @main.message("Settings\\n")
    async def settings(handler: UpdateHandler):
        await handler.change_handler("settings")

    @main.callback("delete", name="🗑 Delete", when=[is_admin])
    async def delete(handler: UpdateHandler):
        ...
"""

import inspect
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Type, TypeVar, Union, TYPE_CHECKING

from .conditions import (
    Condition, MessageCondition, CallbackCondition, InternalCallbackCondition, as_condition
)

if TYPE_CHECKING:
    from .update_handler import UpdateHandler


HandlerFunc = Callable[["UpdateHandler"], Union[Awaitable[Any], Any]]
ConditionLike = Union[Condition, Callable[["UpdateHandler"], Any]]
C = TypeVar("C", bound=Condition)


@dataclass
class HandlerMethod:
    """A handler function together with the conditions guarding it."""
    func: HandlerFunc
    conditions: List[Condition] = field(default_factory=list)
    is_default: bool = False

    @property
    def name(self) -> str:
        return getattr(self.func, "__name__", repr(self.func))

    def get_condition(self, condition_type: Type[C]) -> Optional[C]:
        for condition in self.conditions:
            if isinstance(condition, condition_type):
                return condition
        return None

    async def matches(self, handler: "UpdateHandler", exclude: Optional[Type[Condition]] = None) -> bool:
        """Check all conditions in order, stopping at the first one that fails."""
        for condition in self.conditions:
            if exclude is not None and isinstance(condition, exclude):
                continue
            if not await condition.matches(handler):
                return False
        return True

    async def invoke(self, handler: "UpdateHandler") -> Any:
        result = self.func(handler)
        if inspect.isawaitable(result):
            result = await result
        return result


class HandlerModule:
    """An ordered collection of handler methods representing one conversation phase."""

    def __init__(self, name: Optional[str] = None, description: str = ""):
        self.name = name
        self.description = description
        self.methods: List[HandlerMethod] = []

    def __repr__(self) -> str:
        return f"HandlerModule(name={self.name!r}, methods={[m.name for m in self.methods]})"

    def __len__(self) -> int:
        return len(self.methods)

    @property
    def default_methods(self) -> List[HandlerMethod]:
        return [method for method in self.methods if method.is_default]

    @property
    def regular_methods(self) -> List[HandlerMethod]:
        return [method for method in self.methods if not method.is_default]

    def add_method(self, func: HandlerFunc, conditions: Iterable[ConditionLike] = (), default: bool = False) -> HandlerMethod:
        method = HandlerMethod(
            func=func,
            conditions=[as_condition(condition) for condition in conditions],
            is_default=default
        )
        self.methods.append(method)
        return method

    # ---------------------------
    #     Decorators
    # ---------------------------

    def handler(self, *conditions: ConditionLike, default: bool = False) -> Callable[[HandlerFunc], HandlerFunc]:
        """Register a method guarded by arbitrary conditions."""
        def decorator(func: HandlerFunc) -> HandlerFunc:
            self.add_method(func, conditions, default=default)
            return func
        return decorator

    def message(self, text: Optional[str] = None, hidden: bool = False, when: Iterable[ConditionLike] = ()) -> Callable[[HandlerFunc], HandlerFunc]:
        """Register a method for a text message (any text if ``text`` is None)."""
        return self.handler(MessageCondition(text, hidden=hidden), *when)

    def callback(self, data: Optional[str] = None, name: Optional[str] = None, hidden: bool = False,
                 when: Iterable[ConditionLike] = ()) -> Callable[[HandlerFunc], HandlerFunc]:
        """Register a method for an inline button press (any press if ``data`` is None)."""
        return self.handler(CallbackCondition(data, name=name, hidden=hidden), *when)

    def internal(self, marker: str) -> Callable[[HandlerFunc], HandlerFunc]:
        """Register a method for an internal callback of a built-in module."""
        return self.handler(InternalCallbackCondition(marker))

    def default(self, when: Iterable[ConditionLike] = ()) -> Callable[[HandlerFunc], HandlerFunc]:
        """Register the fallback method, run when nothing else matches a non-callback update."""
        return self.handler(*when, default=True)
