"""
Keyboard generator.

Derives keyboards from the conditions of a handler module, so a module's
menu always lists exactly the actions it can handle in the current context.
Methods are taken in declaration order. A method is skipped when it is
hidden, has no display condition, or when any of its other conditions fails
for the handler the keyboard is generated for.
"""

from typing import List, Tuple, TYPE_CHECKING

from .conditions import MessageCondition, CallbackCondition
from .keyboards import ReplyKeyboard, InlineKeyboard

if TYPE_CHECKING:
    from .update_handler import UpdateHandler


async def reply_labels(handler: "UpdateHandler") -> List[str]:
    labels = []
    for method in handler.module.methods:
        condition = method.get_condition(MessageCondition)
        if condition is None or condition.hidden or condition.text is None:
            continue
        if not await method.matches(handler, exclude=MessageCondition):
            continue
        labels.append(condition.text)
    return labels


async def inline_pairs(handler: "UpdateHandler") -> List[Tuple[str, str]]:
    pairs = []
    for method in handler.module.methods:
        condition = method.get_condition(CallbackCondition)
        if condition is None or condition.hidden or condition.data is None:
            continue
        if not await method.matches(handler, exclude=CallbackCondition):
            continue
        pairs.append((condition.name or condition.data, condition.data.rstrip("\n")))
    return pairs


async def generate_reply(handler: "UpdateHandler") -> ReplyKeyboard:
    """Generate a reply keyboard for the handler's module."""
    return ReplyKeyboard.from_labels(await reply_labels(handler))


async def generate_inline(handler: "UpdateHandler") -> InlineKeyboard:
    """Generate an inline keyboard for the handler's module."""
    return InlineKeyboard.from_pairs(await inline_pairs(handler))
