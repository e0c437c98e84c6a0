"""
Telegram Keyboard Management

This module builds the reply and inline keyboards used by handler modules.
Layouts follow a single convention: a label ending with a newline closes the
current row, so the next button starts on a new line. The newline is stripped
from the rendered label and from the callback data.
"""

from typing import Any, Iterable, List, Optional, Sequence, Tuple, Union
from telethon import Button
from pydantic import BaseModel, Field


ROW_BREAK = "\n"


class KeyboardButton(BaseModel):
    """Represents a keyboard button configuration."""
    text: str = Field(..., description="Button display text")
    callback_data: Optional[str] = Field(default=None, description="Data sent when button is pressed (inline only)")
    row: int = Field(default=0, ge=0, description="Button row position")


def _split_rows(items: Iterable[Tuple[str, Optional[str]]]) -> List[List[KeyboardButton]]:
    rows: List[List[KeyboardButton]] = [[]]
    for label, data in items:
        rows[-1].append(KeyboardButton(
            text=label.rstrip(ROW_BREAK),
            callback_data=data.rstrip(ROW_BREAK) if data is not None else None,
            row=len(rows) - 1
        ))
        if label.endswith(ROW_BREAK):
            rows.append([])
    # a trailing row break leaves an empty row behind
    return [row for row in rows if row]


class ReplyKeyboard(BaseModel):
    """A simpler reply keyboard. Always resized to fit its buttons."""
    rows: List[List[KeyboardButton]] = Field(default_factory=list)
    resize: bool = Field(default=True)

    @classmethod
    def from_labels(cls, labels: Sequence[str]) -> "ReplyKeyboard":
        """Create a reply keyboard from a list of button labels."""
        return cls(rows=_split_rows((label, None) for label in labels))

    @property
    def labels(self) -> List[str]:
        return [button.text for row in self.rows for button in row]

    def to_telethon(self) -> Any:
        return [
            [Button.text(button.text, resize=self.resize) for button in row]
            for row in self.rows
        ]


class InlineKeyboard(BaseModel):
    """A simpler inline keyboard."""
    rows: List[List[KeyboardButton]] = Field(default_factory=list)

    @classmethod
    def from_labels(cls, labels: Sequence[str]) -> "InlineKeyboard":
        """Create an inline keyboard where every label is its own callback data."""
        return cls(rows=_split_rows((label, label) for label in labels))

    @classmethod
    def from_pairs(cls, buttons: Sequence[Tuple[str, str]]) -> "InlineKeyboard":
        """
        Create an inline keyboard from (display name, callback data) pairs.

        To make the next button appear on a new line, end the display name
        with a newline.
        """
        return cls(rows=_split_rows(buttons))

    @property
    def buttons(self) -> List[Tuple[str, Optional[str]]]:
        return [(button.text, button.callback_data) for row in self.rows for button in row]

    def to_telethon(self) -> Any:
        return [
            [Button.inline(button.text, (button.callback_data or button.text).encode("utf-8")) for button in row]
            for row in self.rows
        ]


Keyboard = Union[ReplyKeyboard, InlineKeyboard]


class KeyboardManager:
    """
    Builds the fixed keyboards shared by handler modules.
    """

    @staticmethod
    def get_pagination_row(current_page: int, total_pages: int, callback_prefix: str) -> List[Tuple[str, str]]:
        """
        Generate pagination controls for multi-page displays.

        Args:
            current_page: Current page number (0-indexed)
            total_pages: Total number of pages available
            callback_prefix: Prefix the target page index is appended to

        Returns:
            List of (label, callback data) pairs forming a single row
        """
        if total_pages <= 1:
            return []

        navigation_buttons = []

        if current_page > 0:
            navigation_buttons.append(("◀ Previous", f"{callback_prefix}{current_page - 1}"))

        # Page indicator points at the current page, which the paginator ignores
        navigation_buttons.append((f"{current_page + 1}/{total_pages}", f"{callback_prefix}{current_page}"))

        if current_page < total_pages - 1:
            navigation_buttons.append(("Next ▶", f"{callback_prefix}{current_page + 1}"))

        return navigation_buttons
