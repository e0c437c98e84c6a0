"""
Paginated inline menus.

The paginator keeps its cursor in the conversation state under
``paginator_data``. Page buttons send ``stinternal-paginator:<page>``
callbacks, which the built-in internal module handles before any user
module sees them.
"""

import math
from typing import List, Tuple

from pydantic import BaseModel, Field

from .conditions import INTERNAL_PREFIX
from .keyboards import KeyboardManager, ROW_BREAK

PAGINATOR_MARKER = "paginator"
PAGINATOR_KEY = "paginator_data"
PAGINATOR_CALLBACK_PREFIX = f"{INTERNAL_PREFIX}{PAGINATOR_MARKER}:"


class PaginatorData(BaseModel):
    """Buttons of a paginated inline menu and the page currently shown."""
    page: int = Field(default=0, ge=0, description="Current page (0-indexed)")
    page_size: int = Field(default=5, gt=0, description="Buttons per page")
    buttons: List[List[str]] = Field(default_factory=list, description="All (label, callback data) pairs")

    @property
    def pages(self) -> int:
        return max(1, math.ceil(len(self.buttons) / self.page_size))

    def can_switch_to(self, page: int) -> bool:
        return 0 <= page < self.pages and page != self.page

    def get_buttons(self) -> List[Tuple[str, str]]:
        """Buttons of the current page, one per row, followed by the navigation row."""
        start = self.page * self.page_size
        rows = []
        for label, data in self.buttons[start:start + self.page_size]:
            if not label.endswith(ROW_BREAK):
                label += ROW_BREAK
            rows.append((label, data))
        rows.extend(KeyboardManager.get_pagination_row(self.page, self.pages, PAGINATOR_CALLBACK_PREFIX))
        return rows


def parse_page(callback_data: str) -> int:
    """Extract the target page from a paginator callback.

    Raises:
        ValueError: If the callback does not carry a page number
    """
    if not callback_data.startswith(PAGINATOR_CALLBACK_PREFIX):
        raise ValueError(f"Not a paginator callback: {callback_data!r}")
    return int(callback_data[len(PAGINATOR_CALLBACK_PREFIX):])
