"""
Page state for the public tour "book".

The book has four pages: cover, categories, places and map. Moving forward is
gated on what the visitor has picked so far; a refused move leaves the state
untouched and records a short notice for the client to show as a toast.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import asdict, dataclass
from enum import IntEnum
from typing import Any

logger = logging.getLogger(__name__)


class Page(IntEnum):
    COVER = 0
    CATEGORIES = 1
    PLACES = 2
    MAP = 3


TOTAL_PAGES = len(Page)

NOTICE_SELECT_CATEGORY = "Please select a category first."
NOTICE_SELECT_PLACE = "Please select a place first."
NOTICE_INVALID_PAGE = "That page does not exist."
NOTICE_PLACE_OUTSIDE_CATEGORY = "That place is not in the selected category."


@dataclass
class BookState:
    page_index: int = 0
    selected_category: str | None = None
    selected_place: str | None = None
    direction: int = 0  # last flip: 1 forward, -1 back, 0 none

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: dict[str, Any] | None) -> "BookState":
        if not raw:
            return cls()
        try:
            page_index = int(raw.get("page_index", 0))
        except (TypeError, ValueError):
            page_index = 0
        if not 0 <= page_index < TOTAL_PAGES:
            page_index = 0
        return cls(
            page_index=page_index,
            selected_category=raw.get("selected_category") or None,
            selected_place=raw.get("selected_place") or None,
            direction=int(raw.get("direction") or 0),
        )


class BookNavigator:
    def __init__(self, state: BookState | None = None, notify: Callable[[str], None] | None = None):
        self.state = state or BookState()
        self.notices: list[str] = []
        self._notify = notify

    @property
    def page(self) -> Page:
        return Page(self.state.page_index)

    @property
    def show_navigation(self) -> bool:
        page = self.page
        if page == Page.COVER:
            return False
        if page == Page.PLACES and not self.state.selected_category:
            return False
        if page == Page.MAP and not self.state.selected_place:
            return False
        return True

    def _refuse(self, message: str) -> bool:
        self.notices.append(message)
        logger.debug("Navigation refused at page=%s: %s", self.state.page_index, message)
        if self._notify is not None:
            self._notify(message)
        return False

    def go_to(self, page_index: int) -> bool:
        """Move to ``page_index`` if its prerequisite is met. Returns whether the page changed."""
        if isinstance(page_index, bool) or not isinstance(page_index, int) or not 0 <= page_index < TOTAL_PAGES:
            return self._refuse(NOTICE_INVALID_PAGE)

        target = Page(page_index)
        st = self.state
        if target == Page.PLACES and not st.selected_category:
            return self._refuse(NOTICE_SELECT_CATEGORY)
        if target == Page.MAP and not st.selected_place:
            return self._refuse(NOTICE_SELECT_PLACE)

        if target == Page.COVER:
            st.selected_category = None
            st.selected_place = None
        elif target in (Page.CATEGORIES, Page.PLACES):
            st.selected_place = None

        if target != st.page_index:
            st.direction = 1 if target > st.page_index else -1
        st.page_index = int(target)
        return True

    def paginate(self, direction: int) -> bool:
        """Flip one page forward (1) or back (-1); a no-op at either end of the book."""
        if direction not in (1, -1):
            return False
        new_index = self.state.page_index + direction
        if not 0 <= new_index < TOTAL_PAGES:
            return False
        return self.go_to(new_index)

    def select_category(self, category_id: str) -> bool:
        self.state.selected_category = category_id
        self.state.selected_place = None
        return self.go_to(Page.PLACES)

    def select_place(self, place_id: str, category_id: str | None = None) -> bool:
        """`category_id` is the category owning the place; a mismatch is refused."""
        if not self.state.selected_category:
            return self._refuse(NOTICE_SELECT_CATEGORY)
        if category_id is not None and category_id != self.state.selected_category:
            return self._refuse(NOTICE_PLACE_OUTSIDE_CATEGORY)
        self.state.selected_place = place_id
        return self.go_to(Page.MAP)

    def back(self) -> bool:
        """Back button on a content page: drop the current selection and step back."""
        page = self.page
        if page == Page.MAP:
            self.state.selected_place = None
            return self.go_to(Page.PLACES)
        if page == Page.PLACES:
            self.state.selected_category = None
            return self.go_to(Page.CATEGORIES)
        return self.paginate(-1)

    def reset(self) -> None:
        self.state = BookState()

    def to_dict(self) -> dict[str, Any]:
        st = self.state
        return {
            "pageIndex": st.page_index,
            "page": self.page.name.lower(),
            "totalPages": TOTAL_PAGES,
            "selectedCategory": st.selected_category,
            "selectedPlace": st.selected_place,
            "direction": st.direction,
            "showNavigation": self.show_navigation,
        }
