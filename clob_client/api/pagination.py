"""
Cursor pagination over the CLOB list endpoints.

Pages look like {"data": [...], "next_cursor": "..."}; the last page carries
an empty cursor or "LTE=".
"""

from typing import Any, Callable, Generic, Iterator, Optional, TypeVar
import logging

logger = logging.getLogger(__name__)

T = TypeVar("T")

END_CURSOR = "LTE="

# fetch_page(cursor) -> (items, next_cursor); cursor is "" for the first page
PageFetcher = Callable[[str], tuple[list[T], str]]


def is_last_cursor(cursor: Optional[str]) -> bool:
    return not cursor or cursor == END_CURSOR


def split_page(payload: Any, decode: Optional[Callable[[Any], T]] = None) -> tuple[list[T], str]:
    """Pull items and the next cursor out of a decoded page body."""
    if not isinstance(payload, dict):
        return [], ""
    items = payload.get("data") or []
    if decode is not None:
        items = [decode(item) for item in items]
    return items, payload.get("next_cursor") or ""


class CursorPaginator(Generic[T]):
    """
    Lazy, restartable sequence of items across pages.

    Each iter() starts again from the first page. Pages are fetched one at a
    time as the consumer pulls. A failing fetch raises at the point where its
    items would have appeared and ends that iteration.

    Example:
        >>> for trade in client.get_trades():
        ...     if trade.id == wanted:
        ...         break   # no further pages fetched
    """

    def __init__(self, fetch_page: PageFetcher, initial_cursor: str = ""):
        self._fetch_page = fetch_page
        self._initial_cursor = initial_cursor

    def __iter__(self) -> Iterator[T]:
        cursor = self._initial_cursor
        page = 0
        while True:
            items, next_cursor = self._fetch_page(cursor)
            page += 1
            logger.debug(f"Fetched page {page} ({len(items)} items, cursor={next_cursor!r})")
            yield from items

            if is_last_cursor(next_cursor) or next_cursor == cursor:
                return
            cursor = next_cursor

    def first_page(self) -> list[T]:
        """Items of the first page only."""
        items, _ = self._fetch_page(self._initial_cursor)
        return list(items)

    def to_list(self) -> list[T]:
        """Drain every page."""
        return list(self)
