"""
Page-by-page navigation over an ordered list.

The current page is re-clamped on every read, so replacing ``items`` with a
shorter list never exposes an out-of-range page.
"""
import math
from typing import Generic, List, Sequence, TypeVar

T = TypeVar('T')


class CatalogPaginator(Generic[T]):
    """
    Fixed-size pages over ``items``, 1-indexed.

    Usage:
        paginator = CatalogPaginator(products, items_per_page=12)
        paginator.go_to_page(3)
        paginator.paginated_items
    """

    def __init__(self, items: Sequence[T], items_per_page: int = 12, initial_page: int = 1):
        if items_per_page < 1:
            raise ValueError("items_per_page must be a positive integer")
        self.items = items
        self.items_per_page = items_per_page
        self._page = initial_page

    @property
    def total_items(self) -> int:
        return len(self.items)

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_items / self.items_per_page)

    def _clamp(self, page: int) -> int:
        return min(max(1, page), max(1, self.total_pages))

    @property
    def current_page(self) -> int:
        self._page = self._clamp(self._page)
        return self._page

    def go_to_page(self, page: int) -> None:
        self._page = self._clamp(page)

    def next_page(self) -> None:
        self.go_to_page(self.current_page + 1)

    def prev_page(self) -> None:
        self.go_to_page(self.current_page - 1)

    def reset_page(self) -> None:
        self._page = 1

    @property
    def has_next_page(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def has_prev_page(self) -> bool:
        return self.current_page > 1

    @property
    def paginated_items(self) -> List[T]:
        start = (self.current_page - 1) * self.items_per_page
        return list(self.items[start:start + self.items_per_page])

    @property
    def start_index(self) -> int:
        """1-indexed position of the first item on the page."""
        return (self.current_page - 1) * self.items_per_page + 1

    @property
    def end_index(self) -> int:
        """1-indexed position of the last item on the page (0 when empty)."""
        return min(self.current_page * self.items_per_page, self.total_items)

    def summary(self) -> dict:
        return {
            'current_page': self.current_page,
            'total_pages': self.total_pages,
            'total_items': self.total_items,
            'items_per_page': self.items_per_page,
            'has_next_page': self.has_next_page,
            'has_prev_page': self.has_prev_page,
            'start_index': self.start_index,
            'end_index': self.end_index,
        }
