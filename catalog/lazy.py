"""
Incremental reveal ("infinite scroll") over an ordered list.

The visible part of the list is a prefix that grows one batch at a time.
Whatever triggers growth (a scroll sentinel, a "load more" button, an HTTP
cursor) only needs load_more(), has_more and is_loading.
"""
import asyncio
import logging
from typing import Generic, List, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


class LazyReveal(Generic[T]):
    """
    Growing visible prefix of ``items``.

    At most one batch is in flight: load_more() calls that arrive while a
    previous one is still waiting are ignored.
    """

    def __init__(
        self,
        items: Sequence[T],
        initial_batch: int = 12,
        batch_size: int = 12,
        delay: float = 0.1,
        loaded_count: Optional[int] = None,
    ):
        if initial_batch < 0 or batch_size < 1:
            raise ValueError("initial_batch must be >= 0 and batch_size >= 1")
        self.items = items
        self.initial_batch = initial_batch
        self.batch_size = batch_size
        self.delay = delay
        self._loaded = initial_batch if loaded_count is None else max(0, loaded_count)
        self.is_loading = False

    @property
    def total_count(self) -> int:
        return len(self.items)

    @property
    def loaded_count(self) -> int:
        total = self.total_count
        if self._loaded > total:
            self._loaded = min(self.initial_batch, total)
        return self._loaded

    @property
    def has_more(self) -> bool:
        return self.loaded_count < self.total_count

    @property
    def visible_items(self) -> List[T]:
        return list(self.items[:self.loaded_count])

    async def load_more(self) -> bool:
        """
        Reveal the next batch.

        Returns:
            True if the visible prefix grew, False if the call was ignored
            (a load is in flight or everything is visible)
        """
        if self.is_loading or not self.has_more:
            return False
        self.is_loading = True
        try:
            if self.delay > 0:
                await asyncio.sleep(self.delay)
            self._loaded = min(self.loaded_count + self.batch_size, self.total_count)
        finally:
            self.is_loading = False
        logger.debug(f"Revealed {self._loaded} of {self.total_count} items")
        return True

    def reset(self) -> None:
        self._loaded = self.initial_batch

    def summary(self) -> dict:
        return {
            'loaded_count': self.loaded_count,
            'total_count': self.total_count,
            'has_more': self.has_more,
            'is_loading': self.is_loading,
        }
