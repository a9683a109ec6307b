"""Fixed-capacity sample history for trend display."""

from __future__ import annotations

from collections import deque
from typing import Generic, Iterator, TypeVar

from zeus_ops.exceptions import ConfigurationError

T = TypeVar("T")

DEFAULT_CAPACITY = 20


class BoundedHistory(Generic[T]):
    """
    Ordered sequence of the most recent items, oldest first.

    Appending to a full history evicts the oldest item. Length never exceeds
    the capacity given at construction.

    Example:
        history = BoundedHistory[int](capacity=3)
        for i in [1, 2, 3, 4]:
            history.append(i)
        history.snapshot()  # [2, 3, 4]
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
            raise ConfigurationError(f"History capacity must be a positive integer, got {capacity!r}")
        self._capacity = capacity
        self._items: deque[T] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def latest(self) -> T | None:
        """Most recently appended item, or None when empty."""
        return self._items[-1] if self._items else None

    def append(self, item: T) -> None:
        self._items.append(item)

    def snapshot(self) -> list[T]:
        """Return the current contents without exposing the internal buffer."""
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self.snapshot())

    def __repr__(self) -> str:
        return f"BoundedHistory(capacity={self._capacity}, size={len(self._items)})"
