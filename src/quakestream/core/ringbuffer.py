from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class RingBuffer(Generic[T]):
    """
    Fixed-capacity FIFO window over the most recent items.

    Appending to a full buffer evicts the oldest entry. Not thread-safe;
    the owner serialises access.
    """

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._slots: list[Optional[T]] = [None] * capacity
        self._head = 0
        self._size = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    def append(self, item: T) -> None:
        tail = (self._head + self._size) % self._capacity
        self._slots[tail] = item
        if self._size < self._capacity:
            self._size += 1
        else:
            self._head = (self._head + 1) % self._capacity

    def extend(self, items: Iterable[T]) -> None:
        for item in items:
            self.append(item)

    def clear(self) -> None:
        self._slots = [None] * self._capacity
        self._head = 0
        self._size = 0

    def latest(self) -> Optional[T]:
        """Return the newest item, or ``None`` when empty."""
        if self._size == 0:
            return None
        return self[-1]

    def snapshot(self) -> tuple[T, ...]:
        """Return the logical contents, oldest first, as an immutable tuple."""
        return tuple(self)

    def __len__(self) -> int:  # pragma: no cover - trivial
        return self._size

    def __getitem__(self, index: int) -> T:
        """Index the logical contents; ``buf[0]`` is the oldest, ``buf[-1]`` the newest."""
        size = self._size
        if index < 0:
            index += size
        if index < 0 or index >= size:
            raise IndexError("RingBuffer index out of range")
        item = self._slots[(self._head + index) % self._capacity]
        assert item is not None
        return item

    def __iter__(self) -> Iterator[T]:
        for offset in range(self._size):
            item = self._slots[(self._head + offset) % self._capacity]
            assert item is not None
            yield item
