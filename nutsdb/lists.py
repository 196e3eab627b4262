"""In-memory list index keyed by name, with Redis-like list operations."""

from __future__ import annotations


class ListError(Exception):
    """Base error for list operations."""


class ListNotFoundError(ListError):
    """The list does not exist or holds no elements."""

    def __init__(self, message: str = "the list not found") -> None:
        super().__init__(message)


class IndexOutOfRangeError(ListError):
    """An index lies outside the list."""

    def __init__(self, message: str = "index out of range") -> None:
        super().__init__(message)


class CountError(ListError):
    """A removal count is larger than the list."""

    def __init__(self, message: str = "err count") -> None:
        super().__init__(message)


class ListIndex:
    """A collection of byte-string lists addressed by key."""

    def __init__(self) -> None:
        self.items: dict[str, list[bytes]] = {}

    def _get(self, key: str) -> list[bytes]:
        try:
            return self.items[key]
        except KeyError:
            raise ListNotFoundError() from None

    def rpeek(self, key: str) -> bytes:
        """Return the last element of the list at key."""
        values = self._get(key)
        if not values:
            raise ListNotFoundError()
        return values[-1]

    def rpop(self, key: str) -> bytes:
        """Remove and return the last element of the list at key."""
        item = self.rpeek(key)
        self.items[key] = self.items[key][:-1]
        return item

    def rpush(self, key: str, *values: bytes) -> int:
        """Append values at the tail of the list and return its new size."""
        if values:
            self.items.setdefault(key, []).extend(values)
        return self.size(key)

    def lpush(self, key: str, *values: bytes) -> int:
        """Insert values at the head of the list, last given ending up first."""
        existing = self.items.get(key, [])
        self.items[key] = list(reversed(values)) + existing
        return len(self.items[key])

    def lpeek(self, key: str) -> bytes:
        """Return the first element of the list at key."""
        values = self._get(key)
        if not values:
            raise ListNotFoundError()
        return values[0]

    def lpop(self, key: str) -> bytes:
        """Remove and return the first element of the list at key."""
        item = self.lpeek(key)
        self.items[key] = self.items[key][1:]
        return item

    def size(self, key: str) -> int:
        """Return the number of elements in the list at key."""
        return len(self._get(key))

    def lrange(self, key: str, start: int, end: int) -> list[bytes]:
        """Return the elements between start and end, both inclusive.

        Negative indexes count from the tail.
        """
        size = self.size(key)

        if start >= 0 and end < 0:
            end = size + end
        if start < 0 and end > 0:
            start = size + start
        if start < 0 and end < 0:
            start, end = size + start, size + end
        if end >= size:
            end = size - 1
        if start > end or start < 0:
            raise ListError("start or end error")

        return list(self.items[key][start : end + 1])

    def lrem_num(self, key: str, count: int, value: bytes) -> int:
        """Return how many elements lrem would remove for count and value."""
        values = self._get(key)
        if count > len(values):
            raise CountError()

        limit = abs(count)
        removed = 0
        for item in values:
            if limit > 0 and removed == limit:
                break
            if item == value:
                removed += 1
        return removed

    def lrem(self, key: str, count: int, value: bytes) -> int:
        """Remove occurrences of value and return how many were removed.

        count > 0 removes from head to tail, count < 0 from tail to head,
        and count == 0 removes every occurrence.
        """
        values = self._get(key)
        need = self.lrem_num(key, count, value)
        if need == 0:
            return 0

        if count == 0:
            count = need

        removed = 0
        kept: list[bytes] = []
        ordered = values if count > 0 else reversed(values)
        for item in ordered:
            if removed < abs(count) and item == value:
                removed += 1
            else:
                kept.append(item)
        if count < 0:
            kept.reverse()

        self.items[key] = kept
        return removed

    def lset(self, key: str, index: int, value: bytes) -> None:
        """Replace the element at index with value."""
        values = self._get(key)
        if index < 0 or index >= len(values):
            raise IndexOutOfRangeError()
        values[index] = value

    def ltrim(self, key: str, start: int, end: int) -> None:
        """Keep only the elements between start and end, both inclusive."""
        self._get(key)
        self.items[key] = self.lrange(key, start, end)