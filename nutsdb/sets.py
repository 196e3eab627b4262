"""In-memory set index keyed by name, with Redis-like set operations."""

from __future__ import annotations


class SetError(Exception):
    """Raised when a set operation cannot be carried out."""


class SetIndex:
    """A collection of byte-string sets addressed by key."""

    def __init__(self) -> None:
        self.members: dict[str, set[bytes]] = {}

    def sadd(self, key: str, *items: bytes) -> None:
        """Add items to the set at key, creating it if needed."""
        self.members.setdefault(key, set()).update(items)

    def srem(self, key: str, *items: bytes) -> None:
        """Remove items from the set at key."""
        if key not in self.members:
            raise SetError("key not found")
        if not items or len(items[0]) == 0:
            raise SetError("item empty")
        self.members[key].difference_update(items)

    def shas_key(self, key: str) -> bool:
        """Return whether a set exists at key."""
        return key in self.members

    def spop(self, key: str) -> bytes | None:
        """Remove and return an arbitrary member, or None if there is none."""
        members = self.members.get(key)
        if not members:
            return None
        return members.pop()

    def scard(self, key: str) -> int:
        """Return the number of members of the set at key."""
        return len(self.members.get(key, ()))

    def _check_keys(self, key1: str, key2: str) -> tuple[set[bytes], set[bytes]]:
        if key1 not in self.members:
            raise SetError("set1 is not exists")
        if key2 not in self.members:
            raise SetError("set2 is not exists")
        return self.members[key1], self.members[key2]

    def sdiff(self, key1: str, key2: str) -> list[bytes]:
        """Return members of the first set that are not in the second."""
        first, second = self._check_keys(key1, key2)
        return [item for item in first if item not in second]

    def sinter(self, key1: str, key2: str) -> list[bytes]:
        """Return members present in both sets."""
        first, second = self._check_keys(key1, key2)
        return [item for item in first if item in second]

    def sunion(self, key1: str, key2: str) -> list[bytes]:
        """Return members present in either set."""
        first, second = self._check_keys(key1, key2)
        return list(first) + [item for item in second if item not in first]

    def sis_member(self, key: str, item: bytes) -> bool:
        """Return whether item is a member of the set at key."""
        return item in self.members.get(key, ())

    def sare_members(self, key: str, *items: bytes) -> bool:
        """Return True if every item is a member; raise otherwise."""
        if key not in self.members:
            raise SetError("key not exits")
        members = self.members[key]
        if any(item not in members for item in items):
            raise SetError("item not exits")
        return True

    def smembers(self, key: str) -> list[bytes]:
        """Return all members of the set at key."""
        if key not in self.members:
            raise SetError("set not exists")
        return list(self.members[key])

    def smove(self, key1: str, key2: str, item: bytes) -> bool:
        """Move item from the set at key1 to the set at key2."""
        if key1 not in self.members:
            raise SetError("key1 is not exists")
        if key2 not in self.members:
            raise SetError("key2 is not exists")
        self.members[key2].add(item)
        self.members[key1].discard(item)
        return True