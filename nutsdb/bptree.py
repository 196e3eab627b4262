"""In-memory B+ tree index mapping keys to records, with range and prefix scans."""

from __future__ import annotations

import re
from bisect import bisect_left, bisect_right
from dataclasses import dataclass, field
from typing import Callable, Iterator

from .entry import DataFlag, Entry, Hint

ORDER = 8

# On-disk size of one node slot: 7 key offsets, 8 pointers, two u16 fields
# padded to eight bytes, the node address and the next-leaf address.
BINARY_NODE_SIZE = 144

DEFAULT_INVALID_ADDRESS = -1

BPT_INDEX_SUFFIX = ".bptidx"
BPT_ROOT_INDEX_SUFFIX = ".bptridx"
BPT_TXID_INDEX_SUFFIX = ".bpttxid"
BPT_ROOT_TXID_INDEX_SUFFIX = ".bptrtxid"


class BPTreeError(Exception):
    """Base error for B+ tree operations."""


class StartKeyError(BPTreeError):
    """A range was asked for with its start after its end."""

    def __init__(self, message: str = "err start key") -> None:
        super().__init__(message)


class ScansNoResultError(BPTreeError):
    """A range or prefix scan found nothing."""

    def __init__(
        self, message: str = "range scans or prefix or prefix and search scans no result"
    ) -> None:
        super().__init__(message)


class PrefixScansNoResultError(ScansNoResultError):
    """A prefix scan found nothing."""

    def __init__(self, message: str = "prefix scans no result") -> None:
        super().__init__(message)


class PrefixSearchScansNoResultError(ScansNoResultError):
    """A prefix and search scan found nothing."""

    def __init__(self, message: str = "prefix and search scans no result") -> None:
        super().__init__(message)


class KeyNotFoundError(BPTreeError, KeyError):
    """The key is not in the tree."""

    def __init__(self, message: str = "key not found") -> None:
        super().__init__(message)


class BadRegexpError(BPTreeError):
    """A regular expression did not compile."""

    def __init__(self, message: str = "bad regular expression") -> None:
        super().__init__(message)


@dataclass
class Record:
    """The value stored for a key: its hint and, where kept, its entry."""

    hint: Hint | None = None
    entry: Entry | None = None

    def update(self, hint: Hint | None, entry: Entry | None) -> None:
        """Replace the hint and entry of the record."""
        self.hint = hint
        self.entry = entry


@dataclass(eq=False, repr=False)
class Node:
    """A tree node.

    Leaves hold one record per key; inner nodes hold one more child than keys.
    """

    address: int
    is_leaf: bool = False
    keys: list[bytes] = field(default_factory=list)
    pointers: list = field(default_factory=list)
    parent: Node | None = None
    next_leaf: Node | None = None

    @property
    def keys_num(self) -> int:
        return len(self.keys)

    def __repr__(self) -> str:
        kind = "leaf" if self.is_leaf else "node"
        return f"Node({kind}, address={self.address}, keys={self.keys!r})"


class BPTree:
    """A B+ tree of order 8 counting its valid (not deleted) keys."""

    def __init__(self) -> None:
        self.root: Node | None = None
        self.valid_key_count = 0
        self.first_key: bytes = b""
        self.last_key: bytes = b""
        self.last_address = 0
        self.filepath = ""
        self.bucket_size = 0
        self.key_pos_map: dict[bytes, int] = {}
        self.enabled_key_pos_map = False

    def _new_node(self, is_leaf: bool = False) -> Node:
        node = Node(address=self.last_address, is_leaf=is_leaf)
        self.last_address += BINARY_NODE_SIZE
        return node

    def find_leaf(self, key: bytes) -> Node | None:
        """Return the leaf where key belongs, or None for an empty tree."""
        current = self.root
        if current is None:
            return None
        while not current.is_leaf:
            current = current.pointers[bisect_right(current.keys, key)]
        return current

    def set_key_pos_map(self, key_pos_map: dict[bytes, int]) -> None:
        """Set the file offset of every key in the tree."""
        self.key_pos_map = key_pos_map

    def _leaves_from(self, key: bytes) -> Iterator[tuple[Node, int]]:
        leaf = self.find_leaf(key)
        if leaf is None:
            return
        first = bisect_left(leaf.keys, key)
        while leaf is not None:
            yield leaf, first
            leaf = leaf.next_leaf
            first = 0

    def all(self) -> list[Record]:
        """Return every record in key order."""
        leaf = self.find_leaf(self.first_key)
        records: list[Record] = []
        while leaf is not None:
            records.extend(leaf.pointers)
            leaf = leaf.next_leaf
        if not records:
            raise ScansNoResultError()
        return records

    def find_range(
        self,
        start: bytes,
        end: bytes,
        fn: Callable[[bytes, bytes], bool] | None = None,
    ) -> list[Record]:
        """Return the records with keys in [start, end].

        With fn given, it is called with each entry's key and value instead and
        nothing is collected; a false result skips the rest of the current leaf.
        """
        found: list[Record] = []
        for leaf, first in self._leaves_from(start):
            for key, record in zip(leaf.keys[first:], leaf.pointers[first:]):
                if key > end:
                    return found
                if fn is None:
                    found.append(record)
                elif not fn(record.entry.key, record.entry.value):
                    break
        return found

    def range(self, start: bytes, end: bytes) -> list[Record]:
        """Return the records with keys in [start, end]."""
        if start > end:
            raise StartKeyError()
        records = self.find_range(start, end)
        if not records:
            raise ScansNoResultError()
        return records

    def _scan_prefix(
        self,
        prefix: bytes,
        offset_num: int,
        limit_num: int,
        matches: Callable[[bytes], bool],
    ) -> tuple[list[Record], int]:
        found: list[Record] = []
        skipped = 0
        for leaf, first in self._leaves_from(prefix):
            for key, record in zip(leaf.keys[first:], leaf.pointers[first:]):
                if not key.startswith(prefix):
                    return found, skipped
                if skipped < offset_num:
                    skipped += 1
                    continue
                if not matches(key[len(prefix):]):
                    continue
                found.append(record)
                if limit_num > 0 and len(found) == limit_num:
                    return found, skipped
        return found, skipped

    def prefix_scan(
        self, prefix: bytes, offset_num: int, limit_num: int
    ) -> tuple[list[Record], int]:
        """Return records whose keys start with prefix, and the number skipped.

        The first offset_num matches are skipped; limit_num > 0 caps the result.
        """
        if self.find_leaf(prefix) is None:
            raise PrefixScansNoResultError()
        records, skipped = self._scan_prefix(prefix, offset_num, limit_num, lambda _: True)
        if not records:
            raise ScansNoResultError()
        return records, skipped

    def prefix_search_scan(
        self, prefix: bytes, reg: str, offset_num: int, limit_num: int
    ) -> tuple[list[Record], int]:
        """Like prefix_scan, keeping keys whose remainder after prefix matches reg."""
        try:
            pattern = re.compile(reg.encode())
        except re.error:
            raise BadRegexpError() from None
        if self.find_leaf(prefix) is None:
            raise PrefixSearchScansNoResultError()
        records, skipped = self._scan_prefix(
            prefix, offset_num, limit_num, lambda rest: pattern.search(rest) is not None
        )
        if not records:
            raise ScansNoResultError()
        return records, skipped

    def find(self, key: bytes) -> Record:
        """Return the record at key."""
        leaf = self.find_leaf(key)
        if leaf is None:
            raise KeyNotFoundError()
        index = bisect_left(leaf.keys, key)
        if index == len(leaf.keys) or leaf.keys[index] != key:
            raise KeyNotFoundError()
        return leaf.pointers[index]

    def insert(
        self, key: bytes, entry: Entry | None, hint: Hint, count_flag: bool = True
    ) -> None:
        """Insert a record at key, or update it if the key exists.

        With count_flag set, deleting or restoring a key adjusts valid_key_count.
        """
        if not self.first_key or key < self.first_key:
            self.first_key = key
        if key > self.last_key:
            self.last_key = key

        try:
            existing = self.find(key)
        except KeyNotFoundError:
            existing = None

        if existing is not None:
            if count_flag:
                deleting = hint.meta.flag == DataFlag.DELETE
                was_deleted = existing.hint.meta.flag == DataFlag.DELETE
                if deleting and not was_deleted and self.valid_key_count > 0:
                    self.valid_key_count -= 1
                if not deleting and was_deleted:
                    self.valid_key_count += 1
            existing.update(hint, entry)
            return

        record = Record(hint=hint, entry=entry)
        self.valid_key_count += 1

        if self.root is None:
            self.root = self._new_node(is_leaf=True)
            self.root.keys.append(key)
            self.root.pointers.append(record)
            return

        leaf = self.find_leaf(key)
        index = bisect_left(leaf.keys, key)
        if leaf.keys_num < ORDER - 1:
            leaf.keys.insert(index, key)
            leaf.pointers.insert(index, record)
            return
        self._split_leaf(leaf, index, key, record)

    @staticmethod
    def _split_index(length: int) -> int:
        return length // 2 if length % 2 == 0 else length // 2 + 1

    def _split_leaf(self, leaf: Node, index: int, key: bytes, record: Record) -> None:
        keys = leaf.keys[:index] + [key] + leaf.keys[index:]
        records = leaf.pointers[:index] + [record] + leaf.pointers[index:]
        split = self._split_index(ORDER)

        leaf.keys, leaf.pointers = keys[:split], records[:split]
        new_leaf = self._new_node(is_leaf=True)
        new_leaf.keys, new_leaf.pointers = keys[split:], records[split:]

        new_leaf.next_leaf = leaf.next_leaf
        leaf.next_leaf = new_leaf
        new_leaf.parent = leaf.parent
        self._insert_into_parent(leaf, new_leaf.keys[0], new_leaf)

    def _insert_into_parent(self, left: Node, key: bytes, right: Node) -> None:
        parent = left.parent
        if parent is None:
            root = self._new_node()
            root.keys = [key]
            root.pointers = [left, right]
            left.parent = right.parent = root
            self.root = root
            return

        left_index = next(i for i, child in enumerate(parent.pointers) if child is left)
        if parent.keys_num < ORDER - 1:
            parent.keys.insert(left_index, key)
            parent.pointers.insert(left_index + 1, right)
            return
        self._split_parent(parent, left_index, key, right)

    def _split_parent(self, node: Node, left_index: int, key: bytes, right: Node) -> None:
        keys = node.keys[:left_index] + [key] + node.keys[left_index:]
        children = node.pointers[: left_index + 1] + [right] + node.pointers[left_index + 1:]
        split = self._split_index(ORDER - 1)

        node.keys, node.pointers = keys[:split], children[: split + 1]
        new_node = self._new_node()
        new_node.keys, new_node.pointers = keys[split + 1:], children[split + 1:]
        new_node.parent = node.parent
        for child in new_node.pointers:
            child.parent = new_node

        self._insert_into_parent(node, keys[split], new_node)