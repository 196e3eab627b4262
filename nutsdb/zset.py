"""Sorted set backed by a skip list, ordered by score and then by key."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Callable, Iterator

SKIP_LIST_MAX_LEVEL = 32
SKIP_LIST_P = 0.25
_DEFAULT_LIMIT = (1 << 31) - 1


class _Level:
    __slots__ = ("forward", "span")

    def __init__(self) -> None:
        self.forward: SortedSetNode | None = None
        self.span = 0


class SortedSetNode:
    """A member of a sorted set: a unique key, its score and a value."""

    __slots__ = ("_key", "_score", "value", "backward", "levels")

    def __init__(self, level: int, score: float, key: str, value: bytes | None) -> None:
        self._key = key
        self._score = score
        self.value = value
        self.backward: SortedSetNode | None = None
        self.levels = [_Level() for _ in range(level)]

    @property
    def key(self) -> str:
        """The unique key of the node."""
        return self._key

    @property
    def score(self) -> float:
        """The score that orders the node within the set."""
        return self._score

    def __repr__(self) -> str:
        return f"SortedSetNode(key={self._key!r}, score={self._score!r}, value={self.value!r})"


@dataclass
class ScoreRangeOptions:
    """Options for a score range query.

    A limit of zero or less means no limit.
    """

    limit: int = 0
    exclude_start: bool = False
    exclude_end: bool = False


class SortedSet:
    """A set of keyed values kept in order of score, ties broken by key."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng if rng is not None else random.Random()
        self._header = SortedSetNode(SKIP_LIST_MAX_LEVEL, 0.0, "", None)
        self._tail: SortedSetNode | None = None
        self._length = 0
        self._level = 1
        self.dict: dict[str, SortedSetNode] = {}

    def __len__(self) -> int:
        return self._length

    def __contains__(self, key: object) -> bool:
        return key in self.dict

    def __iter__(self) -> Iterator[SortedSetNode]:
        x = self._header.levels[0].forward
        while x is not None:
            yield x
            x = x.levels[0].forward

    def _random_level(self) -> int:
        level = 1
        while self._rng.random() < SKIP_LIST_P and level < SKIP_LIST_MAX_LEVEL:
            level += 1
        return level

    @staticmethod
    def _before(score: float, key: str) -> Callable[[SortedSetNode], bool]:
        def check(node: SortedSetNode) -> bool:
            return node.score < score or (node.score == score and node.key < key)

        return check

    def _find_update(self, score: float, key: str) -> tuple[SortedSetNode, list[SortedSetNode]]:
        update: list[SortedSetNode] = [self._header] * SKIP_LIST_MAX_LEVEL
        before = self._before(score, key)
        x = self._header
        for i in range(self._level - 1, -1, -1):
            while (fwd := x.levels[i].forward) is not None and before(fwd):
                x = fwd
            update[i] = x
        return x, update

    def _insert_node(self, score: float, key: str, value: bytes | None) -> SortedSetNode:
        update: list[SortedSetNode] = [self._header] * SKIP_LIST_MAX_LEVEL
        rank = [0] * SKIP_LIST_MAX_LEVEL
        before = self._before(score, key)

        x = self._header
        for i in range(self._level - 1, -1, -1):
            rank[i] = 0 if i == self._level - 1 else rank[i + 1]
            while (fwd := x.levels[i].forward) is not None and before(fwd):
                rank[i] += x.levels[i].span
                x = fwd
            update[i] = x

        level = self._random_level()
        if level > self._level:
            for i in range(self._level, level):
                rank[i] = 0
                update[i] = self._header
                self._header.levels[i].span = self._length
            self._level = level

        node = SortedSetNode(level, score, key, value)
        for i in range(level):
            prev = update[i].levels[i]
            node.levels[i].forward = prev.forward
            prev.forward = node
            node.levels[i].span = prev.span - (rank[0] - rank[i])
            prev.span = (rank[0] - rank[i]) + 1

        for i in range(level, self._level):
            update[i].levels[i].span += 1

        node.backward = None if update[0] is self._header else update[0]
        following = node.levels[0].forward
        if following is not None:
            following.backward = node
        else:
            self._tail = node

        self._length += 1
        return node

    def _delete_node(self, x: SortedSetNode, update: list[SortedSetNode]) -> None:
        for i in range(self._level):
            level = update[i].levels[i]
            if level.forward is x:
                level.span += x.levels[i].span - 1
                level.forward = x.levels[i].forward
            else:
                level.span -= 1

        following = x.levels[0].forward
        if following is not None:
            following.backward = x.backward
        else:
            self._tail = x.backward

        while self._level > 1 and self._header.levels[self._level - 1].forward is None:
            self._level -= 1
        self._length -= 1
        self.dict.pop(x.key, None)

    def _delete(self, score: float, key: str) -> bool:
        x, update = self._find_update(score, key)
        candidate = x.levels[0].forward
        if candidate is not None and candidate.score == score and candidate.key == key:
            self._delete_node(candidate, update)
            return True
        return False

    def size(self) -> int:
        """Return the number of members."""
        return self._length

    def peek_min(self) -> SortedSetNode | None:
        """Return the member with the lowest score, or None if empty."""
        return self._header.levels[0].forward

    def pop_min(self) -> SortedSetNode | None:
        """Remove and return the member with the lowest score."""
        x = self._header.levels[0].forward
        if x is not None:
            self.remove(x.key)
        return x

    def peek_max(self) -> SortedSetNode | None:
        """Return the member with the highest score, or None if empty."""
        return self._tail

    def pop_max(self) -> SortedSetNode | None:
        """Remove and return the member with the highest score."""
        x = self._tail
        if x is not None:
            self.remove(x.key)
        return x

    def put(self, key: str, score: float, value: bytes | None) -> None:
        """Add or update the member at key with the given score and value."""
        score = float(score)
        existing = self.dict.get(key)
        if existing is not None and existing.score == score:
            existing.value = value
            return
        if existing is not None:
            self._delete(existing.score, existing.key)
        self.dict[key] = self._insert_node(score, key, value)

    def remove(self, key: str) -> SortedSetNode | None:
        """Remove the member at key and return it, or None if absent."""
        found = self.dict.get(key)
        if found is None:
            return None
        self._delete(found.score, found.key)
        return found

    def get_by_score_range(
        self, start: float, end: float, options: ScoreRangeOptions | None = None
    ) -> list[SortedSetNode]:
        """Return members whose score lies between start and end.

        If start is greater than end the members come in descending order.
        """
        limit = _DEFAULT_LIMIT
        if options is not None and options.limit > 0:
            limit = options.limit
        exclude_start = options is not None and options.exclude_start
        exclude_end = options is not None and options.exclude_end

        reverse = start > end
        if reverse:
            start, end = end, start
            exclude_start, exclude_end = exclude_end, exclude_start

        if self._length == 0:
            return []
        if reverse:
            return self._search_reverse(exclude_start, exclude_end, start, end, limit)
        return self._search_forward(exclude_start, exclude_end, start, end, limit)

    def _search_forward(
        self, exclude_start: bool, exclude_end: bool, start: float, end: float, limit: int
    ) -> list[SortedSetNode]:
        if exclude_start:
            below = lambda node: node.score <= start  # noqa: E731
        else:
            below = lambda node: node.score < start  # noqa: E731

        x = self._header
        for i in range(self._level - 1, -1, -1):
            while (fwd := x.levels[i].forward) is not None and below(fwd):
                x = fwd

        nodes: list[SortedSetNode] = []
        current = x.levels[0].forward
        while current is not None and limit > 0:
            if current.score >= end if exclude_end else current.score > end:
                break
            nodes.append(current)
            limit -= 1
            current = current.levels[0].forward
        return nodes

    def _search_reverse(
        self, exclude_start: bool, exclude_end: bool, start: float, end: float, limit: int
    ) -> list[SortedSetNode]:
        if exclude_end:
            within = lambda node: node.score < end  # noqa: E731
        else:
            within = lambda node: node.score <= end  # noqa: E731

        x = self._header
        for i in range(self._level - 1, -1, -1):
            while (fwd := x.levels[i].forward) is not None and within(fwd):
                x = fwd

        nodes: list[SortedSetNode] = []
        current: SortedSetNode | None = None if x is self._header else x
        while current is not None and limit > 0:
            if current.score <= start if exclude_start else current.score < start:
                break
            nodes.append(current)
            limit -= 1
            current = current.backward
        return nodes

    def _sanitize_indexes(self, start: int, end: int) -> tuple[int, int]:
        if start < 0:
            start = self._length + start + 1
        if end < 0:
            end = self._length + end + 1
        return max(start, 1), max(end, 1)

    def get_by_rank_range(self, start: int, end: int, remove: bool = False) -> list[SortedSetNode]:
        """Return members with 1-based rank in [start, end], optionally removing them.

        Negative ranks count from the end; start greater than end reverses the order.
        """
        start, end = self._sanitize_indexes(start, end)
        reverse = start > end
        if reverse:
            start, end = end, start

        update: list[SortedSetNode] = [self._header] * SKIP_LIST_MAX_LEVEL
        traversed = 0
        x = self._header
        for i in range(self._level - 1, -1, -1):
            while (fwd := x.levels[i].forward) is not None and traversed + x.levels[i].span < start:
                traversed += x.levels[i].span
                x = fwd
            if remove:
                update[i] = x
            elif traversed + 1 == start:
                break

        nodes: list[SortedSetNode] = []
        traversed += 1
        current = x.levels[0].forward
        while current is not None and traversed <= end:
            following = current.levels[0].forward
            nodes.append(current)
            if remove:
                self._delete_node(current, update)
            traversed += 1
            current = following

        if reverse:
            nodes.reverse()
        return nodes

    def get_by_rank(self, rank: int, remove: bool = False) -> SortedSetNode | None:
        """Return the member at the 1-based rank, or None if there is none."""
        nodes = self.get_by_rank_range(rank, rank, remove)
        return nodes[0] if len(nodes) == 1 else None

    def get_by_key(self, key: str) -> SortedSetNode | None:
        """Return the member at key, or None."""
        return self.dict.get(key)

    def find_rank(self, key: str) -> int:
        """Return the 1-based ascending rank of key, or 0 if absent."""
        node = self.dict.get(key)
        if node is None:
            return 0
        rank = 0
        x = self._header
        for i in range(self._level - 1, -1, -1):
            while (fwd := x.levels[i].forward) is not None and (
                fwd.score < node.score or (fwd.score == node.score and fwd.key <= node.key)
            ):
                rank += x.levels[i].span
                x = fwd
            if x is not self._header and x.key == key:
                return rank
        return 0

    def find_rev_rank(self, key: str) -> int:
        """Return the 1-based descending rank of key, or 0 if absent."""
        if self._length == 0 or key not in self.dict:
            return 0
        return self._length - self.find_rank(key) + 1