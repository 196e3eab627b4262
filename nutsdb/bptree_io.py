"""Binary node records of a B+ tree and their storage in an index file."""

from __future__ import annotations

import os
import re
import struct
from collections import deque
from dataclasses import dataclass, field
from typing import BinaryIO

from .bptree import (
    BINARY_NODE_SIZE,
    DEFAULT_INVALID_ADDRESS,
    ORDER,
    BPTree,
    BPTreeError,
    Node,
)

_RECORD = struct.Struct(f"<{ORDER - 1}q{ORDER}qHHqq")

BINARY_NODE_RECORD_SIZE = _RECORD.size

_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1
_DECIMAL = re.compile(rb"[+-]?[0-9]+")


def _to_int64(value: int) -> int:
    value &= (1 << 64) - 1
    return value - (1 << 64) if value > _INT64_MAX else value


def _parse_int64(key: bytes) -> int:
    """Parse a decimal key; unparsable keys give 0, overflow saturates."""
    if not _DECIMAL.fullmatch(key):
        return 0
    return max(_INT64_MIN, min(_INT64_MAX, int(key)))


@dataclass
class BinaryNode:
    """The fixed-size record of a node.

    For an inner node the pointers are child node addresses; for a leaf
    they are the data positions of its records.
    """

    keys: list[int] = field(default_factory=lambda: [0] * (ORDER - 1))
    pointers: list[int] = field(default_factory=lambda: [0] * ORDER)
    is_leaf: int = 0
    keys_num: int = 0
    address: int = 0
    next_address: int = DEFAULT_INVALID_ADDRESS

    def encode(self) -> bytes:
        """Return the record as little-endian bytes."""
        if len(self.keys) > ORDER - 1:
            raise ValueError(f"a node holds at most {ORDER - 1} keys")
        if len(self.pointers) > ORDER:
            raise ValueError(f"a node holds at most {ORDER} pointers")
        keys = list(self.keys) + [0] * (ORDER - 1 - len(self.keys))
        pointers = list(self.pointers) + [0] * (ORDER - len(self.pointers))
        return _RECORD.pack(
            *keys,
            *pointers,
            self.is_leaf,
            self.keys_num,
            self.address,
            self.next_address,
        )

    @staticmethod
    def decode(data: bytes) -> BinaryNode:
        """Decode a record from the start of data."""
        if len(data) < BINARY_NODE_RECORD_SIZE:
            raise ValueError(
                f"binary node needs {BINARY_NODE_RECORD_SIZE} bytes, got {len(data)}"
            )
        fields = _RECORD.unpack_from(data)
        keys = list(fields[: ORDER - 1])
        pointers = list(fields[ORDER - 1 : 2 * ORDER - 1])
        is_leaf, keys_num, address, next_address = fields[2 * ORDER - 1 :]
        return BinaryNode(
            keys=keys,
            pointers=pointers,
            is_leaf=is_leaf,
            keys_num=keys_num,
            address=address,
            next_address=next_address,
        )


def node_to_binary(tree: BPTree, node: Node) -> bytes:
    """Encode node as a binary record.

    Keys become their offsets from the tree's key position map when that is
    enabled, and their decimal value otherwise.
    """
    keys: list[int] = []
    for key in node.keys:
        if tree.enabled_key_pos_map:
            if not tree.key_pos_map:
                raise BPTreeError("not set keyPosMap")
            keys.append(_to_int64(tree.key_pos_map.get(key, 0)))
        else:
            keys.append(_parse_int64(key))

    if node.is_leaf:
        pointers = [
            _to_int64(record.hint.data_pos) if record.hint is not None else 0
            for record in node.pointers
        ]
    else:
        pointers = [child.address for child in node.pointers]

    next_address = DEFAULT_INVALID_ADDRESS
    if node.next_leaf is not None:
        next_address = node.next_leaf.address

    return BinaryNode(
        keys=keys,
        pointers=pointers,
        is_leaf=1 if node.is_leaf else 0,
        keys_num=node.keys_num,
        address=node.address,
        next_address=next_address,
    ).encode()


def write_node(tree: BPTree, node: Node, off: int, sync_enable: bool, fd: BinaryIO) -> int:
    """Write node's record to fd at off, or at its own address when off is -1.

    Returns the number of bytes written.
    """
    data = node_to_binary(tree, node)
    if off == -1:
        off = node.address
    fd.seek(off)
    written = 0
    view = memoryview(data)
    while written < len(data):
        written += fd.write(view[written:])
    if sync_enable:
        fd.flush()
        os.fsync(fd.fileno())
    return written


def write_nodes(tree: BPTree, sync_enable: bool) -> None:
    """Write every node of the tree, breadth first, to the tree's file."""
    if tree.root is None:
        raise BPTreeError("cannot write an empty tree")
    flags = os.O_CREAT | os.O_RDWR | getattr(os, "O_BINARY", 0)
    fd = os.open(os.fspath(tree.filepath), flags, 0o644)
    with open(fd, "r+b", buffering=0) as f:
        pending: deque[Node] = deque([tree.root])
        while pending:
            node = pending.popleft()
            write_node(tree, node, -1, sync_enable, f)
            if not node.is_leaf:
                pending.extend(node.pointers)


def is_valid_address(addr: int) -> bool:
    """Return whether addr can be the address of a node."""
    return addr >= 0 and addr % BINARY_NODE_SIZE == 0


def read_node(path: str | os.PathLike[str], address: int) -> BinaryNode:
    """Read the binary node stored at address in the file at path.

    Raises BPTreeError for an invalid address and EOFError when the file
    holds nothing at that address.
    """
    if not is_valid_address(address):
        raise BPTreeError(f"cannot read node at {address}")
    with open(path, "rb") as f:
        f.seek(address)
        data = f.read(BINARY_NODE_SIZE)
    if not data:
        raise EOFError(f"no node at {address}")
    return BinaryNode.decode(data.ljust(BINARY_NODE_SIZE, b"\0"))