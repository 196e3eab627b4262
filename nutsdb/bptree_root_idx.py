"""Root index records of B+ tree files, with the key range they cover."""

from __future__ import annotations

import os
import struct
import zlib
from dataclasses import dataclass
from functools import cmp_to_key
from typing import BinaryIO, Callable

from .datafile import CrcError

BPTREE_ROOT_IDX_HEADER_SIZE = 28

_HEADER = struct.Struct("<IQQII")


@dataclass
class BPTreeRootIdx:
    """A B+ tree root record: file id, root offset and start/end keys."""

    fid: int = 0
    root_off: int = 0
    start: bytes = b""
    end: bytes = b""
    start_size: int | None = None
    end_size: int | None = None
    crc: int = 0

    def __post_init__(self) -> None:
        if self.start_size is None:
            self.start_size = len(self.start)
        if self.end_size is None:
            self.end_size = len(self.end)

    def encode(self) -> bytes:
        """Return the record encoded with its checksum."""
        start = self.start[: self.start_size].ljust(self.start_size, b"\0")
        end = self.end[: self.end_size].ljust(self.end_size, b"\0")
        payload = (
            _HEADER.pack(0, self.fid, self.root_off, self.start_size, self.end_size)[4:]
            + start
            + end
        )
        return struct.pack("<I", zlib.crc32(payload)) + payload

    def get_crc(self, buf: bytes) -> int:
        """Return the checksum of buf past its crc field, followed by start and end."""
        crc = zlib.crc32(buf[4:])
        crc = zlib.crc32(self.start, crc)
        return zlib.crc32(self.end, crc)

    def size(self) -> int:
        """Return the encoded size of the record."""
        return BPTREE_ROOT_IDX_HEADER_SIZE + self.start_size + self.end_size

    def is_zero(self) -> bool:
        """Return whether every header field is zero."""
        return (
            self.crc == 0
            and self.root_off == 0
            and self.fid == 0
            and self.start_size == 0
            and self.end_size == 0
        )

    def persist(self, path: str | os.PathLike[str], offset: int, sync_enable: bool) -> int:
        """Write the record into the file at path at offset; return bytes written."""
        flags = os.O_CREAT | os.O_RDWR | getattr(os, "O_BINARY", 0)
        fd = os.open(os.fspath(path), flags, 0o644)
        with open(fd, "r+b", buffering=0) as f:
            data = self.encode()
            f.seek(offset)
            written = 0
            view = memoryview(data)
            while written < len(data):
                written += f.write(view[written:])
            if sync_enable:
                os.fsync(f.fileno())
        return written


def _read_exact(fd: BinaryIO, length: int, off: int) -> bytes:
    fd.seek(off)
    data = fd.read(length)
    if len(data) < length:
        raise EOFError(f"cannot read {length} bytes at offset {off}")
    return data


def read_bptree_root_idx_at(fd: BinaryIO, off: int) -> BPTreeRootIdx | None:
    """Read the record at off from a binary file, or None where it is all zero.

    Raises EOFError when the file ends first and CrcError on a bad checksum.
    """
    header = _read_exact(fd, BPTREE_ROOT_IDX_HEADER_SIZE, off)
    stored_crc, fid, root_off, start_size, end_size = _HEADER.unpack(header)
    idx = BPTreeRootIdx(fid=fid, root_off=root_off, start_size=start_size, end_size=end_size)
    if idx.is_zero():
        return None

    off += BPTREE_ROOT_IDX_HEADER_SIZE
    idx.start = _read_exact(fd, start_size, off)
    off += start_size
    idx.end = _read_exact(fd, end_size, off)

    idx.crc = stored_crc
    if idx.get_crc(header) != idx.crc:
        raise CrcError()
    return idx


def sort_fid(
    group: list[BPTreeRootIdx], by: Callable[[BPTreeRootIdx, BPTreeRootIdx], bool]
) -> None:
    """Sort group in place, by being a 'sorts before' predicate."""

    def compare(p: BPTreeRootIdx, q: BPTreeRootIdx) -> int:
        if by(p, q):
            return -1
        if by(q, p):
            return 1
        return 0

    group.sort(key=cmp_to_key(compare))