"""Bucket meta-information: the key range a bucket covers, checksummed."""

from __future__ import annotations

import os
import struct
import zlib
from dataclasses import dataclass

from .datafile import CrcError

BUCKET_META_HEADER_SIZE = 12
BUCKET_META_SUFFIX = ".meta"

_HEADER = struct.Struct("<III")


def _fit(data: bytes, size: int) -> bytes:
    return data[:size].ljust(size, b"\0")


@dataclass
class BucketMeta:
    """The start and end keys of a bucket.

    Encoded layout, little endian: crc u32, start size u32, end size u32,
    then the start and end bytes.
    """

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
        """Return the meta-information encoded with its checksum."""
        payload = (
            _HEADER.pack(0, self.start_size, self.end_size)[4:]
            + _fit(self.start, self.start_size)
            + _fit(self.end, self.end_size)
        )
        return struct.pack("<I", zlib.crc32(payload)) + payload

    def get_crc(self, buf: bytes) -> int:
        """Return the checksum of buf past its crc field, followed by start and end."""
        crc = zlib.crc32(buf[4:])
        crc = zlib.crc32(self.start, crc)
        return zlib.crc32(self.end, crc)

    def size(self) -> int:
        """Return the encoded size."""
        return BUCKET_META_HEADER_SIZE + self.start_size + self.end_size


def read_bucket_meta(path: str | os.PathLike[str]) -> BucketMeta:
    """Read the bucket meta-information stored at path, creating the file if absent.

    Raises EOFError when the file is too short and CrcError on a bad checksum.
    """
    flags = os.O_CREAT | os.O_RDWR | getattr(os, "O_BINARY", 0)
    fd = os.open(os.fspath(path), flags, 0o644)
    with open(fd, "r+b", buffering=0) as f:
        header = f.read(BUCKET_META_HEADER_SIZE)
        if len(header) < BUCKET_META_HEADER_SIZE:
            raise EOFError("bucket meta header is incomplete")
        crc, start_size, end_size = _HEADER.unpack(header)
        start = f.read(start_size)
        if len(start) < start_size:
            raise EOFError("bucket meta start key is incomplete")
        end = f.read(end_size)
        if len(end) < end_size:
            raise EOFError("bucket meta end key is incomplete")

    meta = BucketMeta(start=start, end=end, start_size=start_size, end_size=end_size, crc=crc)
    if meta.get_crc(header) != meta.crc:
        raise CrcError()
    return meta