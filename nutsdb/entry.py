"""Data entries as stored in data files, with their metadata and hints."""

from __future__ import annotations

import struct
import zlib
from dataclasses import dataclass, field
from enum import IntEnum

_HEADER = struct.Struct("<IQIIHIIHHQ")

DATA_ENTRY_HEADER_SIZE = _HEADER.size

PERSISTENT = 0


class DataFlag(IntEnum):
    """The operation an entry records."""

    DELETE = 0
    SET = 1
    LPUSH = 2
    RPUSH = 3
    LREM = 4
    LPOP = 5
    RPOP = 6
    LSET = 7
    LTRIM = 8
    ZADD = 9
    ZREM = 10
    ZREM_RANGE_BY_RANK = 11
    ZPOP_MAX = 12
    ZPOP_MIN = 13


class DataStatus(IntEnum):
    """Transaction status of an entry."""

    UNCOMMITTED = 0
    COMMITTED = 1


class DataStructure(IntEnum):
    """The data structure an entry belongs to."""

    SET = 0
    SORTED_SET = 1
    BPTREE = 2
    LIST = 3


@dataclass
class MetaData:
    """Meta information of a data item."""

    key_size: int = 0
    value_size: int = 0
    timestamp: int = 0
    ttl: int = 0
    flag: int = 0
    bucket: bytes = b""
    bucket_size: int = 0
    tx_id: int = 0
    status: int = 0
    ds: int = 0


@dataclass
class Hint:
    """Index information locating a key in a data file."""

    key: bytes = b""
    file_id: int = 0
    meta: MetaData = field(default_factory=MetaData)
    data_pos: int = 0


def _fit(data: bytes | None, size: int) -> bytes:
    return (data or b"")[:size].ljust(size, b"\0")


@dataclass
class Entry:
    """A data item: key, value and metadata.

    Encoded layout, little endian: crc u32, timestamp u64, key size u32,
    value size u32, flag u16, ttl u32, bucket size u32, status u16,
    ds u16, tx id u64, then bucket, key and value bytes.
    """

    key: bytes | None = b""
    value: bytes | None = b""
    meta: MetaData = field(default_factory=MetaData)
    crc: int = 0
    position: int = 0

    def size(self) -> int:
        """Return the encoded size of the entry."""
        m = self.meta
        return DATA_ENTRY_HEADER_SIZE + m.key_size + m.value_size + m.bucket_size

    def encode(self) -> bytes:
        """Return the entry encoded with its checksum."""
        m = self.meta
        header_tail = _HEADER.pack(
            0,
            m.timestamp,
            m.key_size,
            m.value_size,
            m.flag,
            m.ttl,
            m.bucket_size,
            m.status,
            m.ds,
            m.tx_id,
        )[4:]
        payload = (
            header_tail
            + _fit(m.bucket, m.bucket_size)
            + _fit(self.key, m.key_size)
            + _fit(self.value, m.value_size)
        )
        return struct.pack("<I", zlib.crc32(payload)) + payload

    def is_zero(self) -> bool:
        """Return whether the entry is empty, as unwritten file space reads."""
        m = self.meta
        return self.crc == 0 and m.key_size == 0 and m.value_size == 0 and m.timestamp == 0

    def get_crc(self, buf: bytes) -> int:
        """Return the checksum of buf past its crc field, followed by bucket, key and value."""
        crc = zlib.crc32(buf[4:])
        crc = zlib.crc32(self.meta.bucket or b"", crc)
        crc = zlib.crc32(self.key or b"", crc)
        crc = zlib.crc32(self.value or b"", crc)
        return crc


def decode_meta(buf: bytes) -> MetaData:
    """Decode the metadata held in an entry header."""
    if len(buf) < DATA_ENTRY_HEADER_SIZE:
        raise ValueError(f"entry header needs {DATA_ENTRY_HEADER_SIZE} bytes, got {len(buf)}")
    (
        _crc,
        timestamp,
        key_size,
        value_size,
        flag,
        ttl,
        bucket_size,
        status,
        ds,
        tx_id,
    ) = _HEADER.unpack_from(buf)
    return MetaData(
        key_size=key_size,
        value_size=value_size,
        timestamp=timestamp,
        ttl=ttl,
        flag=flag,
        bucket_size=bucket_size,
        tx_id=tx_id,
        status=status,
        ds=ds,
    )