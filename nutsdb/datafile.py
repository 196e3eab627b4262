"""Data files holding encoded entries at byte offsets."""

from __future__ import annotations

import os

from .entry import DATA_ENTRY_HEADER_SIZE, Entry, decode_meta

DATA_SUFFIX = ".dat"


class DataFileError(Exception):
    """Base error for data file operations."""


class CrcError(DataFileError):
    """A stored checksum does not match the data read."""

    def __init__(self, message: str = "crc error") -> None:
        super().__init__(message)


class CapacityError(DataFileError):
    """The requested file capacity is not positive."""

    def __init__(self, message: str = "capacity error") -> None:
        super().__init__(message)


class DataFile:
    """A data file of fixed initial capacity read and written at offsets."""

    def __init__(self, path: str | os.PathLike[str], capacity: int) -> None:
        if capacity <= 0:
            raise CapacityError()
        self.path = os.fspath(path)
        self.file_id = 0
        self.write_off = 0
        self.actual_size = 0
        flags = os.O_CREAT | os.O_RDWR | getattr(os, "O_BINARY", 0)
        fd = os.open(self.path, flags, 0o644)
        self._file = open(fd, "r+b", buffering=0)
        if os.fstat(fd).st_size < capacity:
            self._file.truncate(capacity)

    def __enter__(self) -> DataFile:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _read_exact(self, length: int, off: int) -> bytes:
        if length == 0:
            return b""
        if off < 0 or off + length > os.fstat(self._file.fileno()).st_size:
            raise EOFError(f"cannot read {length} bytes at offset {off}")
        self._file.seek(off)
        chunks = []
        remaining = length
        while remaining:
            chunk = self._file.read(remaining)
            if not chunk:
                raise EOFError(f"cannot read {length} bytes at offset {off}")
            chunks.append(chunk)
            remaining -= len(chunk)
        return b"".join(chunks)

    def read_at(self, off: int) -> Entry | None:
        """Return the entry at off, or None where the file holds no entry.

        Raises EOFError when the file ends before the entry does and
        CrcError when the entry is corrupt.
        """
        header = self._read_exact(DATA_ENTRY_HEADER_SIZE, off)
        meta = decode_meta(header)
        entry = Entry(meta=meta, crc=int.from_bytes(header[:4], "little"))
        if entry.is_zero():
            return None

        off += DATA_ENTRY_HEADER_SIZE
        meta.bucket = self._read_exact(meta.bucket_size, off)
        off += meta.bucket_size
        entry.key = self._read_exact(meta.key_size, off)
        off += meta.key_size
        entry.value = self._read_exact(meta.value_size, off)

        if entry.get_crc(header) != entry.crc:
            raise CrcError()
        return entry

    def write_at(self, data: bytes, off: int) -> int:
        """Write data at off and return the number of bytes written."""
        self._file.seek(off)
        written = 0
        view = memoryview(data)
        while written < len(data):
            written += self._file.write(view[written:])
        return written

    def sync(self) -> None:
        """Flush the file's contents to stable storage."""
        os.fsync(self._file.fileno())

    def close(self) -> None:
        """Close the underlying file."""
        self._file.close()