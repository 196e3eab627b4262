import zlib

import pytest

from nutsdb.entry import (
    DATA_ENTRY_HEADER_SIZE,
    PERSISTENT,
    DataFlag,
    DataStatus,
    Entry,
    MetaData,
    decode_meta,
)

EXPECTED_ENCODING = bytes(
    [
        172, 41, 40, 169, 1, 38, 64, 92, 0, 0, 0, 0, 8, 0, 0, 0, 8, 0, 0, 0, 1, 0, 0, 0,
        0, 0, 13, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 116, 101, 115, 116, 95,
        101, 110, 116, 114, 121, 0, 0, 0, 107, 101, 121, 95, 48, 48, 48, 49, 118, 97,
        108, 95, 48, 48, 48, 49,
    ]
)


@pytest.fixture
def entry():
    return Entry(
        key=b"key_0001",
        value=b"val_0001",
        meta=MetaData(
            key_size=len("key_0001"),
            value_size=len("val_0001"),
            timestamp=1547707905,
            ttl=PERSISTENT,
            bucket=b"test_entry",
            bucket_size=len("test_datafile"),
            flag=DataFlag.SET,
        ),
    )


def test_encode_matches_fixed_bytes(entry):
    assert entry.encode() == EXPECTED_ENCODING


def test_is_zero_false_for_filled_entry(entry):
    assert entry.is_zero() is False


def test_get_crc_value(entry):
    assert entry.get_crc(entry.encode()) == 529078050


def test_size(entry):
    assert entry.size() == DATA_ENTRY_HEADER_SIZE + 8 + 8 + 13
    assert len(entry.encode()) == entry.size()


def test_header_only_entry_encodes_to_42_bytes():
    e = Entry(key=b"", value=b"", meta=MetaData(timestamp=1))
    assert e.size() == 42
    assert len(e.encode()) == 42


def test_empty_entry_is_zero():
    assert Entry(meta=MetaData()).is_zero() is True


def test_encoded_crc_covers_body(entry):
    data = entry.encode()
    assert int.from_bytes(data[:4], "little") == zlib.crc32(data[4:])


def test_decode_meta_round_trip():
    meta = MetaData(
        key_size=3,
        value_size=5,
        timestamp=123456,
        ttl=60,
        flag=DataFlag.LPUSH,
        bucket=b"bk",
        bucket_size=2,
        tx_id=99,
        status=DataStatus.COMMITTED,
        ds=3,
    )
    encoded = Entry(key=b"abc", value=b"hello", meta=meta).encode()
    decoded = decode_meta(encoded)
    assert decoded.key_size == 3
    assert decoded.value_size == 5
    assert decoded.timestamp == 123456
    assert decoded.ttl == 60
    assert decoded.flag == DataFlag.LPUSH
    assert decoded.bucket_size == 2
    assert decoded.tx_id == 99
    assert decoded.status == DataStatus.COMMITTED
    assert decoded.ds == 3


def test_decode_meta_short_buffer():
    with pytest.raises(ValueError):
        decode_meta(b"\0" * 10)


def test_none_value_encodes_as_empty():
    e = Entry(key=b"k", value=None, meta=MetaData(key_size=1, timestamp=1))
    data = e.encode()
    assert data[DATA_ENTRY_HEADER_SIZE:] == b"k"