import pytest

from nutsdb.bptree_root_idx import (
    BPTREE_ROOT_IDX_HEADER_SIZE,
    BPTreeRootIdx,
    read_bptree_root_idx_at,
    sort_fid,
)
from nutsdb.datafile import CrcError


@pytest.fixture
def first():
    return BPTreeRootIdx(
        fid=0, root_off=0, start=b"key001", end=b"key010", start_size=6, end_size=6
    )


def test_persist_and_read(tmp_path, first):
    path = tmp_path / "bri_test.idx"
    assert first.persist(path, 0, True) == 40

    with open(path, "rb") as fd:
        idx = read_bptree_root_idx_at(fd, 0)
    assert idx.start == b"key001"
    assert idx.end == b"key010"
    assert idx.is_zero() is False
    assert idx.size() == 40


def test_sort_fid_descending(first):
    second = BPTreeRootIdx(
        fid=1, root_off=0, start=b"key011", end=b"key020", start_size=6, end_size=6
    )
    group = [first, second]
    sort_fid(group, lambda p, q: p.fid > q.fid)
    assert [idx.fid for idx in group] == [1, 0]


def test_read_past_end(tmp_path, first):
    path = tmp_path / "bri_test.idx"
    first.persist(path, 0, False)
    with open(path, "rb") as fd, pytest.raises(EOFError):
        read_bptree_root_idx_at(fd, 100)


def test_read_zero_region_returns_none(tmp_path):
    path = tmp_path / "zero.idx"
    path.write_bytes(b"\0" * 64)
    with open(path, "rb") as fd:
        assert read_bptree_root_idx_at(fd, 0) is None


def test_crc_mismatch(tmp_path, first):
    path = tmp_path / "bad.idx"
    data = bytearray(first.encode())
    data[-1] ^= 0xFF
    path.write_bytes(bytes(data))
    with open(path, "rb") as fd, pytest.raises(CrcError):
        read_bptree_root_idx_at(fd, 0)


def test_consecutive_records(tmp_path, first):
    path = tmp_path / "multi.idx"
    second = BPTreeRootIdx(fid=3, root_off=112, start=b"a", end=b"zz")
    first.persist(path, 0, False)
    second.persist(path, first.size(), False)
    with open(path, "rb") as fd:
        a = read_bptree_root_idx_at(fd, 0)
        b = read_bptree_root_idx_at(fd, a.size())
    assert (b.fid, b.root_off, b.start, b.end) == (3, 112, b"a", b"zz")


def test_encode_layout(first):
    data = first.encode()
    assert len(data) == BPTREE_ROOT_IDX_HEADER_SIZE + 12
    assert data[20:24] == (6).to_bytes(4, "little")
    assert data[BPTREE_ROOT_IDX_HEADER_SIZE:] == b"key001key010"


def test_sizes_default_to_key_lengths():
    idx = BPTreeRootIdx(fid=2, start=b"abc", end=b"defgh")
    assert (idx.start_size, idx.end_size, idx.size()) == (3, 5, 36)


def test_empty_record_is_zero():
    assert BPTreeRootIdx().is_zero() is True