import io
from collections import deque

import pytest

from nutsdb.bptree import BINARY_NODE_SIZE, DEFAULT_INVALID_ADDRESS, BPTree, BPTreeError
from nutsdb.bptree_io import (
    BINARY_NODE_RECORD_SIZE,
    BinaryNode,
    is_valid_address,
    node_to_binary,
    read_node,
    write_node,
    write_nodes,
)
from nutsdb.entry import DataFlag, Entry, Hint, MetaData


def _insert(tree, key, data_pos):
    hint = Hint(key=key, data_pos=data_pos, meta=MetaData(flag=DataFlag.SET))
    tree.insert(key, Entry(key=key, value=b"v"), hint, True)


def _numeric_tree(count):
    tree = BPTree()
    for i in range(count):
        _insert(tree, f"{i:03d}".encode(), i * 10)
    return tree


def test_record_size_is_packed_struct():
    assert BINARY_NODE_RECORD_SIZE == 140
    assert len(BinaryNode().encode()) == BINARY_NODE_RECORD_SIZE


def test_binary_node_round_trip():
    node = BinaryNode(
        keys=[1, 2, 3],
        pointers=[7, 8, 9, 10],
        is_leaf=0,
        keys_num=3,
        address=BINARY_NODE_SIZE,
        next_address=DEFAULT_INVALID_ADDRESS,
    )
    decoded = BinaryNode.decode(node.encode())
    assert decoded.keys == [1, 2, 3, 0, 0, 0, 0]
    assert decoded.pointers == [7, 8, 9, 10, 0, 0, 0, 0]
    assert decoded.keys_num == 3
    assert decoded.address == BINARY_NODE_SIZE
    assert decoded.next_address == DEFAULT_INVALID_ADDRESS


def test_binary_node_rejects_too_many_keys():
    with pytest.raises(ValueError):
        BinaryNode(keys=list(range(8))).encode()


def test_decode_rejects_short_data():
    with pytest.raises(ValueError):
        BinaryNode.decode(b"\0" * 10)


def test_leaf_to_binary():
    tree = BPTree()
    _insert(tree, b"5", 100)
    _insert(tree, b"3", 200)
    decoded = BinaryNode.decode(node_to_binary(tree, tree.root))
    assert decoded.keys[:2] == [3, 5]
    assert decoded.pointers[:2] == [200, 100]
    assert decoded.is_leaf == 1
    assert decoded.keys_num == 2
    assert decoded.address == 0
    assert decoded.next_address == DEFAULT_INVALID_ADDRESS


def test_key_pos_map_enabled_but_empty_raises():
    tree = BPTree()
    _insert(tree, b"a", 1)
    tree.enabled_key_pos_map = True
    with pytest.raises(BPTreeError):
        node_to_binary(tree, tree.root)


def test_key_pos_map_supplies_offsets():
    tree = BPTree()
    _insert(tree, b"a", 1)
    _insert(tree, b"b", 2)
    tree.enabled_key_pos_map = True
    tree.set_key_pos_map({b"a": 42, b"b": 84})
    decoded = BinaryNode.decode(node_to_binary(tree, tree.root))
    assert decoded.keys[:2] == [42, 84]


def test_non_numeric_keys_encode_as_zero():
    tree = BPTree()
    _insert(tree, b"abc", 5)
    decoded = BinaryNode.decode(node_to_binary(tree, tree.root))
    assert decoded.keys[0] == 0
    assert decoded.pointers[0] == 5


def test_write_node_to_buffer():
    tree = _numeric_tree(3)
    buf = io.BytesIO()
    written = write_node(tree, tree.root, 0, False, buf)
    assert written == BINARY_NODE_RECORD_SIZE
    assert buf.getvalue() == node_to_binary(tree, tree.root)


def test_is_valid_address():
    assert is_valid_address(0)
    assert is_valid_address(BINARY_NODE_SIZE * 3)
    assert not is_valid_address(1)
    assert not is_valid_address(-BINARY_NODE_SIZE)


def test_read_node_invalid_address(tmp_path):
    path = tmp_path / "tree.bptidx"
    path.write_bytes(b"\0" * BINARY_NODE_SIZE)
    with pytest.raises(BPTreeError):
        read_node(path, 5)


def test_read_node_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_node(tmp_path / "absent.bptidx", 0)


def test_read_node_past_end(tmp_path):
    path = tmp_path / "tree.bptidx"
    path.write_bytes(b"\0" * 10)
    with pytest.raises(EOFError):
        read_node(path, BINARY_NODE_SIZE)


def test_write_nodes_empty_tree_raises(tmp_path):
    tree = BPTree()
    tree.filepath = str(tmp_path / "empty.bptidx")
    with pytest.raises(BPTreeError):
        write_nodes(tree, False)


def test_write_nodes_round_trip(tmp_path):
    tree = _numeric_tree(30)
    tree.filepath = str(tmp_path / "tree.bptidx")
    write_nodes(tree, True)

    pending = deque([tree.root])
    seen = 0
    while pending:
        node = pending.popleft()
        stored = read_node(tree.filepath, node.address)
        assert stored == BinaryNode.decode(node_to_binary(tree, node))
        assert stored.keys_num == node.keys_num
        if not node.is_leaf:
            assert stored.pointers[: node.keys_num + 1] == [c.address for c in node.pointers]
            pending.extend(node.pointers)
        seen += 1
    assert seen > 1


def test_leaf_chain_on_disk_lists_all_keys(tmp_path):
    tree = _numeric_tree(30)
    tree.filepath = str(tmp_path / "tree.bptidx")
    write_nodes(tree, False)

    leftmost = tree.find_leaf(b"000")
    address = leftmost.address
    keys, positions = [], []
    while address != DEFAULT_INVALID_ADDRESS:
        stored = read_node(tree.filepath, address)
        assert stored.is_leaf == 1
        keys.extend(stored.keys[: stored.keys_num])
        positions.extend(stored.pointers[: stored.keys_num])
        address = stored.next_address
    assert keys == list(range(30))
    assert positions == [i * 10 for i in range(30)]