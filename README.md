# nutsdb

The storage building blocks of a small embeddable key/value store, in pure
Python with no dependencies.

| Module | What it holds |
| --- | --- |
| `nutsdb.entry` | The on-disk record format: `Entry`, `MetaData`, `Hint`, the `DataFlag`, `DataStatus` and `DataStructure` enums, and `decode_meta` for entry headers. Entries are checksummed with CRC32. |
| `nutsdb.datafile` | `DataFile`, a segment file created at a given capacity, with `write_at`, `read_at` (returns an `Entry`, or `None` over unwritten space), `sync` and `close`. It is also a context manager. |
| `nutsdb.bptree` | `BPTree`, an in-memory B+ tree of order 8 mapping keys to `Record` objects, with `find`, `insert`, `range`, `find_range`, `all`, `prefix_scan` and `prefix_search_scan`. |
| `nutsdb.bptree_io` | `BinaryNode`, the fixed-size binary form of a tree node, with `node_to_binary`, `write_node`, `write_nodes`, `is_valid_address` and `read_node`. |
| `nutsdb.bptree_root_idx` | `BPTreeRootIdx` records (file id, root offset, start and end keys) with `persist`, `read_bptree_root_idx_at` and `sort_fid`. |
| `nutsdb.bucket_meta` | `BucketMeta` (a bucket's start and end keys) and `read_bucket_meta`. |
| `nutsdb.lists` | `ListIndex`: Redis-style lists keyed by name (`lpush`, `rpush`, `lpop`, `rpop`, `lrange`, `lrem`, `lset`, `ltrim`, ...). |
| `nutsdb.sets` | `SetIndex`: Redis-style sets keyed by name (`sadd`, `srem`, `spop`, `sdiff`, `sinter`, `sunion`, `smove`, ...). |
| `nutsdb.zset` | `SortedSet`: a skip list ordered by score, then key, with rank and score range queries. |

## Installation

```
pip install .
```

## Examples

A B+ tree index:

```python
from nutsdb.bptree import BPTree
from nutsdb.entry import DataFlag, Entry, Hint, MetaData

tree = BPTree()
for i in range(100):
    key = f"key_{i:03d}".encode()
    value = f"val_{i:03d}".encode()
    tree.insert(key, Entry(key=key, value=value),
                Hint(key=key, meta=MetaData(flag=DataFlag.SET)), True)

record = tree.find(b"key_001")
print(record.entry.value)                      # b'val_001'
records = tree.range(b"key_000", b"key_009")   # 10 records
records, skipped = tree.prefix_scan(b"key_", 0, 10)
print(tree.valid_key_count)                    # 100
```

Lookups that find nothing raise an exception such as `KeyNotFoundError` or
`ScansNoResultError`, both subclasses of `BPTreeError`. Inserting a key again
with a `DataFlag.DELETE` hint marks it deleted and lowers `valid_key_count`.

Entries in a data file:

```python
from nutsdb.datafile import DataFile
from nutsdb.entry import Entry, MetaData

entry = Entry(key=b"key", value=b"val",
              meta=MetaData(key_size=3, value_size=3, timestamp=1, bucket=b"b", bucket_size=1))
with DataFile("/tmp/0.dat", 1024) as df:
    df.write_at(entry.encode(), 0)
    print(df.read_at(0).value)    # b'val'
```

A corrupt entry raises `CrcError`; reading past the end of the file raises
`EOFError`.

A sorted set:

```python
from nutsdb.zset import SortedSet

ss = SortedSet()
ss.put("key1", 1, b"a")
ss.put("key2", 10, b"b")
print(ss.peek_min().key)       # key1
print(ss.find_rank("key2"))    # 2
```

Lists and sets:

```python
from nutsdb.lists import ListIndex
from nutsdb.sets import SetIndex

lists = ListIndex()
lists.rpush("myList", b"a", b"b", b"c")
print(lists.lrange("myList", 0, -1))   # [b'a', b'b', b'c']

sets = SetIndex()
sets.sadd("mySet", b"Hello", b"World")
print(sets.sis_member("mySet", b"Hello"))   # True
```

## What this package does not do

It provides the parts, not the database. There is no database object that
opens a directory, no transactions, no buckets managed on your behalf, no
rebuilding of indexes from data files on start-up, no merging of old data
files, and no backup. Data files are read and written with plain file I/O;
there is no memory-mapped mode. Nothing here runs as a command or a server.

## Running the tests

```
pip install .[test]
pytest
```