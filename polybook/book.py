"""
Polyglot opening book reader.

A book file is a headerless run of 16-byte big-endian records
(key, move, weight, learn) sorted by key. The whole file is loaded
into a numpy structured array and looked up with binary search.
"""
import logging
import os
import struct
from dataclasses import dataclass
from typing import BinaryIO, Iterable, Iterator, List, Optional, Union

import numpy as np

from .config import RECORD_DTYPE, RECORD_FORMAT, RECORD_SIZE
from .errors import IoFailure, TruncatedRecord, UnsortedKeys
from .moves import DecodedMove, decode_move
from .zobrist import BoardView, compute_hash

logger = logging.getLogger(__name__)

BookSource = Union[str, "os.PathLike[str]", BinaryIO]


@dataclass(frozen=True)
class Entry:
    """One book record: a candidate move for the position with this key."""
    key: int
    raw_move: int
    weight: int
    learn: int

    def decode_move(self) -> Optional[DecodedMove]:
        """Decoded move, None for the empty move. Raises InvalidPromotionCode."""
        return decode_move(self.raw_move)

    def pack(self) -> bytes:
        return struct.pack(RECORD_FORMAT, self.key, self.raw_move, self.weight, self.learn)


class BookTable:
    """
    Sorted, read-only table of book records.

    Build with load_book() or BookTable.from_bytes(); the records are
    never modified afterwards, so one table can serve any number of readers.
    """

    def __init__(self, records: np.ndarray):
        # Own copy; the caller's array is left writable
        records = np.array(records, dtype=RECORD_DTYPE, copy=True)
        _check_sorted(records["key"])
        records.setflags(write=False)
        self._records = records
        # Native-endian copy of the keys for searchsorted
        self._keys = records["key"].astype(np.uint64)
        self._keys.setflags(write=False)

    @classmethod
    def from_bytes(cls, data: bytes) -> "BookTable":
        """
        Parse an in-memory book image.

        Raises:
            UnsortedKeys: a key is smaller than its predecessor
            TruncatedRecord: len(data) is not a multiple of 16

        Complete records are checked for order before a short tail is
        reported, so the first problem in file order wins.
        """
        full, partial = divmod(len(data), RECORD_SIZE)
        if full:
            records = np.frombuffer(data, dtype=RECORD_DTYPE, count=full)
        else:
            records = np.zeros(0, dtype=RECORD_DTYPE)
        if partial:
            _check_sorted(records["key"])
            raise TruncatedRecord(full, partial)
        return cls(records)

    def __len__(self) -> int:
        return len(self._records)

    def __getitem__(self, index: Union[int, slice]) -> Union[Entry, List[Entry]]:
        if isinstance(index, slice):
            return [_entry(record) for record in self._records[index]]
        return _entry(self._records[index])

    def __iter__(self) -> Iterator[Entry]:
        for record in self._records:
            yield _entry(record)

    def __contains__(self, key: int) -> bool:
        start, end = self._bounds(key)
        return start < end

    def keys(self) -> np.ndarray:
        """All keys in file order (read-only)."""
        return self._keys

    def distinct_keys(self) -> int:
        return len(np.unique(self._keys))

    def _bounds(self, key: int):
        if not 0 <= key < 1 << 64:
            return 0, 0
        target = np.uint64(key)
        start = int(np.searchsorted(self._keys, target, side="left"))
        end = int(np.searchsorted(self._keys, target, side="right"))
        return start, end

    def entries_for(self, key: int) -> List[Entry]:
        """
        All records for a position key, in file order.

        Args:
            key: Polyglot key of the position

        Returns:
            Matching entries (empty list when the position is not in the book)
        """
        start, end = self._bounds(key)
        return [_entry(record) for record in self._records[start:end]]

    def probe(self, view: BoardView) -> List[Entry]:
        """Entries for the position seen through `view`."""
        return self.entries_for(compute_hash(view))


def _entry(record) -> Entry:
    return Entry(
        key=int(record["key"]),
        raw_move=int(record["move"]),
        weight=int(record["weight"]),
        learn=int(record["learn"]),
    )


def _check_sorted(keys: np.ndarray):
    keys = keys.astype(np.uint64)
    bad = np.flatnonzero(keys[1:] < keys[:-1])
    if len(bad):
        index = int(bad[0]) + 1
        raise UnsortedKeys(index, int(keys[index - 1]), int(keys[index]))


def _read_all(stream: BinaryIO, source) -> bytes:
    try:
        data = stream.read()
    except OSError as e:
        raise IoFailure(source, str(e)) from e
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise IoFailure(source, "source is not opened in binary mode")
    return bytes(data)


def load_book(source: BookSource) -> BookTable:
    """
    Load a Polyglot book.

    Args:
        source: Path to a .bin file, or a readable binary file object.
            Paths are opened and closed here; file objects are left open.

    Returns:
        The loaded table

    Raises:
        IoFailure: the source could not be opened or read
        TruncatedRecord: the data ends inside a record
        UnsortedKeys: records are not sorted by key
    """
    if hasattr(source, "read"):
        data = _read_all(source, getattr(source, "name", source))
        name = getattr(source, "name", "<stream>")
    else:
        try:
            with open(source, "rb") as f:
                data = _read_all(f, source)
        except OSError as e:
            raise IoFailure(source, e.strerror or str(e)) from e
        name = os.fspath(source)

    table = BookTable.from_bytes(data)
    logger.debug("Loaded %d book entries from %s", len(table), name)
    return table


def write_book(entries: Iterable[Entry], destination: Union[str, "os.PathLike[str]", BinaryIO]) -> int:
    """
    Write entries in book format, sorted by key (stable for equal keys).

    Returns:
        Number of records written
    """
    ordered = sorted(entries, key=lambda e: e.key)
    payload = b"".join(entry.pack() for entry in ordered)

    if hasattr(destination, "write"):
        destination.write(payload)
    else:
        with open(destination, "wb") as f:
            f.write(payload)

    logger.debug("Wrote %d book entries", len(ordered))
    return len(ordered)
