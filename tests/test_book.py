"""
Tests for loading and probing Polyglot books.
"""
import builtins
import io
import struct

import chess
import numpy as np
import pytest

from polybook.book import BookTable, Entry, load_book, write_book
from polybook.boards import ChessBoardView, fingerprint
from polybook.config import RECORD_DTYPE, RECORD_SIZE
from polybook.errors import (InvalidPromotionCode, IoFailure, LoadError,
                             TruncatedRecord, UnsortedKeys)
from polybook.moves import DecodedMove, encode_move

START_KEY = 0x463B96181691FC9C
E2E4 = encode_move(DecodedMove(4, 1, 4, 3))
D2D4 = encode_move(DecodedMove(3, 1, 3, 3))
G1F3 = encode_move(DecodedMove(6, 0, 5, 2))


def _pack(key, move=0, weight=0, learn=0):
    return struct.pack(">QHHI", key, move, weight, learn)


@pytest.fixture
def book_bytes():
    return b"".join([
        _pack(0x10, E2E4, 1, 0),
        _pack(START_KEY, E2E4, 100, 7),
        _pack(START_KEY, D2D4, 90, 0),
        _pack(START_KEY, G1F3, 30, 0),
        _pack(0xFFFFFFFFFFFFFFFF, D2D4, 5, 0xFFFFFFFF),
    ])


@pytest.fixture
def book_path(tmp_path, book_bytes):
    path = tmp_path / "book.bin"
    path.write_bytes(book_bytes)
    return path


def test_load_from_path(book_path):
    book = load_book(book_path)
    assert len(book) == 5
    assert book[0] == Entry(0x10, E2E4, 1, 0)
    assert book[-1].learn == 0xFFFFFFFF


def test_load_from_str_path(book_path):
    assert len(load_book(str(book_path))) == 5


def test_load_from_file_object_leaves_it_open(book_bytes):
    stream = io.BytesIO(book_bytes)
    book = load_book(stream)
    assert len(book) == 5
    assert not stream.closed


def test_entries_for_returns_run_in_file_order(book_path):
    book = load_book(book_path)
    entries = book.entries_for(START_KEY)
    assert [e.raw_move for e in entries] == [E2E4, D2D4, G1F3]
    assert [e.weight for e in entries] == [100, 90, 30]
    assert all(e.key == START_KEY for e in entries)


def test_entries_for_missing_key(book_path):
    book = load_book(book_path)
    assert book.entries_for(0x11) == []
    assert book.entries_for(0) == []
    assert 0x11 not in book
    assert START_KEY in book


def test_entries_for_extreme_keys(book_path):
    book = load_book(book_path)
    assert len(book.entries_for(0xFFFFFFFFFFFFFFFF)) == 1
    assert book.entries_for(1 << 64) == []
    assert book.entries_for(-1) == []


def test_lookup_is_repeatable(book_path):
    book = load_book(book_path)
    first = book.entries_for(START_KEY)
    assert book.entries_for(START_KEY) == first
    assert len(book) == 5


def test_probe_start_position(book_path):
    book = load_book(book_path)
    entries = book.probe(ChessBoardView(chess.Board()))
    moves = [e.decode_move().uci() for e in entries]
    assert moves == ["e2e4", "d2d4", "g1f3"]
    for move in moves:
        assert chess.Move.from_uci(move) in chess.Board().legal_moves


def test_empty_book():
    book = BookTable.from_bytes(b"")
    assert len(book) == 0
    assert book.entries_for(START_KEY) == []


def test_truncated_record(book_bytes):
    with pytest.raises(TruncatedRecord) as excinfo:
        BookTable.from_bytes(book_bytes + b"\x00" * 5)
    assert excinfo.value.index == 5
    assert excinfo.value.bytes_read == 5


def test_truncated_file(tmp_path):
    path = tmp_path / "short.bin"
    path.write_bytes(_pack(1) + b"\x01\x02\x03")
    with pytest.raises(LoadError):
        load_book(path)


def test_unsorted_keys():
    data = _pack(5) + _pack(9) + _pack(3)
    with pytest.raises(UnsortedKeys) as excinfo:
        BookTable.from_bytes(data)
    err = excinfo.value
    assert (err.index, err.prev_key, err.key) == (2, 9, 3)
    assert "0x0000000000000009" in str(err)


def test_unsorted_keys_above_63_bits():
    data = _pack(0xF000000000000000) + _pack(0x1000000000000000)
    with pytest.raises(UnsortedKeys) as excinfo:
        BookTable.from_bytes(data)
    assert excinfo.value.prev_key == 0xF000000000000000


def test_missing_file(tmp_path):
    with pytest.raises(IoFailure):
        load_book(tmp_path / "nope.bin")


def test_text_stream_is_rejected():
    with pytest.raises(IoFailure):
        load_book(io.StringIO("not a book"))


def test_invalid_promotion_is_per_entry():
    bad = 5 << 12 | E2E4
    book = BookTable.from_bytes(_pack(START_KEY, E2E4, 1) + _pack(START_KEY, bad, 1))
    good, broken = book.entries_for(START_KEY)
    assert good.decode_move().uci() == "e2e4"
    with pytest.raises(InvalidPromotionCode):
        broken.decode_move()


def test_null_move_entry():
    book = BookTable.from_bytes(_pack(START_KEY, 0, 1))
    assert book.entries_for(START_KEY)[0].decode_move() is None


def test_table_is_read_only(book_path):
    book = load_book(book_path)
    with pytest.raises(ValueError):
        book.keys()[0] = 0


def test_write_book_sorts_stably(tmp_path):
    entries = [
        Entry(START_KEY, D2D4, 2, 0),
        Entry(0x1, E2E4, 1, 0),
        Entry(START_KEY, E2E4, 3, 0),
    ]
    path = tmp_path / "out.bin"
    assert write_book(entries, path) == 3
    assert path.stat().st_size == 48

    book = load_book(path)
    assert [e.key for e in book] == [0x1, START_KEY, START_KEY]
    assert [e.raw_move for e in book.entries_for(START_KEY)] == [D2D4, E2E4]


def test_book_built_from_games(tmp_path):
    board = chess.Board()
    entries = []
    for uci in ["e2e4", "e7e5", "g1f3", "b8c6"]:
        move = chess.Move.from_uci(uci)
        packed = encode_move(DecodedMove(chess.square_file(move.from_square),
                                         chess.square_rank(move.from_square),
                                         chess.square_file(move.to_square),
                                         chess.square_rank(move.to_square)))
        entries.append(Entry(fingerprint(board), packed, 1, 0))
        board.push(move)

    stream = io.BytesIO()
    write_book(entries, stream)
    stream.seek(0)
    book = load_book(stream)

    replay = chess.Board()
    for uci in ["e2e4", "e7e5", "g1f3", "b8c6"]:
        (entry,) = book.entries_for(fingerprint(replay))
        assert entry.decode_move().uci() == uci
        replay.push_uci(uci)
    assert book.entries_for(fingerprint(replay)) == []


def test_unsorted_keys_reported_before_short_tail():
    data = _pack(9) + _pack(3) + b"\x01\x02"
    with pytest.raises(UnsortedKeys) as excinfo:
        BookTable.from_bytes(data)
    assert (excinfo.value.index, excinfo.value.prev_key, excinfo.value.key) == (1, 9, 3)


def test_sorted_records_with_short_tail_are_truncated():
    with pytest.raises(TruncatedRecord) as excinfo:
        BookTable.from_bytes(_pack(3) + _pack(9) + b"\x01\x02")
    assert (excinfo.value.index, excinfo.value.bytes_read) == (2, 2)


def test_caller_array_stays_writable():
    records = np.zeros(2, dtype=RECORD_DTYPE)
    records["key"] = [1, 2]
    book = BookTable(records)
    records["key"][0] = 5
    assert records.flags.writeable
    assert book[0].key == 1


def test_record_dtype_matches_record_size():
    assert RECORD_DTYPE.itemsize == RECORD_SIZE


def test_path_closed_when_load_fails(tmp_path, monkeypatch):
    path = tmp_path / "short.bin"
    path.write_bytes(_pack(1) + b"\x01\x02\x03")
    opened = []
    real_open = builtins.open

    def recording_open(*args, **kwargs):
        f = real_open(*args, **kwargs)
        opened.append(f)
        return f

    monkeypatch.setattr(builtins, "open", recording_open)
    with pytest.raises(TruncatedRecord):
        load_book(path)
    monkeypatch.undo()

    assert len(opened) == 1
    assert opened[0].closed


def test_slicing_returns_entries(book_path):
    book = load_book(book_path)
    entries = book[1:3]
    assert [e.raw_move for e in entries] == [E2E4, D2D4]
    assert all(isinstance(e, Entry) for e in entries)
