"""
Tests for Polyglot Zobrist hashing.
"""
import random

import chess
import chess.polyglot
import pytest

from polybook import zobrist
from polybook.boards import ChessBoardView, fingerprint
from polybook.keys import EN_PASSANT_OFFSET, NUM_KEYS, POLYGLOT_KEYS, TURN_OFFSET, key_at
from polybook.zobrist import (BLACK, KING, KNIGHT, LONG, PAWN, SHORT, WHITE,
                              PositionView, compute_hash, piece_index, piece_key)


# Reference keys from the Polyglot format description
REFERENCE_KEYS = [
    ([], 0x463B96181691FC9C),
    (["e2e4"], 0x823C9B50FD114196),
    (["e2e4", "d7d5"], 0x0756B94461C50FB0),
    (["e2e4", "d7d5", "e4e5"], 0x662FAFB965DB29D4),
    (["e2e4", "d7d5", "e4e5", "f7f5"], 0x22A48B5A8E47FF78),
    (["e2e4", "d7d5", "e4e5", "f7f5", "e1e2"], 0x652A607CA3F242C1),
    (["e2e4", "d7d5", "e4e5", "f7f5", "e1e2", "e8f7"], 0x00FDD303C946BDD9),
    (["a2a4", "b7b5", "h2h4", "b5b4", "c2c4"], 0x3C8123EA7B067637),
    (["a2a4", "b7b5", "h2h4", "b5b4", "c2c4", "b4c3", "a1a3"], 0x5C3F9B829B279560),
]


def _board(moves):
    board = chess.Board()
    for uci in moves:
        board.push_uci(uci)
    return board


def test_key_table_shape():
    assert POLYGLOT_KEYS.shape == (NUM_KEYS,)
    assert key_at(0) == 0x9D39247E33776D41
    assert key_at(TURN_OFFSET) == 0xF8D626AAAF278509
    assert not POLYGLOT_KEYS.flags.writeable


def test_start_position():
    assert fingerprint(chess.Board()) == 0x463B96181691FC9C


@pytest.mark.parametrize("moves,expected", REFERENCE_KEYS)
def test_reference_positions(moves, expected):
    assert fingerprint(_board(moves)) == expected


def test_matches_python_chess_on_random_games():
    rng = random.Random(1234)
    for _ in range(50):
        board = chess.Board()
        for _ in range(rng.randint(0, 80)):
            moves = list(board.legal_moves)
            if not moves:
                break
            board.push(rng.choice(moves))
            assert fingerprint(board) == chess.polyglot.zobrist_hash(board)


def test_piece_index_order():
    # Black before white for every piece kind
    expected = [
        (BLACK, zobrist.PAWN), (WHITE, zobrist.PAWN),
        (BLACK, zobrist.KNIGHT), (WHITE, zobrist.KNIGHT),
        (BLACK, zobrist.BISHOP), (WHITE, zobrist.BISHOP),
        (BLACK, zobrist.ROOK), (WHITE, zobrist.ROOK),
        (BLACK, zobrist.QUEEN), (WHITE, zobrist.QUEEN),
        (BLACK, zobrist.KING), (WHITE, zobrist.KING),
    ]
    assert [piece_index(color, kind) for color, kind in expected] == list(range(12))


def test_piece_index_rejects_unknown():
    with pytest.raises(ValueError):
        piece_index(WHITE, 7)


def test_removing_piece_changes_hash_by_its_key():
    board = _board(["e2e4", "e7e5", "g1f3"])
    before = fingerprint(board)
    board.remove_piece_at(chess.F3)
    after = fingerprint(board)
    assert before ^ after == piece_key(WHITE, KNIGHT, chess.F3)


def test_toggle_piece_on_plain_view():
    view = PositionView(pieces={chess.E1: (WHITE, KING), chess.E8: (BLACK, KING)})
    before = compute_hash(view)
    view.pieces[chess.D4] = (BLACK, PAWN)
    assert before ^ compute_hash(view) == piece_key(BLACK, PAWN, chess.D4)


def test_en_passant_ignored_without_capturing_pawn():
    # After 1. e4 there is no black pawn on d4/f4
    board = _board(["e2e4"])
    assert board.ep_square == chess.E3
    without_ep = board.copy()
    without_ep.ep_square = None
    assert fingerprint(board) == fingerprint(without_ep)


def test_en_passant_included_with_capturing_pawn():
    board = _board(["e2e4", "d7d5", "e4e5", "f7f5"])
    without_ep = board.copy()
    without_ep.ep_square = None
    diff = fingerprint(board) ^ fingerprint(without_ep)
    assert diff == key_at(EN_PASSANT_OFFSET + chess.square_file(chess.F6))


def test_en_passant_pawn_on_wrong_rank():
    # White pawn on e4 is adjacent to the f-file but cannot capture en passant
    kings = {chess.E1: (WHITE, KING), chess.E8: (BLACK, KING)}
    view = PositionView(pieces={**kings, chess.E4: (WHITE, PAWN), chess.F5: (BLACK, PAWN)},
                        ep_file=5, turn=WHITE)
    no_ep = PositionView(pieces=dict(view.pieces), ep_file=None, turn=WHITE)
    assert compute_hash(view) == compute_hash(no_ep)


def test_en_passant_black_to_move():
    kings = {chess.E1: (WHITE, KING), chess.E8: (BLACK, KING)}
    pieces = {**kings, chess.C4: (WHITE, PAWN), chess.B4: (BLACK, PAWN)}
    with_ep = PositionView(pieces=pieces, ep_file=2, turn=BLACK)
    no_ep = PositionView(pieces=pieces, ep_file=None, turn=BLACK)
    assert compute_hash(with_ep) ^ compute_hash(no_ep) == key_at(EN_PASSANT_OFFSET + 2)


def test_castling_keys_in_order():
    view = PositionView()
    base = compute_hash(view)
    for i, right in enumerate([(WHITE, SHORT), (WHITE, LONG), (BLACK, SHORT), (BLACK, LONG)]):
        with_right = PositionView(castling=frozenset([right]))
        assert compute_hash(with_right) ^ base == key_at(768 + i)


def test_turn_key():
    white = PositionView(turn=WHITE)
    black = PositionView(turn=BLACK)
    assert compute_hash(black) == 0
    assert compute_hash(white) == key_at(TURN_OFFSET)


def test_chess_board_view_queries():
    view = ChessBoardView(_board(["e2e4"]))
    assert set(view.occupied_squares(WHITE, KING)) == {chess.E1}
    assert view.has_castling_right(BLACK, LONG)
    assert view.en_passant_file() == 4
    assert view.side_to_move() == BLACK
