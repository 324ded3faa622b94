"""
Polyglot Zobrist hashing.

Computes the 64-bit position key used by Polyglot opening books. The
board is read through the narrow BoardView protocol, so any board
representation can be hashed; see boards.ChessBoardView for the
python-chess adapter.

Each call hashes the whole position from scratch.
"""
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, Optional, Protocol, Tuple

import numpy as np

from .keys import (CASTLING_OFFSET, EN_PASSANT_OFFSET, PIECE_OFFSET,
                   POLYGLOT_KEYS, TURN_OFFSET)

# Colors and piece types (same values as python-chess)
WHITE = True
BLACK = False
PAWN, KNIGHT, BISHOP, ROOK, QUEEN, KING = range(1, 7)
PIECE_TYPES = (PAWN, KNIGHT, BISHOP, ROOK, QUEEN, KING)

# Castling sides
SHORT = "short"
LONG = "long"

# (color, piece_type) -> Polyglot piece index. Black comes first for each kind.
PIECE_INDEX: Dict[Tuple[bool, int], int] = {
    (BLACK, PAWN): 0,
    (WHITE, PAWN): 1,
    (BLACK, KNIGHT): 2,
    (WHITE, KNIGHT): 3,
    (BLACK, BISHOP): 4,
    (WHITE, BISHOP): 5,
    (BLACK, ROOK): 6,
    (WHITE, ROOK): 7,
    (BLACK, QUEEN): 8,
    (WHITE, QUEEN): 9,
    (BLACK, KING): 10,
    (WHITE, KING): 11,
}

# Order of the four castling keys
CASTLING_ORDER = ((WHITE, SHORT), (WHITE, LONG), (BLACK, SHORT), (BLACK, LONG))


class BoardView(Protocol):
    """Read-only position queries needed for hashing. Squares are rank * 8 + file."""

    def occupied_squares(self, color: bool, piece_type: int) -> Iterable[int]:
        ...

    def has_castling_right(self, color: bool, side: str) -> bool:
        ...

    def en_passant_file(self) -> Optional[int]:
        ...

    def side_to_move(self) -> bool:
        ...


def piece_index(color: bool, piece_type: int) -> int:
    """Map a colored piece to its Polyglot index (0-11)."""
    try:
        return PIECE_INDEX[(bool(color), piece_type)]
    except KeyError:
        raise ValueError(f"Unknown piece: color={color!r}, type={piece_type!r}") from None


def piece_key(color: bool, piece_type: int, square: int) -> int:
    """Key for one piece on one square."""
    return int(POLYGLOT_KEYS[PIECE_OFFSET + 64 * piece_index(color, piece_type) + square])


def piece_hash(view: BoardView) -> int:
    hash_val = np.uint64(0)
    for color in (WHITE, BLACK):
        for piece_type in PIECE_TYPES:
            base = PIECE_OFFSET + 64 * piece_index(color, piece_type)
            for square in view.occupied_squares(color, piece_type):
                hash_val ^= POLYGLOT_KEYS[base + square]
    return int(hash_val)


def castling_hash(view: BoardView) -> int:
    hash_val = np.uint64(0)
    for i, (color, side) in enumerate(CASTLING_ORDER):
        if view.has_castling_right(color, side):
            hash_val ^= POLYGLOT_KEYS[CASTLING_OFFSET + i]
    return int(hash_val)


def en_passant_hash(view: BoardView) -> int:
    """
    En-passant key, included only if the side to move has a pawn that
    could capture onto the target file. A recorded file alone is not enough.
    """
    ep_file = view.en_passant_file()
    if ep_file is None:
        return 0

    color = view.side_to_move()
    # Rank the capturing pawn stands on: 5th for white, 4th for black
    capture_rank = 4 if color == WHITE else 3

    for square in view.occupied_squares(color, PAWN):
        if square // 8 == capture_rank and abs(square % 8 - ep_file) == 1:
            return int(POLYGLOT_KEYS[EN_PASSANT_OFFSET + ep_file])
    return 0


def turn_hash(view: BoardView) -> int:
    if view.side_to_move() == WHITE:
        return int(POLYGLOT_KEYS[TURN_OFFSET])
    return 0


def compute_hash(view: BoardView) -> int:
    """
    Compute the Polyglot key of a position.

    Args:
        view: Position to hash

    Returns:
        Unsigned 64-bit key
    """
    return piece_hash(view) ^ castling_hash(view) ^ en_passant_hash(view) ^ turn_hash(view)


@dataclass
class PositionView:
    """
    Minimal BoardView backed by plain data.

    Args:
        pieces: square -> (color, piece_type)
        castling: set of (color, side) rights held
        ep_file: en-passant target file (0-7) or None
        turn: side to move
    """
    pieces: Dict[int, Tuple[bool, int]] = field(default_factory=dict)
    castling: FrozenSet[Tuple[bool, str]] = frozenset()
    ep_file: Optional[int] = None
    turn: bool = WHITE

    def occupied_squares(self, color: bool, piece_type: int) -> Iterable[int]:
        return [square for square, piece in self.pieces.items()
                if piece == (color, piece_type)]

    def has_castling_right(self, color: bool, side: str) -> bool:
        return (color, side) in self.castling

    def en_passant_file(self) -> Optional[int]:
        return self.ep_file

    def side_to_move(self) -> bool:
        return self.turn
