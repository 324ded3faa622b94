"""
Polyglot move encoding.

A book move is packed into 16 bits:

    bits  0-2   to file
    bits  3-5   to rank
    bits  6-8   from file
    bits  9-11  from rank
    bits 12-14  promotion (0 none, 1 N, 2 B, 3 R, 4 Q)

The value 0 means "no move" and is never decoded as a1a1.
Castling is stored as king-takes-rook (e1h1, e1a1, e8h8, e8a8).
"""
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

import chess

from .errors import InvalidPromotionCode


class Promotion(IntEnum):
    """Promotion piece, valued by its Polyglot code."""
    NONE = 0
    KNIGHT = 1
    BISHOP = 2
    ROOK = 3
    QUEEN = 4


# Promotion -> python-chess piece type
_CHESS_PROMOTIONS = {
    Promotion.NONE: None,
    Promotion.KNIGHT: chess.KNIGHT,
    Promotion.BISHOP: chess.BISHOP,
    Promotion.ROOK: chess.ROOK,
    Promotion.QUEEN: chess.QUEEN,
}


@dataclass(frozen=True)
class DecodedMove:
    """A book move split into its fields. Files and ranks are 0-7."""
    from_file: int
    from_rank: int
    to_file: int
    to_rank: int
    promotion: Promotion = Promotion.NONE

    @property
    def from_square(self) -> int:
        return self.from_rank * 8 + self.from_file

    @property
    def to_square(self) -> int:
        return self.to_rank * 8 + self.to_file

    def to_chess_move(self) -> chess.Move:
        """
        Convert to a python-chess move.

        Legality is not checked and castling keeps the book's
        king-takes-rook form.
        """
        return chess.Move(self.from_square, self.to_square,
                          promotion=_CHESS_PROMOTIONS[self.promotion])

    def uci(self) -> str:
        return self.to_chess_move().uci()


def decode_move(packed: int) -> Optional[DecodedMove]:
    """
    Unpack a 16-bit book move.

    Args:
        packed: Raw move field of a book record

    Returns:
        The decoded move, or None when packed is 0

    Raises:
        InvalidPromotionCode: promotion bits are 5, 6 or 7
    """
    if packed == 0:
        return None

    to_file = packed & 0x7
    to_rank = (packed >> 3) & 0x7
    from_file = (packed >> 6) & 0x7
    from_rank = (packed >> 9) & 0x7
    code = (packed >> 12) & 0x7

    if code > Promotion.QUEEN:
        raise InvalidPromotionCode(code)

    return DecodedMove(from_file, from_rank, to_file, to_rank, Promotion(code))


def encode_move(move: DecodedMove) -> int:
    """Pack a move into its 16-bit book form (inverse of decode_move)."""
    for name in ("from_file", "from_rank", "to_file", "to_rank"):
        value = getattr(move, name)
        if not 0 <= value <= 7:
            raise ValueError(f"{name} out of range: {value}")

    return (move.to_file
            | move.to_rank << 3
            | move.from_file << 6
            | move.from_rank << 9
            | Promotion(move.promotion) << 12)
