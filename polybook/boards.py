"""
python-chess adapter for the hashing protocol.
"""
from typing import Iterable, Optional

import chess

from .zobrist import SHORT, compute_hash


class ChessBoardView:
    """BoardView over a chess.Board. The board is only read."""

    def __init__(self, board: chess.Board):
        self.board = board

    def occupied_squares(self, color: bool, piece_type: int) -> Iterable[int]:
        return self.board.pieces(piece_type, color)

    def has_castling_right(self, color: bool, side: str) -> bool:
        if side == SHORT:
            return self.board.has_kingside_castling_rights(color)
        return self.board.has_queenside_castling_rights(color)

    def en_passant_file(self) -> Optional[int]:
        # python-chess records the square after every double push
        if self.board.ep_square is None:
            return None
        return chess.square_file(self.board.ep_square)

    def side_to_move(self) -> bool:
        return self.board.turn


def fingerprint(board: chess.Board) -> int:
    """Polyglot key of a python-chess board."""
    return compute_hash(ChessBoardView(board))
