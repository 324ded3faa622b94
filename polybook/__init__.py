"""
Polyglot opening book lookup and Zobrist hashing.
"""
from .book import BookTable, Entry, load_book, write_book
from .boards import ChessBoardView, fingerprint
from .errors import (BookError, DecodeError, InvalidPromotionCode, IoFailure,
                     LoadError, TruncatedRecord, UnsortedKeys)
from .moves import DecodedMove, Promotion, decode_move, encode_move
from .zobrist import BoardView, PositionView, compute_hash

__version__ = "0.1.0"
