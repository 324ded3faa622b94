#!/usr/bin/env python3
"""
Look up a position in a Polyglot opening book

Usage:
    polybook [book.bin] [--fen FEN | --moves e2e4 e7e5 ...] [--all] [--verbose]

Prints the position key and every book entry for it.
"""

import sys
import logging
import argparse

import chess

from .boards import fingerprint
from .book import load_book
from .config import DEFAULT_BOOK_PATH
from .errors import DecodeError, LoadError


def board_from_args(fen=None, moves=None):
    """
    Build the position to look up

    Args:
        fen: FEN string (default: starting position)
        moves: UCI moves played from that position

    Returns:
        chess.Board
    """
    board = chess.Board(fen) if fen else chess.Board()
    for uci in moves or []:
        move = chess.Move.from_uci(uci)
        if move not in board.legal_moves:
            raise ValueError(f"illegal move in this position: {uci}")
        board.push(move)
    return board


def print_entries(book, board):
    key = fingerprint(board)
    entries = book.entries_for(key)

    print(f"Position: {board.fen()}")
    print(f"Key: 0x{key:016x}")
    print()

    if not entries:
        print("Not in book")
        return 0

    print(f"{'Move':<8}{'Weight':>8}{'Learn':>12}")
    for entry in entries:
        try:
            move = entry.decode_move()
            move_str = move.uci() if move else "(none)"
        except DecodeError as e:
            move_str = f"?? ({e})"
        print(f"{move_str:<8}{entry.weight:>8}{entry.learn:>12}")

    return len(entries)


def print_summary(book):
    print(f"Records: {len(book):,}")
    print(f"Positions: {book.distinct_keys():,}")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Query a Polyglot opening book")
    parser.add_argument("book", nargs='?', default=str(DEFAULT_BOOK_PATH),
                        help=f"Book file (default: {DEFAULT_BOOK_PATH})")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--fen", help="Position to look up (default: start position)")
    group.add_argument("--moves", nargs='+', metavar="UCI",
                       help="Moves played from the start position")
    parser.add_argument("--all", action="store_true", help="Also print a summary of the whole book")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    args = parser.parse_args(argv)

    if args.verbose and not logging.getLogger().handlers:
        logging.basicConfig(level=logging.DEBUG)

    try:
        book = load_book(args.book)
    except LoadError as e:
        print(f"Error: {e}")
        return 1

    try:
        board = board_from_args(args.fen, args.moves)
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    if args.all:
        print_summary(book)
        print()

    print_entries(book, board)
    return 0


if __name__ == "__main__":
    sys.exit(main())
