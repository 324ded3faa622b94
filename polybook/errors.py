"""
Exceptions raised while loading book files and decoding book moves.
"""


class BookError(Exception):
    """Base class for every polybook error."""


class LoadError(BookError):
    """A book could not be loaded. No partial table is ever returned."""


class IoFailure(LoadError):
    """The byte source could not be opened or read."""

    def __init__(self, source, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Cannot read book {source!r}: {reason}")


class UnsortedKeys(LoadError):
    """Record `index` has a smaller key than the record before it."""

    def __init__(self, index: int, prev_key: int, key: int):
        self.index = index
        self.prev_key = prev_key
        self.key = key
        super().__init__(
            f"Book entries are not sorted by key: record {index} has key "
            f"0x{key:016x} after 0x{prev_key:016x}"
        )


class TruncatedRecord(LoadError):
    """The source ended in the middle of a record."""

    def __init__(self, index: int, bytes_read: int):
        self.index = index
        self.bytes_read = bytes_read
        super().__init__(
            f"Truncated record {index}: only {bytes_read} of 16 bytes present"
        )


class DecodeError(BookError):
    """A packed move could not be decoded."""


class InvalidPromotionCode(DecodeError):
    """Promotion bits hold 5, 6 or 7."""

    def __init__(self, code: int):
        self.code = code
        super().__init__(f"Invalid promotion code {code} (expected 0-4)")
