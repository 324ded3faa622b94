"""
Book format constants and default locations.
"""
import os
from pathlib import Path

import numpy as np

# key, move, weight, learn; all big-endian
RECORD_FORMAT = ">QHHI"
RECORD_SIZE = 16
RECORD_DTYPE = np.dtype([
    ("key", ">u8"),
    ("move", ">u2"),
    ("weight", ">u2"),
    ("learn", ">u4"),
])

DEFAULT_BOOK_PATH = Path(os.path.expanduser(
    os.environ.get("POLYBOOK_PATH", "book.bin")))
