"""
Befunge-93 VM: Program Loader

Maps raw source bytes onto a Grid:
  - at most GRID_ROWS * GRID_COLS (2000) bytes are read, the rest of the
    file is ignored
  - UTF-8 continuation bytes (10xxxxxx) are dropped without moving the
    cursor; lead bytes of multi-byte sequences land in the grid as single
    cells
  - '\\n' moves the cursor to column 0 of the next row
  - every other byte (including '\\r') is stored and advances the cursor

The cursor is flat over the 81-column buffer, so a line longer than 80
bytes runs into the padding column and on into the next row. Bytes that
would land past the end of the buffer are dropped.
"""

import logging
import os
from typing import Union

from .grid import Grid, GRID_ROWS, GRID_COLS, ROW_STRIDE


MAX_SOURCE_BYTES = GRID_ROWS * GRID_COLS

NEWLINE = 0x0A
CONTINUATION_MASK = 0xC0
CONTINUATION_BITS = 0x80

log = logging.getLogger(__name__)


class ProgramLoadError(Exception):
    """Raised when a source file cannot be opened."""
    def __init__(self, path, reason: str = ""):
        self.path = os.fsdecode(path)
        self.reason = reason
        super().__init__(f"could not open {self.path}")


def read_source(path: Union[str, bytes, os.PathLike]) -> bytes:
    """Read up to MAX_SOURCE_BYTES raw bytes from path."""
    try:
        with open(path, 'rb') as f:
            return f.read(MAX_SOURCE_BYTES)
    except OSError as e:
        raise ProgramLoadError(path, e.strerror or str(e)) from e


def layout(data: bytes, grid: Grid) -> Grid:
    """Copy source bytes into grid following the row/column rules above."""
    cursor = 0
    column = 0
    for byte in data[:MAX_SOURCE_BYTES]:
        if byte & CONTINUATION_MASK == CONTINUATION_BITS:
            continue

        if byte == NEWLINE:
            cursor += ROW_STRIDE - column
            column = 0
            continue

        if not grid.store_raw(cursor, byte):
            log.debug("Dropped byte 0x%02X past end of grid (offset %d)", byte, cursor)
        cursor += 1
        column += 1
    return grid


def load_file(path: Union[str, bytes, os.PathLike]) -> Grid:
    """Build a populated Grid from a source file. Any os path type is accepted.

    Raises ProgramLoadError if the file cannot be opened.
    """
    path = os.fspath(path)
    data = read_source(path)
    log.debug("Read %d bytes from %s", len(data), os.fsdecode(path))
    return layout(data, Grid())


def load_program(path_or_data) -> Grid:
    """Build a populated Grid from a source path or raw bytes.

    str and os.PathLike are paths; bytes / bytearray are program text.
    Use load_file() for a bytes path.

    Raises ProgramLoadError if a path cannot be opened.
    """
    if isinstance(path_or_data, (str, os.PathLike)):
        return load_file(path_or_data)
    return layout(bytes(path_or_data), Grid())
