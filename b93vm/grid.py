"""
Befunge-93 VM: Grid Store (program text + writable memory)

Layout:
  25 rows x 81 columns, one flat bytearray with an explicit row stride.
  Columns 0-79 hold program text. Column 80 is a padding column: blank
  at load, walked over by the instruction pointer like any other cell.

Two independent bounds regimes:
  wrap()       -- traversal extent 81x25, used only for IP movement
  in_bounds()  -- access extent 80x25, used only by the g/p instructions

Cells are 8-bit. Writes keep the low byte of the value; reads return the
byte as a signed char, which is what the reference host stores.
"""

from typing import List, Tuple


GRID_ROWS = 25
GRID_COLS = 80
ROW_STRIDE = GRID_COLS + 1  # includes the padding column

BLANK = 0


def to_signed8(value: int) -> int:
    """Interpret the low 8 bits of value as a two's complement char."""
    value &= 0xFF
    return value - 0x100 if value & 0x80 else value


class Grid:
    """Fixed-size toroidal character buffer.

    Usage:
        grid = Grid()
        grid.put(3, 0, ord('@'))
        grid.get(3, 0)     # 64
        grid.wrap(-1, 25)  # (80, 0)
    """

    rows = GRID_ROWS
    cols = ROW_STRIDE

    def __init__(self):
        self._cells = bytearray(GRID_ROWS * ROW_STRIDE)

    # --- Traversal extent ---

    def wrap(self, x: int, y: int) -> Tuple[int, int]:
        """Map any (x, y) back onto the 81x25 torus (true modulo)."""
        return x % self.cols, y % self.rows

    def cell(self, x: int, y: int) -> int:
        """Signed code of the cell at (x, y), wrapped onto the torus."""
        x, y = self.wrap(x, y)
        return to_signed8(self._cells[y * ROW_STRIDE + x])

    def char(self, x: int, y: int) -> str:
        """Cell at (x, y) as a one-character instruction string."""
        x, y = self.wrap(x, y)
        return chr(self._cells[y * ROW_STRIDE + x])

    # --- Access extent (g / p) ---

    @staticmethod
    def in_bounds(x: int, y: int) -> bool:
        return 0 <= x < GRID_COLS and 0 <= y < GRID_ROWS

    def get(self, x: int, y: int) -> int:
        """Read for the g instruction. Out of the 80x25 extent reads 0."""
        if not self.in_bounds(x, y):
            return 0
        return to_signed8(self._cells[y * ROW_STRIDE + x])

    def put(self, x: int, y: int, value: int) -> bool:
        """Write for the p instruction. Out of range writes are dropped.

        Returns True if the cell was written.
        """
        if not self.in_bounds(x, y):
            return False
        self._cells[y * ROW_STRIDE + x] = value & 0xFF
        return True

    # --- Raw buffer (loader side) ---

    def __len__(self) -> int:
        return len(self._cells)

    def store_raw(self, offset: int, byte: int) -> bool:
        """Write a byte at a flat buffer offset. Offsets past the end are dropped."""
        if not 0 <= offset < len(self._cells):
            return False
        self._cells[offset] = byte & 0xFF
        return True

    def raw(self) -> bytes:
        return bytes(self._cells)

    # --- Inspection ---

    def row_text(self, y: int) -> str:
        """Program text of row y: padding column excluded, trailing blanks trimmed."""
        start = y * ROW_STRIDE
        row = self._cells[start:start + GRID_COLS]
        return ''.join(' ' if b == BLANK else chr(b) for b in row).rstrip()

    def dump(self) -> str:
        lines: List[str] = [self.row_text(y) for y in range(GRID_ROWS)]
        while lines and not lines[-1]:
            lines.pop()
        return '\n'.join(lines)
