"""
Befunge-93 VM: Instruction Pointer

Position (x = column, y = row) plus one of four unit directions.
Movement wraps on the grid's traversal extent (81x25).
"""

from enum import Enum
from typing import Tuple

from .grid import Grid


class Direction(Enum):
    SOUTH = (0, 1)
    NORTH = (0, -1)
    WEST = (-1, 0)
    EAST = (1, 0)

    @property
    def dx(self) -> int:
        return self.value[0]

    @property
    def dy(self) -> int:
        return self.value[1]


# Order used by the random-walk instruction
DIRECTIONS = (Direction.SOUTH, Direction.NORTH, Direction.WEST, Direction.EAST)


class InstructionPointer:
    """IP state. Starts at (0, 0) heading east."""

    __slots__ = ('x', 'y', 'direction')

    def __init__(self, x: int = 0, y: int = 0,
                 direction: Direction = Direction.EAST):
        self.x = x
        self.y = y
        self.direction = direction

    @property
    def position(self) -> Tuple[int, int]:
        return self.x, self.y

    def advance(self, grid: Grid):
        """Move one cell in the current direction, wrapping per axis."""
        self.x, self.y = grid.wrap(self.x + self.direction.dx,
                                   self.y + self.direction.dy)

    def reset(self):
        self.x = 0
        self.y = 0
        self.direction = Direction.EAST

    def __repr__(self) -> str:
        return f"IP(({self.x},{self.y}) {self.direction.name})"
