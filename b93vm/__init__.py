"""
b93vm: Befunge-93 Virtual Machine
=================================
Runs Befunge-93 programs (and an optional extension mode) on a fixed
80x25 toroidal grid with self-modifying code.

Architecture:
    ┌──────────┐    ┌──────────┐    ┌──────────┐    ┌──────────────┐
    │  Source  │───>│  Loader  │───>│   Grid   │───>│    Engine    │
    │ (bytes)  │    │(layout)  │    │ (81x25)  │    │ stack/IP/I-O │
    └──────────┘    └──────────┘    └──────────┘    └──────────────┘

    - loader.py:   byte filter + row layout into the grid buffer
    - grid.py:     cell buffer, traversal wrap vs g/p access bounds
    - stack.py:    signed 32-bit stack, pop() on empty gives 0
    - pointer.py:  instruction pointer and the four directions
    - terminal.py: stdin/stdout for . , & ~
    - engine.py:   fetch / dispatch / move loop
"""

__version__ = "0.1.0"

import logging
import sys

from .grid import Grid, GRID_ROWS, GRID_COLS, ROW_STRIDE
from .loader import ProgramLoadError, load_file, load_program, MAX_SOURCE_BYTES
from .stack import Stack
from .pointer import Direction, InstructionPointer
from .terminal import Terminal
from .engine import Engine, StopReason

log = logging.getLogger(__name__)


def interpret(path, extensions: bool = False, *, terminal: Terminal = None,
              seed: int = None, max_steps: int = None) -> StopReason:
    """Load the program at path and run it to completion.

    A source that cannot be opened is fatal: a diagnostic goes to stderr
    and the process exits with status 1 before any engine is created.

    Args:
        path: Befunge source file (str, bytes or os.PathLike).
        extensions: Enable hex digits a-f and the ' fetch instruction.
        terminal: I/O streams (default: process stdin/stdout).
        seed: PRNG seed for '?' (default: system entropy).
        max_steps: Optional instruction limit (default: unbounded).

    Returns:
        StopReason from Engine.run().
    """
    try:
        grid = load_file(path)
    except ProgramLoadError as e:
        log.debug("Load failed: %s (%s)", e.path, e.reason)
        sys.stderr.write(f"Error: could not open {e.path}\n")
        sys.exit(1)

    vm = Engine(grid, extensions=extensions, terminal=terminal, seed=seed)
    return vm.run(max_steps=max_steps)


__all__ = [
    "Grid", "GRID_ROWS", "GRID_COLS", "ROW_STRIDE",
    "ProgramLoadError", "load_file", "load_program", "MAX_SOURCE_BYTES",
    "Stack", "Direction", "InstructionPointer", "Terminal",
    "Engine", "StopReason", "interpret",
]
