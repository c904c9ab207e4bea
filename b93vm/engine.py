"""
Befunge-93 VM: Execution Engine

Ties together:
  - Grid store (grid.py), code and memory in one buffer
  - Value stack (stack.py)
  - Instruction pointer (pointer.py)
  - Terminal I/O (terminal.py)
  - A private PRNG for the '?' instruction

Execution model, one step:
  1. Fetch the character under the IP
  2. Look it up in the dispatch table (unknown characters -> no-op)
  3. Run the handler: stack / grid / direction / I/O effects
  4. Advance the IP one cell, wrapping on the 81x25 torus

Stop reasons:
  - HALT:     '@' executed
  - TIMEOUT:  caller-supplied max_steps reached (run() is unbounded by default)
  - BREAK:    IP reached a breakpoint cell

Division or modulo by zero is not trapped: the ZeroDivisionError raised by
the host propagates out of step() / run().
"""

import logging
import random
from collections import deque
from enum import Enum
from typing import Callable, Deque, Dict, Optional, Set, Tuple

from .grid import Grid
from .pointer import Direction, DIRECTIONS, InstructionPointer
from .stack import Stack
from .terminal import Terminal


log = logging.getLogger(__name__)

# Most recent trace lines kept by enable_trace()
TRACE_LIMIT = 10_000


class StopReason(Enum):
    HALT = 'HALT'
    TIMEOUT = 'TIMEOUT'
    BREAK = 'BREAK'


def _trunc_div(b: int, a: int) -> int:
    """C-style integer division (rounds toward zero)."""
    q = abs(b) // abs(a)
    return q if (b < 0) == (a < 0) else -q


def _trunc_mod(b: int, a: int) -> int:
    """C-style remainder (sign follows the dividend)."""
    return b - a * _trunc_div(b, a)


class Engine:
    """Befunge-93 virtual machine.

    Usage:
        grid = load_program('hello.bf')
        vm = Engine(grid, extensions=False)
        reason = vm.run()          # StopReason.HALT once '@' executes

    Tests drive I/O through a Terminal over BytesIO streams and can pin
    the PRNG with seed=...
    """

    def __init__(self, grid: Grid, extensions: bool = False,
                 terminal: Optional[Terminal] = None,
                 seed: Optional[int] = None):
        self.grid = grid
        self.extensions = extensions
        self.stack = Stack()
        self.ip = InstructionPointer()
        self.io = terminal if terminal is not None else Terminal()
        # random.Random() with no seed draws from os.urandom
        self.rng = random.Random(seed)

        self.steps = 0
        self.halted = False

        self._breakpoints: Set[Tuple[int, int]] = set()
        self._resume_from: Optional[Tuple[int, int]] = None

        self._trace = False
        self._trace_output: Deque[str] = deque(maxlen=TRACE_LIMIT)

        self._dispatch = self._build_dispatch()

    # ══════════════════════════════════════════════
    # Execution
    # ══════════════════════════════════════════════

    def step(self) -> Optional[StopReason]:
        """Execute one instruction and move. Returns a StopReason or None."""
        if self.halted:
            return StopReason.HALT

        pos = self.ip.position
        if pos in self._breakpoints and self._resume_from != pos:
            self._resume_from = pos
            return StopReason.BREAK
        self._resume_from = None

        ins = self.grid.char(*pos)

        if self._trace:
            line = f"({pos[0]},{pos[1]}) {ins!r} stack={self.stack.to_list()}"
            self._trace_output.append(line)
            log.debug(line)

        self.steps += 1
        if ins == '@':
            self.halted = True
            self.io.flush()
            return StopReason.HALT

        self._dispatch.get(ins, self._op_nop)()
        self.ip.advance(self.grid)
        return None

    def run(self, max_steps: Optional[int] = None) -> StopReason:
        """Run until '@', a breakpoint, or max_steps instructions.

        With max_steps=None a program without '@' runs forever.
        """
        executed = 0
        while max_steps is None or executed < max_steps:
            reason = self.step()
            if reason is not None:
                log.debug("Stopped (%s) at %r after %d steps",
                          reason.name, self.ip, self.steps)
                return reason
            executed += 1
        self.io.flush()
        log.debug("Step limit %d reached at %r", max_steps, self.ip)
        return StopReason.TIMEOUT

    # ══════════════════════════════════════════════
    # Dispatch
    # ══════════════════════════════════════════════

    def _build_dispatch(self) -> Dict[str, Callable[[], None]]:
        """Build character -> handler table.

        '@' is handled in step() since it must skip the trailing move.
        Anything absent from the table is a no-op.
        """
        table = {
            # ── Arithmetic ──
            '+': self._op_add,
            '-': self._op_sub,
            '*': self._op_mul,
            '/': self._op_div,
            '%': self._op_mod,

            # ── Logic / compare ──
            '!': self._op_not,
            '`': self._op_greater,

            # ── Direction ──
            '>': lambda: self._set_direction(Direction.EAST),
            '<': lambda: self._set_direction(Direction.WEST),
            '^': lambda: self._set_direction(Direction.NORTH),
            'v': lambda: self._set_direction(Direction.SOUTH),
            '?': self._op_random,
            '_': self._op_horizontal_if,
            '|': self._op_vertical_if,
            '#': self._op_bridge,

            # ── Stack ──
            ':': self._op_dup,
            '\\': self._op_swap,
            '$': self._op_discard,

            # ── String mode ──
            '"': self._op_string,

            # ── I/O ──
            '.': self._op_print_number,
            ',': self._op_print_char,
            '&': self._op_read_number,
            '~': self._op_read_char,

            # ── Grid memory ──
            'g': self._op_get,
            'p': self._op_put,
        }

        for digit in '0123456789':
            table[digit] = self._push_const(int(digit))

        if self.extensions:
            for offset, letter in enumerate('abcdef'):
                table[letter] = self._push_const(10 + offset)
            table["'"] = self._op_fetch

        return table

    def _push_const(self, value: int) -> Callable[[], None]:
        return lambda: self.stack.push(value)

    def _set_direction(self, direction: Direction):
        self.ip.direction = direction

    # ── Arithmetic handlers ──

    def _op_add(self):
        a = self.stack.pop()
        b = self.stack.pop()
        self.stack.push(b + a)

    def _op_sub(self):
        a = self.stack.pop()
        b = self.stack.pop()
        self.stack.push(b - a)

    def _op_mul(self):
        a = self.stack.pop()
        b = self.stack.pop()
        self.stack.push(b * a)

    def _op_div(self):
        a = self.stack.pop()
        b = self.stack.pop()
        if a == 0:
            raise ZeroDivisionError(f"integer division by zero at {self.ip!r}")
        self.stack.push(_trunc_div(b, a))

    def _op_mod(self):
        a = self.stack.pop()
        b = self.stack.pop()
        if a == 0:
            raise ZeroDivisionError(f"integer modulo by zero at {self.ip!r}")
        self.stack.push(_trunc_mod(b, a))

    # ── Logic handlers ──

    def _op_not(self):
        self.stack.push(1 if self.stack.pop() == 0 else 0)

    def _op_greater(self):
        a = self.stack.pop()
        b = self.stack.pop()
        self.stack.push(1 if b > a else 0)

    # ── Control flow handlers ──

    def _op_random(self):
        self.ip.direction = self.rng.choice(DIRECTIONS)

    def _op_horizontal_if(self):
        self.ip.direction = Direction.WEST if self.stack.pop() != 0 else Direction.EAST

    def _op_vertical_if(self):
        self.ip.direction = Direction.NORTH if self.stack.pop() != 0 else Direction.SOUTH

    def _op_bridge(self):
        self.ip.advance(self.grid)

    def _op_nop(self):
        pass

    # ── Stack handlers ──

    def _op_dup(self):
        self.stack.push(self.stack.peek())

    def _op_swap(self):
        self.stack.swap()

    def _op_discard(self):
        self.stack.pop()

    # ── String mode ──

    def _op_string(self):
        """Push cell codes up to the closing quote (not pushed).

        The row or column wraps back onto the opening quote, so this
        always terminates.
        """
        self.ip.advance(self.grid)
        while self.grid.char(*self.ip.position) != '"':
            self.stack.push(self.grid.cell(*self.ip.position))
            self.ip.advance(self.grid)

    # ── I/O handlers ──

    def _op_print_number(self):
        self.io.write_number(self.stack.pop())

    def _op_print_char(self):
        self.io.write_char(self.stack.pop())

    def _op_read_number(self):
        self.stack.push(self.io.read_int())

    def _op_read_char(self):
        self.stack.push(self.io.read_char())

    # ── Grid memory handlers ──

    def _op_get(self):
        y = self.stack.pop()
        x = self.stack.pop()
        self.stack.push(self.grid.get(x, y))

    def _op_put(self):
        y = self.stack.pop()
        x = self.stack.pop()
        value = self.stack.pop()
        if not self.grid.put(x, y, value):
            log.debug("Dropped p outside grid: (%d,%d) <- %d", x, y, value)

    # ── Extensions ──

    def _op_fetch(self):
        self.ip.advance(self.grid)
        self.stack.push(self.grid.cell(*self.ip.position))

    # ══════════════════════════════════════════════
    # Breakpoint API
    # ══════════════════════════════════════════════

    def add_breakpoint(self, pos: Tuple[int, int]):
        """Stop before executing the cell at pos. Resuming executes it."""
        self._breakpoints.add(self.grid.wrap(*pos))

    def remove_breakpoint(self, pos: Tuple[int, int]):
        self._breakpoints.discard(self.grid.wrap(*pos))

    def clear_breakpoints(self):
        self._breakpoints.clear()

    # ══════════════════════════════════════════════
    # Trace / Debug
    # ══════════════════════════════════════════════

    def enable_trace(self, enable: bool = True):
        """Record one line per executed instruction (last TRACE_LIMIT kept)."""
        self._trace = enable

    def get_trace(self) -> str:
        return '\n'.join(self._trace_output)

    def clear_trace(self):
        self._trace_output.clear()
