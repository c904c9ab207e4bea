"""
Befunge-93 VM: Terminal I/O (stdin / stdout collaborator)

Byte-oriented, like the C stdio the reference interpreter runs on:
  .  write decimal value followed by one space
  ,  write the low 8 bits of the value as a single byte
  &  scanf-style decimal read: skip whitespace, optional sign, digits
  ~  read a single byte

Simplifications:
  - '&' on malformed input or EOF yields 0; the offending byte is left
    in the stream for the next read (one byte of pushback, as ungetc)
  - '~' at EOF yields -1
  - stdout is flushed before every read so prompts show up first
"""

import io
import logging
import sys
from collections import deque
from typing import Optional

from .grid import to_signed8


WHITESPACE = b' \t\n\r\v\f'
EOF = -1

log = logging.getLogger(__name__)


def _binary(stream):
    """Return the byte layer of a text stream, or the stream itself."""
    if isinstance(stream, io.TextIOBase) and hasattr(stream, 'buffer'):
        return stream.buffer
    return stream


class Terminal:
    """Standard input / output as seen by the VM.

    Streams default to the process's stdin / stdout byte buffers and are
    resolved at construction. Pass io.BytesIO objects to drive a program
    from tests:

        out = io.BytesIO()
        term = Terminal(stdin=io.BytesIO(b"42\\n"), stdout=out)
    """

    def __init__(self, stdin=None, stdout=None):
        self._in = _binary(stdin if stdin is not None else sys.stdin)
        self._out = _binary(stdout if stdout is not None else sys.stdout)
        # Text streams without a byte layer (e.g. io.StringIO) get latin-1
        self._text_out = isinstance(self._out, io.TextIOBase)
        self._text_in = isinstance(self._in, io.TextIOBase)
        self._pushback: deque = deque()

    # --- Output ---

    def _write(self, data: bytes):
        if self._text_out:
            self._out.write(data.decode('latin-1'))
        else:
            self._out.write(data)

    def write_number(self, value: int):
        self._write(f"{value} ".encode('ascii'))

    def write_char(self, value: int):
        self._write(bytes([value & 0xFF]))

    def flush(self):
        flush = getattr(self._out, 'flush', None)
        if flush is not None:
            flush()

    # --- Input ---

    def _next_byte(self) -> Optional[int]:
        if self._pushback:
            return self._pushback.popleft()
        data = self._in.read(1)
        if not data:
            return None
        if self._text_in:
            return ord(data) & 0xFF
        return data[0]

    def _unread(self, byte: int):
        self._pushback.appendleft(byte)

    def read_int(self) -> int:
        """Read one decimal integer. Malformed input or EOF gives 0."""
        self.flush()
        b = self._next_byte()
        while b is not None and b in WHITESPACE:
            b = self._next_byte()
        if b is None:
            log.debug("EOF while reading a number")
            return 0

        sign = 1
        if b in b'+-':
            if b == ord('-'):
                sign = -1
            b = self._next_byte()

        value = 0
        digits = 0
        while b is not None and ord('0') <= b <= ord('9'):
            value = value * 10 + (b - ord('0'))
            digits += 1
            b = self._next_byte()

        if b is not None:
            self._unread(b)

        if digits == 0:
            log.debug("Malformed number on stdin")
            return 0
        return sign * value

    def read_char(self) -> int:
        """Read one byte as a signed char. EOF gives -1."""
        self.flush()
        b = self._next_byte()
        if b is None:
            return EOF
        return to_signed8(b)

    def inject(self, data: bytes):
        """Queue bytes ahead of the input stream (test harness / REPL use)."""
        self._pushback.extend(data)
