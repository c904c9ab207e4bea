"""
Befunge-93 VM: Value Stack

Signed 32-bit integers, LIFO. pop() is total: an empty stack behaves as
if it held an endless supply of zeros.
"""

from typing import Iterable, List


INT32_MIN = -0x80000000
INT32_MAX = 0x7FFFFFFF


def wrap32(value: int) -> int:
    """Wrap an arbitrary Python int into the signed 32-bit range."""
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


class Stack:
    """Befunge value stack.

    Usage:
        s = Stack()
        s.push(7)
        s.pop()   # 7
        s.pop()   # 0, never raises
    """

    __slots__ = ('_items',)

    def __init__(self, items: Iterable[int] = ()):
        self._items: List[int] = [wrap32(v) for v in items]

    def push(self, value: int):
        self._items.append(wrap32(value))

    def pop(self) -> int:
        if not self._items:
            return 0
        return self._items.pop()

    def peek(self) -> int:
        """Top value without removing it (0 when empty)."""
        return self._items[-1] if self._items else 0

    def swap(self):
        """Exchange the top two values.

        One value: a 0 is slid in underneath it. Empty: nothing happens.
        """
        n = len(self._items)
        if n >= 2:
            self._items[-1], self._items[-2] = self._items[-2], self._items[-1]
        elif n == 1:
            self._items.insert(0, 0)

    def clear(self):
        self._items.clear()

    def to_list(self) -> List[int]:
        """Snapshot, bottom first."""
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __repr__(self) -> str:
        return f"Stack({self._items!r})"
