"""Dynamic enforcement of shared/unique borrowing rules."""

from __future__ import annotations

import threading

_WORD_BITS = 64
_WORD_MASK = (1 << _WORD_BITS) - 1
UNIQUE_BIT = 1 << (_WORD_BITS - 1)
COUNTER_MASK = UNIQUE_BIT - 1


class AtomicBorrow:
    """A counter tracking shared borrows, with a top bit marking a unique borrow."""

    __slots__ = ("_value", "_lock")

    def __init__(self, value: int = 0) -> None:
        self._value = value & _WORD_MASK
        self._lock = threading.Lock()

    @property
    def value(self) -> int:
        """The raw state word."""
        return self._value

    def borrow(self) -> bool:
        """Take a shared borrow; return False if a unique borrow is held."""
        with self._lock:
            prev = self._value
            self._value = (prev + 1) & _WORD_MASK
            if prev & COUNTER_MASK == COUNTER_MASK:
                raise OverflowError("immutable borrow counter overflowed")
            if prev & UNIQUE_BIT:
                self._value = (self._value - 1) & _WORD_MASK
                return False
            return True

    def borrow_mut(self) -> bool:
        """Take a unique borrow; return False if any borrow is held."""
        with self._lock:
            if self._value == 0:
                self._value = UNIQUE_BIT
                return True
            return False

    def release(self) -> None:
        """Release a shared borrow."""
        with self._lock:
            if self._value == 0:
                raise RuntimeError("unbalanced release")
            if self._value & UNIQUE_BIT:
                raise RuntimeError("shared release of unique borrow")
            self._value -= 1

    def release_mut(self) -> None:
        """Release a unique borrow."""
        with self._lock:
            if not self._value & UNIQUE_BIT:
                raise RuntimeError("unique release of shared borrow")
            self._value &= ~UNIQUE_BIT & _WORD_MASK