"""Mirrored ring buffers with always-contiguous read and write regions.

The storage of a ring holds its bytes twice in a row: a ``data`` half and a
``copy`` half.  The free region handed out for filling and the pending region
handed out for draining are each one contiguous ``memoryview``, even when they
wrap past the end of the ring.  The halves are brought back into agreement
whenever the ring is advanced or poked.

Rings are meant for single-threaded use, such as an event loop.
"""

from __future__ import annotations

import errno
import mmap
import os
from types import TracebackType
from typing import Optional, Type

__all__ = ["RingError", "Ring", "Ring16", "Ring32", "page_size"]

_WIDTHS = (16, 32)
_MAX_LGPAGES = 0xFF  # the page exponent is an unsigned byte


def page_size() -> int:
    """Return the system memory page size in bytes."""
    return mmap.PAGESIZE


class RingError(OSError):
    """Raised when a ring cannot be created or is used after closing."""

    def __init__(self, code: int, detail: str = "") -> None:
        message = os.strerror(code)
        if detail:
            message = f"{message}: {detail}"
        super().__init__(code, message)


class Ring:
    """A ring buffer of ``page_size * 2**lgpages`` bytes with mirrored storage.

    ``width`` is the bit width of the internal indices (16 or 32); it limits
    how large the ring may be, exactly as the index type would.
    """

    def __init__(
        self,
        lgpages: int,
        width: int = 32,
        page_size: Optional[int] = None,
    ) -> None:
        if width not in _WIDTHS:
            raise ValueError(f"width must be one of {_WIDTHS}, not {width!r}")
        if not isinstance(lgpages, int) or not 0 <= lgpages <= _MAX_LGPAGES:
            raise ValueError(f"lgpages must be an integer in [0, {_MAX_LGPAGES}]")
        psz = mmap.PAGESIZE if page_size is None else page_size
        if not isinstance(psz, int) or psz <= 0 or psz & (psz - 1):
            raise ValueError(f"page size must be a positive power of two, not {psz!r}")

        lgpagesz = psz.bit_length() - 1
        if lgpagesz + lgpages > width - 1:
            raise RingError(
                errno.EDOM,
                f"2**{lgpagesz + lgpages} bytes does not fit a {width}-bit ring",
            )

        self._width = width
        self._modulus = 1 << width
        self._capacity = 1 << (lgpagesz + lgpages)
        self._mask = self._capacity - 1
        self._start = 0
        self._end = 0
        self._buf: Optional[bytearray] = bytearray(2 * self._capacity)
        self._view: Optional[memoryview] = memoryview(self._buf)

    def __repr__(self) -> str:
        if self.closed:
            return f"<{type(self).__name__} closed>"
        return (
            f"<{type(self).__name__} capacity={self._capacity} "
            f"count={self.count()}>"
        )

    # -- state -----------------------------------------------------------

    def _require_open(self) -> memoryview:
        if self._view is None:
            raise RingError(errno.ENXIO, "ring is closed")
        return self._view

    @property
    def capacity(self) -> int:
        """Total size of the ring in bytes."""
        self._require_open()
        return self._capacity

    @property
    def mask(self) -> int:
        """``capacity - 1``, used to fold indices into the ring."""
        self._require_open()
        return self._mask

    @property
    def closed(self) -> bool:
        """True once :meth:`close` has been called."""
        return self._view is None

    def count(self) -> int:
        """Number of bytes held and waiting to be drained."""
        self._require_open()
        count = (self._end - self._start) % self._modulus
        if count > self._capacity:
            raise RingError(errno.EOVERFLOW, "ring indices are inconsistent")
        return count

    def free(self) -> int:
        """Number of bytes that can still be filled."""
        return self._capacity - self.count()

    def full(self) -> bool:
        """True when no free space remains."""
        return self.count() == self._capacity

    def empty(self) -> bool:
        """True when nothing is waiting to be drained."""
        self._require_open()
        return self._start == self._end

    # -- buffers ---------------------------------------------------------

    def read_buffer(self) -> memoryview:
        """Return the contiguous free region to fill, e.g. with ``recv_into``.

        The view is empty when the ring is full.  Call :meth:`read_advance`
        with the number of bytes actually placed in it.
        """
        view = self._require_open()
        avail = self.free()
        pos = self._end & self._mask
        return view[pos:pos + avail]

    def write_buffer(self) -> memoryview:
        """Return the contiguous pending region to drain, e.g. with ``send``.

        The view is empty when the ring is empty.  Call :meth:`write_advance`
        with the number of bytes actually consumed from it.
        """
        view = self._require_open()
        count = self.count()
        pos = self._start & self._mask
        return view[pos:pos + count]

    def _check_advance(self, amount: int) -> None:
        if not isinstance(amount, int):
            raise TypeError("advance amount must be an integer")
        if amount < 0 or amount > self._capacity:
            raise ValueError(
                f"advance amount must be in [0, {self._capacity}] or -1, not {amount}"
            )

    def _mirror(self, pos: int, length: int) -> None:
        """Make both halves agree on ``length`` bytes starting at ``pos``."""
        view = self._require_open()
        cap = self._capacity
        head_end = min(pos + length, cap)
        if head_end > pos:
            view[pos + cap:head_end + cap] = view[pos:head_end]
        tail = pos + length - cap
        if tail > 0:
            view[0:tail] = view[cap:cap + tail]

    def read_advance(self, nread: int) -> int:
        """Record ``nread`` bytes placed into the read buffer.

        A value of -1 marks a failed read and leaves the ring unchanged.
        Returns ``nread``.
        """
        self._require_open()
        if nread == -1:
            return nread
        self._check_advance(nread)
        self._mirror(self._end & self._mask, nread)
        self._end = (self._end + nread) % self._modulus
        return nread

    def write_advance(self, nwrit: int) -> int:
        """Record ``nwrit`` bytes drained from the write buffer.

        A value of -1 marks a failed write and leaves the ring unchanged.
        Returns ``nwrit``.
        """
        self._require_open()
        if nwrit == -1:
            return nwrit
        self._check_advance(nwrit)
        self._start = (self._start + nwrit) % self._modulus
        return nwrit

    # -- raw access ------------------------------------------------------

    def _check_index(self, idx: int) -> None:
        if not isinstance(idx, int) or idx < 0 or (idx & self._mask) != idx:
            raise IndexError(f"ring index {idx!r} out of range")

    def peek(self, idx: int) -> int:
        """Return the byte at ``idx`` as seen through the data half."""
        view = self._require_open()
        self._check_index(idx)
        return view[idx]

    def poke(self, idx: int, val: int) -> None:
        """Store ``val`` at ``idx`` through the copy half."""
        view = self._require_open()
        self._check_index(idx)
        if not isinstance(val, int) or not 0 <= val <= 0xFF:
            raise ValueError(f"byte value must be in [0, 255], not {val!r}")
        view[self._capacity + idx] = val
        view[idx] = val

    # -- lifetime --------------------------------------------------------

    def close(self) -> None:
        """Release the storage; closing twice raises :class:`RingError`."""
        self._require_open()
        self._view = None
        self._buf = None
        self._start = 0
        self._end = 0

    def __enter__(self) -> "Ring":
        self._require_open()
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        if not self.closed:
            self.close()


class Ring16(Ring):
    """A ring with 16-bit indices."""

    def __init__(self, lgpages: int, page_size: Optional[int] = None) -> None:
        super().__init__(lgpages, width=16, page_size=page_size)


class Ring32(Ring):
    """A ring with 32-bit indices."""

    def __init__(self, lgpages: int, page_size: Optional[int] = None) -> None:
        super().__init__(lgpages, width=32, page_size=page_size)