# mirrorring

`mirrorring` provides byte ring buffers for single-threaded code such as event
loops. The free space you can read into is always handed out as one contiguous
`memoryview`, and so is the data waiting to be written out. You never have to
split an I/O call in two around the end of the buffer.

Each ring keeps its bytes twice in a row: a data half followed by a copy half.
A region that runs past the end of the data half simply continues into the copy
half. The two halves are brought back into agreement whenever the ring is
advanced or poked. The capacity is always a power of two times the page size:

    capacity = page_size() * 2 ** lgpages

## Installation

    pip install mirrorring

## Ring types

Two variants are provided. They differ only in the width of their indices,
which limits how large they can grow.

- `Ring16(lgpages, page_size=None)`: 16-bit indices. With 4 KiB pages,
  `lgpages` can be 0 to 3, giving 4 KiB to 32 KiB.
- `Ring32(lgpages, page_size=None)`: 32-bit indices. With 4 KiB pages,
  `lgpages` can be 0 to 19, giving up to 2 GiB.

Both are subclasses of `Ring`, which can also be built directly with
`Ring(lgpages, width=32, page_size=None)`, where `width` is 16 or 32.
`page_size` defaults to the system page size; if given, it must be a positive
power of two.

Errors on construction:

- a size the index width cannot hold raises `RingError` (errno `EDOM`);
- a `width` other than 16 or 32, an `lgpages` outside 0 to 255, or a page size
  that is not a positive power of two raises `ValueError`.

`RingError` is a subclass of `OSError` and carries an `errno` value.

## Usage

Data flows into the ring and then out of it:

1. Get the free space with `read_buffer()` and fill it.
2. Record what arrived with `read_advance(n)`.
3. Get the pending data with `write_buffer()` and send from it.
4. Record what was sent with `write_advance(n)`.

```python
from mirrorring import Ring32

with Ring32(0) as ring:
    ring.capacity              # e.g. 4096 on a system with 4 KiB pages

    # Fill: read_buffer() is the free space, as one contiguous memoryview.
    buf = ring.read_buffer()
    data = b"hello, world"
    buf[: len(data)] = data
    ring.read_advance(len(data))

    ring.count()               # 12
    ring.free()                # capacity - 12

    # Drain: write_buffer() is the pending data, as one contiguous memoryview.
    out = ring.write_buffer()
    bytes(out)                 # b"hello, world"
    ring.write_advance(len(out))

    ring.empty()               # True
```

`read_buffer()` returns an empty view when the ring is full, and
`write_buffer()` returns an empty view when it is empty. Bytes written into a
read buffer only become part of the ring, and are only mirrored between the
halves, once `read_advance` is called.

An advance of `-1` means the I/O call failed: it leaves the ring untouched and
is returned as is, so an I/O call's result can be passed straight through.
Other advance amounts must be integers from 0 to `capacity`; anything else
raises `ValueError` (or `TypeError` for a non-integer).

Members of a `Ring`:

- `capacity` and `mask` (properties): the size in bytes and `capacity - 1`.
- `count()`, `free()`, `full()`, `empty()`: how much is pending and how much
  room is left.
- `peek(idx)` reads the byte at position `idx` of the data half;
  `poke(idx, val)` stores a byte through the copy half, and the data half sees
  it too. `idx` must lie in `[0, capacity)` (else `IndexError`) and `val` in
  `[0, 255]` (else `ValueError`).
- `close()` releases the storage; `closed` (property) tells whether it has
  been. Leaving a `with` block closes the ring.

Any use of a closed ring, including closing it again, raises `RingError` with
errno `ENXIO`.

`page_size()` returns the system page size that rings are built from by
default.

## What this package does not do

The storage is an ordinary in-process byte array of twice the capacity, kept in
step by copying; it is not a shared-memory object mapped twice by the
operating system, and it cannot be shared with other processes. Rings are not
safe to use from several threads at once.

## Tests

    pip install -e .[test]
    pytest