import errno
import mmap

import pytest

from mirrorring.ring import Ring, Ring16, Ring32, RingError, page_size


def fill(rb, data):
    view = rb.read_buffer()
    view[: len(data)] = data
    return rb.read_advance(len(data))


def drain(rb, n=None):
    view = rb.write_buffer()
    n = len(view) if n is None else n
    out = bytes(view[:n])
    rb.write_advance(n)
    return out


def test_page_size_matches_system():
    assert page_size() == mmap.PAGESIZE


def test_default_capacity_is_one_page():
    with Ring32(0) as rb:
        assert rb.capacity == page_size()
        assert rb.mask == rb.capacity - 1


@pytest.mark.parametrize("lgpages", [0, 1, 2, 3])
def test_capacity_scales_with_lgpages(lgpages):
    with Ring16(lgpages, page_size=4096) as rb:
        assert rb.capacity == 4096 << lgpages
        assert rb.capacity & rb.mask == 0


def test_ring16_rejects_too_many_pages():
    with pytest.raises(RingError) as info:
        Ring16(4, page_size=4096)
    assert info.value.errno == errno.EDOM


def test_ring32_rejects_too_many_pages():
    with pytest.raises(RingError) as info:
        Ring32(20, page_size=4096)
    assert info.value.errno == errno.EDOM


def test_ring16_largest_allowed():
    rb = Ring16(11, page_size=16)
    assert rb.capacity == 16 << 11
    rb.close()


def test_invalid_width():
    with pytest.raises(ValueError):
        Ring(0, width=64)


@pytest.mark.parametrize("psz", [0, -4096, 3000])
def test_invalid_page_size(psz):
    with pytest.raises(ValueError):
        Ring32(0, page_size=psz)


def test_negative_lgpages():
    with pytest.raises(ValueError):
        Ring32(-1)


def test_new_ring_is_empty():
    with Ring32(0, page_size=16) as rb:
        assert rb.empty()
        assert not rb.full()
        assert rb.count() == 0
        assert rb.free() == rb.capacity
        assert len(rb.write_buffer()) == 0
        assert len(rb.read_buffer()) == rb.capacity


def test_fill_then_drain_round_trip():
    with Ring32(0, page_size=16) as rb:
        assert fill(rb, b"hello") == 5
        assert rb.count() == 5
        assert rb.free() == rb.capacity - 5
        assert drain(rb) == b"hello"
        assert rb.empty()


def test_full_ring():
    with Ring32(0, page_size=16) as rb:
        payload = bytes(range(rb.capacity))
        fill(rb, payload)
        assert rb.full()
        assert len(rb.read_buffer()) == 0
        assert drain(rb) == payload


def test_write_buffer_is_contiguous_across_wrap():
    with Ring32(0, page_size=16) as rb:
        cap = rb.capacity
        fill(rb, b"x" * (cap - 4))
        drain(rb)
        payload = b"ABCDEFGHIJ"
        assert len(rb.read_buffer()) == cap
        fill(rb, payload)
        assert drain(rb) == payload
        # the wrapped tail is visible at the start of the data half
        assert bytes(rb.peek(i) for i in range(len(payload) - 4)) == payload[4:]


def test_read_buffer_is_contiguous_across_wrap():
    with Ring16(0, page_size=16) as rb:
        cap = rb.capacity
        fill(rb, b"." * (cap - 3))
        drain(rb)
        view = rb.read_buffer()
        assert len(view) == cap
        data = bytes(range(100, 100 + cap))
        view[:] = data
        rb.read_advance(cap)
        assert drain(rb) == data


def test_sixteen_bit_indices_wrap():
    with Ring16(0, page_size=16) as rb:
        for n in range(6000):
            chunk = bytes([(n + k) % 256 for k in range(11)])
            fill(rb, chunk)
            assert rb.count() == 11
            assert drain(rb) == chunk
        assert rb.empty()


def test_partial_drain_keeps_order():
    with Ring32(0, page_size=16) as rb:
        fill(rb, b"abcdef")
        assert drain(rb, 2) == b"ab"
        fill(rb, b"ghij")
        assert drain(rb) == b"cdefghij"


def test_failed_advance_is_ignored():
    with Ring32(0, page_size=16) as rb:
        fill(rb, b"abc")
        assert rb.read_advance(-1) == -1
        assert rb.write_advance(-1) == -1
        assert rb.count() == 3


def test_advance_beyond_capacity_rejected():
    with Ring32(0, page_size=16) as rb:
        with pytest.raises(ValueError):
            rb.read_advance(rb.capacity + 1)
        with pytest.raises(ValueError):
            rb.write_advance(rb.capacity + 1)


def test_poke_shows_through_peek():
    with Ring32(0, page_size=16) as rb:
        rb.poke(3, 0xAB)
        assert rb.peek(3) == 0xAB
        rb.poke(rb.mask, 7)
        assert rb.peek(rb.mask) == 7


def test_poke_visible_in_write_buffer():
    with Ring32(0, page_size=16) as rb:
        fill(rb, b"zzzz")
        rb.poke(1, ord("Q"))
        assert drain(rb) == b"zQzz"


def test_peek_out_of_range():
    with Ring32(0, page_size=16) as rb:
        with pytest.raises(IndexError):
            rb.peek(rb.capacity)
        with pytest.raises(IndexError):
            rb.poke(rb.capacity, 1)


def test_poke_rejects_non_byte():
    with Ring32(0, page_size=16) as rb:
        with pytest.raises(ValueError):
            rb.poke(0, 256)


def test_close_twice_raises_enxio():
    rb = Ring32(0, page_size=16)
    rb.close()
    assert rb.closed
    with pytest.raises(RingError) as info:
        rb.close()
    assert info.value.errno == errno.ENXIO


def test_use_after_close_raises():
    rb = Ring32(0, page_size=16)
    rb.close()
    with pytest.raises(RingError):
        rb.count()
    with pytest.raises(RingError):
        rb.read_buffer()


def test_context_manager_closes():
    with Ring32(0, page_size=16) as rb:
        assert not rb.closed
    assert rb.closed


def test_context_manager_tolerates_explicit_close():
    with Ring32(0, page_size=16) as rb:
        rb.close()
    assert rb.closed