"""Byte ring buffers whose free space and pending data are always contiguous."""

__version__ = "0.1.0"
__all__ = ["Ring", "Ring16", "Ring32", "RingError", "page_size"]