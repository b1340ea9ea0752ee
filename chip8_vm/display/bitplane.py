"""
Sequential bit access over packed monochrome bitmaps.

Bits are numbered MSB-first: bit 7 of byte 0 is position 0. Two helpers:

  BitReader  read-only iterator of booleans over a byte span
  BitCursor  read/modify/write cursor over a fixed window of a buffer,
             wrapping back to the window start after its last bit

The draw instruction reads sprite rows with BitReader and XORs them into a
framebuffer row with BitCursor; the pixel iterator uses BitReader alone.
"""

from __future__ import annotations
from typing import Iterator, Optional


class BitReader:
    """Iterate the bits of ``data[start:stop]`` MSB-first."""

    __slots__ = ('_data', '_index', '_stop', '_mask')

    def __init__(self, data, start: int = 0, stop: Optional[int] = None):
        self._data = data
        self._index = start
        self._stop = len(data) if stop is None else min(stop, len(data))
        self._mask = 0x80

    def __iter__(self) -> Iterator[bool]:
        return self

    def __next__(self) -> bool:
        if self._index >= self._stop:
            raise StopIteration
        bit = bool(self._data[self._index] & self._mask)
        self._mask >>= 1
        if not self._mask:
            self._mask = 0x80
            self._index += 1
        return bit


class BitCursor:
    """Mutable bit position inside ``buffer[start:start + length]``.

    Advancing past the last bit of the window continues at the first bit of
    the window, so a cursor over one framebuffer row wraps horizontally.
    """

    __slots__ = ('_buffer', '_start', '_length', '_index', '_mask')

    def __init__(self, buffer: bytearray, start: int = 0,
                 length: Optional[int] = None):
        self._buffer = buffer
        self._start = start
        self._length = len(buffer) - start if length is None else length
        if self._length <= 0:
            raise ValueError("BitCursor window must contain at least one byte")
        self._index = 0
        self._mask = 0x80

    @property
    def position(self) -> int:
        """Bit offset from the start of the window."""
        return self._index * 8 + 8 - self._mask.bit_length()

    def advance(self):
        self._mask >>= 1
        if not self._mask:
            self._mask = 0x80
            self._index += 1
            if self._index >= self._length:
                self._index = 0

    def skip(self, count: int):
        # Whole laps around the window are no-ops
        for _ in range(count % (self._length * 8)):
            self.advance()

    def get(self) -> bool:
        return bool(self._buffer[self._start + self._index] & self._mask)

    def toggle(self) -> bool:
        """Flip the current bit; return whether it was set before."""
        offset = self._start + self._index
        was_set = bool(self._buffer[offset] & self._mask)
        self._buffer[offset] ^= self._mask
        return was_set
