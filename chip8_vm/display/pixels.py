"""
Renderer-facing views of a packed framebuffer.

FramePixels yields lit (x, y) coordinates lazily and can be iterated any
number of times; render_rows() turns the buffer into text rows for
terminal output.
"""

from __future__ import annotations
from typing import Iterator, List, Tuple

from ..cpu.state import ROW_BYTES, SCREEN_HEIGHT, SCREEN_WIDTH
from .bitplane import BitReader


def iter_lit_pixels(frame_buffer) -> Iterator[Tuple[int, int]]:
    """Yield (x, y) for every set bit, row by row, left to right."""
    for y in range(SCREEN_HEIGHT):
        start = y * ROW_BYTES
        for x, lit in enumerate(BitReader(frame_buffer, start, start + ROW_BYTES)):
            if lit:
                yield (x, y)


class FramePixels:
    """Restartable sequence of lit pixel coordinates."""

    def __init__(self, frame_buffer):
        self._frame = bytes(frame_buffer)

    def __iter__(self) -> Iterator[Tuple[int, int]]:
        return iter_lit_pixels(self._frame)

    def __len__(self) -> int:
        return sum(bin(byte).count('1') for byte in self._frame)

    def __contains__(self, point) -> bool:
        x, y = point
        if not (0 <= x < SCREEN_WIDTH and 0 <= y < SCREEN_HEIGHT):
            return False
        return bool(self._frame[y * ROW_BYTES + x // 8] & (0x80 >> (x % 8)))


def render_rows(frame_buffer, lit: str = '#', dark: str = '.') -> List[str]:
    rows = []
    for y in range(SCREEN_HEIGHT):
        start = y * ROW_BYTES
        bits = BitReader(frame_buffer, start, start + ROW_BYTES)
        rows.append(''.join(lit if b else dark for b in bits))
    return rows
