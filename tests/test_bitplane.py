"""
Tests for the packed-bit utilities and lit-pixel views.

Tests cover:
  - BitReader MSB-first order and span limits
  - BitCursor wraparound, skip and toggle
  - FramePixels / iter_lit_pixels / render_rows
"""

import pytest

from chip8_vm.cpu.state import FRAME_BYTES, ROW_BYTES
from chip8_vm.display.bitplane import BitCursor, BitReader
from chip8_vm.display.pixels import FramePixels, iter_lit_pixels, render_rows


# ─── BitReader ─────────────────────

class TestBitReader:
    def test_msb_first(self):
        assert list(BitReader(b"\xA0")) == [True, False, True, False,
                                            False, False, False, False]

    def test_span(self):
        bits = list(BitReader(b"\x00\xFF\x00", 1, 2))
        assert bits == [True] * 8

    def test_empty_span(self):
        assert list(BitReader(b"\xFF", 1)) == []

    def test_stop_clamped_to_data(self):
        assert len(list(BitReader(b"\x01\x02", 0, 10))) == 16


# ─── BitCursor ─────────────────────

class TestBitCursor:
    def test_get_and_advance(self):
        buf = bytearray(b"\x40")
        cursor = BitCursor(buf)
        assert cursor.get() is False
        cursor.advance()
        assert cursor.get() is True
        assert cursor.position == 1

    def test_toggle_returns_previous(self):
        buf = bytearray(b"\x80")
        cursor = BitCursor(buf)
        assert cursor.toggle() is True
        assert buf[0] == 0x00
        assert cursor.toggle() is False
        assert buf[0] == 0x80

    def test_wraps_to_window_start(self):
        buf = bytearray(4)
        cursor = BitCursor(buf, start=1, length=2)
        cursor.skip(15)
        assert cursor.position == 15
        cursor.advance()
        assert cursor.position == 0
        cursor.toggle()
        assert buf == bytearray(b"\x00\x80\x00\x00")

    def test_skip_full_laps(self):
        cursor = BitCursor(bytearray(1))
        cursor.skip(8 * 5 + 3)
        assert cursor.position == 3

    def test_empty_window_rejected(self):
        with pytest.raises(ValueError):
            BitCursor(bytearray(2), start=2)


# ─── Lit pixels ─────────────────────

def _frame(*points):
    buf = bytearray(FRAME_BYTES)
    for x, y in points:
        buf[y * ROW_BYTES + x // 8] |= 0x80 >> (x % 8)
    return buf


class TestPixels:
    def test_row_major_order(self):
        frame = _frame((63, 0), (0, 1), (5, 0), (10, 31))
        assert list(iter_lit_pixels(frame)) == [(5, 0), (63, 0), (0, 1), (10, 31)]

    def test_blank_frame(self):
        assert list(FramePixels(bytes(FRAME_BYTES))) == []

    def test_restartable(self):
        pixels = FramePixels(_frame((1, 1), (2, 2)))
        assert list(pixels) == list(pixels) == [(1, 1), (2, 2)]

    def test_len_and_contains(self):
        pixels = FramePixels(_frame((0, 0), (63, 31), (8, 4)))
        assert len(pixels) == 3
        assert (63, 31) in pixels
        assert (1, 0) not in pixels
        assert (64, 0) not in pixels

    def test_detached_from_source(self):
        frame = _frame((0, 0))
        pixels = FramePixels(frame)
        frame[0] = 0
        assert list(pixels) == [(0, 0)]

    def test_render_rows(self):
        rows = render_rows(_frame((0, 0), (63, 31)))
        assert len(rows) == 32
        assert all(len(r) == 64 for r in rows)
        assert rows[0] == "#" + "." * 63
        assert rows[31] == "." * 63 + "#"
