"""
Machine state, font and program loader tests.
"""

import io
import logging

import pytest

from chip8_vm.cpu.font import FONT, GLYPH_HEIGHT, glyph_address
from chip8_vm.cpu.state import (
    FRAME_BYTES, MEMORY_SIZE, PROGRAM_CAPACITY, PROGRAM_START, MachineState,
)
from chip8_vm.errors import ProgramLoadError, ProgramTooLarge
from chip8_vm.mem.loader import load_program, read_program


class TestMachineState:
    def test_fresh_state(self):
        state = MachineState.new()
        assert state.program_counter == PROGRAM_START
        assert len(state.memory) == MEMORY_SIZE
        assert bytes(state.memory[:len(FONT)]) == FONT
        assert not any(state.memory[len(FONT):])
        assert state.stack == []
        assert state.delay_timer == state.sound_timer == 0
        assert len(state.frame_buffer) == FRAME_BYTES
        assert not any(state.data_registers)

    def test_font_glyphs(self):
        assert len(FONT) == 16 * GLYPH_HEIGHT
        assert glyph_address(0xF) == 75
        # Glyph '1' is a narrow vertical bar
        assert FONT[glyph_address(1):glyph_address(1) + 5] == bytes([0x20, 0x60, 0x20, 0x20, 0x70])

    def test_load_copies_at_0x200(self):
        state = MachineState.load(b"\x60\x2A\x12\x02")
        assert bytes(state.memory[0x200:0x204]) == b"\x60\x2A\x12\x02"
        assert state.program_counter == 0x200

    def test_copy_is_independent(self):
        state = MachineState.load(b"\x00\xE0")
        state.stack.append(0x300)
        clone = state.copy()
        clone.memory[0x200] = 0xFF
        clone.stack.append(0x400)
        clone.data_registers[0] = 1
        assert state.memory[0x200] == 0x00
        assert state.stack == [0x300]
        assert state.data_registers[0] == 0
        assert clone != state

    def test_flag_property(self):
        state = MachineState.new()
        state.flag = 0x101
        assert state.data_registers[0xF] == 0x01
        assert state.flag == 1

    def test_display(self):
        state = MachineState.new()
        state.data_registers[0xA] = 0x2A
        text = state.display()
        assert text.startswith("PC=0200 I=0000")
        assert "VA=2A" in text


class TestLoader:
    def test_bytes(self):
        assert read_program(bytearray(b"\x12\x00")) == b"\x12\x00"

    def test_path(self, tmp_path):
        rom = tmp_path / "prog.ch8"
        rom.write_bytes(b"\x60\x01")
        assert read_program(rom) == b"\x60\x01"
        assert read_program(str(rom)) == b"\x60\x01"

    def test_binary_stream(self):
        assert read_program(io.BytesIO(b"\xA2\x00")) == b"\xA2\x00"

    def test_text_stream_rejected(self):
        with pytest.raises(ProgramLoadError):
            read_program(io.StringIO("hello"))

    def test_text_mode_file_with_binary_rom(self, tmp_path):
        """A ROM opened in text mode is a load error even when it is not valid UTF-8."""
        rom = tmp_path / "prog.ch8"
        rom.write_bytes(b"\xA2\xFF\x60\x01")
        with open(rom, "r", encoding="utf-8") as f:
            with pytest.raises(ProgramLoadError, match="binary mode"):
                read_program(f)

    def test_undecodable_stream(self):
        class Decoding:
            def read(self, size=-1):
                return b"\xA2\xFF".decode("utf-8")

        with pytest.raises(ProgramLoadError):
            read_program(Decoding())

    def test_oversize_stream_read_stops_past_capacity(self):
        stream = io.BytesIO(b"\x12\x00" * (5 * 1024 * 1024))
        data = read_program(stream)
        assert len(data) == PROGRAM_CAPACITY
        assert stream.tell() <= PROGRAM_CAPACITY + 1

    def test_oversize_stream_error_policy(self):
        stream = io.BytesIO(b"\x00" * (PROGRAM_CAPACITY * 4))
        with pytest.raises(ProgramTooLarge):
            read_program(stream, 'error')
        assert stream.tell() == PROGRAM_CAPACITY + 1

    def test_oversize_file_truncated(self, tmp_path):
        rom = tmp_path / "big.ch8"
        rom.write_bytes(b"\xAB" * (PROGRAM_CAPACITY * 3))
        assert len(read_program(rom)) == PROGRAM_CAPACITY
        with pytest.raises(ProgramTooLarge):
            read_program(rom, 'error')

    def test_missing_file(self, tmp_path):
        with pytest.raises(ProgramLoadError):
            read_program(tmp_path / "nope.ch8")

    def test_failing_stream(self):
        class Broken:
            def read(self, size=-1):
                raise OSError("device gone")

        with pytest.raises(ProgramLoadError, match="device gone"):
            read_program(Broken())

    def test_unsupported_source(self):
        with pytest.raises(TypeError):
            read_program(1234)

    def test_exact_capacity_fits(self):
        data = bytes(range(256)) * (PROGRAM_CAPACITY // 256)
        assert read_program(data, 'error') == data

    def test_oversize_truncated_with_warning(self, caplog):
        data = b"\x01" * (PROGRAM_CAPACITY + 10)
        with caplog.at_level(logging.WARNING, logger="chip8_vm"):
            out = read_program(data)
        assert len(out) == PROGRAM_CAPACITY
        assert "truncating" in caplog.text

    def test_oversize_error_policy(self):
        with pytest.raises(ProgramTooLarge) as info:
            read_program(b"\x00" * (PROGRAM_CAPACITY + 1), 'error')
        assert info.value.size == PROGRAM_CAPACITY + 1
        assert info.value.capacity == PROGRAM_CAPACITY

    def test_unknown_policy(self):
        with pytest.raises(ValueError):
            read_program(b"", 'pad')

    def test_load_program_fills_end_of_memory(self):
        data = b"\xAB" * (PROGRAM_CAPACITY + 4)
        state = load_program(data)
        assert state.memory[MEMORY_SIZE - 1] == 0xAB
        assert len(state.memory) == MEMORY_SIZE
