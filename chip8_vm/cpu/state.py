"""
CHIP-8 Machine State - registers, memory, call stack, timers, framebuffer.

Register model:
  V0-VF  16 x 8-bit data registers (VF doubles as carry/borrow/collision flag)
  I      16-bit address register
  PC     16-bit program counter (programs start at $200)
  DT/ST  8-bit delay and sound timers, counted down once per tick

Memory map:
  $000-$04F  Built-in hex font (16 glyphs x 5 bytes)
  $050-$1FF  Reserved for the interpreter
  $200-$FFF  Program and data

Framebuffer: 32 rows x 64 columns, 8 bytes per row, MSB = leftmost pixel.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import List

from .font import FONT

MEMORY_SIZE = 0x1000
PROGRAM_START = 0x200
PROGRAM_CAPACITY = MEMORY_SIZE - PROGRAM_START

NUM_REGISTERS = 16
FLAG = 0xF

SCREEN_WIDTH = 64
SCREEN_HEIGHT = 32
ROW_BYTES = SCREEN_WIDTH // 8
FRAME_BYTES = ROW_BYTES * SCREEN_HEIGHT


def _font_memory() -> bytearray:
    memory = bytearray(MEMORY_SIZE)
    memory[0:len(FONT)] = FONT
    return memory


@dataclass
class MachineState:
    """Complete, serializable snapshot of a CHIP-8 machine."""

    data_registers: bytearray = field(default_factory=lambda: bytearray(NUM_REGISTERS))
    address_register: int = 0
    memory: bytearray = field(default_factory=_font_memory)
    program_counter: int = PROGRAM_START
    stack: List[int] = field(default_factory=list)
    delay_timer: int = 0
    sound_timer: int = 0
    frame_buffer: bytearray = field(default_factory=lambda: bytearray(FRAME_BYTES))

    @classmethod
    def new(cls) -> MachineState:
        """Zeroed state with the font loaded and PC at $200."""
        return cls()

    @classmethod
    def load(cls, program: bytes) -> MachineState:
        """Fresh state with ``program`` copied to $200.

        Callers are expected to have applied the size policy already; bytes
        past the end of memory are dropped.
        """
        state = cls()
        data = bytes(program[:PROGRAM_CAPACITY])
        state.memory[PROGRAM_START:PROGRAM_START + len(data)] = data
        return state

    # --- Register shorthands ---

    @property
    def flag(self) -> int:
        return self.data_registers[FLAG]

    @flag.setter
    def flag(self, value: int):
        self.data_registers[FLAG] = value & 0xFF

    # --- Framebuffer access ---

    def row_offset(self, y: int) -> int:
        """Byte offset of framebuffer row ``y``."""
        return y * ROW_BYTES

    def row(self, y: int) -> bytes:
        start = self.row_offset(y)
        return bytes(self.frame_buffer[start:start + ROW_BYTES])

    def clear_screen(self):
        self.frame_buffer[:] = bytes(FRAME_BYTES)

    # --- Copy / display ---

    def copy(self) -> MachineState:
        return MachineState(
            data_registers=bytearray(self.data_registers),
            address_register=self.address_register,
            memory=bytearray(self.memory),
            program_counter=self.program_counter,
            stack=list(self.stack),
            delay_timer=self.delay_timer,
            sound_timer=self.sound_timer,
            frame_buffer=bytearray(self.frame_buffer),
        )

    def display(self) -> str:
        """One-line register dump for logs and fault reports."""
        regs = ' '.join(f"V{i:X}={v:02X}" for i, v in enumerate(self.data_registers))
        return (f"PC={self.program_counter:04X} I={self.address_register:04X} "
                f"DT={self.delay_timer:02X} ST={self.sound_timer:02X} "
                f"SP={len(self.stack)} {regs}")
