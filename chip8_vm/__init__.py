"""
chip8-vm - a CHIP-8 interpreter core
====================================
Executes CHIP-8 bytecode against a 4K memory / 16-register machine, draws a
64x32 monochrome framebuffer and exposes timers, a random source and the
keypad/audio capabilities to the running program.

Architecture:
    ┌──────────┐    ┌──────────────┐    ┌───────────────┐    ┌────────────┐
    │ ROM      │───>│ Loader       │───>│ Machine       │───>│ Renderer   │
    │ (bytes)  │    │ (state @200) │    │ (tick driver) │    │ (pixels)   │
    └──────────┘    └──────────────┘    └───────┬───────┘    └────────────┘
                                                │ 11 x per tick
                                         ┌──────┴───────┐
                                         │ OpcodeEngine │<── keypad / audio / rng
                                         └──────────────┘

    - cpu/state.py:      MachineState (registers, memory, stack, timers, frame)
    - cpu/decoder.py:    opcode table and word decoder
    - cpu/engine.py:     fetch/decode/execute for one instruction
    - display/:          packed-bit readers/cursors, lit-pixel iteration
    - periph/:           keypad and audio capabilities, timers
    - mem/loader.py:     program images -> fresh state
    - snapshot.py:       save-state codec
    - machine.py:        tick batching and the fault state machine
"""

__version__ = "0.2.0"

from typing import Optional

from .config import MachineConfig, PROFILES
from .cpu.state import MachineState
from .cpu.engine import OpcodeEngine, execute_one
from .errors import (
    Chip8Error, MachineFault, UnknownOpcode, StackUnderflow, StackOverflow,
    BadStateError, ProgramLoadError, ProgramTooLarge, SnapshotError,
)
from .machine import Machine, MachineStatus, FaultReport
from .mem.loader import load_program
from .periph.audio import AudioCapability, SilentAudio
from .periph.keypad import KeyCapability, HeldKeys, NullKeypad
from .snapshot import dump_state, parse_state


def run_program(source, ticks: int = 60, *, config: Optional[MachineConfig] = None,
                keypad: Optional[KeyCapability] = None) -> Machine:
    """Load ``source`` and run it headless for ``ticks`` ticks.

    Returns the Machine, which is FAULTED if the program hit a fault
    (inspect ``machine.fault``).
    """
    machine = Machine(keypad=keypad, config=config)
    machine.load(source)
    machine.run(ticks)
    return machine
