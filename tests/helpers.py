"""Shared fakes and builders for the chip8_vm tests."""

import random

from chip8_vm.cpu.engine import OpcodeEngine
from chip8_vm.cpu.state import MachineState
from chip8_vm.periph.audio import AudioCapability
from chip8_vm.periph.keypad import HeldKeys


class RecordingAudio(AudioCapability):
    """Remembers every call in order."""

    def __init__(self):
        self.calls = []

    def start_tone(self):
        self.calls.append("start")

    def stop_tone(self):
        self.calls.append("stop")


def words(*ws) -> bytes:
    """Assemble 16-bit instruction words into big-endian bytes."""
    out = bytearray()
    for w in ws:
        out += w.to_bytes(2, "big")
    return bytes(out)


def make_engine(keypad=None, audio=None, seed=0, stack_limit=None):
    return OpcodeEngine(keypad if keypad is not None else HeldKeys(),
                        audio if audio is not None else RecordingAudio(),
                        random.Random(seed), stack_limit=stack_limit)


def run(program: bytes, steps: int = 1, engine=None, state=None) -> MachineState:
    """Load ``program`` at $200 (unless a state is given) and execute ``steps`` instructions."""
    if state is None:
        state = MachineState.load(program)
    engine = engine or make_engine()
    for _ in range(steps):
        engine.execute_one(state)
    return state
