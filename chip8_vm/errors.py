"""
Exception hierarchy for the CHIP-8 interpreter.

Engine faults (MachineFault subclasses) are fatal to the current run: the
Machine catches them, freezes a diagnostic snapshot and re-raises. The
remaining errors are precondition or input failures and never change the
machine's state.
"""

from __future__ import annotations
from typing import Optional


class Chip8Error(Exception):
    """Base class for every error raised by chip8_vm."""


# ──────────────────────────────────────────────
# Engine faults
# ──────────────────────────────────────────────

class MachineFault(Chip8Error):
    """An instruction could not be executed.

    Attributes:
        address: PC of the failing instruction.
        opcode:  the 16-bit instruction word fetched there.
    """

    kind = "Fault"

    def __init__(self, message: str, address: Optional[int] = None,
                 opcode: Optional[int] = None):
        self.address = address
        self.opcode = opcode
        if address is not None and opcode is not None:
            message = f"{message} at ${address:04X} (opcode {opcode:04X})"
        super().__init__(message)


class UnknownOpcode(MachineFault):
    kind = "UnknownOpcode"

    def __init__(self, address: int, opcode: int):
        super().__init__("Unknown opcode", address, opcode)


class StackUnderflow(MachineFault):
    kind = "StackUnderflow"

    def __init__(self, address: int, opcode: int):
        super().__init__("Return with empty call stack", address, opcode)


class StackOverflow(MachineFault):
    """Only raised when a stack limit is configured."""

    kind = "StackOverflow"

    def __init__(self, address: int, opcode: int, limit: int):
        self.limit = limit
        super().__init__(f"Call stack deeper than {limit}", address, opcode)


# ──────────────────────────────────────────────
# Precondition / input errors
# ──────────────────────────────────────────────

class BadStateError(Chip8Error):
    """Operation requested on a machine that is unloaded or faulted."""


class ProgramLoadError(Chip8Error):
    """The program source could not be read."""


class ProgramTooLarge(ProgramLoadError):
    def __init__(self, size: int, capacity: int):
        self.size = size
        self.capacity = capacity
        super().__init__(
            f"Program is {size} bytes, only {capacity} bytes fit at $0200")


class SnapshotError(Chip8Error):
    """Save-state bytes are malformed or from an unknown format version."""
