"""
Program loading.

A program source may be raw bytes, a filesystem path, or any binary file
object with ``read``. At most PROGRAM_CAPACITY (3584) bytes fit between $200
and the end of memory; what happens to the rest is the overflow policy:

  'truncate'  keep the first 3584 bytes and log a warning (default)
  'error'     raise ProgramTooLarge

Files and streams are read no further than one byte past the capacity.
"""

from __future__ import annotations
import io
import logging
from pathlib import Path
from typing import BinaryIO, Union

from ..cpu.state import PROGRAM_CAPACITY, MachineState
from ..errors import ProgramLoadError, ProgramTooLarge

log = logging.getLogger(__name__)

OVERFLOW_POLICIES = ('truncate', 'error')

ProgramSource = Union[bytes, bytearray, memoryview, str, Path, BinaryIO]


def read_program(source: ProgramSource, overflow: str = 'truncate') -> bytes:
    """Read a program image and apply the overflow policy."""
    if overflow not in OVERFLOW_POLICIES:
        raise ValueError(f"Unknown overflow policy: {overflow!r}")

    # One byte past capacity is enough to tell an oversize program apart
    limit = PROGRAM_CAPACITY + 1

    if isinstance(source, (bytes, bytearray, memoryview)):
        data = bytes(source)
    elif isinstance(source, (str, Path)):
        try:
            with open(source, 'rb') as f:
                data = f.read(limit)
        except OSError as e:
            raise ProgramLoadError(f"Cannot read {source}: {e}") from e
    elif isinstance(source, io.TextIOBase):
        raise ProgramLoadError("Program source must be opened in binary mode")
    elif hasattr(source, 'read'):
        try:
            data = source.read(limit)
        except (OSError, UnicodeDecodeError) as e:
            raise ProgramLoadError(f"Read failed: {e}") from e
        if not isinstance(data, (bytes, bytearray)):
            raise ProgramLoadError("Program source must be opened in binary mode")
        data = bytes(data)
    else:
        raise TypeError(f"Unsupported program source: {type(source).__name__}")

    if len(data) > PROGRAM_CAPACITY:
        if overflow == 'error':
            raise ProgramTooLarge(len(data), PROGRAM_CAPACITY)
        log.warning("Program exceeds %d bytes, truncating", PROGRAM_CAPACITY)
        data = data[:PROGRAM_CAPACITY]
    return data


def load_program(source: ProgramSource, overflow: str = 'truncate') -> MachineState:
    """Build a fresh MachineState with the program at $200."""
    return MachineState.load(read_program(source, overflow))
