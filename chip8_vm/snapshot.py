"""
Save-state codec.

Binary layout (big-endian). Every field of MachineState is stored at a
fixed size except the call stack, which carries a 16-bit depth prefix:

    offset  size   field
    0       4      magic "C8ST"
    4       1      format version (1)
    5       16     data_registers V0..VF
    21      2      address_register
    23      4096   memory
    4119    2      program_counter
    4121    2      stack depth N
    4123    2*N    stack entries, oldest first
    ...     1      delay_timer
    ...     1      sound_timer
    ...     256    frame_buffer
"""

from __future__ import annotations
import struct

from .cpu.state import FRAME_BYTES, MEMORY_SIZE, NUM_REGISTERS, MachineState
from .errors import SnapshotError

MAGIC = b"C8ST"
VERSION = 1

HEAD = struct.Struct(f">4sB{NUM_REGISTERS}sH{MEMORY_SIZE}sHH")
TAIL = struct.Struct(f">BB{FRAME_BYTES}s")
STACK_ENTRY = struct.Struct(">H")


def dump_state(state: MachineState) -> bytes:
    """Encode ``state`` into the save-state layout."""
    depth = len(state.stack)
    if depth > 0xFFFF:
        raise SnapshotError(f"Call stack too deep to encode ({depth})")
    head = HEAD.pack(
        MAGIC, VERSION,
        bytes(state.data_registers),
        state.address_register & 0xFFFF,
        bytes(state.memory),
        state.program_counter & 0xFFFF,
        depth,
    )
    stack = struct.pack(f">{depth}H", *state.stack)
    tail = TAIL.pack(state.delay_timer, state.sound_timer, bytes(state.frame_buffer))
    return head + stack + tail


def parse_state(data: bytes) -> MachineState:
    """Decode bytes produced by dump_state()."""
    data = bytes(data)
    if len(data) < HEAD.size:
        raise SnapshotError(f"Snapshot truncated: {len(data)} bytes")

    magic, version, regs, index, memory, pc, depth = HEAD.unpack_from(data, 0)
    if magic != MAGIC:
        raise SnapshotError(f"Bad snapshot magic {magic!r}")
    if version != VERSION:
        raise SnapshotError(f"Unsupported snapshot version {version}")

    offset = HEAD.size
    expected = offset + depth * STACK_ENTRY.size + TAIL.size
    if len(data) != expected:
        raise SnapshotError(
            f"Snapshot length {len(data)} does not match layout ({expected})")

    stack = list(struct.unpack_from(f">{depth}H", data, offset))
    offset += depth * STACK_ENTRY.size
    delay, sound, frame = TAIL.unpack_from(data, offset)

    return MachineState(
        data_registers=bytearray(regs),
        address_register=index,
        memory=bytearray(memory),
        program_counter=pc,
        stack=stack,
        delay_timer=delay,
        sound_timer=sound,
        frame_buffer=bytearray(frame),
    )
