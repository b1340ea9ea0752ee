"""
CHIP-8 Opcode Decoder / Dispatch Table

Every instruction is one big-endian 16-bit word split into four nibbles:

    n1 n2 n3 n4      n1      instruction family
                     x = n2  register index
                     y = n3  register index
                     n = n4  4-bit immediate (sprite height)
                     kk      low byte (8-bit immediate)
                     nnn     low 12 bits (address)

The table maps (mask, pattern) pairs to a handler key and a disassembly
template. A word belongs to an entry when ``word & mask == pattern``.
Entries never overlap, so lookup order inside a family is irrelevant.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, NamedTuple

from .state import MEMORY_SIZE


class IllegalOpcode(ValueError):
    """Instruction word matches no table entry."""

    def __init__(self, word: int):
        self.word = word
        super().__init__(f"Illegal opcode {word:04X}")


class OpcodeEntry(NamedTuple):
    mask: int
    pattern: int
    key: str
    template: str


# ──────────────────────────────────────────────
# Opcode table
# ──────────────────────────────────────────────
# Mnemonics follow the Cowgod CHIP-8 reference. Handler keys are unique even
# where the mnemonic is shared (LD, ADD, SE, SNE, JP).

OPCODES: List[OpcodeEntry] = [
    # ── System / flow ──
    OpcodeEntry(0xFFFF, 0x00E0, 'cls',      'CLS'),
    OpcodeEntry(0xFFFF, 0x00EE, 'ret',      'RET'),
    OpcodeEntry(0xF000, 0x1000, 'jp',       'JP 0x{addr:03X}'),
    OpcodeEntry(0xF000, 0x2000, 'call',     'CALL 0x{addr:03X}'),
    OpcodeEntry(0xF000, 0xB000, 'jp_v0',    'JP V0, 0x{addr:03X}'),

    # ── Conditional skips ──
    OpcodeEntry(0xF000, 0x3000, 'se_byte',  'SE V{x:X}, 0x{kk:02X}'),
    OpcodeEntry(0xF000, 0x4000, 'sne_byte', 'SNE V{x:X}, 0x{kk:02X}'),
    OpcodeEntry(0xF00F, 0x5000, 'se_reg',   'SE V{x:X}, V{y:X}'),
    OpcodeEntry(0xF00F, 0x9000, 'sne_reg',  'SNE V{x:X}, V{y:X}'),
    OpcodeEntry(0xF0FF, 0xE09E, 'skp',      'SKP V{x:X}'),
    OpcodeEntry(0xF0FF, 0xE0A1, 'sknp',     'SKNP V{x:X}'),

    # ── Immediate loads / adds ──
    OpcodeEntry(0xF000, 0x6000, 'ld_byte',  'LD V{x:X}, 0x{kk:02X}'),
    OpcodeEntry(0xF000, 0x7000, 'add_byte', 'ADD V{x:X}, 0x{kk:02X}'),
    OpcodeEntry(0xF000, 0xA000, 'ld_i',     'LD I, 0x{addr:03X}'),
    OpcodeEntry(0xF000, 0xC000, 'rnd',      'RND V{x:X}, 0x{kk:02X}'),

    # ── Register ALU (family 8) ──
    OpcodeEntry(0xF00F, 0x8000, 'ld_reg',   'LD V{x:X}, V{y:X}'),
    OpcodeEntry(0xF00F, 0x8001, 'or',       'OR V{x:X}, V{y:X}'),
    OpcodeEntry(0xF00F, 0x8002, 'and',      'AND V{x:X}, V{y:X}'),
    OpcodeEntry(0xF00F, 0x8003, 'xor',      'XOR V{x:X}, V{y:X}'),
    OpcodeEntry(0xF00F, 0x8004, 'add_reg',  'ADD V{x:X}, V{y:X}'),
    OpcodeEntry(0xF00F, 0x8005, 'sub',      'SUB V{x:X}, V{y:X}'),
    OpcodeEntry(0xF00F, 0x8006, 'shr',      'SHR V{x:X}'),
    OpcodeEntry(0xF00F, 0x8007, 'subn',     'SUBN V{x:X}, V{y:X}'),
    OpcodeEntry(0xF00F, 0x800E, 'shl',      'SHL V{x:X}'),

    # ── Display ──
    OpcodeEntry(0xF000, 0xD000, 'drw',      'DRW V{x:X}, V{y:X}, {n}'),

    # ── Timers, keys, memory (family F) ──
    OpcodeEntry(0xF0FF, 0xF007, 'ld_vx_dt', 'LD V{x:X}, DT'),
    OpcodeEntry(0xF0FF, 0xF00A, 'ld_vx_k',  'LD V{x:X}, K'),
    OpcodeEntry(0xF0FF, 0xF015, 'ld_dt_vx', 'LD DT, V{x:X}'),
    OpcodeEntry(0xF0FF, 0xF018, 'ld_st_vx', 'LD ST, V{x:X}'),
    OpcodeEntry(0xF0FF, 0xF01E, 'add_i',    'ADD I, V{x:X}'),
    OpcodeEntry(0xF0FF, 0xF029, 'ld_f',     'LD F, V{x:X}'),
    OpcodeEntry(0xF0FF, 0xF033, 'ld_b',     'LD B, V{x:X}'),
    OpcodeEntry(0xF0FF, 0xF055, 'ld_mem',   'LD [I], V{x:X}'),
    OpcodeEntry(0xF0FF, 0xF065, 'ld_regs',  'LD V{x:X}, [I]'),
]

# Entries grouped by family nibble for quick lookup
_BY_FAMILY: Dict[int, List[OpcodeEntry]] = {}
for _entry in OPCODES:
    _BY_FAMILY.setdefault(_entry.pattern >> 12, []).append(_entry)


@dataclass(frozen=True)
class Instruction:
    """One decoded instruction word with its operand fields."""
    word: int
    key: str
    template: str

    @property
    def x(self) -> int:
        return (self.word >> 8) & 0xF

    @property
    def y(self) -> int:
        return (self.word >> 4) & 0xF

    @property
    def n(self) -> int:
        return self.word & 0xF

    @property
    def kk(self) -> int:
        return self.word & 0xFF

    @property
    def addr(self) -> int:
        return self.word & 0xFFF

    @property
    def text(self) -> str:
        return self.template.format(x=self.x, y=self.y, n=self.n,
                                    kk=self.kk, addr=self.addr)


def fetch(memory, pc: int) -> int:
    """Read the big-endian instruction word at ``pc``.

    Addresses wrap at the top of the 4K address space.
    """
    return (memory[pc % MEMORY_SIZE] << 8) | memory[(pc + 1) % MEMORY_SIZE]


def decode(word: int) -> Instruction:
    """Decode a 16-bit word. Raises IllegalOpcode for unknown encodings."""
    word &= 0xFFFF
    for entry in _BY_FAMILY.get(word >> 12, ()):
        if word & entry.mask == entry.pattern:
            return Instruction(word, entry.key, entry.template)
    raise IllegalOpcode(word)
