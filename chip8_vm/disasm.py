"""
CHIP-8 disassembler.

Usage:
    from chip8_vm.disasm import disassemble

    for ins in disassemble(rom_bytes, base_addr=0x200):
        print(ins.format())     # "$0200: 602A  LD V0, 0x2A"

Words that match no opcode are rendered as data (``DW 0xNNNN``). A trailing
odd byte is rendered as ``DB``.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List

from .cpu.decoder import IllegalOpcode, decode
from .cpu.state import PROGRAM_START


@dataclass
class DisassembledInstruction:
    address: int
    raw_bytes: bytes
    text: str
    valid: bool = True

    @property
    def word(self) -> int:
        return int.from_bytes(self.raw_bytes, 'big')

    def format(self) -> str:
        hex_bytes = self.raw_bytes.hex().upper()
        return f"${self.address:04X}: {hex_bytes:<4s}  {self.text}"


def describe(word: int) -> str:
    """Assembly text for a single instruction word."""
    try:
        return decode(word).text
    except IllegalOpcode:
        return f"DW 0x{word:04X}"


def decode_one(data: bytes, offset: int = 0,
               base_addr: int = PROGRAM_START) -> DisassembledInstruction:
    raw = bytes(data[offset:offset + 2])
    address = base_addr + offset
    if len(raw) < 2:
        return DisassembledInstruction(address, raw, f"DB 0x{raw[0]:02X}", valid=False)
    word = int.from_bytes(raw, 'big')
    try:
        text = decode(word).text
    except IllegalOpcode:
        return DisassembledInstruction(address, raw, f"DW 0x{word:04X}", valid=False)
    return DisassembledInstruction(address, raw, text)


def disassemble(data: bytes, base_addr: int = PROGRAM_START) -> List[DisassembledInstruction]:
    """Linear sweep over ``data``, two bytes at a time."""
    return [decode_one(data, offset, base_addr) for offset in range(0, len(data), 2)]
