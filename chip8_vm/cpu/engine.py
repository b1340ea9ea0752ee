"""
CHIP-8 Opcode Engine - fetch, decode and execute one instruction.

Execution model:
  1. Fetch the word at PC
  2. Decode it against the opcode table (decoder.py)
  3. Run the handler, which mutates MachineState and may query the keypad,
     start the tone or draw a random byte
  4. Advance PC by 2 unless the handler set PC itself

Handlers return True when they have taken care of PC (jumps, calls,
returns and the Fx0A busy-wait), otherwise the engine steps past the
instruction. Conditional skips add 2 on their own and let the engine add
the other 2.

A word that decodes to nothing raises UnknownOpcode before any state is
touched, so PC still points at the offending instruction.
"""

from __future__ import annotations
import random
from typing import Callable, Dict, Optional

from ..display.bitplane import BitCursor, BitReader
from ..errors import StackOverflow, StackUnderflow, UnknownOpcode
from ..periph.audio import AudioCapability
from ..periph.keypad import KeyCapability
from .decoder import IllegalOpcode, Instruction, decode, fetch
from .font import glyph_address
from .state import FLAG, MEMORY_SIZE, ROW_BYTES, SCREEN_HEIGHT, MachineState

Handler = Callable[[MachineState, Instruction], Optional[bool]]


class OpcodeEngine:
    """Executes instructions against a MachineState it does not own.

    Usage:
        engine = OpcodeEngine(keypad, audio, random.Random(1))
        engine.execute_one(state)

    ``stack_limit`` of None leaves the call stack unbounded; an integer makes
    CALL raise StackOverflow once that many return addresses are pending.
    """

    def __init__(self, keypad: KeyCapability, audio: AudioCapability,
                 rng: Optional[random.Random] = None,
                 stack_limit: Optional[int] = None):
        self.keypad = keypad
        self.audio = audio
        self.rng = rng if rng is not None else random.Random()
        self.stack_limit = stack_limit
        self._dispatch: Dict[str, Handler] = self._build_dispatch()

    # ══════════════════════════════════════════════
    # Execution
    # ══════════════════════════════════════════════

    def execute_one(self, state: MachineState) -> Instruction:
        """Execute the instruction at PC and return it decoded.

        Raises UnknownOpcode, StackUnderflow or StackOverflow; in each case
        PC is left on the failing instruction.
        """
        pc = state.program_counter
        word = fetch(state.memory, pc)
        try:
            ins = decode(word)
        except IllegalOpcode:
            raise UnknownOpcode(pc, word) from None

        if not self._dispatch[ins.key](state, ins):
            state.program_counter = (state.program_counter + 2) & 0xFFFF
        return ins

    def _build_dispatch(self) -> Dict[str, Handler]:
        return {
            # ── Flow ──
            'cls':      self._op_cls,
            'ret':      self._op_ret,
            'jp':       self._op_jp,
            'call':     self._op_call,
            'jp_v0':    self._op_jp_v0,

            # ── Skips ──
            'se_byte':  self._op_se_byte,
            'sne_byte': self._op_sne_byte,
            'se_reg':   self._op_se_reg,
            'sne_reg':  self._op_sne_reg,
            'skp':      self._op_skp,
            'sknp':     self._op_sknp,

            # ── Immediates ──
            'ld_byte':  self._op_ld_byte,
            'add_byte': self._op_add_byte,
            'ld_i':     self._op_ld_i,
            'rnd':      self._op_rnd,

            # ── ALU ──
            'ld_reg':   self._op_ld_reg,
            'or':       self._op_or,
            'and':      self._op_and,
            'xor':      self._op_xor,
            'add_reg':  self._op_add_reg,
            'sub':      self._op_sub,
            'shr':      self._op_shr,
            'subn':     self._op_subn,
            'shl':      self._op_shl,

            # ── Display ──
            'drw':      self._op_drw,

            # ── Timers / keys / memory ──
            'ld_vx_dt': self._op_ld_vx_dt,
            'ld_vx_k':  self._op_ld_vx_k,
            'ld_dt_vx': self._op_ld_dt_vx,
            'ld_st_vx': self._op_ld_st_vx,
            'add_i':    self._op_add_i,
            'ld_f':     self._op_ld_f,
            'ld_b':     self._op_ld_b,
            'ld_mem':   self._op_ld_mem,
            'ld_regs':  self._op_ld_regs,
        }

    # ══════════════════════════════════════════════
    # Flow control
    # ══════════════════════════════════════════════

    def _op_cls(self, state, ins):
        state.clear_screen()

    def _op_ret(self, state, ins):
        if not state.stack:
            raise StackUnderflow(state.program_counter, ins.word)
        state.program_counter = state.stack.pop()
        return True

    def _op_jp(self, state, ins):
        state.program_counter = ins.addr
        return True

    def _op_call(self, state, ins):
        if self.stack_limit is not None and len(state.stack) >= self.stack_limit:
            raise StackOverflow(state.program_counter, ins.word, self.stack_limit)
        state.stack.append((state.program_counter + 2) & 0xFFFF)
        state.program_counter = ins.addr
        return True

    def _op_jp_v0(self, state, ins):
        state.program_counter = (ins.addr + state.data_registers[0]) & 0xFFFF
        return True

    # ══════════════════════════════════════════════
    # Conditional skips
    # ══════════════════════════════════════════════

    def _skip_if(self, state, condition: bool):
        if condition:
            state.program_counter = (state.program_counter + 2) & 0xFFFF

    def _op_se_byte(self, state, ins):
        self._skip_if(state, state.data_registers[ins.x] == ins.kk)

    def _op_sne_byte(self, state, ins):
        self._skip_if(state, state.data_registers[ins.x] != ins.kk)

    def _op_se_reg(self, state, ins):
        regs = state.data_registers
        self._skip_if(state, regs[ins.x] == regs[ins.y])

    def _op_sne_reg(self, state, ins):
        regs = state.data_registers
        self._skip_if(state, regs[ins.x] != regs[ins.y])

    def _op_skp(self, state, ins):
        self._skip_if(state, self.keypad.is_pressed(state.data_registers[ins.x]))

    def _op_sknp(self, state, ins):
        self._skip_if(state, not self.keypad.is_pressed(state.data_registers[ins.x]))

    # ══════════════════════════════════════════════
    # Immediates
    # ══════════════════════════════════════════════

    def _op_ld_byte(self, state, ins):
        state.data_registers[ins.x] = ins.kk

    def _op_add_byte(self, state, ins):
        regs = state.data_registers
        regs[ins.x] = (regs[ins.x] + ins.kk) & 0xFF

    def _op_ld_i(self, state, ins):
        state.address_register = ins.addr

    def _op_rnd(self, state, ins):
        state.data_registers[ins.x] = self.rng.getrandbits(8) & ins.kk

    # ══════════════════════════════════════════════
    # Register ALU
    # ══════════════════════════════════════════════
    # VF is written after the result so it wins when x is F.

    def _op_ld_reg(self, state, ins):
        state.data_registers[ins.x] = state.data_registers[ins.y]

    def _op_or(self, state, ins):
        state.data_registers[ins.x] |= state.data_registers[ins.y]

    def _op_and(self, state, ins):
        state.data_registers[ins.x] &= state.data_registers[ins.y]

    def _op_xor(self, state, ins):
        state.data_registers[ins.x] ^= state.data_registers[ins.y]

    def _op_add_reg(self, state, ins):
        regs = state.data_registers
        total = regs[ins.x] + regs[ins.y]
        regs[ins.x] = total & 0xFF
        regs[FLAG] = 1 if total > 0xFF else 0

    def _op_sub(self, state, ins):
        regs = state.data_registers
        a, b = regs[ins.x], regs[ins.y]
        regs[ins.x] = (a - b) & 0xFF
        regs[FLAG] = 0 if a < b else 1   # inverted borrow

    def _op_subn(self, state, ins):
        regs = state.data_registers
        a, b = regs[ins.x], regs[ins.y]
        regs[ins.x] = (b - a) & 0xFF
        regs[FLAG] = 0 if b < a else 1   # inverted borrow

    def _op_shr(self, state, ins):
        regs = state.data_registers
        lsb = regs[ins.x] & 0x01
        regs[ins.x] >>= 1
        regs[FLAG] = lsb

    def _op_shl(self, state, ins):
        regs = state.data_registers
        msb = regs[ins.x] >> 7
        regs[ins.x] = (regs[ins.x] << 1) & 0xFF
        regs[FLAG] = msb

    # ══════════════════════════════════════════════
    # Display
    # ══════════════════════════════════════════════

    def _op_drw(self, state, ins):
        """XOR an n-row sprite from memory[I] onto the screen at (Vx, Vy).

        Rows below the bottom edge are dropped; columns wrap within the row.
        VF = 1 if any lit pixel was erased.
        """
        regs = state.data_registers
        regs[FLAG] = 0
        x, y = regs[ins.x], regs[ins.y]
        collision = False
        for line in range(ins.n):
            row = y + line
            if row >= SCREEN_HEIGHT:
                break
            cursor = BitCursor(state.frame_buffer, state.row_offset(row), ROW_BYTES)
            cursor.skip(x)
            src = (state.address_register + line) % MEMORY_SIZE
            for bit in BitReader(state.memory, src, src + 1):
                if bit and cursor.toggle():
                    collision = True
                cursor.advance()
        if collision:
            regs[FLAG] = 1

    # ══════════════════════════════════════════════
    # Timers / keys / memory
    # ══════════════════════════════════════════════

    def _op_ld_vx_dt(self, state, ins):
        state.data_registers[ins.x] = state.delay_timer

    def _op_ld_vx_k(self, state, ins):
        key = self.keypad.get_pressed_key()
        if key is None:
            # Re-run this instruction next time round
            return True
        state.data_registers[ins.x] = key & 0xFF

    def _op_ld_dt_vx(self, state, ins):
        state.delay_timer = state.data_registers[ins.x]

    def _op_ld_st_vx(self, state, ins):
        state.sound_timer = state.data_registers[ins.x]
        if state.sound_timer:
            self.audio.start_tone()

    def _op_add_i(self, state, ins):
        state.address_register = (state.address_register + state.data_registers[ins.x]) & 0xFFFF

    def _op_ld_f(self, state, ins):
        state.address_register = glyph_address(state.data_registers[ins.x])

    def _op_ld_b(self, state, ins):
        value = state.data_registers[ins.x]
        base = state.address_register
        mem = state.memory
        mem[base % MEMORY_SIZE] = value // 100
        mem[(base + 1) % MEMORY_SIZE] = (value % 100) // 10
        mem[(base + 2) % MEMORY_SIZE] = value % 10

    def _op_ld_mem(self, state, ins):
        base = state.address_register
        for i in range(ins.x + 1):
            state.memory[(base + i) % MEMORY_SIZE] = state.data_registers[i]

    def _op_ld_regs(self, state, ins):
        base = state.address_register
        for i in range(ins.x + 1):
            state.data_registers[i] = state.memory[(base + i) % MEMORY_SIZE]


def execute_one(state: MachineState, keypad: KeyCapability, audio: AudioCapability,
                rng: Optional[random.Random] = None) -> Instruction:
    """Execute a single instruction with a throwaway engine."""
    return OpcodeEngine(keypad, audio, rng).execute_one(state)
