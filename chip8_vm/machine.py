"""
CHIP-8 Machine - tick driver and fault state machine.

The Machine owns exactly one MachineState at a time and is the only code
that mutates it. It integrates:
  - the opcode engine (cpu/engine.py)
  - delay/sound timers (periph/timers.py)
  - the injected keypad and audio capabilities
  - a random byte source

Status transitions:

    UNLOADED --load/restore--> RUNNING --engine fault--> FAULTED
        ^                        |  ^                       |
        |                        |  +----load/restore-------+
        +--- (never returns) ----+        reboot

Execution model (one tick, called once per display refresh):
  1. Execute ``instructions_per_tick`` instructions (11 by default)
  2. Stop at the first fault: no rollback, status -> FAULTED, tone off,
     the fault is re-raised to the caller
  3. After a complete batch, count both timers down by one

tick() and step() on an UNLOADED or FAULTED machine raise BadStateError and
change nothing.
"""

from __future__ import annotations
import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from .config import MachineConfig
from .cpu.decoder import Instruction, fetch
from .cpu.engine import OpcodeEngine
from .cpu.state import FRAME_BYTES, MachineState
from .disasm import describe
from .display.pixels import FramePixels
from .errors import BadStateError, MachineFault
from .mem.loader import ProgramSource, read_program
from .periph.audio import AudioCapability, SilentAudio
from .periph.keypad import KeyCapability, NullKeypad
from .periph.timers import count_down
from .snapshot import dump_state, parse_state

log = logging.getLogger(__name__)


class MachineStatus(Enum):
    UNLOADED = 'UNLOADED'
    RUNNING = 'RUNNING'
    FAULTED = 'FAULTED'


@dataclass
class FaultReport:
    """Diagnostic record kept by a FAULTED machine."""
    error: MachineFault
    address: int
    opcode: int
    instruction: str
    state: MachineState

    @property
    def kind(self) -> str:
        return self.error.kind

    def format(self) -> str:
        return (f"{self.kind} at ${self.address:04X}: {self.opcode:04X}  {self.instruction}\n"
                f"  {self.state.display()}\n"
                f"  stack: {' '.join(f'{a:04X}' for a in self.state.stack) or '(empty)'}")


class Machine:
    """A CHIP-8 machine driven one tick at a time.

    Usage:
        machine = Machine(keypad=HeldKeys(), audio=SilentAudio())
        machine.load('pong.ch8')
        while running:
            machine.tick()
            draw(machine.pixels())
    """

    def __init__(self, keypad: Optional[KeyCapability] = None,
                 audio: Optional[AudioCapability] = None,
                 config: Optional[MachineConfig] = None,
                 rng: Optional[random.Random] = None):
        self.config = config if config is not None else MachineConfig()
        if rng is None:
            rng = random.Random(self.config.seed)
        self._engine = OpcodeEngine(
            keypad if keypad is not None else NullKeypad(),
            audio if audio is not None else SilentAudio(),
            rng,
            stack_limit=self.config.stack_limit,
        )

        self._status = MachineStatus.UNLOADED
        self._state: Optional[MachineState] = None
        self._fault: Optional[FaultReport] = None
        self._program: Optional[bytes] = None
        self.ticks = 0

        self._trace = False
        self._trace_output: List[str] = []

    # ══════════════════════════════════════════════
    # Read-only views
    # ══════════════════════════════════════════════

    @property
    def status(self) -> MachineStatus:
        return self._status

    @property
    def keypad(self) -> KeyCapability:
        return self._engine.keypad

    @property
    def audio(self) -> AudioCapability:
        return self._engine.audio

    @property
    def fault(self) -> Optional[FaultReport]:
        return self._fault

    @property
    def state(self) -> Optional[MachineState]:
        """Copy of the current state (None while UNLOADED)."""
        return self._state.copy() if self._state is not None else None

    @property
    def frame_buffer(self) -> bytes:
        """Packed framebuffer; blank while UNLOADED."""
        if self._state is None:
            return bytes(FRAME_BYTES)
        return bytes(self._state.frame_buffer)

    def pixels(self) -> FramePixels:
        """Lit pixel coordinates of the current frame."""
        return FramePixels(self.frame_buffer)

    # ══════════════════════════════════════════════
    # Loading
    # ══════════════════════════════════════════════

    def load(self, source: ProgramSource):
        """Load a program and start it from $200, discarding any prior state."""
        program = read_program(source, self.config.overflow)
        self._install(MachineState.load(program))
        self._program = program
        log.info("Loaded %d byte program", len(program))

    def reboot(self):
        """Reload the most recently loaded program."""
        if self._program is None:
            raise BadStateError("No program has been loaded")
        self.load(self._program)

    def restore(self, data: bytes):
        """Resume from a save state produced by snapshot()."""
        state = parse_state(data)
        self._install(state)
        log.info("Restored snapshot (PC=$%04X)", state.program_counter)

    def snapshot(self) -> bytes:
        """Encode the live (or frozen faulted) state."""
        if self._state is None:
            raise BadStateError("Machine has no state to snapshot")
        return dump_state(self._state)

    def _install(self, state: MachineState):
        self.audio.stop_tone()
        self._state = state
        self._fault = None
        self._status = MachineStatus.RUNNING
        self.ticks = 0

    # ══════════════════════════════════════════════
    # Execution
    # ══════════════════════════════════════════════

    def tick(self):
        """Run one batch of instructions, then count the timers down."""
        state = self._require_running()
        for _ in range(self.config.instructions_per_tick):
            self._execute(state)
        count_down(state, self.audio)
        self.ticks += 1

    def step(self) -> Instruction:
        """Execute a single instruction without touching the timers."""
        return self._execute(self._require_running())

    def run(self, ticks: int) -> int:
        """Tick up to ``ticks`` times. Returns the number completed.

        Stops early (returning the count so far) if the machine faults; the
        fault is available from ``fault``.
        """
        for done in range(ticks):
            try:
                self.tick()
            except MachineFault:
                return done
        return ticks

    def _require_running(self) -> MachineState:
        if self._status is MachineStatus.UNLOADED:
            raise BadStateError("No program loaded")
        if self._status is MachineStatus.FAULTED:
            raise BadStateError(f"Machine faulted ({self._fault.kind}); reload to continue")
        return self._state

    def _execute(self, state: MachineState) -> Instruction:
        pc = state.program_counter
        try:
            ins = self._engine.execute_one(state)
        except MachineFault as e:
            self._freeze(state, e)
            raise
        if self._trace:
            line = f"${pc:04X}: {ins.word:04X}  {ins.text}"
            self._trace_output.append(line)
            log.debug(line)
        return ins

    def _freeze(self, state: MachineState, error: MachineFault):
        address = error.address if error.address is not None else state.program_counter
        opcode = error.opcode if error.opcode is not None else fetch(state.memory, address)
        self._fault = FaultReport(error, address, opcode, describe(opcode), state.copy())
        self._status = MachineStatus.FAULTED
        self.audio.stop_tone()
        log.error("Machine faulted: %s", error)

    # ══════════════════════════════════════════════
    # Trace / Debug
    # ══════════════════════════════════════════════

    def enable_trace(self, enable: bool = True):
        """Record every executed instruction."""
        self._trace = enable

    def get_trace(self) -> str:
        return '\n'.join(self._trace_output)

    def clear_trace(self):
        self._trace_output.clear()
