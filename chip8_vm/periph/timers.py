"""
Delay and sound timers.

Both are 8-bit down-counters held in MachineState and decremented once per
tick (nominally 60 Hz) while non-zero. The sound timer drives the tone: the
tone is silenced on the tick that brings it from 1 to 0.
"""

from __future__ import annotations
import logging

from ..cpu.state import MachineState
from .audio import AudioCapability

log = logging.getLogger(__name__)


def count_down(state: MachineState, audio: AudioCapability):
    """Advance both timers by one tick."""
    if state.delay_timer > 0:
        state.delay_timer -= 1
    if state.sound_timer > 0:
        state.sound_timer -= 1
        if state.sound_timer == 0:
            log.debug("Sound timer expired")
            audio.stop_tone()
