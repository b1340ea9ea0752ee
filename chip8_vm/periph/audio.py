"""
Audio capability - a single tone that is either sounding or silent.

The engine starts the tone when a program loads a non-zero sound timer; the
tick driver stops it when the timer runs out, on faults and on reload.
Both calls must be idempotent.
"""

from __future__ import annotations
import logging
from abc import ABC, abstractmethod

log = logging.getLogger(__name__)


class AudioCapability(ABC):

    @abstractmethod
    def start_tone(self):
        """Begin (or keep) sounding the tone."""

    @abstractmethod
    def stop_tone(self):
        """Silence the tone. No effect if already silent."""


class SilentAudio(AudioCapability):
    """Tracks tone state and logs transitions instead of making noise."""

    def __init__(self):
        self.playing = False

    def start_tone(self):
        if not self.playing:
            log.debug("Tone on")
        self.playing = True

    def stop_tone(self):
        if self.playing:
            log.debug("Tone off")
        self.playing = False
