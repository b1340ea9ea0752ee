"""
Hex keypad capability (keys 0x0-0xF).

The engine only queries; it never waits. Hosts implement KeyCapability on
top of their event source. HeldKeys is a set-backed implementation used by
the headless runner and the tests.

Classic host layout (left: host keyboard, right: CHIP-8 key):

    1 2 3 4        1 2 3 C
    Q W E R   ->   4 5 6 D
    A S D F        7 8 9 E
    Z X C V        A 0 B F
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional, Set

NUM_KEYS = 16

KEY_LAYOUT: Dict[str, int] = {
    '1': 0x1, '2': 0x2, '3': 0x3, '4': 0xC,
    'q': 0x4, 'w': 0x5, 'e': 0x6, 'r': 0xD,
    'a': 0x7, 's': 0x8, 'd': 0x9, 'f': 0xE,
    'z': 0xA, 'x': 0x0, 'c': 0xB, 'v': 0xF,
}


class KeyCapability(ABC):
    """Non-blocking key query interface consumed by the engine."""

    @abstractmethod
    def is_pressed(self, key: int) -> bool:
        """True if hex key ``key`` is currently down.

        Values outside 0x0-0xF name no key and must answer False.
        """

    @abstractmethod
    def get_pressed_key(self) -> Optional[int]:
        """Any currently pressed key, or None."""


class NullKeypad(KeyCapability):
    """A keypad nobody is touching."""

    def is_pressed(self, key: int) -> bool:
        return False

    def get_pressed_key(self) -> Optional[int]:
        return None


class HeldKeys(KeyCapability):
    """Keys held down until explicitly released."""

    def __init__(self, keys: Iterable[int] = ()):
        self._held: Set[int] = set()
        for key in keys:
            self.press(key)

    def press(self, key: int):
        if not 0 <= key < NUM_KEYS:
            raise ValueError(f"No such key: {key!r}")
        self._held.add(key)

    def press_host(self, char: str):
        """Press the key mapped to a host keyboard character."""
        try:
            self.press(KEY_LAYOUT[char.lower()])
        except KeyError:
            raise ValueError(f"Host key {char!r} is not mapped") from None

    def release(self, key: int):
        self._held.discard(key)

    def release_all(self):
        self._held.clear()

    @property
    def held(self) -> Set[int]:
        return set(self._held)

    def is_pressed(self, key: int) -> bool:
        return key in self._held

    def get_pressed_key(self) -> Optional[int]:
        # Lowest key wins so the answer is deterministic
        return min(self._held) if self._held else None
