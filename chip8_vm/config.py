"""
Machine configuration and named profiles.

Profiles bundle the choices the instruction set leaves open: how deep the
call stack may grow and what to do with programs larger than memory.
"""

from __future__ import annotations
from dataclasses import dataclass, fields, replace
from typing import Optional

from .mem.loader import OVERFLOW_POLICIES

INSTRUCTIONS_PER_TICK = 11
TICK_RATE_HZ = 60

PROFILES = {
    "reference": {
        "stack_limit": None,
        "overflow": "truncate",
        "description": "Unbounded call stack, oversize programs truncated",
    },
    "cosmac": {
        "stack_limit": 16,
        "overflow": "error",
        "description": "16-level call stack, oversize programs rejected",
    },
}


@dataclass(frozen=True)
class MachineConfig:
    instructions_per_tick: int = INSTRUCTIONS_PER_TICK
    tick_rate_hz: int = TICK_RATE_HZ
    stack_limit: Optional[int] = None
    overflow: str = "truncate"
    seed: Optional[int] = None

    def __post_init__(self):
        if self.instructions_per_tick < 1:
            raise ValueError("instructions_per_tick must be at least 1")
        if self.tick_rate_hz < 1:
            raise ValueError("tick_rate_hz must be at least 1")
        if self.stack_limit is not None and self.stack_limit < 1:
            raise ValueError("stack_limit must be None or at least 1")
        if self.overflow not in OVERFLOW_POLICIES:
            raise ValueError(f"overflow must be one of {OVERFLOW_POLICIES}")

    @classmethod
    def from_profile(cls, name: str, **overrides) -> MachineConfig:
        """Build a config from PROFILES[name]; keyword overrides win.

        Overrides set to None are ignored, so argparse results can be passed
        straight through.
        """
        if name not in PROFILES:
            raise ValueError(f"Unknown profile {name!r} (choose from {', '.join(PROFILES)})")
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in PROFILES[name].items() if k in known}
        for key, value in overrides.items():
            if key not in known:
                raise ValueError(f"Unknown config field {key!r}")
            if value is not None:
                values[key] = value
        return cls(**values)

    def with_changes(self, **changes) -> MachineConfig:
        return replace(self, **changes)
