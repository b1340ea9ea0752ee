#!/usr/bin/env python3
"""
chip8run - headless CHIP-8 runner

Usage:
    python chip8run.py <rom.ch8> [--ticks 600] [--profile reference|cosmac]
                                 [--keys 1,A] [--seed N] [--show] [--realtime]
                                 [--save-state out.c8s] [--trace] [-v]
    python chip8run.py --load-state saved.c8s [--ticks N] [--show]
    python chip8run.py <rom.ch8> --disasm

Runs the program for a fixed number of ticks (60 ticks = one emulated
second) with the listed hex keys held down, then optionally prints the
final frame and writes a save state. A program fault prints the fault
report and exits with status 1.

Examples:
    python chip8run.py ibm_logo.ch8 --ticks 120 --show
    python chip8run.py pong.ch8 --keys 1 --realtime --ticks 600
    python chip8run.py game.ch8 --disasm
"""

import argparse
import logging
import sys
import time
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel

from chip8_vm import __version__
from chip8_vm.config import PROFILES, MachineConfig
from chip8_vm.disasm import disassemble
from chip8_vm.display.pixels import render_rows
from chip8_vm.errors import (
    BadStateError, MachineFault, ProgramLoadError, SnapshotError,
)
from chip8_vm.log_setup import setup_logging
from chip8_vm.machine import Machine
from chip8_vm.mem.loader import read_program
from chip8_vm.periph.keypad import HeldKeys

log = logging.getLogger("chip8_vm.cli")


def parse_int_arg(value: str) -> int:
    """Parse an integer argument that may be hex (0x...), $ prefix, or decimal."""
    value = value.strip()
    if value.startswith("0x") or value.startswith("0X"):
        return int(value, 16)
    if value.startswith("$"):
        return int(value[1:], 16)
    return int(value)


def parse_keys(value: str) -> List[int]:
    """Comma-separated hex digits, e.g. '1,A,f'."""
    keys = []
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        key = int(part, 16)
        if not 0 <= key <= 0xF:
            raise ValueError(f"key out of range: {part}")
        keys.append(key)
    return keys


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chip8run",
        description="Headless CHIP-8 interpreter",
        epilog="Profiles: " + ", ".join(
            f"{name} ({p['description']})" for name, p in PROFILES.items()),
    )
    parser.add_argument("rom", nargs="?", help="Program image to load at $200")
    parser.add_argument("--ticks", type=parse_int_arg, default=600,
                        help="Number of ticks to run (default: 600)")
    parser.add_argument("--profile", default="reference", choices=list(PROFILES.keys()),
                        help="Machine profile (default: reference)")
    parser.add_argument("--instructions-per-tick", type=parse_int_arg, default=None,
                        help="Override instructions executed per tick")
    parser.add_argument("--stack-limit", type=parse_int_arg, default=None,
                        help="Maximum call depth (default: from profile)")
    parser.add_argument("--seed", type=parse_int_arg, default=None,
                        help="Seed for the random number source")
    parser.add_argument("--keys", type=parse_keys, default=[],
                        help="Hex keys held down for the whole run, e.g. 1,A")
    parser.add_argument("--realtime", action="store_true",
                        help="Pace ticks at the profile's refresh rate")
    parser.add_argument("--show", action="store_true",
                        help="Print the final frame")
    parser.add_argument("--disasm", action="store_true",
                        help="Disassemble the program and exit")
    parser.add_argument("--trace", action="store_true",
                        help="Print every executed instruction")
    parser.add_argument("--load-state", metavar="PATH",
                        help="Resume from a save state instead of a ROM")
    parser.add_argument("--save-state", metavar="PATH",
                        help="Write a save state after the run")
    parser.add_argument("--verbose", "-v", action="count", default=0,
                        help="More log output (-v info, -vv debug)")
    parser.add_argument("--log-file", help="Write a DEBUG log to this file")
    parser.add_argument("--version", action="version",
                        version=f"chip8run {__version__}")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.rom and not args.load_state:
        parser.error("a ROM or --load-state is required")

    console_level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    setup_logging(console_level=console_level, log_file=args.log_file)
    console = Console(highlight=False)

    try:
        config = MachineConfig.from_profile(
            args.profile,
            instructions_per_tick=args.instructions_per_tick,
            stack_limit=args.stack_limit,
            seed=args.seed,
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        if args.disasm:
            if not args.rom:
                parser.error("--disasm needs a ROM")
            for ins in disassemble(read_program(args.rom, config.overflow)):
                print(ins.format())
            return 0

        machine = Machine(keypad=HeldKeys(args.keys), config=config)
        if args.load_state:
            with open(args.load_state, "rb") as f:
                machine.restore(f.read())
        else:
            machine.load(args.rom)
        machine.enable_trace(args.trace)

        interval = 1.0 / config.tick_rate_hz
        completed = 0
        fault = None
        for _ in range(args.ticks):
            started = time.perf_counter()
            try:
                machine.tick()
            except MachineFault as e:
                fault = e
                break
            completed += 1
            if args.realtime:
                remaining = interval - (time.perf_counter() - started)
                if remaining > 0:
                    time.sleep(remaining)
        log.info("Ran %d of %d ticks", completed, args.ticks)

        if args.trace:
            print(machine.get_trace())

        if args.show:
            console.print(Panel("\n".join(render_rows(machine.frame_buffer)),
                                title=f"tick {completed}", expand=False))

        if args.save_state:
            with open(args.save_state, "wb") as f:
                f.write(machine.snapshot())
            log.info("Saved state to %s", args.save_state)

        if fault is not None:
            print(f"Program fault: {machine.fault.format()}", file=sys.stderr)
            return 1
        return 0

    except ProgramLoadError as e:
        print(f"Load error: {e}", file=sys.stderr)
        return 1
    except SnapshotError as e:
        print(f"Snapshot error: {e}", file=sys.stderr)
        return 1
    except BadStateError as e:
        print(f"Machine error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"I/O error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Internal error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 2


if __name__ == "__main__":
    sys.exit(main())
