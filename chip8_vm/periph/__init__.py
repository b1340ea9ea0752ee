"""Keypad, audio and timer peripherals."""
