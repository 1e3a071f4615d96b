"""Input devices for the CHIP-8 emulator."""

from __future__ import annotations

from .keypad import KEY_COUNT, KEY_MAP_TEMPLATE, Keypad

__all__ = [
    "KEY_COUNT",
    "KEY_MAP_TEMPLATE",
    "Keypad",
]
