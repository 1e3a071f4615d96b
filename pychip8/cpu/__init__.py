"""CPU package for the CHIP-8 emulator."""

from .core import (
    AddressOutOfRangeError,
    Chip8CPU,
    Chip8Error,
    CPUState,
    Quirks,
    StackError,
    StackOverflowError,
    StackUnderflowError,
    UnknownInstructionError,
)
from .timers import TIMER_HZ, Timers
from . import opcodes

__all__ = [
    "Chip8CPU",
    "CPUState",
    "Quirks",
    "Timers",
    "TIMER_HZ",
    "Chip8Error",
    "UnknownInstructionError",
    "AddressOutOfRangeError",
    "StackError",
    "StackOverflowError",
    "StackUnderflowError",
    "opcodes",
]
