"""Bus-related helpers for the CHIP-8 emulator."""

from .memory import MEMORY_SIZE, PROGRAM_START, Memory, MemoryError

__all__ = [
    "MEMORY_SIZE",
    "PROGRAM_START",
    "Memory",
    "MemoryError",
]
