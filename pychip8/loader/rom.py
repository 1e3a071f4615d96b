"""ROM image loader for CHIP-8 programs."""

from __future__ import annotations

from pathlib import Path
from typing import BinaryIO

from pychip8.bus import MEMORY_SIZE, PROGRAM_START, Memory
from pychip8.utils import debug_enabled, debug_log
from pychip8.video import FONT_DATA, FONT_START

from .program import RomImage


class RomFormatError(RuntimeError):
    """Raised when a ROM image cannot be placed in memory."""


MAX_ROM_SIZE = MEMORY_SIZE - PROGRAM_START


def install_font(memory: Memory, start: int = FONT_START) -> None:
    """Write the built-in hexadecimal glyphs into the reserved area."""

    if start + len(FONT_DATA) > PROGRAM_START:
        raise RomFormatError(f"font at {start:#05x} overlaps the program area")
    memory.store_block(start, FONT_DATA)


def load_rom_bytes(data: bytes, memory: Memory, *, name: str = "", start: int = PROGRAM_START) -> RomImage:
    """Copy ``data`` into ``memory`` at ``start`` and return its metadata."""

    if not data:
        raise RomFormatError("ROM image is empty")
    if start < PROGRAM_START:
        raise RomFormatError(f"ROM start {start:#05x} lies inside the reserved area")
    if start + len(data) > memory.get_end_address() + 1:
        raise RomFormatError(
            f"ROM image of {len(data)} bytes does not fit at {start:#05x} "
            f"(maximum {memory.get_end_address() + 1 - start} bytes)"
        )
    memory.store_block(start, data)
    if debug_enabled("loader"):
        debug_log("loader", "rom name=%s start=%03x length=%d", name or "-", start, len(data))
    return RomImage(name=name, start=start, data=bytes(data))


def load_rom(stream: BinaryIO, memory: Memory, *, name: str = "") -> RomImage:
    """Read a ROM image from ``stream`` and load it at 0x200."""

    data = stream.read(MAX_ROM_SIZE + 1)
    if len(data) > MAX_ROM_SIZE:
        raise RomFormatError(f"ROM image exceeds {MAX_ROM_SIZE} bytes")
    return load_rom_bytes(data, memory, name=name)


def load_rom_from_path(path: Path, memory: Memory) -> RomImage:
    """Load a ROM image from the filesystem."""

    with path.open("rb") as handle:
        return load_rom(handle, memory, name=path.stem)
