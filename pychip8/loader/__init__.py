"""Loaders for CHIP-8 program images."""

from __future__ import annotations

from .program import RomImage
from .rom import (
    MAX_ROM_SIZE,
    RomFormatError,
    install_font,
    load_rom,
    load_rom_bytes,
    load_rom_from_path,
)

__all__ = [
    "RomImage",
    "RomFormatError",
    "MAX_ROM_SIZE",
    "install_font",
    "load_rom",
    "load_rom_bytes",
    "load_rom_from_path",
]
