"""Tests for the ROM loader."""

from __future__ import annotations

import io

import pytest

from pychip8.bus import Memory
from pychip8.loader import (
    MAX_ROM_SIZE,
    RomFormatError,
    install_font,
    load_rom,
    load_rom_bytes,
    load_rom_from_path,
)
from pychip8.video import FONT_DATA


def test_load_rom_places_image_at_program_start() -> None:
    memory = Memory()

    image = load_rom(io.BytesIO(b"\x00\xE0\x12\x00"), memory, name="demo")

    assert image.name == "demo"
    assert image.start == 0x200
    assert image.length == 4
    assert memory.load_block(0x200, 4) == b"\x00\xE0\x12\x00"
    assert memory.load8(0x1FF) == 0


def test_load_rom_accepts_maximum_size() -> None:
    memory = Memory()
    data = bytes(range(256)) * (MAX_ROM_SIZE // 256)

    image = load_rom(io.BytesIO(data), memory)

    assert image.end == 0xFFF
    assert memory.load8(0xFFF) == data[-1]


def test_load_rom_rejects_oversized_image() -> None:
    memory = Memory()
    with pytest.raises(RomFormatError):
        load_rom(io.BytesIO(bytes(MAX_ROM_SIZE + 1)), memory)
    assert memory.snapshot() == bytes(0x1000)


def test_load_rom_rejects_empty_image() -> None:
    with pytest.raises(RomFormatError):
        load_rom(io.BytesIO(b""), Memory())


def test_load_rom_bytes_rejects_reserved_area() -> None:
    with pytest.raises(RomFormatError):
        load_rom_bytes(b"\x00", Memory(), start=0x100)


def test_load_rom_from_path_uses_stem(tmp_path) -> None:
    rom_path = tmp_path / "pong.ch8"
    rom_path.write_bytes(b"\x6A\x02")
    memory = Memory()

    image = load_rom_from_path(rom_path, memory)

    assert image.name == "pong"
    assert memory.load16(0x200) == 0x6A02


def test_install_font() -> None:
    memory = Memory()
    install_font(memory)
    assert memory.load_block(0, len(FONT_DATA)) == FONT_DATA
    assert len(FONT_DATA) == 80

    with pytest.raises(RomFormatError):
        install_font(memory, start=0x1C0)
