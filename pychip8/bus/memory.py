"""Memory for the CHIP-8 virtual machine.

The CHIP-8 exposes a single flat 4 KiB address space that holds the font
glyphs, the interpreter area and the program image. Unlike a banked bus there
is nothing to dispatch to, so the memory is one byte-addressable region whose
every access is bounds checked. Reads and writes outside the region raise
``MemoryError`` instead of wrapping.
"""

from __future__ import annotations

from dataclasses import dataclass

MEMORY_SIZE = 0x1000
PROGRAM_START = 0x200


class MemoryError(Exception):
    """Raised when memory is misconfigured or accessed out of range."""

    def __init__(self, message: str, address: int | None = None) -> None:
        super().__init__(message)
        self.address = address


@dataclass
class Memory:
    """Bounds-checked byte-addressable memory region."""

    start: int = 0x000
    length: int = MEMORY_SIZE

    def __post_init__(self) -> None:
        if self.start < 0 or self.length <= 0:
            raise MemoryError("memory region must have a positive length and non-negative start")
        self._data = bytearray(self.length)

    def get_start_address(self) -> int:
        return self.start

    def get_end_address(self) -> int:
        return self.start + self.length - 1

    def contains(self, address: int, length: int = 1) -> bool:
        """Return ``True`` when ``length`` bytes from ``address`` are mapped."""

        if length <= 0:
            return True
        return self.start <= address and address + length - 1 <= self.get_end_address()

    def check_range(self, address: int, length: int = 1) -> None:
        """Raise ``MemoryError`` unless the whole range is mapped."""

        if not self.contains(address, length):
            end = address + max(length, 1) - 1
            raise MemoryError(
                f"address range {address:#06x}-{end:#06x} outside region "
                f"{self.start:#06x}-{self.get_end_address():#06x}",
                address,
            )

    def _offset(self, address: int) -> int:
        offset = address - self.start
        if not 0 <= offset < self.length:
            raise MemoryError(
                f"address {address:#06x} outside region {self.start:#06x}-{self.get_end_address():#06x}",
                address,
            )
        return offset

    def load8(self, address: int) -> int:
        return self._data[self._offset(address)]

    def store8(self, address: int, value: int) -> None:
        self._data[self._offset(address)] = value & 0xFF

    def load16(self, address: int) -> int:
        """Read a big-endian word."""

        self.check_range(address, 2)
        high = self.load8(address)
        low = self.load8(address + 1)
        return (high << 8) | low

    def store16(self, address: int, value: int) -> None:
        self.check_range(address, 2)
        self.store8(address, (value >> 8) & 0xFF)
        self.store8(address + 1, value & 0xFF)

    def load_block(self, address: int, length: int) -> bytes:
        self.check_range(address, length)
        offset = address - self.start
        return bytes(self._data[offset : offset + length])

    def store_block(self, address: int, data: bytes) -> None:
        self.check_range(address, len(data))
        offset = address - self.start
        self._data[offset : offset + len(data)] = bytes(value & 0xFF for value in data)

    def clear(self) -> None:
        self._data[:] = bytes(self.length)

    def snapshot(self) -> bytes:
        return bytes(self._data)
