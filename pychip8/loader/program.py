"""Program metadata structures for CHIP-8 loaders."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class RomImage:
    """Holds a loaded ROM image and where it was placed."""

    name: str = ""
    start: int = 0x200
    data: bytes = b""

    @property
    def length(self) -> int:
        return len(self.data)

    @property
    def end(self) -> int:
        return self.start + len(self.data) - 1
