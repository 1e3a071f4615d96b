"""Monochrome CHIP-8 framebuffer with XOR sprite blitting."""

from __future__ import annotations

from typing import Iterable, Sequence

DISPLAY_WIDTH = 64
DISPLAY_HEIGHT = 32
SPRITE_WIDTH = 8


class Framebuffer:
    """64x32 grid of single-bit pixels with toroidal addressing."""

    def __init__(self, width: int = DISPLAY_WIDTH, height: int = DISPLAY_HEIGHT) -> None:
        if width <= 0 or height <= 0:
            raise ValueError("framebuffer dimensions must be positive")
        self.width = width
        self.height = height
        self._pixels = bytearray(width * height)
        # Set by any mutation; cleared by the display collaborator once drawn.
        self.dirty = True

    def _index(self, x: int, y: int) -> int:
        return (y % self.height) * self.width + (x % self.width)

    def get_pixel(self, x: int, y: int) -> bool:
        return self._pixels[self._index(x, y)] != 0

    def clear(self) -> None:
        self._pixels[:] = bytes(len(self._pixels))
        self.dirty = True

    def draw_sprite(self, x: int, y: int, sprite: Sequence[int]) -> bool:
        """XOR ``sprite`` rows at ``(x, y)`` and report whether a pixel was erased.

        Each row is one byte, most significant bit leftmost. Coordinates wrap on
        both axes.
        """

        collision = False
        pixels = self._pixels
        for row, bits in enumerate(sprite):
            for column in range(SPRITE_WIDTH):
                if not (bits >> (7 - column)) & 0x01:
                    continue
                index = self._index(x + column, y + row)
                if pixels[index]:
                    collision = True
                pixels[index] ^= 0x01
        self.dirty = True
        return collision

    def rows(self) -> Iterable[tuple[bool, ...]]:
        for y in range(self.height):
            start = y * self.width
            yield tuple(value != 0 for value in self._pixels[start : start + self.width])

    def snapshot(self) -> bytes:
        """Return one byte per pixel, row-major."""

        return bytes(self._pixels)

    def lit_count(self) -> int:
        return sum(self._pixels)
