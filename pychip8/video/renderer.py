"""Convert the CHIP-8 framebuffer into RGB frames."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .framebuffer import Framebuffer
from .palette import MONOCHROME, RGBColor, validate_palette


@dataclass
class RenderResult:
    """RGB frame produced by :class:`Renderer`."""

    width: int
    height: int
    pixels: bytearray

    def get_pixel(self, x: int, y: int) -> RGBColor:
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"pixel ({x}, {y}) outside {self.width}x{self.height} frame")
        offset = (y * self.width + x) * 3
        return (self.pixels[offset], self.pixels[offset + 1], self.pixels[offset + 2])

    def to_surface(self):
        try:
            import pygame  # type: ignore
        except Exception as exc:  # pragma: no cover - optional dependency
            raise RuntimeError("pygame is required to build surfaces") from exc
        return pygame.image.frombuffer(bytes(self.pixels), (self.width, self.height), "RGB")


class Renderer:
    """Scale a monochrome framebuffer into an RGB byte buffer."""

    def __init__(self, palette: Sequence[RGBColor] = MONOCHROME) -> None:
        self._background, self._foreground = validate_palette(palette)

    def render(self, framebuffer: Framebuffer, *, scale: int = 1) -> RenderResult:
        if scale <= 0:
            raise ValueError("scale must be positive")

        width = framebuffer.width * scale
        height = framebuffer.height * scale
        background = bytes(self._background)
        foreground = bytes(self._foreground)

        pixels = bytearray()
        for row in framebuffer.rows():
            line = bytearray()
            for lit in row:
                line += (foreground if lit else background) * scale
            pixels += bytes(line) * scale

        return RenderResult(width=width, height=height, pixels=pixels)
