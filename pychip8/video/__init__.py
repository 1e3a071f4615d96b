"""Video helpers for the CHIP-8 emulator."""

from __future__ import annotations

from .font import FONT_DATA, FONT_HEIGHT, FONT_START, FONT_WIDTH, GLYPH_BYTES, glyph_address
from .framebuffer import DISPLAY_HEIGHT, DISPLAY_WIDTH, Framebuffer
from .palette import MONOCHROME, PHOSPHOR, validate_palette
from .renderer import RenderResult, Renderer

__all__ = [
    "Framebuffer",
    "Renderer",
    "RenderResult",
    "MONOCHROME",
    "PHOSPHOR",
    "validate_palette",
    "DISPLAY_WIDTH",
    "DISPLAY_HEIGHT",
    "FONT_DATA",
    "FONT_START",
    "FONT_WIDTH",
    "FONT_HEIGHT",
    "GLYPH_BYTES",
    "glyph_address",
]
