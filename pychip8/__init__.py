"""Python CHIP-8 emulator.

The package hosts the interpreter core (``cpu``, ``bus``), the devices it
drives (``video``, ``io``, ``audio``), machine assembly and the execution
driver (``system``), ROM loading (``loader``) and the pygame frontend used by
``run.py`` (``ui``).
"""

from __future__ import annotations

from . import audio, bus, cpu, io, loader, system, ui, utils, video

__all__: list[str] = [
    "cpu",
    "bus",
    "video",
    "audio",
    "io",
    "loader",
    "system",
    "ui",
    "utils",
]
