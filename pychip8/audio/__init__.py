"""Audio output for the CHIP-8 sound timer."""

from __future__ import annotations

from .beeper import DEFAULT_TONE_HZ, SquareWaveBeeper, build_square_wave

__all__ = [
    "DEFAULT_TONE_HZ",
    "SquareWaveBeeper",
    "build_square_wave",
]
