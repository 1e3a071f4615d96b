"""Delay and sound timers."""

from __future__ import annotations

from dataclasses import dataclass

TIMER_HZ = 60


@dataclass
class Timers:
    """Two independent 8-bit countdown timers ticked at 60 Hz."""

    delay: int = 0
    sound: int = 0

    def tick(self) -> None:
        """Decrement both timers by one, stopping at zero."""

        if self.delay > 0:
            self.delay -= 1
        if self.sound > 0:
            self.sound -= 1

    def set_delay(self, value: int) -> None:
        self.delay = value & 0xFF

    def set_sound(self, value: int) -> None:
        self.sound = value & 0xFF

    @property
    def sound_active(self) -> bool:
        return self.sound > 0

    def reset(self) -> None:
        self.delay = 0
        self.sound = 0
