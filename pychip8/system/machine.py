"""CHIP-8 machine assembly."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional

from pychip8.bus import Memory
from pychip8.cpu import TIMER_HZ, Chip8CPU, Quirks, Timers
from pychip8.cpu.core import make_random_source
from pychip8.io import Keypad
from pychip8.loader import RomImage, install_font, load_rom_bytes
from pychip8.video import Framebuffer

DEFAULT_CPU_HZ = 540


@dataclass
class MachineConfig:
    """Runtime configuration for a CHIP-8 machine."""

    rom_image: Optional[bytes] = None
    rom_name: str = ""
    cpu_hz: int = DEFAULT_CPU_HZ
    timer_hz: int = TIMER_HZ
    seed: Optional[int] = None
    random_source: Optional[Callable[[], int]] = None
    quirks: Quirks = field(default_factory=Quirks)
    keypad: Keypad | None = None

    def __post_init__(self) -> None:
        if self.cpu_hz <= 0:
            raise ValueError("cpu_hz must be positive")
        if self.timer_hz <= 0:
            raise ValueError("timer_hz must be positive")

    @property
    def instructions_per_tick(self) -> int:
        return max(1, round(self.cpu_hz / self.timer_hz))


@dataclass
class Machine:
    """Aggregates the core components of a CHIP-8 machine."""

    config: MachineConfig
    memory: Memory
    cpu: Chip8CPU
    framebuffer: Framebuffer
    keypad: Keypad
    timers: Timers
    rom: RomImage | None = None

    def reset(self) -> None:
        """Restore the power-on state, reloading the font and ROM image."""

        self.memory.clear()
        install_font(self.memory)
        if self.rom is not None:
            load_rom_bytes(self.rom.data, self.memory, name=self.rom.name, start=self.rom.start)
        self.framebuffer.clear()
        self.timers.reset()
        self.keypad.reset()
        self.cpu.reset()

    def load_rom(self, data: bytes, name: str = "") -> RomImage:
        self.rom = load_rom_bytes(data, self.memory, name=name)
        return self.rom


def create_machine(config: MachineConfig | None = None) -> Machine:
    """Instantiate a CHIP-8 machine with the requested configuration."""

    config = config or MachineConfig()

    memory = Memory()
    install_font(memory)

    rom = None
    if config.rom_image:
        rom = load_rom_bytes(config.rom_image, memory, name=config.rom_name)

    framebuffer = Framebuffer()
    keypad = config.keypad or Keypad()
    timers = Timers()
    random_source = config.random_source or make_random_source(config.seed)

    cpu = Chip8CPU(
        memory,
        framebuffer,
        keypad,
        timers,
        random_source=random_source,
        quirks=config.quirks,
    )

    return Machine(
        config=config,
        memory=memory,
        cpu=cpu,
        framebuffer=framebuffer,
        keypad=keypad,
        timers=timers,
        rom=rom,
    )
