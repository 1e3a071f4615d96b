"""Pygame frontend for the CHIP-8 emulator."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

from pychip8.audio import DEFAULT_TONE_HZ, SquareWaveBeeper
from pychip8.cpu import Chip8Error, Quirks
from pychip8.loader import load_rom_from_path
from pychip8.system import DEFAULT_CPU_HZ, ExecutionDriver, Machine, MachineConfig, create_machine
from pychip8.utils import TraceRecorder, debug_enabled, debug_log
from pychip8.video import MONOCHROME, Renderer
from pychip8.video.palette import RGBColor


@dataclass
class AppConfig:
    """Configuration for the pygame frontend."""

    rom_path: Optional[Path] = None
    scale: int = 10
    fullscreen: bool = False
    cpu_hz: int = DEFAULT_CPU_HZ
    seed: Optional[int] = None
    quirks: Quirks = field(default_factory=Quirks)
    palette: Sequence[RGBColor] = MONOCHROME
    tone_hz: float = DEFAULT_TONE_HZ


class Chip8App:
    """Thin wrapper around the pygame event loop."""

    def __init__(self, config: AppConfig) -> None:
        self._config = config
        self._running = False
        self._beeper: SquareWaveBeeper | None = None
        self._machine: Machine | None = None
        self._driver: ExecutionDriver | None = None
        self._perf_enabled = debug_enabled("perf")
        self._perf_frame = 0
        self._trace_recorder: TraceRecorder | None = None
        if debug_enabled("trace"):
            self._trace_recorder = TraceRecorder(512)

    @property
    def machine(self) -> Machine | None:
        return self._machine

    def run(self) -> None:
        try:
            import pygame  # type: ignore
        except Exception as exc:  # pragma: no cover - optional dependency
            raise RuntimeError("pygame is required to run the UI") from exc

        if not self._config.rom_path:
            raise RuntimeError("ROM image is required; pass --rom <path>")
        rom_path = self._config.rom_path
        if not rom_path.exists():
            raise RuntimeError(f"ROM file not found: {rom_path}")

        pygame.mixer.pre_init(44_100, -16, 1, 512)
        pygame.init()
        pygame.display.set_caption(f"CHIP-8 - {rom_path.stem}")

        if pygame.mixer.get_init() is None:
            try:
                pygame.mixer.init(44_100, -16, 1)
            except pygame.error as exc:  # pragma: no cover - best-effort path
                if debug_enabled("audio"):
                    debug_log("audio", "mixer_init_failed=%s", exc)

        mixer_state = pygame.mixer.get_init()
        if mixer_state is not None:
            try:
                self._beeper = SquareWaveBeeper(sample_rate=mixer_state[0], frequency=self._config.tone_hz)
            except RuntimeError as exc:
                self._beeper = None
                if debug_enabled("audio"):
                    debug_log("audio", "beeper_init_failed=%s", exc)
        elif debug_enabled("audio"):
            debug_log("audio", "mixer_unavailable")

        machine = self._create_machine(rom_path)
        driver = self._create_driver(machine)
        renderer = Renderer(self._config.palette)

        scale = self._config.scale
        size = (machine.framebuffer.width * scale, machine.framebuffer.height * scale)
        flags = pygame.FULLSCREEN if self._config.fullscreen else 0
        screen = pygame.display.set_mode(size, flags)

        clock = pygame.time.Clock()
        self._running = True

        try:
            while self._running:
                for event in pygame.event.get():
                    if event.type == pygame.QUIT:
                        self._running = False
                    elif event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
                        self._running = False
                    elif event.type == pygame.KEYDOWN:
                        self._handle_key_event(pygame.key.name(event.key), pressed=True)
                    elif event.type == pygame.KEYUP:
                        self._handle_key_event(pygame.key.name(event.key), pressed=False)

                frame_start = time.perf_counter()
                executed = self._step_frame(driver)

                if self._beeper is not None:
                    self._beeper.set_state(machine.timers.sound_active)

                if machine.framebuffer.dirty:
                    frame = renderer.render(machine.framebuffer, scale=scale)
                    screen.blit(frame.to_surface(), (0, 0))
                    pygame.display.flip()
                    machine.framebuffer.dirty = False

                if self._perf_enabled:
                    self._perf_frame += 1
                    debug_log(
                        "perf",
                        "frame=%d steps=%d frame_ms=%.3f waiting=%s",
                        self._perf_frame,
                        executed,
                        (time.perf_counter() - frame_start) * 1000.0,
                        driver.awaiting_key,
                    )

                clock.tick(machine.config.timer_hz)
        finally:
            if self._beeper is not None:
                self._beeper.shutdown()
            pygame.quit()

    def _create_machine(self, rom_path: Path) -> Machine:
        config = MachineConfig(
            cpu_hz=self._config.cpu_hz,
            seed=self._config.seed,
            quirks=self._config.quirks,
        )
        machine = create_machine(config)
        machine.rom = load_rom_from_path(rom_path, machine.memory)
        self._machine = machine
        return machine

    def _create_driver(self, machine: Machine) -> ExecutionDriver:
        driver = ExecutionDriver(machine, trace=self._trace_recorder)
        self._driver = driver
        return driver

    def _step_frame(self, driver: ExecutionDriver) -> int:
        try:
            return driver.run_frame()
        except Chip8Error as exc:
            self._running = False
            raise RuntimeError(f"Machine halted: {exc}") from exc

    def _handle_key_event(self, key_name: str, *, pressed: bool) -> None:
        machine = self._machine
        if machine is None:
            return
        if debug_enabled("input"):
            debug_log("input", "event=%s pressed=%s", key_name, pressed)
        if pressed:
            machine.keypad.press_name(key_name)
        else:
            machine.keypad.release_name(key_name)
