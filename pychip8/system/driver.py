"""Execution driver: paces instruction steps and timer ticks."""

from __future__ import annotations

import time
from typing import Callable

from pychip8.cpu import Chip8Error
from pychip8.cpu.opcodes import DecodedInstruction
from pychip8.utils import TraceRecorder, debug_enabled, debug_log

from .machine import Machine


class ExecutionDriver:
    """Run a :class:`Machine` one step, one frame, or until stopped.

    The timers are ticked once every ``instructions_per_tick`` steps. Steps
    spent suspended in ``Fx0A`` count as well, so the timers keep running
    while a program waits for input. Cancellation via :meth:`stop` is checked
    between steps.
    """

    def __init__(
        self,
        machine: Machine,
        *,
        instructions_per_tick: int | None = None,
        trace: TraceRecorder | None = None,
        clock: Callable[[], float] = time.perf_counter,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if instructions_per_tick is None:
            instructions_per_tick = machine.config.instructions_per_tick
        if instructions_per_tick <= 0:
            raise ValueError("instructions_per_tick must be positive")
        self.machine = machine
        self.instructions_per_tick = instructions_per_tick
        self.timer_hz = machine.config.timer_hz
        self.trace = trace
        self.last_error: Chip8Error | None = None
        self.steps = 0
        self.ticks = 0
        self.running = False
        self._steps_since_tick = 0
        self._stop_requested = False
        self._clock = clock
        self._sleep = sleep

    @property
    def awaiting_key(self) -> bool:
        return self.machine.cpu.awaiting_key

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested

    def stop(self) -> None:
        """Ask a running :meth:`run` loop to return after the current step."""

        self._stop_requested = True

    def step(self) -> DecodedInstruction | None:
        """Execute one step and tick the timers when a period completes."""

        decoded, _ = self._step_once()
        return decoded

    def run_frame(self) -> int:
        """Step until the next timer tick; return the number of steps taken.

        A :meth:`stop` issued during the frame ends it early.
        """

        self._stop_requested = False
        executed = 0
        while not self._stop_requested:
            _, ticked = self._step_once()
            executed += 1
            if ticked:
                break
        return executed

    def run(
        self,
        max_steps: int | None = None,
        *,
        realtime: bool = False,
        on_frame: Callable[[], None] | None = None,
    ) -> int:
        """Free-run until stopped, ``max_steps`` is reached, or a fatal error.

        ``on_frame`` is invoked after every timer tick; hosts use it to
        service input and may call :meth:`stop` from there. With ``realtime``
        each frame is paced to ``timer_hz`` using the wall clock.
        """

        self._stop_requested = False
        self.running = True
        executed = 0
        frame_period = 1.0 / self.timer_hz
        deadline = self._clock() + frame_period
        try:
            while not self._stop_requested:
                if max_steps is not None and executed >= max_steps:
                    break
                _, ticked = self._step_once()
                executed += 1
                if not ticked:
                    continue
                if on_frame is not None:
                    on_frame()
                if realtime:
                    now = self._clock()
                    remaining = deadline - now
                    if remaining > 0:
                        self._sleep(remaining)
                        deadline += frame_period
                    else:
                        deadline = now + frame_period
        finally:
            stopped = self._stop_requested
            self._stop_requested = False
            self.running = False
        if debug_enabled("driver"):
            debug_log("driver", "run_exit steps=%d ticks=%d stopped=%s", executed, self.ticks, stopped)
        return executed

    # ------------------------------------------------------------------
    # Internals

    def _step_once(self) -> tuple[DecodedInstruction | None, bool]:
        machine = self.machine
        cpu = machine.cpu
        trace = self.trace
        state_before = cpu.state.clone() if trace is not None else None
        waiting_before = cpu.awaiting_key

        try:
            decoded = cpu.step()
        except Chip8Error as exc:
            self.last_error = exc
            self._report_fault(exc)
            raise

        if trace is not None and state_before is not None:
            note = "wait-key" if cpu.awaiting_key else ""
            trace.record_step(
                state_before,
                None if decoded is None else decoded.word,
                machine.timers,
                waiting=waiting_before,
                mnemonic="" if decoded is None else decoded.mnemonic,
                note=note,
            )

        self.steps += 1
        self._steps_since_tick += 1
        if self._steps_since_tick < self.instructions_per_tick:
            return decoded, False
        self._steps_since_tick = 0
        machine.timers.tick()
        self.ticks += 1
        return decoded, True

    def _report_fault(self, exc: Chip8Error) -> None:
        if not debug_enabled("driver"):
            return
        debug_log("driver", "fatal %s: %s", type(exc).__name__, exc)
        if exc.state is not None:
            debug_log("driver", "state %s", exc.state.format())
        if self.trace is not None:
            self.trace.dump("driver", limit=32)
