"""CHIP-8 system assembly helpers."""

from __future__ import annotations

from .driver import ExecutionDriver
from .machine import DEFAULT_CPU_HZ, Machine, MachineConfig, create_machine

__all__ = [
    "DEFAULT_CPU_HZ",
    "ExecutionDriver",
    "MachineConfig",
    "Machine",
    "create_machine",
]
