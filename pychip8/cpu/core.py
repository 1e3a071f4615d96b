"""CHIP-8 fetch/decode/execute engine."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Callable, Sequence

from pychip8.bus import PROGRAM_START, Memory, MemoryError
from pychip8.io import Keypad
from pychip8.utils import debug_enabled, debug_log
from pychip8.video import FONT_START, Framebuffer, glyph_address

from .opcodes import OPCODE_TABLE, DecodedInstruction, FamilyEntry, decode
from .timers import Timers

REGISTER_COUNT = 16
STACK_SIZE = 16
FLAG = 0xF


class Chip8Error(Exception):
    """Base error for fatal machine conditions."""

    def __init__(
        self,
        message: str,
        *,
        opcode: int | None = None,
        pc: int | None = None,
        state: "CPUState | None" = None,
    ) -> None:
        super().__init__(message)
        self.opcode = opcode
        self.pc = pc
        self.state = state

    def __str__(self) -> str:
        message = super().__str__()
        context: list[str] = []
        if self.opcode is not None:
            context.append(f"opcode={self.opcode:04X}")
        if self.pc is not None:
            context.append(f"pc={self.pc:04X}")
        if context:
            return f"{message} ({' '.join(context)})"
        return message


class UnknownInstructionError(Chip8Error):
    """Raised when the fetched word matches no instruction."""


class AddressOutOfRangeError(Chip8Error):
    """Raised when an instruction touches memory outside the 4 KiB space."""


class StackError(Chip8Error):
    """Base class for call stack faults."""


class StackOverflowError(StackError):
    """Raised when a call would nest deeper than the stack allows.

    The stack pointer is pre-incremented and slot 0 is never written, so at
    most 15 calls can be outstanding; the 16th nested call raises.
    """


class StackUnderflowError(StackError):
    """Raised when a return executes with an empty call stack."""


@dataclass
class Quirks:
    """Optional behaviour of CHIP-8 variants; all off for the documented baseline."""

    add_immediate_sets_carry: bool = False
    index_overflow_sets_flag: bool = False


@dataclass
class CPUState:
    """Snapshot of the CHIP-8 register file."""

    v: list[int] = field(default_factory=lambda: [0] * REGISTER_COUNT)
    i: int = 0x000
    pc: int = PROGRAM_START
    sp: int = 0
    stack: list[int] = field(default_factory=lambda: [0] * STACK_SIZE)

    def clone(self) -> "CPUState":
        return CPUState(list(self.v), self.i, self.pc, self.sp, list(self.stack))

    def format(self) -> str:
        registers = " ".join(f"V{index:X}={value:02X}" for index, value in enumerate(self.v))
        return f"PC={self.pc:04X} I={self.i:04X} SP={self.sp:02X} {registers}"


def make_random_source(seed: int | None = None) -> Callable[[], int]:
    rng = random.Random(seed)
    return lambda: rng.randrange(0x100)


@dataclass
class Chip8CPU:
    """Interpreter core operating on an explicitly owned set of devices."""

    memory: Memory
    framebuffer: Framebuffer
    keypad: Keypad
    timers: Timers
    random_source: Callable[[], int] = field(default_factory=make_random_source)
    quirks: Quirks = field(default_factory=Quirks)
    instruction_table: Sequence[FamilyEntry] = field(default=OPCODE_TABLE)
    font_start: int = FONT_START

    state: CPUState = field(default_factory=CPUState)
    instruction_count: int = 0
    waiting_register: int | None = None
    _waiting_instruction: DecodedInstruction | None = field(default=None, init=False, repr=False)

    def reset(self) -> None:
        """Reset registers and stack; memory and devices are left alone."""

        self.state = CPUState()
        self.instruction_count = 0
        self.waiting_register = None
        self._waiting_instruction = None

    @property
    def awaiting_key(self) -> bool:
        return self.waiting_register is not None

    def step(self) -> DecodedInstruction | None:
        """Execute one instruction.

        Returns the decoded instruction, or ``None`` while the CPU is
        suspended in ``Fx0A`` and no key is down. A suspended CPU polls the
        keypad once per call and leaves ``PC`` on the ``Fx0A`` word until a
        key arrives; the call that completes the wait returns ``Fx0A`` again.
        """

        if self.waiting_register is not None:
            return self._poll_key()

        pc = self.state.pc
        word = self._fetch(pc)
        decoded = decode(word, self.instruction_table)
        if decoded is None:
            raise UnknownInstructionError(
                "unknown instruction", opcode=word, pc=pc, state=self.state.clone()
            )
        if debug_enabled("cpu"):
            debug_log("cpu", "pc=%04x opcode=%04x %s", pc, word, decoded.mnemonic)

        handler = getattr(self, decoded.instruction.handler, None)
        if handler is None:
            raise Chip8Error(
                f"handler '{decoded.instruction.handler}' not implemented", opcode=word, pc=pc
            )
        try:
            handler(decoded)
        except MemoryError as exc:
            raise AddressOutOfRangeError(
                str(exc), opcode=word, pc=pc, state=self.state.clone()
            ) from exc
        self.instruction_count += 1
        return decoded

    def peek_opcode(self) -> int | None:
        """Return the word at ``PC`` without executing it."""

        if not self.memory.contains(self.state.pc, 2):
            return None
        return self.memory.load16(self.state.pc)

    # ------------------------------------------------------------------
    # Flow control

    def op_cls(self, _: DecodedInstruction) -> None:
        self.framebuffer.clear()
        self._next()

    def op_ret(self, decoded: DecodedInstruction) -> None:
        state = self.state
        if state.sp <= 0:
            raise StackUnderflowError(
                "return with empty call stack", opcode=decoded.word, pc=state.pc, state=state.clone()
            )
        state.pc = state.stack[state.sp]
        state.sp -= 1
        self._next()

    def op_jp(self, decoded: DecodedInstruction) -> None:
        self.state.pc = decoded.nnn

    def op_call(self, decoded: DecodedInstruction) -> None:
        state = self.state
        if state.sp >= STACK_SIZE - 1:
            raise StackOverflowError(
                "call stack exhausted", opcode=decoded.word, pc=state.pc, state=state.clone()
            )
        state.sp += 1
        state.stack[state.sp] = state.pc
        state.pc = decoded.nnn

    def op_jp_v0(self, decoded: DecodedInstruction) -> None:
        self.state.pc = (decoded.nnn + self.state.v[0]) & 0xFFFF

    def op_se_byte(self, decoded: DecodedInstruction) -> None:
        self._skip_if(self.state.v[decoded.x] == decoded.kk)

    def op_sne_byte(self, decoded: DecodedInstruction) -> None:
        self._skip_if(self.state.v[decoded.x] != decoded.kk)

    def op_se_reg(self, decoded: DecodedInstruction) -> None:
        v = self.state.v
        self._skip_if(v[decoded.x] == v[decoded.y])

    def op_sne_reg(self, decoded: DecodedInstruction) -> None:
        v = self.state.v
        self._skip_if(v[decoded.x] != v[decoded.y])

    def op_skp(self, decoded: DecodedInstruction) -> None:
        self._skip_if(self.keypad.is_pressed(self.state.v[decoded.x]))

    def op_sknp(self, decoded: DecodedInstruction) -> None:
        self._skip_if(not self.keypad.is_pressed(self.state.v[decoded.x]))

    # ------------------------------------------------------------------
    # Register arithmetic

    def op_ld_byte(self, decoded: DecodedInstruction) -> None:
        self.state.v[decoded.x] = decoded.kk
        self._next()

    def op_add_byte(self, decoded: DecodedInstruction) -> None:
        v = self.state.v
        total = v[decoded.x] + decoded.kk
        v[decoded.x] = total & 0xFF
        if self.quirks.add_immediate_sets_carry:
            v[FLAG] = 1 if total > 0xFF else 0
        self._next()

    def op_ld_reg(self, decoded: DecodedInstruction) -> None:
        v = self.state.v
        v[decoded.x] = v[decoded.y]
        self._next()

    def op_or(self, decoded: DecodedInstruction) -> None:
        v = self.state.v
        v[decoded.x] |= v[decoded.y]
        self._next()

    def op_and(self, decoded: DecodedInstruction) -> None:
        v = self.state.v
        v[decoded.x] &= v[decoded.y]
        self._next()

    def op_xor(self, decoded: DecodedInstruction) -> None:
        v = self.state.v
        v[decoded.x] ^= v[decoded.y]
        self._next()

    # Flag-producing instructions compute the flag from the operands before
    # the write and store it last, so VF as a destination ends up holding the
    # flag.

    def op_add_reg(self, decoded: DecodedInstruction) -> None:
        v = self.state.v
        total = v[decoded.x] + v[decoded.y]
        v[decoded.x] = total & 0xFF
        v[FLAG] = 1 if total > 0xFF else 0
        self._next()

    def op_sub(self, decoded: DecodedInstruction) -> None:
        v = self.state.v
        vx, vy = v[decoded.x], v[decoded.y]
        v[decoded.x] = (vx - vy) & 0xFF
        v[FLAG] = 1 if vx > vy else 0
        self._next()

    def op_subn(self, decoded: DecodedInstruction) -> None:
        v = self.state.v
        vx, vy = v[decoded.x], v[decoded.y]
        v[decoded.x] = (vy - vx) & 0xFF
        v[FLAG] = 1 if vy > vx else 0
        self._next()

    def op_shr(self, decoded: DecodedInstruction) -> None:
        v = self.state.v
        vx = v[decoded.x]
        v[decoded.x] = vx >> 1
        v[FLAG] = vx & 0x01
        self._next()

    def op_shl(self, decoded: DecodedInstruction) -> None:
        v = self.state.v
        vx = v[decoded.x]
        v[decoded.x] = (vx << 1) & 0xFF
        v[FLAG] = (vx >> 7) & 0x01
        self._next()

    def op_rnd(self, decoded: DecodedInstruction) -> None:
        self.state.v[decoded.x] = self.random_source() & 0xFF & decoded.kk
        self._next()

    # ------------------------------------------------------------------
    # Index register and memory

    def op_ld_index(self, decoded: DecodedInstruction) -> None:
        self.state.i = decoded.nnn
        self._next()

    def op_add_index(self, decoded: DecodedInstruction) -> None:
        state = self.state
        total = state.i + state.v[decoded.x]
        state.i = total & 0xFFFF
        if self.quirks.index_overflow_sets_flag:
            state.v[FLAG] = 1 if total > 0x0FFF else 0
        self._next()

    def op_ld_font(self, decoded: DecodedInstruction) -> None:
        self.state.i = glyph_address(self.state.v[decoded.x], self.font_start)
        self._next()

    def op_bcd(self, decoded: DecodedInstruction) -> None:
        state = self.state
        value = state.v[decoded.x]
        self.memory.store_block(state.i, bytes((value // 100, (value // 10) % 10, value % 10)))
        self._next()

    def op_store_registers(self, decoded: DecodedInstruction) -> None:
        state = self.state
        self.memory.store_block(state.i, bytes(state.v[: decoded.x + 1]))
        self._next()

    def op_load_registers(self, decoded: DecodedInstruction) -> None:
        state = self.state
        data = self.memory.load_block(state.i, decoded.x + 1)
        state.v[: decoded.x + 1] = list(data)
        self._next()

    def op_drw(self, decoded: DecodedInstruction) -> None:
        state = self.state
        sprite = self.memory.load_block(state.i, decoded.n)
        collision = self.framebuffer.draw_sprite(state.v[decoded.x], state.v[decoded.y], sprite)
        state.v[FLAG] = 1 if collision else 0
        self._next()

    # ------------------------------------------------------------------
    # Timers and input

    def op_ld_from_delay(self, decoded: DecodedInstruction) -> None:
        self.state.v[decoded.x] = self.timers.delay & 0xFF
        self._next()

    def op_ld_delay(self, decoded: DecodedInstruction) -> None:
        self.timers.set_delay(self.state.v[decoded.x])
        self._next()

    def op_ld_sound(self, decoded: DecodedInstruction) -> None:
        self.timers.set_sound(self.state.v[decoded.x])
        self._next()

    def op_wait_key(self, decoded: DecodedInstruction) -> None:
        """Suspend until a key is down; a key already held completes at once."""

        self.waiting_register = decoded.x
        self._waiting_instruction = decoded
        if debug_enabled("cpu"):
            debug_log("cpu", "wait_key pc=%04x register=V%X", self.state.pc, decoded.x)
        self._complete_key_wait()

    # ------------------------------------------------------------------
    # Internals

    def _poll_key(self) -> DecodedInstruction | None:
        if not self._complete_key_wait():
            return None
        return self._waiting_instruction

    def _complete_key_wait(self) -> bool:
        key = self.keypad.first_pressed()
        if key is None or self.waiting_register is None:
            return False
        self.state.v[self.waiting_register] = key
        self.waiting_register = None
        self._next()
        if debug_enabled("cpu"):
            debug_log("cpu", "wait_key satisfied key=%X", key)
        return True

    def _fetch(self, pc: int) -> int:
        try:
            return self.memory.load16(pc)
        except MemoryError as exc:
            raise AddressOutOfRangeError(
                f"instruction fetch outside memory: {exc}", pc=pc, state=self.state.clone()
            ) from exc

    def _next(self) -> None:
        self.state.pc = (self.state.pc + 2) & 0xFFFF

    def _skip_if(self, condition: bool) -> None:
        self.state.pc = (self.state.pc + (4 if condition else 2)) & 0xFFFF


__all__ = [
    "Chip8CPU",
    "CPUState",
    "Quirks",
    "Chip8Error",
    "UnknownInstructionError",
    "AddressOutOfRangeError",
    "StackError",
    "StackOverflowError",
    "StackUnderflowError",
    "make_random_source",
    "REGISTER_COUNT",
    "STACK_SIZE",
]
