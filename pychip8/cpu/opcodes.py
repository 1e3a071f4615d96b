"""Opcode metadata and the two-level CHIP-8 decode table.

The high nibble of every instruction word selects one of sixteen families.
Families that hold a single instruction map straight to its metadata; the
others carry a :class:`SubTable` that dispatches on a second field of the
word (low nibble, low byte, or the full 12-bit address for family 0).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Final, Iterable, List, Mapping, Sequence, Union


class Selector(Enum):
    """Field used for secondary dispatch inside a family."""

    LOW_NIBBLE = auto()
    LOW_BYTE = auto()
    ADDRESS = auto()

    def extract(self, word: int) -> int:
        if self is Selector.LOW_NIBBLE:
            return word & 0x000F
        if self is Selector.LOW_BYTE:
            return word & 0x00FF
        return word & 0x0FFF


@dataclass(frozen=True)
class Instruction:
    """Metadata describing a single CHIP-8 instruction."""

    family: int
    mnemonic: str
    pattern: str
    handler: str
    selector_value: int | None = None

    def __post_init__(self) -> None:
        if not 0 <= self.family <= 0xF:
            raise ValueError(f"family out of range: {self.family}")
        if len(self.pattern) != 4:
            raise ValueError(f"pattern must have four nibbles: {self.pattern!r}")


@dataclass(frozen=True)
class SubTable:
    """Secondary dispatch table for families that overload several instructions."""

    selector: Selector
    entries: Mapping[int, Instruction]

    def lookup(self, word: int) -> Instruction | None:
        return self.entries.get(self.selector.extract(word))


FamilyEntry = Union[Instruction, SubTable, None]


@dataclass(frozen=True)
class DecodedInstruction:
    """An instruction word together with its operand fields."""

    word: int
    instruction: Instruction

    @property
    def x(self) -> int:
        return (self.word >> 8) & 0x0F

    @property
    def y(self) -> int:
        return (self.word >> 4) & 0x0F

    @property
    def n(self) -> int:
        return self.word & 0x000F

    @property
    def kk(self) -> int:
        return self.word & 0x00FF

    @property
    def nnn(self) -> int:
        return self.word & 0x0FFF

    @property
    def mnemonic(self) -> str:
        return self.instruction.mnemonic


class OpcodeTable:
    """Mutable builder for the 16-family dispatch table."""

    _FAMILY_COUNT: Final[int] = 0x10

    def __init__(self) -> None:
        self._direct: List[Instruction | None] = [None] * self._FAMILY_COUNT
        self._selectors: List[Selector | None] = [None] * self._FAMILY_COUNT
        self._nested: List[dict[int, Instruction]] = [dict() for _ in range(self._FAMILY_COUNT)]

    def register(self, instruction: Instruction, selector: Selector | None = None) -> None:
        family = instruction.family
        if selector is None:
            if self._direct[family] is not None or self._nested[family]:
                raise ValueError(f"family {family:X} already registered")
            self._direct[family] = instruction
            return

        if self._direct[family] is not None:
            raise ValueError(f"family {family:X} already holds {self._direct[family].mnemonic}")
        if self._selectors[family] not in (None, selector):
            raise ValueError(f"family {family:X} mixes selectors")
        key = instruction.selector_value
        if key is None:
            raise ValueError(f"{instruction.pattern} needs a selector value")
        existing = self._nested[family].get(key)
        if existing is not None:
            raise ValueError(f"{instruction.pattern} clashes with {existing.pattern}")
        self._selectors[family] = selector
        self._nested[family][key] = instruction

    def register_all(self, instructions: Iterable[tuple[Instruction, Selector | None]]) -> None:
        for instruction, selector in instructions:
            self.register(instruction, selector)

    def freeze(self) -> Sequence[FamilyEntry]:
        table: list[FamilyEntry] = []
        for family in range(self._FAMILY_COUNT):
            selector = self._selectors[family]
            if selector is not None:
                table.append(SubTable(selector, dict(self._nested[family])))
            else:
                table.append(self._direct[family])
        return tuple(table)


def build_instruction_table(
    instructions: Iterable[tuple[Instruction, Selector | None]],
) -> Sequence[FamilyEntry]:
    """Build the 16-entry primary dispatch table."""

    table = OpcodeTable()
    table.register_all(instructions)
    return table.freeze()


def decode(word: int, table: Sequence[FamilyEntry]) -> DecodedInstruction | None:
    """Classify ``word``; return ``None`` when no instruction matches."""

    word &= 0xFFFF
    entry = table[word >> 12]
    if isinstance(entry, SubTable):
        instruction = entry.lookup(word)
    else:
        instruction = entry
    if instruction is None:
        return None
    return DecodedInstruction(word, instruction)


def _op(family: int, mnemonic: str, pattern: str, handler: str, selector_value: int | None = None) -> Instruction:
    return Instruction(family, mnemonic, pattern, handler, selector_value)


_N = Selector.LOW_NIBBLE
_B = Selector.LOW_BYTE
_A = Selector.ADDRESS


DEFAULT_INSTRUCTIONS: Sequence[tuple[Instruction, Selector | None]] = (
    (_op(0x0, "CLS", "00E0", "op_cls", 0x0E0), _A),
    (_op(0x0, "RET", "00EE", "op_ret", 0x0EE), _A),
    (_op(0x1, "JP", "1nnn", "op_jp"), None),
    (_op(0x2, "CALL", "2nnn", "op_call"), None),
    (_op(0x3, "SE", "3xkk", "op_se_byte"), None),
    (_op(0x4, "SNE", "4xkk", "op_sne_byte"), None),
    (_op(0x5, "SE", "5xy0", "op_se_reg", 0x0), _N),
    (_op(0x6, "LD", "6xkk", "op_ld_byte"), None),
    (_op(0x7, "ADD", "7xkk", "op_add_byte"), None),
    (_op(0x8, "LD", "8xy0", "op_ld_reg", 0x0), _N),
    (_op(0x8, "OR", "8xy1", "op_or", 0x1), _N),
    (_op(0x8, "AND", "8xy2", "op_and", 0x2), _N),
    (_op(0x8, "XOR", "8xy3", "op_xor", 0x3), _N),
    (_op(0x8, "ADD", "8xy4", "op_add_reg", 0x4), _N),
    (_op(0x8, "SUB", "8xy5", "op_sub", 0x5), _N),
    (_op(0x8, "SHR", "8xy6", "op_shr", 0x6), _N),
    (_op(0x8, "SUBN", "8xy7", "op_subn", 0x7), _N),
    (_op(0x8, "SHL", "8xyE", "op_shl", 0xE), _N),
    (_op(0x9, "SNE", "9xy0", "op_sne_reg", 0x0), _N),
    (_op(0xA, "LD", "Annn", "op_ld_index"), None),
    (_op(0xB, "JP", "Bnnn", "op_jp_v0"), None),
    (_op(0xC, "RND", "Cxkk", "op_rnd"), None),
    (_op(0xD, "DRW", "Dxyn", "op_drw"), None),
    (_op(0xE, "SKP", "Ex9E", "op_skp", 0x9E), _B),
    (_op(0xE, "SKNP", "ExA1", "op_sknp", 0xA1), _B),
    (_op(0xF, "LD", "Fx07", "op_ld_from_delay", 0x07), _B),
    (_op(0xF, "LD", "Fx0A", "op_wait_key", 0x0A), _B),
    (_op(0xF, "LD", "Fx15", "op_ld_delay", 0x15), _B),
    (_op(0xF, "LD", "Fx18", "op_ld_sound", 0x18), _B),
    (_op(0xF, "ADD", "Fx1E", "op_add_index", 0x1E), _B),
    (_op(0xF, "LD", "Fx29", "op_ld_font", 0x29), _B),
    (_op(0xF, "LD", "Fx33", "op_bcd", 0x33), _B),
    (_op(0xF, "LD", "Fx55", "op_store_registers", 0x55), _B),
    (_op(0xF, "LD", "Fx65", "op_load_registers", 0x65), _B),
)


OPCODE_TABLE: Sequence[FamilyEntry] = build_instruction_table(DEFAULT_INSTRUCTIONS)


def iter_instructions(table: Sequence[FamilyEntry] = OPCODE_TABLE) -> Iterable[Instruction]:
    for entry in table:
        if isinstance(entry, SubTable):
            yield from entry.entries.values()
        elif entry is not None:
            yield entry


__all__ = [
    "Selector",
    "Instruction",
    "SubTable",
    "DecodedInstruction",
    "OpcodeTable",
    "OPCODE_TABLE",
    "DEFAULT_INSTRUCTIONS",
    "build_instruction_table",
    "decode",
    "iter_instructions",
]
