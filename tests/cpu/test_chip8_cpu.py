"""Tests for the CHIP-8 interpreter core."""

from __future__ import annotations

import pytest

from pychip8.bus import Memory
from pychip8.cpu import (
    AddressOutOfRangeError,
    Chip8CPU,
    Quirks,
    StackOverflowError,
    StackUnderflowError,
    Timers,
    UnknownInstructionError,
)
from pychip8.io import Keypad
from pychip8.loader import install_font
from pychip8.video import FONT_DATA, Framebuffer


def make_cpu(program: bytes = b"", *, random_source=None, quirks: Quirks | None = None) -> Chip8CPU:
    memory = Memory()
    install_font(memory)
    memory.store_block(0x200, program)
    kwargs = {}
    if random_source is not None:
        kwargs["random_source"] = random_source
    if quirks is not None:
        kwargs["quirks"] = quirks
    return Chip8CPU(memory, Framebuffer(), Keypad(), Timers(), **kwargs)


def words(*values: int) -> bytes:
    data = bytearray()
    for value in values:
        data += bytes(((value >> 8) & 0xFF, value & 0xFF))
    return bytes(data)


def test_initial_state() -> None:
    cpu = make_cpu()
    assert cpu.state.pc == 0x200
    assert cpu.state.sp == 0
    assert cpu.state.i == 0
    assert cpu.state.v == [0] * 16
    assert not cpu.awaiting_key


def test_ld_byte_loads_register() -> None:
    cpu = make_cpu(bytes([0x62, 0x69]))

    decoded = cpu.step()

    assert decoded is not None and decoded.mnemonic == "LD"
    assert cpu.state.v[2] == 0x69
    assert cpu.state.pc == 0x202
    assert cpu.instruction_count == 1


def test_add_byte_wraps_without_flag() -> None:
    cpu = make_cpu(words(0x7239, 0x72FF))
    cpu.state.v[2] = 0x30

    cpu.step()
    assert cpu.state.v[2] == 0x69

    cpu.step()
    assert cpu.state.v[2] == 0x68
    assert cpu.state.v[0xF] == 0


def test_add_byte_carry_quirk() -> None:
    cpu = make_cpu(words(0x72FF), quirks=Quirks(add_immediate_sets_carry=True))
    cpu.state.v[2] = 0x02

    cpu.step()

    assert cpu.state.v[2] == 0x01
    assert cpu.state.v[0xF] == 1


def test_cls_clears_framebuffer() -> None:
    cpu = make_cpu(words(0x00E0))
    cpu.framebuffer.draw_sprite(3, 4, b"\xFF\xFF")

    cpu.step()

    assert all(not pixel for row in cpu.framebuffer.rows() for pixel in row)
    assert cpu.state.pc == 0x202


def test_jump_sets_pc() -> None:
    cpu = make_cpu(words(0x1ABC))
    cpu.step()
    assert cpu.state.pc == 0xABC


def test_jump_with_v0_offset() -> None:
    cpu = make_cpu(words(0xB300))
    cpu.state.v[0] = 0x04
    cpu.step()
    assert cpu.state.pc == 0x304


def test_call_and_return_round_trip() -> None:
    cpu = make_cpu(words(0x2204, 0x0000, 0x00EE))

    cpu.step()
    assert cpu.state.pc == 0x204
    assert cpu.state.sp == 1
    assert cpu.state.stack[1] == 0x200

    cpu.step()
    assert cpu.state.pc == 0x202
    assert cpu.state.sp == 0
    assert cpu.state.stack[1] == 0x200


def test_return_with_empty_stack_underflows() -> None:
    cpu = make_cpu(words(0x00EE))

    with pytest.raises(StackUnderflowError) as info:
        cpu.step()

    assert info.value.opcode == 0x00EE
    assert info.value.pc == 0x200
    assert cpu.state.sp == 0
    assert cpu.state.pc == 0x200


def test_nested_calls_overflow_stack() -> None:
    cpu = make_cpu(words(0x2200))

    for _ in range(15):
        cpu.step()
    assert cpu.state.sp == 15

    with pytest.raises(StackOverflowError):
        cpu.step()
    assert cpu.state.sp == 15


@pytest.mark.parametrize(
    ("opcode", "vx", "vy", "taken"),
    [
        (0x3142, 0x42, 0x00, True),
        (0x3142, 0x41, 0x00, False),
        (0x4142, 0x41, 0x00, True),
        (0x4142, 0x42, 0x00, False),
        (0x5120, 0x10, 0x10, True),
        (0x5120, 0x10, 0x11, False),
        (0x9120, 0x10, 0x11, True),
        (0x9120, 0x10, 0x10, False),
    ],
)
def test_register_skips(opcode: int, vx: int, vy: int, taken: bool) -> None:
    cpu = make_cpu(words(opcode))
    cpu.state.v[1] = vx
    cpu.state.v[2] = vy

    cpu.step()

    assert cpu.state.pc == (0x204 if taken else 0x202)


@pytest.mark.parametrize(
    ("opcode", "pressed", "taken"),
    [
        (0xE59E, True, True),
        (0xE59E, False, False),
        (0xE5A1, True, False),
        (0xE5A1, False, True),
    ],
)
def test_key_skips(opcode: int, pressed: bool, taken: bool) -> None:
    cpu = make_cpu(words(opcode))
    cpu.state.v[5] = 0x0C
    if pressed:
        cpu.keypad.press(0x0C)

    cpu.step()

    assert cpu.state.pc == (0x204 if taken else 0x202)


@pytest.mark.parametrize(
    ("opcode", "expected"),
    [
        (0x8120, 0x0F),
        (0x8121, 0x3F),
        (0x8122, 0x0C),
        (0x8123, 0x33),
    ],
)
def test_register_logic(opcode: int, expected: int) -> None:
    cpu = make_cpu(words(opcode))
    cpu.state.v[1] = 0x3C
    cpu.state.v[2] = 0x0F

    cpu.step()

    assert cpu.state.v[1] == expected
    assert cpu.state.v[2] == 0x0F


def test_add_registers_sets_carry_iff_sum_exceeds_byte() -> None:
    for vx in range(0, 256, 15):
        for vy in range(0, 256, 17):
            cpu = make_cpu(words(0x8124))
            cpu.state.v[1] = vx
            cpu.state.v[2] = vy

            cpu.step()

            assert cpu.state.v[1] == (vx + vy) % 256
            assert cpu.state.v[0xF] == (1 if vx + vy > 255 else 0)


def test_sub_sets_flag_iff_strictly_greater() -> None:
    for vx, vy in [(5, 3), (3, 5), (7, 7), (0, 0), (255, 0), (0, 255)]:
        cpu = make_cpu(words(0x8125))
        cpu.state.v[1] = vx
        cpu.state.v[2] = vy

        cpu.step()

        assert cpu.state.v[1] == (vx - vy) % 256
        assert cpu.state.v[0xF] == (1 if vx > vy else 0)


def test_subn_sets_flag_iff_vy_greater() -> None:
    for vx, vy in [(5, 3), (3, 5), (7, 7)]:
        cpu = make_cpu(words(0x8127))
        cpu.state.v[1] = vx
        cpu.state.v[2] = vy

        cpu.step()

        assert cpu.state.v[1] == (vy - vx) % 256
        assert cpu.state.v[0xF] == (1 if vy > vx else 0)


def test_shift_right_uses_pre_shift_low_bit() -> None:
    cpu = make_cpu(words(0x8106, 0x8106))
    cpu.state.v[1] = 0x05

    cpu.step()
    assert cpu.state.v[1] == 0x02
    assert cpu.state.v[0xF] == 1

    cpu.step()
    assert cpu.state.v[1] == 0x01
    assert cpu.state.v[0xF] == 0


def test_shift_left_uses_pre_shift_high_bit() -> None:
    cpu = make_cpu(words(0x810E))
    cpu.state.v[1] = 0x81

    cpu.step()

    assert cpu.state.v[1] == 0x02
    assert cpu.state.v[0xF] == 1


def test_flag_wins_when_vf_is_destination() -> None:
    cpu = make_cpu(words(0x8F14))
    cpu.state.v[0xF] = 0x10
    cpu.state.v[1] = 0x02

    cpu.step()

    assert cpu.state.v[0xF] == 0


def test_random_masked_by_kk() -> None:
    cpu = make_cpu(words(0xC300, 0xC40F), random_source=lambda: 0xAB)

    cpu.step()
    assert cpu.state.v[3] == 0

    cpu.step()
    assert cpu.state.v[4] == 0x0B


def test_index_instructions() -> None:
    cpu = make_cpu(words(0xA123, 0xF51E))
    cpu.state.v[5] = 0x10

    cpu.step()
    assert cpu.state.i == 0x123

    cpu.step()
    assert cpu.state.i == 0x133
    assert cpu.state.v[0xF] == 0


def test_index_overflow_quirk() -> None:
    cpu = make_cpu(words(0xAFFF, 0xF51E), quirks=Quirks(index_overflow_sets_flag=True))
    cpu.state.v[5] = 0x02

    cpu.step()
    cpu.step()

    assert cpu.state.i == 0x1001
    assert cpu.state.v[0xF] == 1


def test_font_lookup_points_at_glyph() -> None:
    cpu = make_cpu(words(0xF629))
    cpu.state.v[6] = 0x0A

    cpu.step()

    assert cpu.state.i == 0x0A * 5
    assert cpu.memory.load_block(cpu.state.i, 5) == FONT_DATA[50:55]


def test_bcd_stores_digits() -> None:
    cpu = make_cpu(words(0xA300, 0xF733))
    cpu.state.v[7] = 254

    cpu.step()
    cpu.step()

    assert cpu.memory.load_block(0x300, 3) == bytes((2, 5, 4))


def test_store_and_load_registers() -> None:
    cpu = make_cpu(words(0xA400, 0xF355, 0xA400, 0xF265))
    cpu.state.v[0:4] = [1, 2, 3, 4]

    cpu.step()
    cpu.step()
    assert cpu.memory.load_block(0x400, 5) == bytes((1, 2, 3, 4, 0))
    assert cpu.state.i == 0x400

    cpu.state.v[0:4] = [0, 0, 0, 0]
    cpu.step()
    cpu.step()
    assert cpu.state.v[0:4] == [1, 2, 3, 0]


def test_timer_instructions() -> None:
    cpu = make_cpu(words(0xF115, 0xF218, 0xF307))
    cpu.state.v[1] = 0x20
    cpu.state.v[2] = 0x10

    cpu.step()
    cpu.step()
    assert cpu.timers.delay == 0x20
    assert cpu.timers.sound == 0x10

    cpu.timers.tick()
    cpu.step()
    assert cpu.state.v[3] == 0x1F


def test_draw_twice_restores_framebuffer() -> None:
    cpu = make_cpu(words(0xA000, 0xD015, 0xD015))

    cpu.step()
    before = cpu.framebuffer.snapshot()
    cpu.step()
    assert cpu.framebuffer.get_pixel(0, 0)
    assert cpu.state.v[0xF] == 0

    cpu.step()
    assert cpu.framebuffer.snapshot() == before
    assert cpu.state.v[0xF] == 1


def test_draw_wraps_around_edges() -> None:
    cpu = make_cpu(words(0xA000, 0xD011))
    cpu.state.v[0] = 62
    cpu.state.v[1] = 31

    cpu.step()
    cpu.step()

    lit = {(x, 31) for x in (62, 63, 0, 1)}
    for x in range(64):
        assert cpu.framebuffer.get_pixel(x, 31) == ((x, 31) in lit)


def test_wait_key_suspends_until_key_down() -> None:
    cpu = make_cpu(words(0xF30A))

    decoded = cpu.step()
    assert decoded is not None and decoded.word == 0xF30A
    assert cpu.awaiting_key
    assert cpu.state.pc == 0x200

    assert cpu.step() is None
    assert cpu.state.pc == 0x200

    cpu.keypad.press(0x0B)
    decoded = cpu.step()
    assert decoded is not None and decoded.word == 0xF30A
    assert cpu.state.v[3] == 0x0B
    assert cpu.state.pc == 0x202
    assert not cpu.awaiting_key


def test_wait_key_completes_immediately_when_key_held() -> None:
    cpu = make_cpu(words(0xF40A))
    cpu.keypad.press(0x02)

    cpu.step()

    assert cpu.state.v[4] == 0x02
    assert cpu.state.pc == 0x202
    assert not cpu.awaiting_key


@pytest.mark.parametrize("opcode", [0x0123, 0x5121, 0x8008, 0x9ABF, 0xE000, 0xF0FF])
def test_unknown_instruction_raises(opcode: int) -> None:
    cpu = make_cpu(words(opcode))

    with pytest.raises(UnknownInstructionError) as info:
        cpu.step()

    assert info.value.opcode == opcode
    assert info.value.pc == 0x200
    assert f"{opcode:04X}" in str(info.value)


def test_fetch_outside_memory_raises() -> None:
    cpu = make_cpu(words(0x1FFF))
    cpu.step()

    with pytest.raises(AddressOutOfRangeError) as info:
        cpu.step()
    assert info.value.pc == 0xFFF


def test_bcd_out_of_range_leaves_memory_untouched() -> None:
    cpu = make_cpu(words(0xAFFE, 0xF033))
    cpu.state.v[0] = 123
    cpu.step()

    with pytest.raises(AddressOutOfRangeError) as info:
        cpu.step()

    assert info.value.opcode == 0xF033
    assert cpu.memory.load_block(0xFFE, 2) == b"\x00\x00"
    assert cpu.state.pc == 0x202


def test_store_registers_out_of_range_is_atomic() -> None:
    cpu = make_cpu(words(0xAFFF, 0xF155))
    cpu.state.v[0] = 0x11
    cpu.state.v[1] = 0x22
    cpu.step()

    with pytest.raises(AddressOutOfRangeError):
        cpu.step()

    assert cpu.memory.load8(0xFFF) == 0x00


def test_draw_out_of_range_leaves_framebuffer_untouched() -> None:
    cpu = make_cpu(words(0xAFFE, 0xD015))
    cpu.step()

    with pytest.raises(AddressOutOfRangeError):
        cpu.step()

    assert cpu.framebuffer.lit_count() == 0


def test_reset_restores_registers() -> None:
    cpu = make_cpu(words(0x6AFF, 0x2300))
    cpu.step()
    cpu.step()

    cpu.reset()

    assert cpu.state.pc == 0x200
    assert cpu.state.sp == 0
    assert cpu.state.v[0xA] == 0
    assert cpu.instruction_count == 0


def test_peek_opcode() -> None:
    cpu = make_cpu(words(0x6123))
    assert cpu.peek_opcode() == 0x6123
    cpu.state.pc = 0xFFF
    assert cpu.peek_opcode() is None
