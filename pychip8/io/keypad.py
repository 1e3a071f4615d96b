"""CHIP-8 hexadecimal keypad handling."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Mapping

from pychip8.utils import debug_enabled, debug_log

KEY_COUNT = 16


# Host key -> CHIP-8 key. The COSMAC VIP layout
#   1 2 3 C
#   4 5 6 D
#   7 8 9 E
#   A 0 B F
# is mapped onto the left-hand block of a QWERTY keyboard.
KEY_MAP_TEMPLATE: Mapping[str, int] = {
    "1": 0x1,
    "2": 0x2,
    "3": 0x3,
    "4": 0xC,
    "q": 0x4,
    "w": 0x5,
    "e": 0x6,
    "r": 0xD,
    "a": 0x7,
    "s": 0x8,
    "d": 0x9,
    "f": 0xE,
    "z": 0xA,
    "x": 0x0,
    "c": 0xB,
    "v": 0xF,
}


ALIAS_TABLE: Mapping[str, str] = {
    "[1]": "1",
    "[2]": "2",
    "[3]": "3",
    "[4]": "4",
}


@dataclass
class Keypad:
    """Sixteen-key input latch, read-only from the CPU's point of view."""

    _keys: list[bool] = field(default_factory=lambda: [False] * KEY_COUNT)
    _active: Dict[int, int] = field(default_factory=dict)
    _listeners: list[Callable[[int, bool], None]] = field(default_factory=list)

    def press(self, key: int) -> None:
        key = self._validate(key)
        before = self._keys[key]
        self._keys[key] = True
        self._active[key] = self._active.get(key, 0) + 1
        if debug_enabled("input"):
            debug_log("input", "key_press key=%X", key)
        if not before:
            self._notify_listeners(key, True)

    def release(self, key: int) -> None:
        key = self._validate(key)
        count = self._active.get(key, 0)
        before = self._keys[key]
        if count <= 1:
            self._keys[key] = False
            self._active.pop(key, None)
        else:
            self._active[key] = count - 1
        if debug_enabled("input"):
            debug_log("input", "key_release key=%X count=%d", key, self._active.get(key, 0))
        if before and not self._keys[key]:
            self._notify_listeners(key, False)

    def press_name(self, key_name: str) -> bool:
        """Press the key bound to host ``key_name``; return ``False`` if unmapped."""

        key = self.lookup(key_name)
        if key is None:
            if debug_enabled("input"):
                debug_log("input", "unmapped_press=%s", key_name)
            return False
        self.press(key)
        return True

    def release_name(self, key_name: str) -> bool:
        key = self.lookup(key_name)
        if key is None:
            if debug_enabled("input"):
                debug_log("input", "unmapped_release=%s", key_name)
            return False
        self.release(key)
        return True

    def is_pressed(self, key: int) -> bool:
        return self._keys[key & 0x0F]

    def first_pressed(self) -> int | None:
        """Return the lowest-numbered key that is down, if any."""

        for index, pressed in enumerate(self._keys):
            if pressed:
                return index
        return None

    def reset(self) -> None:
        self._keys[:] = [False] * KEY_COUNT
        self._active.clear()

    def snapshot(self) -> tuple[bool, ...]:
        return tuple(self._keys)

    def add_listener(self, listener: Callable[[int, bool], None]) -> None:
        self._listeners.append(listener)

    @staticmethod
    def lookup(key_name: str) -> int | None:
        name = key_name.lower()
        name = ALIAS_TABLE.get(name, name)
        return KEY_MAP_TEMPLATE.get(name)

    @staticmethod
    def _validate(key: int) -> int:
        if not 0 <= key < KEY_COUNT:
            raise ValueError(f"key index out of range: {key}")
        return key

    def _notify_listeners(self, key: int, pressed: bool) -> None:
        for listener in tuple(self._listeners):
            listener(key, pressed)
