"""CPU register file and flag bits."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntFlag


class Flag(IntFlag):
    """Bits of the F register."""

    Z = 0x80
    N = 0x40
    H = 0x20
    C = 0x10


_WIDTH_MASK = {
    "a": 0xFF,
    "b": 0xFF,
    "c": 0xFF,
    "d": 0xFF,
    "e": 0xFF,
    "h": 0xFF,
    "l": 0xFF,
    "f": 0xFF,
    "pc": 0xFFFF,
    "sp": 0xFFFF,
}


@dataclass
class Registers:
    """Eight- and sixteen-bit registers; assignments wrap to register width."""

    a: int = 0
    b: int = 0
    c: int = 0
    d: int = 0
    e: int = 0
    h: int = 0
    l: int = 0  # noqa: E741
    f: int = 0
    pc: int = 0x0000
    sp: int = 0xFFFE

    def __setattr__(self, name: str, value: int) -> None:
        mask = _WIDTH_MASK.get(name)
        if mask is not None:
            value = int(value) & mask
        super().__setattr__(name, value)

    def set_flag(self, flag: Flag, cond: bool) -> None:
        """Set ``flag`` when ``cond`` is true, clear it otherwise."""
        if cond:
            self.f |= flag
        else:
            self.f &= ~flag

    def get_flag(self, flag: Flag) -> bool:
        """Return whether ``flag`` is set."""
        return bool(self.f & flag)

    @property
    def af(self) -> int:
        return (self.a << 8) | self.f

    @af.setter
    def af(self, value: int) -> None:
        self.a = (value >> 8) & 0xFF
        self.f = value & 0xF0

    @property
    def bc(self) -> int:
        return (self.b << 8) | self.c

    @bc.setter
    def bc(self, value: int) -> None:
        value &= 0xFFFF
        self.b = value >> 8
        self.c = value

    @property
    def de(self) -> int:
        return (self.d << 8) | self.e

    @de.setter
    def de(self, value: int) -> None:
        value &= 0xFFFF
        self.d = value >> 8
        self.e = value

    @property
    def hl(self) -> int:
        return (self.h << 8) | self.l

    @hl.setter
    def hl(self, value: int) -> None:
        value &= 0xFFFF
        self.h = value >> 8
        self.l = value