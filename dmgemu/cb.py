"""Instructions behind the 0xCB prefix: rotates, shifts, BIT, RES and SET."""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from .bus import Bus
from .registers import Flag, Registers

# Operand order encoded in the low three bits of a CB opcode; index 6 is [HL].
_OPERANDS = ("b", "c", "d", "e", "h", "l", None, "a")
_HL_OPERAND = 6

_REGISTER_CYCLES = 8
_HL_CYCLES = 12


class UnimplementedOpcodeError(RuntimeError):
    """Raised when the CPU meets an opcode it does not execute."""

    def __init__(self, opcode: int, pc: int | None = None, prefixed: bool = False) -> None:
        self.opcode = opcode
        self.pc = pc
        self.prefixed = prefixed
        if prefixed:
            message = f"Unimplemented CB 0x{opcode:02X}"
        elif pc is not None:
            message = f"Unimplemented opcode 0x{opcode:02X} at PC=0x{pc:04X}"
        else:
            message = f"Unimplemented opcode 0x{opcode:02X}"
        super().__init__(message)


class _Machine(Protocol):
    regs: Registers
    bus: Bus


def _rlc(value: int, carry: bool) -> tuple[int, bool]:
    res = ((value << 1) | (value >> 7)) & 0xFF
    return res, bool(res & 0x01)


def _rrc(value: int, carry: bool) -> tuple[int, bool]:
    res = ((value >> 1) | (value << 7)) & 0xFF
    return res, bool(value & 0x01)


def _rl(value: int, carry: bool) -> tuple[int, bool]:
    res = ((value << 1) | int(carry)) & 0xFF
    return res, bool(value & 0x80)


def _rr(value: int, carry: bool) -> tuple[int, bool]:
    res = (value >> 1) | (int(carry) << 7)
    return res, bool(value & 0x01)


def _sla(value: int, carry: bool) -> tuple[int, bool]:
    return (value << 1) & 0xFF, bool(value >> 7)


def _sra(value: int, carry: bool) -> tuple[int, bool]:
    return (value >> 1) | (value & 0x80), bool(value & 0x01)


def _swap(value: int, carry: bool) -> tuple[int, bool]:
    return ((value >> 4) | (value << 4)) & 0xFF, False


def _srl(value: int, carry: bool) -> tuple[int, bool]:
    return value >> 1, bool(value & 0x01)


_SHIFTS: tuple[Callable[[int, bool], tuple[int, bool]], ...] = (
    _rlc,
    _rrc,
    _rl,
    _rr,
    _sla,
    _sra,
    _swap,
    _srl,
)


def _test_bit(regs: Registers, value: int, bit: int) -> None:
    regs.set_flag(Flag.Z, not (value >> bit) & 0x01)
    regs.set_flag(Flag.N, False)
    regs.set_flag(Flag.H, True)


def execute_cb(cpu: _Machine) -> int:
    """Fetch and run one CB-prefixed instruction; return its cycle count."""
    regs = cpu.regs
    bus = cpu.bus
    opcode = bus.read(regs.pc)
    regs.pc += 1

    group = opcode >> 6
    bit = (opcode >> 3) & 0x07
    target = opcode & 0x07
    mask = 1 << bit

    if target == _HL_OPERAND:
        if group == 0:
            raise UnimplementedOpcodeError(opcode, prefixed=True)
        if group == 1:
            _test_bit(regs, bus.read(regs.hl), bit)
        elif group == 2:
            # These forms act on the HL pair itself rather than on memory.
            regs.hl = regs.hl & (0xFF & ~mask)
        else:
            regs.hl = regs.hl | mask
        return _HL_CYCLES

    name = _OPERANDS[target]
    value = getattr(regs, name)

    if group == 0:
        res, carry = _SHIFTS[bit](value, regs.get_flag(Flag.C))
        setattr(regs, name, res)
        regs.set_flag(Flag.Z, res == 0)
        regs.set_flag(Flag.N, False)
        regs.set_flag(Flag.H, False)
        regs.set_flag(Flag.C, carry)
    elif group == 1:
        _test_bit(regs, value, bit)
    elif group == 2:
        setattr(regs, name, value & ~mask)
    else:
        setattr(regs, name, value | mask)
    return _REGISTER_CYCLES