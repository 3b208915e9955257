"""Arithmetic helpers that compute results together with the flags they set."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class AluResult:
    """Outcome of an operation.

    A flag left as ``None`` is one the operation does not touch.
    """

    value: int
    zero: bool | None = None
    subtract: bool | None = None
    half_carry: bool | None = None
    carry: bool | None = None


def inc8(value: int) -> AluResult:
    """Increment an 8-bit value; the carry flag is unaffected."""
    value &= 0xFF
    res = (value + 1) & 0xFF
    return AluResult(
        value=res,
        zero=res == 0,
        subtract=False,
        half_carry=bool((value ^ 1 ^ res) & 0x10),
    )


def dec8(value: int) -> AluResult:
    """Decrement an 8-bit value; the carry flag is unaffected."""
    value &= 0xFF
    res = (value - 1) & 0xFF
    return AluResult(
        value=res,
        zero=res == 0,
        subtract=True,
        half_carry=bool((value ^ 1 ^ res) & 0x10),
    )


def add8(a: int, b: int, carry: int | bool = 0) -> AluResult:
    """Add ``b`` and an incoming carry to ``a`` (ADD / ADC)."""
    a &= 0xFF
    b &= 0xFF
    cy = 1 if carry else 0
    res = a + b + cy
    return AluResult(
        value=res & 0xFF,
        zero=(res & 0xFF) == 0,
        subtract=False,
        half_carry=bool((a ^ b ^ cy ^ res) & 0x10),
        carry=bool(res & 0x100),
    )


def sub8(a: int, b: int, carry: int | bool = 0) -> AluResult:
    """Subtract ``b`` and an incoming borrow from ``a`` (SUB / SBC / CP)."""
    a &= 0xFF
    b &= 0xFF
    cy = 1 if carry else 0
    subtrahend = b + cy
    res = (a - subtrahend) & 0xFF
    return AluResult(
        value=res,
        zero=res == 0,
        subtract=True,
        half_carry=(a & 0x0F) < ((b & 0x0F) + cy),
        carry=subtrahend > a,
    )


def add16(hl: int, value: int) -> AluResult:
    """Add a 16-bit value to HL; the zero flag is unaffected."""
    hl &= 0xFFFF
    value &= 0xFFFF
    res = hl + value
    return AluResult(
        value=res & 0xFFFF,
        subtract=False,
        half_carry=((hl & 0x0FFF) + (value & 0x0FFF)) > 0x0FFF,
        carry=bool(res & 0x10000),
    )


def add_sp_offset(sp: int, offset: int) -> AluResult:
    """Add a signed 8-bit offset to SP (ADD SP,e8 and LD HL,SP+e8).

    ``offset`` may be given as a raw byte or as a signed integer.
    """
    sp &= 0xFFFF
    unsigned_offset = offset & 0xFF
    signed_offset = unsigned_offset - 0x100 if unsigned_offset & 0x80 else unsigned_offset
    res = (sp + signed_offset) & 0xFFFF
    return AluResult(
        value=res,
        zero=False,
        subtract=False,
        half_carry=bool((sp ^ unsigned_offset ^ res) & 0x10),
        carry=((sp & 0xFF) + unsigned_offset) > 0xFF,
    )


def daa(a: int, subtract: bool, half_carry: bool, carry: bool) -> AluResult:
    """Decimal-adjust A after a BCD addition or subtraction."""
    a &= 0xFF
    if subtract:
        adjust = (0x06 if half_carry else 0) + (0x60 if carry else 0)
        result = (a - adjust) & 0xFF
        new_carry = bool(carry)
    else:
        adjust = 0x06 if (half_carry or (a & 0x0F) > 0x09) else 0
        new_carry = bool(carry or a > 0x99)
        if new_carry:
            adjust += 0x60
        result = (a + adjust) & 0xFF
    return AluResult(
        value=result,
        zero=result == 0,
        half_carry=False,
        carry=new_carry,
    )