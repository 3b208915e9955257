"""The processor core: fetches, decodes and executes instructions."""

from __future__ import annotations

from collections.abc import Callable
from enum import IntEnum
from functools import partial

from .alu import (
    AluResult,
    add8,
    add16,
    add_sp_offset,
    daa,
    dec8,
    inc8,
    sub8,
)
from .bus import Bus
from .cb import UnimplementedOpcodeError, execute_cb
from .registers import Flag, Registers

# Operand order encoded in three opcode bits; index 6 addresses memory at [HL].
_R8 = ("b", "c", "d", "e", "h", "l", None, "a")
_HL = 6

# Register pairs in the order the 16-bit load/inc/dec/add opcodes use.
_R16 = ("bc", "de", "hl", "sp")
_STACK_PAIRS = ("bc", "de", "hl")

# Condition codes NZ, Z, NC, C as (flag, required state).
_CONDITIONS = ((Flag.Z, False), (Flag.Z, True), (Flag.C, False), (Flag.C, True))

# Accumulator operations that are implemented with an [HL] operand.
_HL_ALU_OPCODES = frozenset({0x86, 0xAE, 0xB6, 0xBE})

_AND_IMMEDIATE = 0xE6


class _AluOp(IntEnum):
    ADD = 0
    ADC = 1
    SUB = 2
    SBC = 3
    AND = 4
    XOR = 5
    OR = 6
    CP = 7


class CPU:
    """An 8-bit CPU attached to a :class:`Bus`."""

    def __init__(self, bus: Bus) -> None:
        self.bus = bus
        self.regs = Registers()
        self._ops: dict[int, Callable[[], int]] = {}
        self._build_table()

    def step(self) -> int:
        """Execute one instruction and return the cycles it took."""
        start = self.regs.pc
        opcode = self._fetch8()
        handler = self._ops.get(opcode)
        if handler is None:
            raise UnimplementedOpcodeError(opcode, pc=start)
        return handler()

    # -- fetching, stack and flag plumbing ---------------------------------

    def _fetch8(self) -> int:
        value = self.bus.read(self.regs.pc)
        self.regs.pc += 1
        return value

    def _fetch16(self) -> int:
        lo = self._fetch8()
        hi = self._fetch8()
        return (hi << 8) | lo

    def _fetch_signed(self) -> int:
        value = self._fetch8()
        return value - 0x100 if value & 0x80 else value

    def _push16(self, value: int) -> None:
        regs = self.regs
        regs.sp -= 1
        self.bus.write(regs.sp, (value >> 8) & 0xFF)
        regs.sp -= 1
        self.bus.write(regs.sp, value & 0xFF)

    def _pop16(self) -> int:
        regs = self.regs
        lo = self.bus.read(regs.sp)
        regs.sp += 1
        hi = self.bus.read(regs.sp)
        regs.sp += 1
        return (hi << 8) | lo

    def _apply(self, result: AluResult) -> None:
        for flag, state in (
            (Flag.Z, result.zero),
            (Flag.N, result.subtract),
            (Flag.H, result.half_carry),
            (Flag.C, result.carry),
        ):
            if state is not None:
                self.regs.set_flag(flag, state)

    def _read_r8(self, index: int) -> int:
        if index == _HL:
            return self.bus.read(self.regs.hl)
        return getattr(self.regs, _R8[index])

    def _write_r8(self, index: int, value: int) -> None:
        if index == _HL:
            self.bus.write(self.regs.hl, value)
        else:
            setattr(self.regs, _R8[index], value)

    def _condition(self, index: int) -> bool:
        flag, wanted = _CONDITIONS[index]
        return self.regs.get_flag(flag) == wanted

    # -- decode table ------------------------------------------------------

    def _build_table(self) -> None:
        ops = self._ops
        ops.update(
            {
                0x00: self._nop,
                0x07: self._rlca,
                0x08: self._ld_a16_sp,
                0x0F: self._rrca,
                0x12: self._ld_de_a,
                0x17: self._rla,
                0x18: self._jr,
                0x1A: self._ld_a_de,
                0x1F: self._rra,
                0x22: self._ld_hli_a,
                0x27: self._daa,
                0x2A: self._ld_a_hli,
                0x2F: self._cpl,
                0x32: self._ld_hld_a,
                0x35: self._dec_hl_mem,
                0x36: self._ld_hl_mem_n8,
                0x37: self._scf,
                0x3F: self._ccf,
                0xC3: self._jp,
                0xC9: self._ret,
                0xCB: self._prefix_cb,
                0xCD: self._call,
                0xD9: self._ret,
                0xE0: self._ldh_a8_a,
                0xE2: self._ldh_c_a,
                0xE8: self._add_sp_e8,
                0xE9: self._jp_hl,
                0xEA: self._ld_a16_a,
                0xF0: self._ldh_a_a8,
                0xF1: self._pop_af,
                0xF2: self._ldh_a_c,
                0xF3: self._nop,  # DI: interrupts are not modelled
                0xF5: self._push_af,
                0xF8: self._ld_hl_sp_e8,
                0xF9: self._ld_sp_hl,
                0xFA: self._ld_a_a16,
            }
        )

        for index, pair in enumerate(_R16):
            base = index << 4
            ops[base | 0x01] = partial(self._ld_rr_n16, pair)
            ops[base | 0x03] = partial(self._inc_rr, pair)
            ops[base | 0x09] = partial(self._add_hl_rr, pair)
            ops[base | 0x0B] = partial(self._dec_rr, pair)

        for index, name in enumerate(_R8):
            if name is None:
                continue
            ops[0x04 | index << 3] = partial(self._inc_r, name)
            ops[0x05 | index << 3] = partial(self._dec_r, name)
            ops[0x06 | index << 3] = partial(self._ld_r_n8, name)

        for opcode in range(0x40, 0x80):
            if opcode == 0x76:
                continue
            ops[opcode] = partial(self._ld_r_r, (opcode >> 3) & 0x07, opcode & 0x07)

        for opcode in range(0x80, 0xC0):
            source = opcode & 0x07
            if source == _HL and opcode not in _HL_ALU_OPCODES:
                continue
            ops[opcode] = partial(self._alu_r, _AluOp((opcode >> 3) & 0x07), source)

        for kind in _AluOp:
            opcode = 0xC6 | kind << 3
            cycles = 4 if opcode == _AND_IMMEDIATE else 8
            ops[opcode] = partial(self._alu_n8, kind, cycles)

        for index in range(len(_CONDITIONS)):
            ops[0x20 | index << 3] = partial(self._jr_cc, index)
            ops[0xC0 | index << 3] = partial(self._ret_cc, index)
            ops[0xC2 | index << 3] = partial(self._jp_cc, index)
            ops[0xC4 | index << 3] = partial(self._call_cc, index)

        for index, pair in enumerate(_STACK_PAIRS):
            ops[0xC1 | index << 4] = partial(self._pop_rr, pair)
            ops[0xC5 | index << 4] = partial(self._push_rr, pair)

        for target in range(0x00, 0x40, 0x08):
            ops[0xC7 | target] = partial(self._rst, target)

    # -- miscellaneous -----------------------------------------------------

    def _nop(self) -> int:
        return 4

    def _prefix_cb(self) -> int:
        return execute_cb(self)

    def _daa(self) -> int:
        regs = self.regs
        result = daa(
            regs.a,
            regs.get_flag(Flag.N),
            regs.get_flag(Flag.H),
            regs.get_flag(Flag.C),
        )
        regs.a = result.value
        self._apply(result)
        return 4

    def _cpl(self) -> int:
        regs = self.regs
        regs.a = ~regs.a
        regs.set_flag(Flag.N, True)
        regs.set_flag(Flag.H, True)
        return 4

    def _scf(self) -> int:
        self._apply(AluResult(0, subtract=False, half_carry=False, carry=True))
        return 4

    def _ccf(self) -> int:
        carry = not self.regs.get_flag(Flag.C)
        self._apply(AluResult(0, subtract=False, half_carry=False, carry=carry))
        return 4

    # -- accumulator rotates -----------------------------------------------

    def _rotate_a(self, value: int, carry: bool) -> int:
        self.regs.a = value
        self._apply(AluResult(value, zero=False, subtract=False, half_carry=False, carry=carry))
        return 4

    def _rlca(self) -> int:
        a = self.regs.a
        res = ((a << 1) | (a >> 7)) & 0xFF
        return self._rotate_a(res, bool(res & 0x01))

    def _rrca(self) -> int:
        a = self.regs.a
        return self._rotate_a(((a >> 1) | (a << 7)) & 0xFF, bool(a & 0x01))

    def _rla(self) -> int:
        a = self.regs.a
        res = ((a << 1) | int(self.regs.get_flag(Flag.C))) & 0xFF
        return self._rotate_a(res, bool(a & 0x80))

    def _rra(self) -> int:
        a = self.regs.a
        res = (a >> 1) | (int(self.regs.get_flag(Flag.C)) << 7)
        return self._rotate_a(res, bool(a & 0x01))

    # -- 8-bit loads -------------------------------------------------------

    def _ld_r_r(self, dst: int, src: int) -> int:
        self._write_r8(dst, self._read_r8(src))
        return 8 if _HL in (dst, src) else 4

    def _ld_r_n8(self, name: str) -> int:
        setattr(self.regs, name, self._fetch8())
        return 8

    def _ld_hl_mem_n8(self) -> int:
        self.bus.write(self.regs.hl, self._fetch8())
        return 12

    def _ld_de_a(self) -> int:
        self.bus.write(self.regs.de, self.regs.a)
        return 8

    def _ld_a_de(self) -> int:
        self.regs.a = self.bus.read(self.regs.de)
        return 8

    def _ld_hli_a(self) -> int:
        regs = self.regs
        self.bus.write(regs.hl, regs.a)
        regs.hl += 1
        return 8

    def _ld_hld_a(self) -> int:
        regs = self.regs
        self.bus.write(regs.hl, regs.a)
        regs.hl -= 1
        return 8

    def _ld_a_hli(self) -> int:
        regs = self.regs
        regs.a = self.bus.read(regs.hl)
        regs.hl += 1
        return 8

    def _ldh_a8_a(self) -> int:
        self.bus.write(0xFF00 | self._fetch8(), self.regs.a)
        return 12

    def _ldh_a_a8(self) -> int:
        self.regs.a = self.bus.read(0xFF00 | self._fetch8())
        return 12

    def _ldh_c_a(self) -> int:
        self.bus.write(0xFF00 | self.regs.c, self.regs.a)
        return 8

    def _ldh_a_c(self) -> int:
        self.regs.a = self.bus.read(0xFF00 | self.regs.c)
        return 8

    def _ld_a16_a(self) -> int:
        self.bus.write(self._fetch16(), self.regs.a)
        return 16

    def _ld_a_a16(self) -> int:
        self.regs.a = self.bus.read(self._fetch16())
        return 16

    # -- 8-bit arithmetic --------------------------------------------------

    def _inc_r(self, name: str) -> int:
        result = inc8(getattr(self.regs, name))
        setattr(self.regs, name, result.value)
        self._apply(result)
        return 4

    def _dec_r(self, name: str) -> int:
        result = dec8(getattr(self.regs, name))
        setattr(self.regs, name, result.value)
        self._apply(result)
        return 4

    def _dec_hl_mem(self) -> int:
        address = self.regs.hl
        result = dec8(self.bus.read(address))
        self._apply(result)
        self.bus.write(address, result.value)
        return 12

    def _alu(self, kind: _AluOp, value: int) -> None:
        regs = self.regs
        a = regs.a
        if kind is _AluOp.ADD:
            result = add8(a, value)
        elif kind is _AluOp.ADC:
            result = add8(a, value, regs.get_flag(Flag.C))
        elif kind in (_AluOp.SUB, _AluOp.CP):
            result = sub8(a, value)
        elif kind is _AluOp.SBC:
            result = sub8(a, value, regs.get_flag(Flag.C))
        else:
            if kind is _AluOp.AND:
                res = a & value
            elif kind is _AluOp.XOR:
                res = a ^ value
            else:
                res = a | value
            result = AluResult(
                res,
                zero=res == 0,
                subtract=False,
                half_carry=kind is _AluOp.AND,
                carry=False,
            )
        self._apply(result)
        if kind is not _AluOp.CP:
            regs.a = result.value

    def _alu_r(self, kind: _AluOp, source: int) -> int:
        self._alu(kind, self._read_r8(source))
        return 8 if source == _HL else 4

    def _alu_n8(self, kind: _AluOp, cycles: int) -> int:
        self._alu(kind, self._fetch8())
        return cycles

    # -- 16-bit loads and arithmetic ---------------------------------------

    def _ld_rr_n16(self, pair: str) -> int:
        setattr(self.regs, pair, self._fetch16())
        return 12

    def _inc_rr(self, pair: str) -> int:
        setattr(self.regs, pair, getattr(self.regs, pair) + 1)
        return 8

    def _dec_rr(self, pair: str) -> int:
        setattr(self.regs, pair, getattr(self.regs, pair) - 1)
        return 8

    def _add_hl_rr(self, pair: str) -> int:
        result = add16(self.regs.hl, getattr(self.regs, pair))
        self.regs.hl = result.value
        self._apply(result)
        return 8

    def _ld_a16_sp(self) -> int:
        address = self._fetch16()
        sp = self.regs.sp
        self.bus.write(address, sp & 0xFF)
        self.bus.write((address + 1) & 0xFFFF, sp >> 8)
        return 20

    def _add_sp_e8(self) -> int:
        result = add_sp_offset(self.regs.sp, self._fetch8())
        self.regs.sp = result.value
        self._apply(result)
        return 16

    def _ld_hl_sp_e8(self) -> int:
        result = add_sp_offset(self.regs.sp, self._fetch8())
        self.regs.hl = result.value
        self._apply(result)
        return 12

    def _ld_sp_hl(self) -> int:
        self.regs.sp = self.regs.hl
        return 8

    # -- stack -------------------------------------------------------------

    def _push_rr(self, pair: str) -> int:
        self._push16(getattr(self.regs, pair))
        return 16

    def _pop_rr(self, pair: str) -> int:
        setattr(self.regs, pair, self._pop16())
        return 12

    def _push_af(self) -> int:
        self._push16(self.regs.af & 0xFFF0)
        return 16

    def _pop_af(self) -> int:
        self.regs.af = self._pop16()
        return 12

    # -- control flow ------------------------------------------------------

    def _jr(self) -> int:
        offset = self._fetch_signed()
        self.regs.pc += offset
        return 12

    def _jr_cc(self, condition: int) -> int:
        offset = self._fetch_signed()
        if self._condition(condition):
            self.regs.pc += offset
            return 12
        return 8

    def _jp(self) -> int:
        self.regs.pc = self._fetch16()
        return 16

    def _jp_cc(self, condition: int) -> int:
        target = self._fetch16()
        if self._condition(condition):
            self.regs.pc = target
            return 16
        return 12

    def _jp_hl(self) -> int:
        self.regs.pc = self.regs.hl
        return 4

    def _call(self) -> int:
        target = self._fetch16()
        self._push16(self.regs.pc)
        self.regs.pc = target
        return 24

    def _call_cc(self, condition: int) -> int:
        target = self._fetch16()
        if self._condition(condition):
            self._push16(self.regs.pc)
            self.regs.pc = target
            return 24
        return 12

    def _ret(self) -> int:
        self.regs.pc = self._pop16()
        return 16

    def _ret_cc(self, condition: int) -> int:
        if self._condition(condition):
            self.regs.pc = self._pop16()
            return 20
        return 8

    def _rst(self, target: int) -> int:
        self._push16(self.regs.pc)
        self.regs.pc = target
        return 16