import pytest

from dmgemu.alu import add8, add16, add_sp_offset, daa, sub8
from dmgemu.bus import Bus
from dmgemu.cb import UnimplementedOpcodeError
from dmgemu.cpu import CPU
from dmgemu.registers import Flag

WRAM = 0xC000
HRAM = 0xFF80


def make_cpu(program=b"", output=None, **registers):
    bus = Bus(serial_out=(output.append if output is not None else lambda text: None))
    bus.load_rom(bytes(program).ljust(0x8000, b"\x00"))
    bus.is_boot = False
    cpu = CPU(bus)
    for name, value in registers.items():
        setattr(cpu.regs, name, value)
    return cpu


def test_initial_state():
    cpu = make_cpu()
    assert cpu.regs.pc == 0x0000
    assert cpu.regs.sp == 0xFFFE
    assert cpu.regs.af == 0


def test_nop_advances_pc():
    cpu = make_cpu([0x00, 0x00])
    cpu.step()
    cpu.step()
    assert cpu.regs.pc == 2


def test_ld_bc_n16():
    cpu = make_cpu([0x01, 0x34, 0x12])
    cpu.step()
    assert cpu.regs.bc == 0x1234
    assert cpu.regs.pc == 3


@pytest.mark.parametrize(
    "opcode, dst, src",
    [(0x41, "b", "c"), (0x57, "d", "a"), (0x7C, "a", "h"), (0x6B, "l", "e")],
)
def test_ld_register_to_register(opcode, dst, src):
    cpu = make_cpu([opcode], **{src: 0x5A})
    cpu.step()
    assert getattr(cpu.regs, dst) == 0x5A


def test_store_and_load_through_hl():
    cpu = make_cpu([0x77, 0x46], a=0x3C, hl=WRAM)
    cpu.step()
    cpu.step()
    assert cpu.bus.read(WRAM) == 0x3C
    assert cpu.regs.b == 0x3C


def test_ld_hl_increment_store():
    cpu = make_cpu([0x22], a=0x11, hl=WRAM)
    cpu.step()
    assert cpu.bus.read(WRAM) == 0x11
    assert cpu.regs.hl == WRAM + 1


def test_push_pop_round_trip():
    cpu = make_cpu([0xC5, 0xD1], bc=0xBEEF)
    start_sp = cpu.regs.sp
    cpu.step()
    cpu.step()
    assert cpu.regs.de == 0xBEEF
    assert cpu.regs.sp == start_sp


def test_pop_af_masks_low_flag_bits():
    cpu = make_cpu([0xF1], sp=HRAM)
    cpu.bus.write(HRAM, 0xFF)
    cpu.bus.write(HRAM + 1, 0x42)
    cpu.step()
    assert cpu.regs.a == 0x42
    assert cpu.regs.f == 0xF0


def test_call_and_ret_round_trip():
    program = bytearray(0x20)
    program[0:3] = bytes([0xCD, 0x10, 0x00])
    program[0x10] = 0xC9
    cpu = make_cpu(program)
    start_sp = cpu.regs.sp
    cpu.step()
    assert cpu.regs.pc == 0x10
    cpu.step()
    assert cpu.regs.pc == 3
    assert cpu.regs.sp == start_sp


def test_jr_backwards_wraps_to_start():
    cpu = make_cpu([0x18, 0xFE])
    cpu.step()
    assert cpu.regs.pc == 0


def test_jr_nz_not_taken_when_zero_set():
    cpu = make_cpu([0x20, 0x10])
    cpu.regs.set_flag(Flag.Z, True)
    cpu.step()
    assert cpu.regs.pc == 2


def test_jp_hl():
    cpu = make_cpu([0xE9], hl=0x1234)
    cpu.step()
    assert cpu.regs.pc == 0x1234


def test_rst_pushes_return_address():
    cpu = make_cpu([0xFF])
    start_sp = cpu.regs.sp
    cpu.step()
    assert cpu.regs.pc == 0x38
    sp = cpu.regs.sp
    assert sp == start_sp - 2
    assert cpu.bus.read(sp) | (cpu.bus.read(sp + 1) << 8) == 1


@pytest.mark.parametrize("a, b", [(0x0F, 0x01), (0xFF, 0x01), (0x12, 0x34)])
def test_add_a_b_matches_alu(a, b):
    cpu = make_cpu([0x80], a=a, b=b)
    cpu.step()
    expected = add8(a, b)
    assert cpu.regs.a == expected.value
    assert cpu.regs.get_flag(Flag.Z) == expected.zero
    assert cpu.regs.get_flag(Flag.H) == expected.half_carry
    assert cpu.regs.get_flag(Flag.C) == expected.carry


def test_cp_leaves_a_unchanged():
    cpu = make_cpu([0xB8], a=0x20, b=0x20)
    cpu.step()
    assert cpu.regs.a == 0x20
    assert cpu.regs.get_flag(Flag.Z)
    assert cpu.regs.get_flag(Flag.N)


def test_sub_n8_matches_alu():
    cpu = make_cpu([0xD6, 0x30], a=0x10)
    cpu.step()
    expected = sub8(0x10, 0x30)
    assert cpu.regs.a == expected.value
    assert cpu.regs.get_flag(Flag.C) == expected.carry


def test_xor_a_clears_accumulator():
    cpu = make_cpu([0xAF], a=0x99)
    cpu.step()
    assert cpu.regs.a == 0
    assert cpu.regs.get_flag(Flag.Z)
    assert not cpu.regs.get_flag(Flag.C)


def test_and_immediate_takes_four_cycles():
    cpu = make_cpu([0xE6, 0x0F], a=0x3C)
    cycles = cpu.step()
    assert cycles == 4
    assert cpu.regs.a == 0x3C & 0x0F
    assert cpu.regs.get_flag(Flag.H)


def test_inc_b_wraps_to_zero():
    cpu = make_cpu([0x04], b=0xFF)
    cpu.step()
    assert cpu.regs.b == 0
    assert cpu.regs.get_flag(Flag.Z)
    assert cpu.regs.get_flag(Flag.H)


def test_dec_hl_memory():
    cpu = make_cpu([0x35], hl=WRAM)
    cpu.bus.write(WRAM, 0x01)
    cpu.step()
    assert cpu.bus.read(WRAM) == 0
    assert cpu.regs.get_flag(Flag.Z)
    assert cpu.regs.get_flag(Flag.N)


def test_add_hl_bc_keeps_zero_flag():
    cpu = make_cpu([0x09], hl=0x8FFF, bc=0x7001)
    cpu.regs.set_flag(Flag.Z, True)
    cpu.step()
    expected = add16(0x8FFF, 0x7001)
    assert cpu.regs.hl == expected.value
    assert cpu.regs.get_flag(Flag.C) == expected.carry
    assert cpu.regs.get_flag(Flag.H) == expected.half_carry
    assert cpu.regs.get_flag(Flag.Z)


def test_daa_after_add():
    cpu = make_cpu([0x80, 0x27], a=0x09, b=0x01)
    cpu.step()
    added = add8(0x09, 0x01)
    cpu.step()
    expected = daa(added.value, False, added.half_carry, added.carry)
    assert cpu.regs.a == expected.value


def test_rla_clears_zero_flag():
    cpu = make_cpu([0x17], a=0x80)
    cpu.step()
    assert cpu.regs.a == 0
    assert cpu.regs.get_flag(Flag.C)
    assert not cpu.regs.get_flag(Flag.Z)


def test_ldh_round_trip_through_hram():
    cpu = make_cpu([0xE0, 0x80, 0xAF, 0xF0, 0x80], a=0x77)
    cpu.step()
    cpu.step()
    assert cpu.regs.a == 0
    cpu.step()
    assert cpu.regs.a == 0x77


def test_ld_a16_sp_stores_stack_pointer():
    cpu = make_cpu([0x08, 0x00, 0xC0], sp=0xABCD)
    cpu.step()
    assert cpu.bus.read(WRAM) | (cpu.bus.read(WRAM + 1) << 8) == 0xABCD


def test_ld_hl_sp_offset_matches_alu():
    cpu = make_cpu([0xF8, 0xFE], sp=0xD000)
    cpu.step()
    expected = add_sp_offset(0xD000, 0xFE)
    assert cpu.regs.hl == expected.value
    assert cpu.regs.sp == 0xD000
    assert cpu.regs.get_flag(Flag.C) == expected.carry


def test_serial_transfer_emits_character():
    output = []
    program = [0x3E, ord("H"), 0xE0, 0x01, 0x3E, 0x81, 0xE0, 0x02]
    cpu = make_cpu(program, output=output)
    for _ in range(4):
        cpu.step()
    assert output == ["H"]


def test_cb_prefix_dispatches():
    cpu = make_cpu([0xCB, 0xF8], b=0)
    cpu.step()
    assert cpu.regs.b == 1 << 7
    assert cpu.regs.pc == 2


@pytest.mark.parametrize(
    "opcode", [0x02, 0x0A, 0x10, 0x34, 0x3A, 0x76, 0x8E, 0x96, 0x9E, 0xA6, 0xFB, 0xD3]
)
def test_unimplemented_opcode_raises(opcode):
    cpu = make_cpu([0x00, opcode])
    cpu.step()
    with pytest.raises(UnimplementedOpcodeError) as info:
        cpu.step()
    assert info.value.opcode == opcode
    assert info.value.pc == 1