"""Memory bus: maps the 16-bit address space onto ROM, RAM and I/O regions."""

from __future__ import annotations

import sys
from collections.abc import Callable, Iterable

BOOT_SIZE = 0x100
SERIAL_DATA = 0xFF01
SERIAL_CONTROL = 0xFF02
SERIAL_TRANSFER_START = 0x81
BOOT_DISABLE = 0xFF50
LY_REGISTER = 0xFF44
DIV_REGISTER = 0xFF04
LY_LINES = 154
OPEN_BUS = 0xFF


def _stdout_writer(text: str) -> None:
    sys.stdout.write(text)
    sys.stdout.flush()


class Bus:
    """The address space as seen by the CPU.

    ``serial_out`` receives each character sent over the serial port; by
    default characters go to standard output.
    """

    def __init__(self, serial_out: Callable[[str], None] | None = None) -> None:
        self.serial_out = serial_out if serial_out is not None else _stdout_writer
        self.is_boot = True
        self.rom = bytearray()
        self.vram = bytearray(0x2000)
        self.exram = bytearray(0x2000)
        self.wram = bytearray(0x2000)
        self.oam = bytearray(0xA0)
        self.io = bytearray(0x80)
        self.hram = bytearray(0x7F)
        self.ie = 0
        self.boot = bytearray(BOOT_SIZE)
        # Stand-ins for the LCD line counter and divider timer.
        self._fake_ly = 0
        self._fake_div = 0

    def load_boot(self, boot_data: Iterable[int]) -> None:
        """Install the first 256 bytes of ``boot_data`` as the boot ROM."""
        data = bytes(boot_data)
        if len(data) < BOOT_SIZE:
            raise ValueError(
                f"boot image must hold at least {BOOT_SIZE} bytes, got {len(data)}"
            )
        self.boot[:] = data[:BOOT_SIZE]

    def load_rom(self, rom_data: Iterable[int]) -> None:
        """Install the cartridge ROM image."""
        self.rom = bytearray(rom_data)

    def read(self, addr: int) -> int:
        """Return the byte at ``addr``."""
        addr &= 0xFFFF
        if addr == LY_REGISTER:
            self._fake_ly = (self._fake_ly + 1) % LY_LINES
            return self._fake_ly
        if addr == DIV_REGISTER:
            value = self._fake_div
            self._fake_div = (self._fake_div + 1) & 0xFF
            return value
        if self.is_boot and addr < BOOT_SIZE:
            return self.boot[addr]

        if addr < 0x8000:
            return self.rom[addr] if addr < len(self.rom) else OPEN_BUS
        if addr < 0xA000:
            return self.vram[addr & 0x1FFF]
        if addr < 0xC000:
            return self.exram[addr & 0x1FFF]
        if addr < 0xE000:
            return self.wram[addr & 0x1FFF]
        if addr <= 0xFDFF:
            return self.wram[addr & 0x1FFF]
        if addr <= 0xFE9F:
            return self.oam[addr & 0x00FF]
        if addr <= 0xFEFF:
            return OPEN_BUS
        if addr <= 0xFF7F:
            return self.io[addr & 0x00FF]
        if addr <= 0xFFFE:
            return self.hram[addr & 0x007F]
        return self.ie

    def write(self, addr: int, data: int) -> None:
        """Store ``data`` at ``addr``; writes to ROM and unusable space are dropped."""
        addr &= 0xFFFF
        data &= 0xFF
        if addr == SERIAL_CONTROL:
            if data == SERIAL_TRANSFER_START:
                self.serial_out(chr(self.read(SERIAL_DATA)))
            else:
                self.io[SERIAL_CONTROL & 0xFF] = 0
            return

        if addr < 0x8000:
            return
        if addr < 0xA000:
            self.vram[addr & 0x1FFF] = data
        elif addr < 0xC000:
            self.exram[addr & 0x1FFF] = data
        elif addr <= 0xFDFF:
            self.wram[addr & 0x1FFF] = data
        elif addr <= 0xFE9F:
            self.oam[addr & 0x00FF] = data
        elif addr <= 0xFEFF:
            return
        elif addr <= 0xFF7F:
            if addr == BOOT_DISABLE and data != 0:
                self.is_boot = False
            self.io[addr & 0x00FF] = data
        elif addr <= 0xFFFE:
            self.hram[addr & 0x007F] = data
        else:
            self.ie = data