"""Command-line entry point: load a boot image and a cartridge, then run the CPU."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from pathlib import Path

from .bus import Bus
from .cb import UnimplementedOpcodeError
from .cpu import CPU

DEFAULT_BOOT_PATH = "../roms/dmg_boot.bin"
DEFAULT_ROM_PATH = "../roms/cpu_instrs/10-bit ops.gb"


def read_rom_file(path: str | Path) -> bytes:
    """Return the whole contents of the file at ``path``.

    Raises :class:`RuntimeError` when the file cannot be opened.
    """
    try:
        with open(path, "rb") as handle:
            return handle.read()
    except OSError as exc:
        raise RuntimeError(f"Failed to open ROM: {path}") from exc


def initialize_system(bus: Bus, boot_path: str | Path, rom_path: str | Path) -> bool:
    """Load the boot image and the cartridge into ``bus``.

    Failures are reported on standard error rather than raised; the return
    value tells whether both images were loaded.
    """
    try:
        bus.load_boot(read_rom_file(boot_path))
        bus.load_rom(read_rom_file(rom_path))
    except (RuntimeError, ValueError) as exc:
        print(f"Initialization error: {exc}", file=sys.stderr)
        return False
    return True


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="dmgemu", description="Run a handheld console program on the emulated CPU."
    )
    parser.add_argument("boot", nargs="?", default=DEFAULT_BOOT_PATH, help="boot ROM image")
    parser.add_argument("rom", nargs="?", default=DEFAULT_ROM_PATH, help="cartridge ROM image")
    parser.add_argument(
        "--max-steps",
        type=int,
        default=None,
        help="stop after this many instructions (runs forever by default)",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the emulator; return the process exit status."""
    args = _parse_args(argv)
    bus = Bus()
    cpu = CPU(bus)
    initialize_system(bus, args.boot, args.rom)

    executed = 0
    try:
        while args.max_steps is None or executed < args.max_steps:
            cpu.step()
            executed += 1
    except UnimplementedOpcodeError as exc:
        print(exc, flush=True)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())