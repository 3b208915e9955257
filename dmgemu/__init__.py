"""Game Boy (DMG) emulator core: memory bus, CPU, register file, ALU helpers and a runner command."""

__version__ = "0.1.0"