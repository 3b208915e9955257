# dmgemu

`dmgemu` is a small emulator core for the original Game Boy (DMG), made
for running CPU test ROMs. It has these parts:

- `dmgemu.bus.Bus`, a memory bus. It maps the boot ROM, the cartridge
  ROM, video RAM, external RAM, work RAM and its echo, OAM, the I/O
  registers, high RAM and the interrupt-enable register onto the 16-bit
  address space.
- `dmgemu.cpu.CPU`, the processor. Each `step()` call runs one instruction
  and returns the clock cycles it took. `dmgemu.cb.execute_cb` runs the
  `CB`-prefixed rotates, shifts, `BIT`, `RES` and `SET`.
- `dmgemu.registers`, which holds the register file (`Registers`) and the
  flag bits (`Flag.Z`, `Flag.N`, `Flag.H`, `Flag.C`).
- `dmgemu.alu`, which holds the arithmetic helpers (`inc8`, `dec8`,
  `add8`, `sub8`, `add16`, `add_sp_offset`, `daa`). These are plain
  functions. Each returns an `AluResult`: the new value, plus the flags it
  sets. A flag it leaves alone is `None`.
- `dmgemu.main`, the `dmgemu` command.

## Installing

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Running a cartridge

```
dmgemu dmg_boot.bin "cpu_instrs/10-bit ops.gb"
```

Both arguments are optional. They default to `../roms/dmg_boot.bin` and
`../roms/cpu_instrs/10-bit ops.gb`.

The command runs the boot ROM first. When the program writes a non-zero
value to `0xFF50`, the cartridge shows at `0x0000`.

- Bytes that the program sends through the serial port are printed as
  they arrive.
- By default the command runs until it meets an opcode it does not
  implement. It then prints the message and exits with status 1.
- `--max-steps N` stops after `N` instructions, with status 0.
- If an image cannot be read, the command reports `Initialization error:
  ...` on standard error and goes on running.

## Using it from Python

```python
import sys

from dmgemu.bus import Bus
from dmgemu.cpu import CPU
from dmgemu.main import read_rom_file

bus = Bus(sys.stdout.write)
bus.load_boot(read_rom_file("dmg_boot.bin"))
bus.load_rom(read_rom_file("game.gb"))

cpu = CPU(bus)
cycles = 0
while cycles < 1_000_000:
    cycles += cpu.step()
print(hex(cpu.regs.pc))
```

The bus functions work as follows:

- `Bus(serial_out)` takes a callable. It is called with one character
  each time the program writes `0x81` to `0xFF02`. By default characters
  go to standard output.
- `load_boot` takes the first 256 bytes of its argument. It raises
  `ValueError` if the image is shorter than that.
- Reads beyond the end of the loaded ROM return `0xFF`.

The file functions in `dmgemu.main` work as follows:

- `read_rom_file(path)` returns a file's bytes. It raises `RuntimeError`
  when the file cannot be opened.
- `initialize_system(bus, boot_path, rom_path)` loads both images. It
  returns whether it succeeded, and prints any failure to standard error
  instead of raising it.

## What it does not do

- There is no picture, sound, joypad, timer or interrupt handling. `DI` does
  nothing, and `RETI` only returns.
- The LY register (`0xFF44`) and the DIV register (`0xFF04`) return
  counters that advance on every read. They do not follow real timing.
  This lets programs that wait on them move on.
- There is no cartridge bank switching. The ROM is mapped flat at
  `0x0000`–`0x7FFF`, and writes to that range are ignored.
- Some opcodes are not implemented. `CPU.step()` raises
  `dmgemu.cb.UnimplementedOpcodeError` for them. Among them are:
  - `HALT`, `STOP` and `EI`;
  - `INC [HL]`;
  - the `ADC`, `SUB` and `SBC` forms with an `[HL]` operand;
  - the `CB` rotates and shifts on `[HL]`.
- The `CB` `RES` and `SET` forms with an `[HL]` operand change the HL
  register pair itself, not the memory at `[HL]`.