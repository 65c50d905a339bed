# pctation

Hardware components of a PlayStation (PSX) emulator, written as plain Python
objects that can be driven and inspected one at a time. The package has no
dependencies beyond the standard library.

## What is included

- `pctation.util`: `sign_extend`, `leading_zeroes` and `load_file`.
- `pctation.memmap`: the physical memory map as `Range` objects (`RAM`,
  `BIOS`, `DMA`, `TIMERS`, `CDROM`, `JOYPAD` and others), and `mask_region`
  for turning KSEG0/KSEG1 addresses into physical ones.
- `pctation.memory`: byte-addressable `Ram`, `Scratchpad`, `Expansion` and
  `Spu` regions built on `Addressable`, with little-endian `read` and `write`
  of 1, 2 or 4 bytes. `Ram.load_executable` copies a PS-X EXE file into RAM
  and returns an `ExeLoadInfo` (initial `pc`, `r28` and `r29_r30`), returns
  `None` when there is nothing to load, and raises `InvalidExecutableError`
  for a malformed file.
- `pctation.controller`: `DigitalController`, the digital pad's serial
  protocol.
- `pctation.joypad`: `Joypad`, the serial port registers (`read8`, `write8`,
  `step`), the `Button` enumeration and `reg_name`.
- `pctation.dma_channel`: `DmaChannel` with its `SyncMode`,
  `TransferDirection` and `MemoryAddressStep` fields.
- `pctation.dma`: `Dma`, the controller with seven channels, block and
  linked-list transfers, the `DmaInterruptRegister`, `DmaPort` and
  `port_name`.
- `pctation.timers`: `Timers`, the three root counters, and `TimerMode`.
- `pctation.cdrom_disk`: `CdromDisk` for raw `.bin` images, `CdromTrack`,
  `CdromPosition` (mm:ss:ff), `DataType` and the `bcd_to_dec` / `dec_to_bcd`
  helpers.
- `pctation.cdrom_drive`: `CdromDrive`, the controller's four registers and
  its command set (Getstat, Setloc, Play, ReadN/ReadS, MotorOn, Stop, Pause,
  Init, Mute, Demute, Setmode, Getparam, GetTN, GetTD, SeekL, Test, GetID),
  with `command_name` and `register_name`.
- `pctation.primitives`: decoding of GP0 draw commands. `PolygonCommand`,
  `RectangleCommand` and `LineCommand` read the opcode byte;
  `extract_polygon` and `extract_rectangle` turn the command words into
  positions, colours, texture info and sizes.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Examples

```python
from pctation.cdrom_disk import CdromPosition, bcd_to_dec, dec_to_bcd

pos = CdromPosition.from_lba(150)
print(pos)                 # 00:02:00
print(pos.to_lba())        # 150
print(dec_to_bcd(42))      # 66 (0x42)
print(bcd_to_dec(0x42))    # 42
```

```python
from pctation.memmap import mask_region

print(hex(mask_region(0xBFC00000)))  # 0x1fc00000
```

## Connecting the parts

Components that raise interrupts take an optional `trigger_irq` callable:
`Joypad`, `Dma` and `CdromDrive` call it with no arguments, and `Timers` calls
it with the index of the counter. `Dma` also takes the RAM (any object with
`read(addr, width)` and `write(addr, value, width)`, such as `Ram`), a GPU
object with `gp0(word)` and `dma_read_vram()`, and a CD-ROM object with
`read_word()`, such as `CdromDrive`.

## What it does not do

These are the parts only; there is no CPU, no GPU or rasterizer that draws
into VRAM, no interrupt controller, no BIOS loading, no window or screen and
no command to start an emulator. `CdromDrive.insert_disk_file` reads raw
single-track images only: a `.cue` sheet is not parsed, it is logged and
skipped. Memory cards are not emulated, and DMA to the MDEC, SPU and PIO
ports only logs the words.