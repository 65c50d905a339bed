"""Byte-addressable memories: RAM, scratchpad, expansion region and SPU."""

from __future__ import annotations

import os
import struct
from dataclasses import dataclass
from pathlib import Path

from pctation.memmap import EXPANSION_1_SIZE, RAM_SIZE, SCRATCHPAD_SIZE, SPU_SIZE
from pctation.util import load_file

_EXE_HEADER = struct.Struct("<8s8s10I")
_EXE_HEADER_SIZE = 0x800
_EXE_MAGIC = b"PS-X EXE"


class Addressable:
    """A fixed-size block of little-endian memory."""

    def __init__(self, size: int, fill: int = 0xDE) -> None:
        self.data = bytearray([fill & 0xFF]) * size

    def __len__(self) -> int:
        return len(self.data)

    def _check(self, addr: int, width: int) -> None:
        if width not in (1, 2, 4):
            raise ValueError(f"unsupported access width: {width}")
        if addr < 0 or addr + width > len(self.data):
            raise IndexError(f"address 0x{addr:08X} out of bounds")

    def read(self, addr: int, width: int = 4) -> int:
        """Read an unsigned value of ``width`` bytes."""
        self._check(addr, width)
        return int.from_bytes(self.data[addr:addr + width], "little")

    def write(self, addr: int, value: int, width: int = 4) -> None:
        """Write the low ``width`` bytes of ``value``."""
        self._check(addr, width)
        masked = value & ((1 << (8 * width)) - 1)
        self.data[addr:addr + width] = masked.to_bytes(width, "little")


@dataclass(frozen=True)
class ExeLoadInfo:
    """Initial register values taken from an executable header."""

    pc: int
    r28: int
    r29_r30: int


class InvalidExecutableError(ValueError):
    """Raised when an executable cannot be loaded."""


class Ram(Addressable):
    """Main RAM, optionally holding an executable to side-load."""

    def __init__(self, exe_path: str | os.PathLike[str] | None = None) -> None:
        super().__init__(RAM_SIZE, fill=0)
        self.exe_path = Path(exe_path) if exe_path else None

    def load_executable(self) -> ExeLoadInfo | None:
        """Copy the executable into RAM; None if there is nothing to load."""
        if self.exe_path is None:
            return None
        buf = load_file(self.exe_path)
        if not buf:
            return None
        if len(buf) < _EXE_HEADER.size:
            raise InvalidExecutableError("file too short for an executable header")

        (magic, _pad, pc, r28, load_addr, filesize, _unk0, _unk1,
         memfill_start, memfill_size, r29_r30, r29_r30_offset) = _EXE_HEADER.unpack_from(buf)

        if magic != _EXE_MAGIC or buf[len(_EXE_MAGIC)] != 0:
            raise InvalidExecutableError("not a valid PS-X EXE file")
        if memfill_start or memfill_size:
            raise InvalidExecutableError("memory fill is not supported")

        payload = buf[_EXE_HEADER_SIZE:_EXE_HEADER_SIZE + filesize]
        if len(payload) != filesize:
            raise InvalidExecutableError("executable is shorter than its header states")
        dest = load_addr & 0x7FFFFFFF
        if dest + filesize > len(self.data):
            raise InvalidExecutableError("executable does not fit in RAM")
        self.data[dest:dest + filesize] = payload

        return ExeLoadInfo(pc=pc, r28=r28, r29_r30=(r29_r30 + r29_r30_offset) & 0xFFFFFFFF)


class Scratchpad(Addressable):
    """The 1 KiB scratchpad."""

    def __init__(self) -> None:
        super().__init__(SCRATCHPAD_SIZE, fill=0)


class Expansion(Addressable):
    """Expansion region 1, optionally holding a bootstrap image."""

    def __init__(self, bootstrap_path: str | os.PathLike[str] | None = None) -> None:
        super().__init__(EXPANSION_1_SIZE, fill=0)
        if bootstrap_path:
            buf = load_file(bootstrap_path)
            if len(buf) > EXPANSION_1_SIZE:
                raise ValueError("bootstrap image larger than the expansion region")
            self.data[:len(buf)] = buf
        # Cheat cartridge switch set to on
        self.data[0x20018] = 1


class Spu(Addressable):
    """Sound processor register space."""

    def __init__(self) -> None:
        super().__init__(SPU_SIZE, fill=0)
        self.write(0x1AA, 0x8000, 2)  # SPUCNT