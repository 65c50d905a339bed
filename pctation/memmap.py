"""Physical memory map of the console."""

from __future__ import annotations

from dataclasses import dataclass

BIOS_SIZE = 512 * 1024
RAM_SIZE = 2 * 1024 * 1024
SCRATCHPAD_SIZE = 1024
SPU_SIZE = 0x280
EXPANSION_1_SIZE = 1024 * 1024


@dataclass(frozen=True)
class Range:
    """A contiguous span of addresses."""

    start: int
    size: int

    def contains(self, addr: int) -> int | None:
        """Return the offset of ``addr`` inside the range, or None if outside."""
        if self.start <= addr < self.start + self.size:
            return addr - self.start
        return None


RAM = Range(0x00000000, RAM_SIZE)
BIOS = Range(0x1FC00000, BIOS_SIZE)
SPU = Range(0x1F801C00, SPU_SIZE)
MEM_CONTROL1 = Range(0x1F801000, 0x24)
MEM_CONTROL2 = Range(0x1F801060, 4)
MEM_CONTROL3 = Range(0xFFFE0130, 4)
EXPANSION_1 = Range(0x1F000000, EXPANSION_1_SIZE)
EXPANSION_2 = Range(0x1F802000, 0x42)
IRQ_CONTROL = Range(0x1F801070, 8)
TIMERS = Range(0x1F801100, 0x2C)
DMA = Range(0x1F801080, 0x80)
GPU = Range(0x1F801810, 8)
SCRATCHPAD = Range(0x1F800000, SCRATCHPAD_SIZE)
JOYPAD = Range(0x1F801040, 0x10)
SIO = Range(0x1F801050, 0x10)
CDROM = Range(0x1F801800, 4)

_REGION_MASK = (
    0xFFFFFFFF, 0xFFFFFFFF, 0xFFFFFFFF, 0xFFFFFFFF,  # KUSEG
    0x7FFFFFFF,  # KSEG0
    0x1FFFFFFF,  # KSEG1
    0xFFFFFFFF, 0xFFFFFFFF,  # KSEG2
)


def mask_region(addr: int) -> int:
    """Translate a virtual address into a physical one."""
    addr &= 0xFFFFFFFF
    return addr & _REGION_MASK[addr >> 29]