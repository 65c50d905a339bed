"""Hardware components of a PlayStation emulator: memory, DMA, timers, joypad, CD-ROM and GP0 decoding."""

__version__ = "0.1.0"

__all__ = [
    "cdrom_disk",
    "cdrom_drive",
    "controller",
    "dma",
    "dma_channel",
    "joypad",
    "memmap",
    "memory",
    "primitives",
    "timers",
    "util",
]