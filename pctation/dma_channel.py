"""A single DMA channel and its control registers."""

from __future__ import annotations

import enum
from dataclasses import dataclass

_DIRECTION_BIT = 1 << 0
_ADDRESS_STEP_BIT = 1 << 1
_SYNC_MODE_SHIFT = 9
_SYNC_MODE_MASK = 0b11
_ENABLE_BIT = 1 << 24
_MANUAL_TRIGGER_BIT = 1 << 28


class TransferDirection(enum.IntEnum):
    TO_RAM = 0
    FROM_RAM = 1


class MemoryAddressStep(enum.IntEnum):
    FORWARD = 0
    BACKWARD = 1


class SyncMode(enum.IntEnum):
    """How a transfer is paced."""

    MANUAL = 0  # all at once on the trigger bit (CD-ROM, OTC)
    REQUEST = 1  # in blocks on device request (MDEC, SPU, GPU data)
    LINKED_LIST = 2  # GPU command lists


_SYNC_MODE_NAMES = {
    SyncMode.MANUAL: "Manual",
    SyncMode.REQUEST: "Request",
    SyncMode.LINKED_LIST: "Linked List",
}


@dataclass
class DmaChannel:
    """Registers of one channel: base address, block control and channel control."""

    channel_control: int = 0
    block_control: int = 0
    base_addr: int = 0

    @property
    def _sync_bits(self) -> int:
        return (self.channel_control >> _SYNC_MODE_SHIFT) & _SYNC_MODE_MASK

    @property
    def enable(self) -> bool:
        return bool(self.channel_control & _ENABLE_BIT)

    @property
    def manual_trigger(self) -> bool:
        return bool(self.channel_control & _MANUAL_TRIGGER_BIT)

    @property
    def transfer_direction(self) -> TransferDirection:
        return TransferDirection(int(bool(self.channel_control & _DIRECTION_BIT)))

    @property
    def to_ram(self) -> bool:
        return self.transfer_direction is TransferDirection.TO_RAM

    @property
    def memory_address_step(self) -> MemoryAddressStep:
        return MemoryAddressStep(int(bool(self.channel_control & _ADDRESS_STEP_BIT)))

    @property
    def sync_mode(self) -> SyncMode:
        """The sync mode; raises ValueError for the reserved encoding."""
        bits = self._sync_bits
        try:
            return SyncMode(bits)
        except ValueError:
            raise ValueError(f"invalid sync mode: {bits}") from None

    @property
    def sync_mode_name(self) -> str:
        try:
            return _SYNC_MODE_NAMES[SyncMode(self._sync_bits)]
        except ValueError:
            return "<Invalid>"

    def active(self) -> bool:
        """Whether a transfer should start now."""
        if self._sync_bits == SyncMode.MANUAL:
            return self.enable and self.manual_trigger
        return self.enable

    def transfer_word_count(self) -> int:
        """Number of words to move in a block transfer."""
        mode = self.sync_mode
        if mode is SyncMode.MANUAL:
            return self.block_control & 0xFFFF
        if mode is SyncMode.REQUEST:
            block_size = self.block_control & 0xFFFF
            block_count = (self.block_control >> 16) & 0xFFFF
            return block_size * block_count
        raise ValueError(f"no word count in sync mode {mode.name}")

    def transfer_finished(self) -> None:
        """Clear the enable and trigger bits."""
        self.channel_control &= ~(_ENABLE_BIT | _MANUAL_TRIGGER_BIT) & 0xFFFFFFFF