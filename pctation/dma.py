"""DMA controller moving words between RAM and devices."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Callable, Protocol

from pctation.dma_channel import DmaChannel, MemoryAddressStep, SyncMode, TransferDirection

logger = logging.getLogger(__name__)

RAM_ADDR_MASK = 0x1FFFFC
_WORD_MASK = 0xFFFFFFFF
_END_OF_TABLE = 0xFFFFFF
_CONTROL_DEFAULT = 0x07654321


class DmaPort(enum.IntEnum):
    MDEC_IN = 0
    MDEC_OUT = 1
    GPU = 2
    CDROM = 3
    SPU = 4
    PIO = 5
    OTC = 6


_PORT_NAMES = {
    DmaPort.MDEC_IN: "MDECin",
    DmaPort.MDEC_OUT: "MDECout",
    DmaPort.GPU: "GPU",
    DmaPort.CDROM: "CD-ROM",
    DmaPort.SPU: "SPU",
    DmaPort.PIO: "PIO",
    DmaPort.OTC: "OTC",
}


def port_name(port: int) -> str:
    """Human-readable name of a DMA port."""
    try:
        return _PORT_NAMES[DmaPort(port)]
    except ValueError:
        return "<Invalid>"


class _Memory(Protocol):
    def read(self, addr: int, width: int = 4) -> int: ...

    def write(self, addr: int, value: int, width: int = 4) -> None: ...


class _Gpu(Protocol):
    def gp0(self, word: int) -> None: ...

    def dma_read_vram(self) -> int: ...


class _Cdrom(Protocol):
    def read_word(self) -> int: ...


_FORCE_BIT = 1 << 15
_MASTER_ENABLE_BIT = 1 << 23


@dataclass
class DmaInterruptRegister:
    """DICR: per-port enables and flags plus the master bits."""

    word: int = 0

    @property
    def force(self) -> bool:
        return bool(self.word & _FORCE_BIT)

    @property
    def master_enable(self) -> bool:
        return bool(self.word & _MASTER_ENABLE_BIT)

    def is_port_enabled(self, port: int) -> bool:
        return bool(self.word & (1 << (16 + DmaPort(port)))) or self.master_enable

    def set_port_flag(self, port: int, value: bool) -> None:
        bit = 1 << (24 + DmaPort(port))
        if value:
            self.word |= bit
        else:
            self.word &= ~bit & _WORD_MASK

    def irq_master_flag(self) -> bool:
        enables = (self.word & 0x7F0000) >> 16
        flags = (self.word & 0x7F000000) >> 24
        return self.force or (self.master_enable and bool(enables & flags))


def _check_width(width: int) -> None:
    if width not in (1, 2, 4):
        raise ValueError(f"unsupported access width: {width}")


def _merge(reg: int, offset: int, value: int, width: int) -> int:
    shift = 8 * offset
    mask = ((1 << (8 * width)) - 1) << shift
    return ((reg & ~mask) | ((value << shift) & mask)) & _WORD_MASK


_CHANNEL_REGISTERS = {0: "base_addr", 4: "block_control", 8: "channel_control"}


class Dma:
    """The DMA controller with its seven channels."""

    def __init__(
        self,
        ram: _Memory,
        gpu: _Gpu,
        cdrom: _Cdrom,
        trigger_irq: Callable[[], None] | None = None,
    ) -> None:
        self.ram = ram
        self.gpu = gpu
        self.cdrom = cdrom
        self._trigger_irq = trigger_irq
        self.control = _CONTROL_DEFAULT
        self.interrupt = DmaInterruptRegister()
        self.irq_pending = False
        self.channels = tuple(DmaChannel() for _ in DmaPort)

    def channel(self, port: int) -> DmaChannel:
        """Registers of the channel for ``port``."""
        try:
            return self.channels[DmaPort(port)]
        except ValueError:
            raise ValueError(f"invalid DMA port: {port}") from None

    def read(self, addr: int, width: int = 4) -> int:
        """Read a register at a DMA-relative address."""
        _check_width(width)
        major = (addr & 0x70) >> 4
        minor = addr & 0b1100

        if major <= 6:
            name = _CHANNEL_REGISTERS.get(minor)
            if name is None:
                logger.warning("Unhandled read from DMA at offset 0x%08X", addr)
                return 0
            reg = getattr(self.channel(major), name)
        elif minor == 0:
            reg = self.control
        elif minor == 4:
            reg = self.interrupt.word
        else:
            logger.warning("Unhandled read from DMA at offset 0x%08X", addr)
            return 0

        shift = 8 * (addr & 0b11)
        return (reg >> shift) & ((1 << (8 * width)) - 1)

    def write(self, addr: int, value: int, width: int = 4) -> None:
        """Write a register at a DMA-relative address; may start a transfer."""
        _check_width(width)
        major = (addr & 0x70) >> 4
        minor = addr & 0b1100
        offset = addr & 0b11

        if major <= 6:
            name = _CHANNEL_REGISTERS.get(minor)
            if name is None:
                logger.warning(
                    "Unhandled write to DMA register: 0x%08X at offset 0x%08X", value, addr
                )
                return
            channel = self.channel(major)
            setattr(channel, name, _merge(getattr(channel, name), offset, value, width))
            if channel.active():
                self._do_transfer(DmaPort(major))
        elif minor == 0:
            self.control = _merge(self.control, offset, value, width)
        elif minor == 4:
            if width == 4:
                # Writing 1 to a flag bit acknowledges it
                kept_flags = (self.interrupt.word & 0xFF000000) & ~(value & 0xFF000000)
                self.interrupt.word = ((value & 0x00FFFFFF) | kept_flags) & _WORD_MASK
            else:
                self.interrupt.word = _merge(self.interrupt.word, offset, value, width)
        else:
            logger.warning(
                "Unhandled write to DMA register: 0x%08X at offset 0x%08X", value, addr
            )

    def step(self) -> None:
        """Raise a pending DMA interrupt."""
        if self.irq_pending:
            self.irq_pending = False
            if self._trigger_irq is not None:
                self._trigger_irq()

    def _do_transfer(self, port: DmaPort) -> None:
        mode = self.channel(port).sync_mode
        if mode is SyncMode.LINKED_LIST:
            self._do_linked_list_transfer(port)
        else:
            self._do_block_transfer(port)

    def _source_word(self, port: DmaPort, addr: int, remaining: int) -> int:
        if port is DmaPort.OTC:
            if remaining == 1:
                return _END_OF_TABLE
            return (addr - 4) & RAM_ADDR_MASK
        if port is DmaPort.GPU:
            return self.gpu.dma_read_vram() & _WORD_MASK
        if port is DmaPort.CDROM:
            return self.cdrom.read_word() & _WORD_MASK
        if port is DmaPort.MDEC_OUT:
            logger.info("DMA transfer of word 0x%08X to MDEC-Out port", 0)
        else:
            logger.warning("DMA transfer to unimplemented port %d requested", port)
        return 0

    def _sink_word(self, port: DmaPort, word: int) -> None:
        if port is DmaPort.GPU:
            self.gpu.gp0(word)
        elif port is DmaPort.MDEC_IN:
            logger.info("DMA transfer of word 0x%08X to MDEC-In port", word)
        elif port is DmaPort.SPU:
            logger.info("DMA transfer of word 0x%08X to SPU port", word)
        else:
            logger.warning(
                "DMA transfer of word 0x%08X to unimplemented port %d requested", word, port
            )

    def _do_block_transfer(self, port: DmaPort) -> None:
        channel = self.channel(port)
        step = 4 if channel.memory_address_step is MemoryAddressStep.FORWARD else -4
        addr = channel.base_addr
        remaining = channel.transfer_word_count()
        direction = channel.transfer_direction

        logger.debug(
            "Starting DMA block transfer: %s %s RAM, sync mode: %s",
            port_name(port), "to" if channel.to_ram else "from", channel.sync_mode_name,
        )

        while remaining > 0:
            addr_cur = addr & RAM_ADDR_MASK
            if direction is TransferDirection.TO_RAM:
                self.ram.write(addr_cur, self._source_word(port, addr, remaining), 4)
            else:
                self._sink_word(port, self.ram.read(addr_cur, 4))
            addr = (addr + step) & _WORD_MASK
            remaining -= 1

        self._transfer_finished(channel, port)

    def _do_linked_list_transfer(self, port: DmaPort) -> None:
        channel = self.channel(port)
        if channel.transfer_direction is not TransferDirection.FROM_RAM:
            raise ValueError("linked list transfers must read from RAM")
        if port is not DmaPort.GPU:
            raise ValueError(f"linked list transfers are only for the GPU, not {port_name(port)}")

        addr = channel.base_addr & RAM_ADDR_MASK
        logger.debug("Starting DMA linked list transfer: RAM to GPU")

        while True:
            header = self.ram.read(addr, 4)
            count = header >> 24
            if count:
                logger.debug("GPU packet at %08X (words: %d)", addr, count)
            for _ in range(count):
                addr = (addr + 4) & RAM_ADDR_MASK
                self.gpu.gp0(self.ram.read(addr, 4))
            # The hardware only checks the top bit of the end marker
            if header & 0x800000:
                break
            addr = header & RAM_ADDR_MASK

        self._transfer_finished(channel, port)

    def _transfer_finished(self, channel: DmaChannel, port: DmaPort) -> None:
        channel.transfer_finished()
        if self.interrupt.is_port_enabled(port):
            self.interrupt.set_port_flag(port, True)
            self.irq_pending = self.interrupt.irq_master_flag()