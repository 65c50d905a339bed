"""Joypad / memory card serial port."""

from __future__ import annotations

import enum
import logging
from typing import Callable

from pctation.controller import DigitalController
from pctation.memmap import Range

logger = logging.getLogger(__name__)

# Offsets from the joypad base address
JOY_DATA = Range(0x0, 4)
JOY_STAT = Range(0x4, 4)
JOY_MODE = Range(0x8, 2)
JOY_CTRL = Range(0xA, 2)
JOY_BAUD = Range(0xE, 2)

_REGISTERS = (
    ("JOY_DATA", JOY_DATA),
    ("JOY_STAT", JOY_STAT),
    ("JOY_MODE", JOY_MODE),
    ("JOY_CTRL", JOY_CTRL),
    ("JOY_BAUD", JOY_BAUD),
)

_IRQ_DELAY = 5


class Button(enum.IntEnum):
    """Bit positions of the pad buttons."""

    SELECT = 0
    L3 = 1
    R3 = 2
    START = 3
    PAD_UP = 4
    PAD_RIGHT = 5
    PAD_DOWN = 6
    PAD_LEFT = 7
    L2 = 8
    R2 = 9
    L1 = 10
    R1 = 11
    TRIANGLE = 12
    CIRCLE = 13
    CROSS = 14
    SQUARE = 15
    INVALID = 0xFF


class _Device(enum.Enum):
    NONE = enum.auto()
    CONTROLLER = enum.auto()
    MEMORY_CARD = enum.auto()


def reg_name(addr: int) -> str:
    """Name of the register at a joypad-relative address."""
    for name, span in _REGISTERS:
        if span.contains(addr) is not None:
            return name
    return "<unknown>"


def _get_byte(reg: int, offset: int) -> int:
    return (reg >> (8 * offset)) & 0xFF


def _set_byte(reg: int, offset: int, value: int) -> int:
    shift = 8 * offset
    return (reg & ~(0xFF << shift) & 0xFFFF) | ((value & 0xFF) << shift)


class Joypad:
    """Serial port that the pads and memory cards hang off."""

    def __init__(self, trigger_irq: Callable[[], None] | None = None) -> None:
        self._trigger_irq = trigger_irq
        self._mode = 0
        self._ctrl = 0
        self._baud = 0
        self._rx_has_data = False
        self._rx_data = 0
        self._irq = False
        self._irq_timer = 0
        self._ack = False
        self._device = _Device.NONE
        self.controllers = (DigitalController(), DigitalController())

    def read8(self, addr: int) -> int:
        """Read one byte from a joypad-relative address."""
        if (offset := JOY_DATA.contains(addr)) is not None:
            if offset != 0:
                return 0x00  # preview not implemented
            data = self._rx_data
            self._rx_data = 0xFF
            self._rx_has_data = False
            return data
        if (offset := JOY_STAT.contains(addr)) is not None:
            if offset == 0:
                stat = 0b101  # TX ready flags
                stat |= int(self._rx_has_data) << 1
                stat |= int(self._ack) << 7
                self._ack = False
                return stat
            if offset == 1:
                return int(self._irq) << 1
            logger.warning("JOY_STAT unimplemented byte read from")
            return 0
        if (offset := JOY_MODE.contains(addr)) is not None:
            return _get_byte(self._mode, offset)
        if (offset := JOY_CTRL.contains(addr)) is not None:
            return _get_byte(self._ctrl, offset)
        if (offset := JOY_BAUD.contains(addr)) is not None:
            return _get_byte(self._baud, offset)
        raise ValueError(f"unmapped joypad address 0x{addr:X}")

    def write8(self, addr: int, value: int) -> None:
        """Write one byte to a joypad-relative address."""
        value &= 0xFF
        if JOY_DATA.contains(addr) is not None:
            self._tx_transfer(value)
        elif (offset := JOY_STAT.contains(addr)) is not None:
            logger.warning("Unhandled JOY_STAT[%d] write of %02X", offset, value)
        elif (offset := JOY_MODE.contains(addr)) is not None:
            self._mode = _set_byte(self._mode, offset, value)
        elif (offset := JOY_CTRL.contains(addr)) is not None:
            self._ctrl = _set_byte(self._ctrl, offset, value)
            if offset == 0 and value & 0x10:
                self._irq = False  # acknowledge
            if offset == 1 and not self._ctrl & 0b10:
                self._device = _Device.NONE
        elif (offset := JOY_BAUD.contains(addr)) is not None:
            self._baud = _set_byte(self._baud, offset, value)

    def step(self) -> None:
        """Advance the acknowledge delay and raise the interrupt when due."""
        if self._irq_timer > 0:
            self._irq_timer -= 1
            if self._irq_timer == 0:
                self._irq = True
                self._ack = False
        if self._irq and self._trigger_irq is not None:
            self._trigger_irq()

    def update_button(self, button_index: int, was_pressed: bool) -> None:
        """Forward a button change to the first pad."""
        self.controllers[0].update_button(button_index, was_pressed)

    def _tx_transfer(self, value: int) -> None:
        self._rx_has_data = True
        port = (self._ctrl >> 13) & 1

        if self._device is _Device.NONE:
            if value == 0x01:
                self._device = _Device.CONTROLLER
            elif value == 0x81:
                self._device = _Device.MEMORY_CARD

        if self._device is _Device.CONTROLLER:
            pad = self.controllers[port]
            self._rx_data = pad.read(value)
            self._ack = pad.ack()
            if self._ack:
                self._irq_timer = _IRQ_DELAY
            if pad.read_idx == 0:
                self._device = _Device.NONE

        if self._device is _Device.MEMORY_CARD:
            logger.warning("Requested read from Memory Card, unimplemented")
            self._device = _Device.NONE
            self._rx_data = 0xFF
            self._ack = True