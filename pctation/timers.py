"""The three root counters."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)

TIMER_COUNT = 3

_SYNC_ENABLE = 1 << 0
_SYNC_MODE_SHIFT = 1
_RESET_ON_TARGET = 1 << 3
_IRQ_ON_TARGET = 1 << 4
_IRQ_ON_MAX = 1 << 5
_IRQ_REPEAT = 1 << 6
_IRQ_TOGGLE = 1 << 7
_CLOCK_SOURCE_SHIFT = 8
_IRQ_NOT = 1 << 10
_REACHED_TARGET = 1 << 11
_REACHED_MAX = 1 << 12


class RepeatMode(enum.IntEnum):
    ONCE = 0
    REPEAT = 1


class ToggleMode(enum.IntEnum):
    PULSE = 0
    TOGGLE = 1


def _flag(bit: int) -> property:
    def getter(self: TimerMode) -> bool:
        return bool(self.word & bit)

    def setter(self: TimerMode, value: bool) -> None:
        if value:
            self.word |= bit
        else:
            self.word &= ~bit & 0xFFFF

    return property(getter, setter)


@dataclass
class TimerMode:
    """Counter mode register."""

    word: int = 0

    sync_enable = _flag(_SYNC_ENABLE)
    reset_on_target = _flag(_RESET_ON_TARGET)
    irq_on_target = _flag(_IRQ_ON_TARGET)
    irq_on_max = _flag(_IRQ_ON_MAX)
    irq_not = _flag(_IRQ_NOT)
    reached_target = _flag(_REACHED_TARGET)
    reached_max = _flag(_REACHED_MAX)

    @property
    def sync_mode(self) -> int:
        return (self.word >> _SYNC_MODE_SHIFT) & 0b11

    @property
    def clock_source(self) -> int:
        return (self.word >> _CLOCK_SOURCE_SHIFT) & 0b11

    @property
    def irq_repeat_mode(self) -> RepeatMode:
        return RepeatMode(int(bool(self.word & _IRQ_REPEAT)))

    @property
    def irq_toggle_mode(self) -> ToggleMode:
        return ToggleMode(int(bool(self.word & _IRQ_TOGGLE)))

    def read(self) -> int:
        """Return the register value and clear the reached flags."""
        value = self.word
        self.reached_target = False
        self.reached_max = False
        return value


def _timer_from_addr(addr: int) -> int:
    index = (addr & 0xF0) >> 4
    if index >= TIMER_COUNT:
        raise ValueError(f"invalid timer address 0x{addr:X}")
    return index


class Timers:
    """Counters 0-2, addressed relative to the timer block base."""

    def __init__(self, trigger_irq: Callable[[int], None] | None = None) -> None:
        self._trigger_irq = trigger_irq
        self.values = [0] * TIMER_COUNT
        self.modes = [TimerMode() for _ in range(TIMER_COUNT)]
        self.targets = [0] * TIMER_COUNT
        self.irq_occurred = [False] * TIMER_COUNT
        self.paused = [False] * TIMER_COUNT

    def step(self, cycles: int) -> None:
        """Advance the counters by a number of CPU cycles."""
        increments = (
            cycles & 0xFFFF,
            cycles & 0xFFFF,
            (cycles // 8 if self.modes[2].clock_source >= 2 else cycles) & 0xFFFF,
        )
        for i, increment in enumerate(increments):
            if self.paused[i]:
                continue
            mode = self.modes[i]
            value = self.values[i] + increment
            could_irq = False

            if value > self.targets[i]:
                mode.reached_target = True
                if mode.irq_on_target:
                    could_irq = True
                if mode.reset_on_target:
                    value = 0

            if value > 0xFFFF:
                mode.reached_max = True
                if mode.irq_on_max:
                    could_irq = True
                if not mode.reset_on_target:
                    value = 0

            self.values[i] = value
            if could_irq:
                self._step_irq(i)
            self.values[i] &= 0xFFFF

    def read_reg(self, addr: int) -> int:
        """Read a 16-bit timer register."""
        index = _timer_from_addr(addr)
        reg = addr & 0xF
        if reg == 0:
            return self.values[index] & 0xFFFF
        if reg == 4:
            return self.modes[index].read()
        if reg == 8:
            return self.targets[index]
        logger.error("Invalid Timer register access")
        return 0xFFFF

    def write_reg(self, addr: int, value: int) -> None:
        """Write a 16-bit timer register."""
        index = _timer_from_addr(addr)
        reg = addr & 0xF
        value &= 0xFFFF
        if reg == 0:
            self.values[index] = value
        elif reg == 4:
            mode = self.modes[index]
            mode.word = value
            mode.irq_not = True
            self.paused[index] = False
            self.irq_occurred[index] = False
            self.values[index] = 0
            if mode.sync_enable and index == 2 and mode.sync_mode in (0, 3):
                self.paused[index] = True
        elif reg == 8:
            self.targets[index] = value
        else:
            logger.error("Invalid Timer register access")

    def _step_irq(self, index: int) -> None:
        mode = self.modes[index]
        if mode.irq_toggle_mode is ToggleMode.TOGGLE:
            mode.irq_not = not mode.irq_not
        else:
            mode.irq_not = False

        if mode.irq_repeat_mode is RepeatMode.ONCE and self.irq_occurred[index]:
            return

        if not mode.irq_not:
            if self._trigger_irq is not None:
                self._trigger_irq(index)
            self.irq_occurred[index] = True
        mode.irq_not = True