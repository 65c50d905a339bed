"""CD-ROM drive controller: registers, command FIFOs and sector reading."""

from __future__ import annotations

import enum
import logging
import os
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable

from pctation.cdrom_disk import CdromDisk, CdromPosition, DataType, bcd_to_dec, dec_to_bcd

logger = logging.getLogger(__name__)

READ_SECTOR_DELAY_STEPS = 1150  # each step is 100 CPU cycles
MAX_FIFO_SIZE = 16

SYNC_MAGIC = bytes((0x00,) + (0xFF,) * 10 + (0x00,))

_BIOS_VERSION = (0x94, 0x09, 0x19, 0xC0)  # 18 Nov 1994, version vC0


class ResponseType(enum.IntEnum):
    """Interrupt number that accompanies a response."""

    NONE_INT0 = 0
    SECOND_INT1 = 1  # further responses to ReadN/ReadS
    SECOND_INT2 = 2  # second response to various commands
    FIRST_INT3 = 3  # first response to any command
    DATA_END_INT4 = 4
    ERROR_INT5 = 5


class ReadState(enum.Enum):
    STOPPED = enum.auto()
    SEEKING = enum.auto()
    PLAYING = enum.auto()
    READING = enum.auto()


def _flag(bit: int) -> property:
    def getter(self: _ByteRegister) -> bool:
        return bool(self.byte & bit)

    def setter(self: _ByteRegister, value: bool) -> None:
        if value:
            self.byte |= bit
        else:
            self.byte &= ~bit & 0xFF

    return property(getter, setter)


@dataclass
class _ByteRegister:
    byte: int = 0


@dataclass
class StatusRegister(_ByteRegister):
    """The index/status register."""

    byte: int = 0b0001_1000  # parameter FIFO empty and ready for writing

    adpcm_fifo_empty = _flag(1 << 2)
    param_fifo_empty = _flag(1 << 3)
    param_fifo_write_ready = _flag(1 << 4)
    response_fifo_not_empty = _flag(1 << 5)
    data_fifo_not_empty = _flag(1 << 6)
    transmit_busy = _flag(1 << 7)

    @property
    def index(self) -> int:
        return self.byte & 0b11

    @index.setter
    def index(self, value: int) -> None:
        self.byte = (self.byte & ~0b11 & 0xFF) | (value & 0b11)


@dataclass
class CdromMode(_ByteRegister):
    """The mode set by the Setmode command."""

    cd_da_read = _flag(1 << 0)
    auto_pause = _flag(1 << 1)
    report = _flag(1 << 2)
    xa_filter = _flag(1 << 3)
    ignore_bit = _flag(1 << 4)
    whole_sector = _flag(1 << 5)
    xa_adpcm = _flag(1 << 6)
    double_speed = _flag(1 << 7)

    def reset(self) -> None:
        self.byte = 0

    @property
    def sector_size(self) -> int:
        return 0x924 if self.whole_sector else 0x800


_SHELL_OPEN = 1 << 4


@dataclass
class StatusCode(_ByteRegister):
    """The status byte sent with most responses."""

    byte: int = _SHELL_OPEN

    error = _flag(1 << 0)
    spindle_motor_on = _flag(1 << 1)
    seek_error = _flag(1 << 2)
    id_error = _flag(1 << 3)
    shell_open = _flag(_SHELL_OPEN)
    reading = _flag(1 << 5)
    seeking = _flag(1 << 6)
    playing = _flag(1 << 7)

    def reset(self) -> None:
        """Clear everything except the shell state."""
        self.byte &= _SHELL_OPEN

    def set_state(self, state: ReadState) -> None:
        self.reset()
        self.spindle_motor_on = True
        if state is ReadState.SEEKING:
            self.seeking = True
        elif state is ReadState.PLAYING:
            self.playing = True
        elif state is ReadState.READING:
            self.reading = True


_COMMAND_NAMES = (
    "Sync", "Getstat", "Setloc", "Play", "Forward", "Backward",
    "ReadN", "MotorOn", "Stop", "Pause", "Init", "Mute",
    "Demute", "Setfilter", "Setmode", "Getparam", "GetlocL", "GetlocP",
    "SetSession", "GetTN", "GetTD", "SeekL", "SeekP", "-",
    "-", "Test", "GetID", "ReadS", "Reset", "GetQ",
    "ReadTOC", "VideoCD",
)


def command_name(cmd: int) -> str:
    """Name of a drive command byte."""
    if 0 <= cmd <= 0x1F:
        return _COMMAND_NAMES[cmd]
    if 0x50 <= cmd <= 0x57:
        return "Secret"
    return "<unknown>"


_READ_REGISTERS = {
    (0, 0): "Status Register", (0, 1): "Status Register",
    (0, 2): "Status Register", (0, 3): "Status Register",
    (1, 0): "Command Register", (1, 1): "Response FIFO",
    (1, 2): "Response FIFO", (1, 3): "Response FIFO",
    (2, 0): "Data FIFO", (2, 1): "Data FIFO", (2, 2): "Data FIFO", (2, 3): "Data FIFO",
    (3, 0): "Interrupt Enable Register", (3, 2): "Interrupt Enable Register",
    (3, 1): "Interrupt Flag Register", (3, 3): "Interrupt Flag Register",
}

_WRITE_REGISTERS = {
    (0, 0): "Index Register", (0, 1): "Index Register",
    (0, 2): "Index Register", (0, 3): "Index Register",
    (1, 0): "Command Register",
    (1, 1): "Sound Map Data Out",
    (1, 2): "Sound Map Coding Info",
    (1, 3): "Audio Volume for Right-CD-Out to Right-SPU-Input",
    (2, 0): "Parameter FIFO",
    (2, 1): "Interrupt Enable Register",
    (2, 2): "Audio Volume for Left-CD-Out to Left-SPU-Input",
    (2, 3): "Audio Volume for Right-CD-Out to Left-SPU-Input",
    (3, 0): "Request Register",
    (3, 1): "Interrupt Flag Register",
    (3, 2): "Audio Volume for Left-CD-Out to Right-SPU-Input",
    (3, 3): "Audio Volume Apply Changes",
}


def register_name(reg: int, index: int, is_read: bool) -> str:
    """Name of the register selected by ``reg`` and the index bits."""
    table = _READ_REGISTERS if is_read else _WRITE_REGISTERS
    return table.get((reg, index), "<unknown>")


class CdromDrive:
    """The drive controller as seen through its four byte registers."""

    def __init__(self, trigger_irq: Callable[[], None] | None = None) -> None:
        self._trigger_irq = trigger_irq
        self.disk = CdromDisk()
        self.status = StatusRegister()
        self.stat_code = StatusCode()
        self.mode = CdromMode()
        self.seek_sector = 0
        self.read_sector = 0
        self.param_fifo: deque[int] = deque()
        self.irq_fifo: deque[ResponseType] = deque()
        self.resp_fifo: deque[int] = deque()
        self.int_enable = 0
        self._steps_until_read = READ_SECTOR_DELAY_STEPS
        self._read_buf = b""
        self._data_buf = b""
        self._data_index = 0
        self.muted = False

    def insert_disk_file(self, path: str | os.PathLike[str]) -> None:
        """Insert a disc image and close the shell."""
        if Path(path).suffix.lower() == ".cue":
            logger.warning("Cue sheets are not supported: %s", os.fspath(path))
        else:
            self.disk.init_from_bin(path)
        self.stat_code.shell_open = False

    def step(self) -> None:
        """Advance the drive by one step: raise IRQs and read sectors."""
        self.status.transmit_busy = False

        if self.irq_fifo:
            triggered = self.irq_fifo[0] & 0b111
            if triggered & self.int_enable & 0b111 and self._trigger_irq is not None:
                self._trigger_irq()

        if not (self.stat_code.reading or self.stat_code.playing):
            return

        self._steps_until_read -= 1
        if self._steps_until_read != 0:
            return
        self._steps_until_read = READ_SECTOR_DELAY_STEPS

        self._read_buf, sector_type = self.disk.read(CdromPosition.from_lba(self.read_sector))
        self.read_sector += 1

        if sector_type is DataType.INVALID:
            return

        sync_match = self._read_buf[:len(SYNC_MAGIC)] == SYNC_MAGIC
        if self.stat_code.playing and sector_type is DataType.AUDIO:
            if sync_match:
                logger.error("Sync data found in Audio sector")
        elif self.stat_code.reading and sector_type is DataType.DATA:
            if not sync_match:
                logger.error("Sync data mismatch in Data sector")
            self._push_response(ResponseType.SECOND_INT1, [self.stat_code.byte])

    def read_reg(self, addr: int) -> int:
        """Read one of the four drive registers."""
        reg = addr & 0xFF
        index = self.status.index
        value = 0

        if reg == 0:
            value = self.status.byte
        elif reg == 1:
            if self.resp_fifo:
                value = self.resp_fifo.popleft()
                if not self.resp_fifo:
                    self.status.response_fifo_not_empty = False
        elif reg == 2:
            value = self.read_byte()
        elif reg == 3 and index in (0, 2):
            value = self.int_enable
        elif reg == 3 and index in (1, 3):
            value = 0b1110_0000  # always set
            if self.irq_fifo:
                value |= self.irq_fifo[0] & 0b111
        else:
            logger.error("Unknown combination, CDREG%d.%d", reg, index)

        logger.debug(
            "CDROM read %s (CDREG%d.%d) val: 0x%02X",
            register_name(reg, index, True), reg, index, value,
        )
        return value

    def write_reg(self, addr: int, value: int) -> None:
        """Write one of the four drive registers."""
        reg = addr & 0xFF
        index = self.status.index
        value &= 0xFF

        if reg == 0:
            self.status.index = value
            return
        if (reg, index) == (1, 0):
            self._execute_command(value)
        elif (reg, index) == (2, 0):
            if len(self.param_fifo) >= MAX_FIFO_SIZE:
                raise RuntimeError("CD-ROM parameter FIFO is full")
            self.param_fifo.append(value)
            self.status.param_fifo_empty = False
            self.status.param_fifo_write_ready = len(self.param_fifo) < MAX_FIFO_SIZE
        elif (reg, index) == (2, 1):
            self.int_enable = value
        elif (reg, index) == (3, 0):
            if value & 0x80:
                # Only refill once everything has been read
                if self._data_buf_empty():
                    self._data_buf, self._read_buf = self._read_buf, b""
                    self._data_index = 0
                    self.status.data_fifo_not_empty = True
            else:
                self._data_buf = b""
                self._data_index = 0
                self.status.data_fifo_not_empty = False
        elif (reg, index) == (3, 1):
            if value & 0x40:
                self.param_fifo.clear()
                self.status.param_fifo_empty = True
                self.status.param_fifo_write_ready = True
            if self.irq_fifo:
                self.irq_fifo.popleft()
        elif (reg, index) not in _WRITE_REGISTERS:
            logger.error("Unknown combination, CDREG%d.%d val: %02X", reg, index, value)

        logger.debug(
            "CDROM write %s (CDREG%d.%d) val: 0x%02X",
            register_name(reg, index, False), reg, index, value,
        )

    def read_byte(self) -> int:
        """Read one byte from the data FIFO; zero if it is empty."""
        if self._data_buf_empty():
            logger.warning("Tried to read with an empty buffer")
            return 0

        data_offset = 24 if self.mode.sector_size == 0x800 else 12
        data = self._data_buf[data_offset + self._data_index]
        self._data_index += 1

        if self._data_buf_empty():
            self.status.data_fifo_not_empty = False
        return data

    def read_word(self) -> int:
        """Read four bytes from the data FIFO as a little-endian word."""
        return int.from_bytes(bytes(self.read_byte() for _ in range(4)), "little")

    def _data_buf_empty(self) -> bool:
        return not self._data_buf or self._data_index >= self.mode.sector_size

    def _get_param(self) -> int:
        if not self.param_fifo:
            raise ValueError("CD-ROM command is missing a parameter")
        param = self.param_fifo.popleft()
        self.status.param_fifo_empty = not self.param_fifo
        self.status.param_fifo_write_ready = True
        return param

    def _push_response(self, kind: ResponseType, data: Iterable[int]) -> None:
        self.irq_fifo.append(kind)
        for byte in data:
            if len(self.resp_fifo) < MAX_FIFO_SIZE:
                self.resp_fifo.append(byte & 0xFF)
                self.status.response_fifo_not_empty = True
            else:
                logger.warning("CDROM response 0x%02X lost, FIFO was full", byte)

    def _push_stat(self, kind: ResponseType) -> None:
        self._push_response(kind, [self.stat_code.byte])

    def _command_error(self) -> None:
        self._push_response(ResponseType.ERROR_INT5, [0x11, 0x40])

    def _start(self, state: ReadState) -> None:
        self.read_sector = self.seek_sector
        self.stat_code.set_state(state)
        self._push_stat(ResponseType.FIRST_INT3)

    def _execute_command(self, cmd: int) -> None:
        self.irq_fifo.clear()
        self.resp_fifo.clear()

        logger.debug("CDROM command issued: %s (%02X)", command_name(cmd), cmd)
        if self.param_fifo:
            logger.debug("Parameters: [%s]", ", ".join(f"{p:02X}" for p in self.param_fifo))

        first, second, error = (
            ResponseType.FIRST_INT3, ResponseType.SECOND_INT2, ResponseType.ERROR_INT5
        )
        stat = self.stat_code

        if cmd == 0x01:  # Getstat
            self._push_stat(first)
        elif cmd == 0x02:  # Setloc
            mm = bcd_to_dec(self._get_param())
            ss = bcd_to_dec(self._get_param())
            ff = bcd_to_dec(self._get_param())
            self.seek_sector = CdromPosition(mm, ss, ff).to_lba()
            self._push_stat(first)
        elif cmd == 0x03:  # Play
            if self.param_fifo:
                raise ValueError("Play with a track parameter is not supported")
            self._start(ReadState.PLAYING)
        elif cmd in (0x06, 0x1B):  # ReadN, ReadS
            self._start(ReadState.READING)
        elif cmd == 0x07:  # MotorOn
            stat.spindle_motor_on = True
            self._push_stat(first)
            self._push_stat(second)
        elif cmd == 0x08:  # Stop
            stat.set_state(ReadState.STOPPED)
            stat.spindle_motor_on = False
            self._push_stat(first)
            self._push_stat(second)
        elif cmd == 0x09:  # Pause
            self._push_stat(first)
            stat.set_state(ReadState.STOPPED)
            self._push_stat(second)
        elif cmd == 0x0A:  # Init
            self._push_stat(first)
            stat.reset()
            stat.spindle_motor_on = True
            self.mode.reset()
            self._push_stat(second)
        elif cmd == 0x0B:  # Mute
            self.muted = True
            self._push_stat(first)
        elif cmd == 0x0C:  # Demute
            self.muted = False
            self._push_stat(first)
        elif cmd == 0x0E:  # Setmode
            self._push_stat(first)
            param = self._get_param()
            if param & 0b1_0000:
                raise ValueError("Setmode with the ignore bit is not supported")
            self.mode.byte = param
        elif cmd == 0x0F:  # Getparam
            self._push_response(first, [stat.byte, 0x00, 0x00])
        elif cmd == 0x13:  # GetTN
            track_count = dec_to_bcd(self.disk.track_count())
            self._push_response(first, [stat.byte, dec_to_bcd(0x01), track_count])
        elif cmd == 0x14:  # GetTD
            track_number = bcd_to_dec(self._get_param())
            if track_number == 0:  # whole disc
                pos = self.disk.size()
            else:
                pos = self.disk.track_start(track_number)
            self._push_response(
                first, [stat.byte, dec_to_bcd(pos.minutes), dec_to_bcd(pos.seconds)]
            )
        elif cmd == 0x15:  # SeekL
            self._push_stat(first)
            self.read_sector = self.seek_sector
            stat.set_state(ReadState.SEEKING)
            self._push_stat(second)
        elif cmd == 0x19:  # Test
            subfunction = self._get_param()
            logger.debug("  CDROM command subfunction: %02X", subfunction)
            if subfunction == 0x20:
                self._push_response(first, _BIOS_VERSION)
            else:
                self._command_error()
                logger.error("Unhandled Test subfunction %02X", subfunction)
        elif cmd == 0x1A:  # GetID
            if stat.shell_open:
                self._push_response(error, [0x11, 0x80])
            elif not self.disk.is_empty():
                self._push_response(first, [stat.byte])
                self._push_response(second, [0x02, 0x00, 0x20, 0x00, *b"SCEA"])
            else:
                self._push_response(first, [stat.byte])
                self._push_response(error, [0x08, 0x40, 0, 0, 0, 0, 0, 0])
        else:
            self._command_error()
            logger.error("Unhandled CDROM command 0x%02X", cmd)

        if self.resp_fifo:
            logger.debug("Response: [%s]", ", ".join(f"{b:02X}" for b in self.resp_fifo))

        self.param_fifo.clear()
        self.status.transmit_busy = True
        self.status.param_fifo_empty = True
        self.status.param_fifo_write_ready = True
        self.status.adpcm_fifo_empty = False