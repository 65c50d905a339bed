"""CD-ROM disc images, tracks and mm:ss:ff positions."""

from __future__ import annotations

import enum
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO

logger = logging.getLogger(__name__)

SECTORS_PER_SECOND = 75
SECTOR_SIZE = 2352
PREGAP_FRAME_COUNT = SECTORS_PER_SECOND * 2
MAX_TRACKS = 99


def bcd_to_dec(value: int) -> int:
    """Decode a packed BCD byte."""
    return (value // 16 * 10 + value % 16) & 0xFF


def dec_to_bcd(value: int) -> int:
    """Encode a byte as packed BCD."""
    return (value // 10 * 16 + value % 10) & 0xFF


@dataclass
class CdromPosition:
    """A disc position in minutes, seconds and frames."""

    minutes: int = 0
    seconds: int = 0
    frames: int = 0

    @classmethod
    def from_lba(cls, lba: int) -> CdromPosition:
        lba &= 0xFFFFFFFF
        return cls(
            (lba // 60 // SECTORS_PER_SECOND) & 0xFF,
            (lba % (60 * SECTORS_PER_SECOND) // SECTORS_PER_SECOND) & 0xFF,
            (lba % SECTORS_PER_SECOND) & 0xFF,
        )

    def to_lba(self) -> int:
        return (
            self.minutes * 60 * SECTORS_PER_SECOND
            + self.seconds * SECTORS_PER_SECOND
            + self.frames
        )

    def __str__(self) -> str:
        return f"{self.minutes:02}:{self.seconds:02}:{self.frames:02}"

    def __add__(self, other: CdromPosition) -> CdromPosition:
        return CdromPosition.from_lba(self.to_lba() + other.to_lba())

    def __sub__(self, other: CdromPosition) -> CdromPosition:
        return CdromPosition.from_lba(self.to_lba() - other.to_lba())

    def physical_to_logical(self) -> None:
        """Remove the two-second lead-in, in place."""
        result = self - INDEX_1_POS
        self.minutes, self.seconds, self.frames = result.minutes, result.seconds, result.frames

    def logical_to_physical(self) -> None:
        """Add the two-second lead-in, in place."""
        result = self + INDEX_1_POS
        self.minutes, self.seconds, self.frames = result.minutes, result.seconds, result.frames


INDEX_1_POS = CdromPosition(0, 2, 0)


class DataType(enum.Enum):
    INVALID = "Invalid"
    AUDIO = "Audio"
    DATA = "Data"


@dataclass
class CdromTrack:
    """One track of a disc image."""

    type: DataType = DataType.INVALID
    filepath: str = ""
    number: int = 0
    pregap: CdromPosition = field(default_factory=CdromPosition)
    start: CdromPosition = field(default_factory=CdromPosition)
    offset: int = 0
    frame_count: int = 0
    file: BinaryIO | None = field(default=None, repr=False)


class CdromDisk:
    """A disc made of tracks, readable by sector."""

    def __init__(self) -> None:
        self.filepath = ""
        self.tracks: list[CdromTrack] = []

    def __enter__(self) -> CdromDisk:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the files behind all tracks."""
        for track in self.tracks:
            if track.file is not None:
                track.file.close()
                track.file = None

    def init_from_bin(self, path: str | os.PathLike[str]) -> None:
        """Load a raw single-track data image."""
        path_str = os.fspath(path)
        self.filepath = path_str
        filesize = Path(path_str).stat().st_size
        if filesize == 0:
            return
        self.close()
        track = CdromTrack(
            type=DataType.DATA,
            filepath=path_str,
            number=1,
            frame_count=filesize // SECTOR_SIZE,
        )
        track.file = open(path_str, "rb")
        self.tracks = [track]

    def read(self, pos: CdromPosition) -> tuple[bytes, DataType]:
        """Read the sector at a physical position, with its track's type."""
        track = self.track_by_pos(pos)
        if track is None or track.file is None:
            logger.warning("Reading failed, no disk loaded")
            return b"", DataType.INVALID

        pos = CdromPosition(pos.minutes, pos.seconds, pos.frames)
        if track.number == 1 and track.type is DataType.DATA:
            pos.physical_to_logical()

        logger.info("Reading %s track: %02d pos: %s", track.type.value, track.number, pos)

        track.file.seek(pos.to_lba() * SECTOR_SIZE)
        data = track.file.read(SECTOR_SIZE)
        return data.ljust(SECTOR_SIZE, b"\x00"), track.type

    def track(self, number: int) -> CdromTrack:
        return self.tracks[number]

    def track_count(self) -> int:
        count = len(self.tracks)
        if count > MAX_TRACKS:
            raise ValueError(f"too many tracks: {count}")
        return count

    def size(self) -> CdromPosition:
        """Total length of the disc including the lead-in."""
        sectors = sum(t.frame_count for t in self.tracks)
        return CdromPosition.from_lba(sectors) + INDEX_1_POS

    def track_start(self, number: int) -> CdromPosition:
        start = 0
        count = self.track_count()
        if count > 0:
            if self.tracks[0].type is DataType.DATA:
                start += PREGAP_FRAME_COUNT
            if count > 1:
                start += sum(t.frame_count for t in self.tracks[:max(0, number - 1)])
        return CdromPosition.from_lba(start)

    def track_by_pos(self, pos: CdromPosition) -> CdromTrack | None:
        """The track holding a position, or None if outside every track."""
        pos_lba = pos.to_lba()
        for i, track in enumerate(self.tracks):
            start = self.track_start(i).to_lba()
            if start <= pos_lba < start + track.frame_count:
                return track
        return None

    def is_empty(self) -> bool:
        return not self.tracks