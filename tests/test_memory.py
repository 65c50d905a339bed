import struct

import pytest

from pctation.memmap import EXPANSION_1_SIZE, RAM_SIZE, SCRATCHPAD_SIZE, SPU_SIZE
from pctation.memory import (
    Addressable,
    ExeLoadInfo,
    Expansion,
    InvalidExecutableError,
    Ram,
    Scratchpad,
    Spu,
)


def make_exe(payload, *, load_addr=0x80010000, pc=0x80010000, r28=0x11,
             sp_base=0x801FFF00, sp_offset=0x10, magic=b"PS-X EXE", memfill=(0, 0)):
    header = struct.pack(
        "<8s8s10I", magic, bytes(8), pc, r28, load_addr, len(payload), 0, 0,
        memfill[0], memfill[1], sp_base, sp_offset,
    )
    return header.ljust(0x800, b"\0") + payload


def test_addressable_default_fill():
    mem = Addressable(16)
    assert all(mem.read(addr, 1) == 0xDE for addr in range(16))


@pytest.mark.parametrize("width", [1, 2, 4])
def test_addressable_round_trip(width):
    mem = Addressable(16)
    value = 0x12345678 & ((1 << (8 * width)) - 1)
    mem.write(4, value, width)
    assert mem.read(4, width) == value


def test_addressable_little_endian():
    mem = Addressable(8)
    mem.write(0, 0x12345678, 4)
    assert mem.read(0, 1) == 0x78
    assert mem.read(2, 2) == 0x1234


def test_addressable_truncates_value():
    mem = Addressable(4)
    mem.write(0, 0x1FF, 1)
    assert mem.read(0, 1) == 0xFF
    assert mem.read(1, 1) == 0xDE


def test_addressable_bad_width():
    with pytest.raises(ValueError):
        Addressable(8).read(0, 3)


def test_addressable_out_of_bounds():
    mem = Addressable(8)
    with pytest.raises(IndexError):
        mem.read(6, 4)
    with pytest.raises(IndexError):
        mem.write(8, 0, 1)


def test_ram_size_and_zero_fill():
    ram = Ram()
    assert len(ram) == RAM_SIZE
    assert ram.read(0x1000, 4) == 0


def test_ram_without_executable():
    assert Ram().load_executable() is None


def test_ram_empty_executable(tmp_path):
    path = tmp_path / "empty.exe"
    path.write_bytes(b"")
    assert Ram(path).load_executable() is None


def test_ram_loads_executable(tmp_path):
    payload = bytes(range(256)) * 8
    path = tmp_path / "game.exe"
    path.write_bytes(make_exe(payload))
    ram = Ram(path)
    info = ram.load_executable()
    assert info == ExeLoadInfo(pc=0x80010000, r28=0x11, r29_r30=0x801FFF00 + 0x10)
    assert bytes(ram.data[0x10000:0x10000 + len(payload)]) == payload
    assert ram.read(0x10000 - 1, 1) == 0


def test_ram_rejects_bad_magic(tmp_path):
    path = tmp_path / "bad.exe"
    path.write_bytes(make_exe(bytes(0x800), magic=b"NOT EXE!"))
    with pytest.raises(InvalidExecutableError):
        Ram(path).load_executable()


def test_ram_rejects_memfill(tmp_path):
    path = tmp_path / "fill.exe"
    path.write_bytes(make_exe(bytes(0x800), memfill=(0x80020000, 0x100)))
    with pytest.raises(InvalidExecutableError):
        Ram(path).load_executable()


def test_ram_rejects_truncated_payload(tmp_path):
    path = tmp_path / "short.exe"
    path.write_bytes(make_exe(bytes(0x800))[:-16])
    with pytest.raises(InvalidExecutableError):
        Ram(path).load_executable()


def test_scratchpad():
    pad = Scratchpad()
    assert len(pad) == SCRATCHPAD_SIZE
    assert pad.read(SCRATCHPAD_SIZE - 4, 4) == 0


def test_expansion_defaults():
    exp = Expansion()
    assert len(exp) == EXPANSION_1_SIZE
    assert exp.read(0x20018, 1) == 1
    assert exp.read(0, 4) == 0


def test_expansion_bootstrap(tmp_path):
    image = b"\x01\x02\x03\x04" * 16
    path = tmp_path / "boot.rom"
    path.write_bytes(image)
    exp = Expansion(path)
    assert bytes(exp.data[:len(image)]) == image
    assert exp.read(0x20018, 1) == 1


def test_expansion_bootstrap_too_large(tmp_path):
    path = tmp_path / "big.rom"
    path.write_bytes(bytes(EXPANSION_1_SIZE + 1))
    with pytest.raises(ValueError):
        Expansion(path)


def test_spu_control_register():
    spu = Spu()
    assert len(spu) == SPU_SIZE
    assert spu.read(0x1AA, 2) == 0x8000
    assert spu.read(0, 2) == 0