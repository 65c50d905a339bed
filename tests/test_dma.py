import pytest

from pctation.dma import Dma, DmaInterruptRegister, DmaPort, port_name
from pctation.memory import Ram

ENABLE = 1 << 24
TRIGGER = 1 << 28


class FakeGpu:
    def __init__(self, vram_words=()):
        self.received = []
        self._vram = list(vram_words)

    def gp0(self, word):
        self.received.append(word)

    def dma_read_vram(self):
        return self._vram.pop(0)


class FakeCdrom:
    def __init__(self, words):
        self._words = list(words)

    def read_word(self):
        return self._words.pop(0)


def make_dma(gpu=None, cdrom=None, on_irq=None):
    return Dma(Ram(), gpu or FakeGpu(), cdrom or FakeCdrom([]), on_irq)


def channel_base(port):
    return int(port) << 4


def test_port_names():
    assert port_name(DmaPort.OTC) == "OTC"
    assert port_name(DmaPort.CDROM) == "CD-ROM"
    assert port_name(9) == "<Invalid>"


def test_interrupt_port_enable_bits():
    reg = DmaInterruptRegister(word=1 << (16 + DmaPort.GPU))
    assert reg.is_port_enabled(DmaPort.GPU) is True
    assert reg.is_port_enabled(DmaPort.SPU) is False


def test_interrupt_master_enable_enables_every_port():
    reg = DmaInterruptRegister(word=1 << 23)
    assert all(reg.is_port_enabled(port) for port in DmaPort)


def test_set_port_flag_round_trip():
    reg = DmaInterruptRegister()
    reg.set_port_flag(DmaPort.CDROM, True)
    assert reg.word == 1 << (24 + DmaPort.CDROM)
    reg.set_port_flag(DmaPort.CDROM, False)
    assert reg.word == 0


def test_irq_master_flag():
    assert DmaInterruptRegister(word=1 << 15).irq_master_flag() is True
    enabled_and_flagged = (1 << 23) | (1 << 18) | (1 << 26)
    assert DmaInterruptRegister(word=enabled_and_flagged).irq_master_flag() is True
    assert DmaInterruptRegister(word=(1 << 18) | (1 << 26)).irq_master_flag() is False


def test_control_register_default_and_byte_reads():
    dma = make_dma()
    assert dma.read(0x70) == 0x07654321
    assert dma.read(0x70, 1) == 0x21
    assert dma.read(0x72, 2) == 0x0765


def test_base_address_round_trip():
    dma = make_dma()
    dma.write(channel_base(DmaPort.GPU), 0x00123456)
    assert dma.read(channel_base(DmaPort.GPU)) == 0x00123456
    assert dma.channel(DmaPort.GPU).base_addr == 0x00123456


def test_byte_write_merges_into_register():
    dma = make_dma()
    dma.write(0x70, 0xAA, 1)
    assert dma.read(0x70, 1) == 0xAA
    assert dma.read(0x71, 1) == 0x43


def test_unhandled_channel_register_reads_zero():
    dma = make_dma()
    assert dma.read(channel_base(DmaPort.SPU) + 0xC) == 0


def test_invalid_width_raises():
    dma = make_dma()
    with pytest.raises(ValueError):
        dma.read(0x70, 3)


def test_invalid_channel_raises():
    dma = make_dma()
    with pytest.raises(ValueError):
        dma.channel(7)


def test_interrupt_word_write_acknowledges_flags():
    dma = make_dma()
    gpu_flag = 1 << (24 + DmaPort.GPU)
    cdrom_flag = 1 << (24 + DmaPort.CDROM)
    dma.interrupt.word = gpu_flag | cdrom_flag
    dma.write(0x74, gpu_flag | (1 << 23))
    assert dma.interrupt.word & gpu_flag == 0
    assert dma.interrupt.word & cdrom_flag == cdrom_flag
    assert dma.interrupt.master_enable is True


def test_otc_clear_builds_reverse_linked_table():
    dma = make_dma()
    base = channel_base(DmaPort.OTC)
    dma.write(base, 0x100)
    dma.write(base + 4, 4)
    dma.write(base + 8, 0b10 | ENABLE | TRIGGER)  # manual, to RAM, backward
    assert dma.ram.read(0x100) == 0xFC
    assert dma.ram.read(0xFC) == 0xF8
    assert dma.ram.read(0xF8) == 0xF4
    assert dma.ram.read(0xF4) == 0xFFFFFF
    assert dma.channel(DmaPort.OTC).enable is False


def test_block_transfer_from_ram_to_gpu():
    gpu = FakeGpu()
    dma = make_dma(gpu=gpu)
    words = [0x11111111, 0x22222222, 0x33333333, 0x44444444]
    for i, word in enumerate(words):
        dma.ram.write(0x400 + 4 * i, word)
    base = channel_base(DmaPort.GPU)
    dma.write(base, 0x400)
    dma.write(base + 4, (2 << 16) | 2)
    dma.write(base + 8, (1 << 9) | 1 | ENABLE)  # request, from RAM, forward
    assert gpu.received == words
    assert dma.channel(DmaPort.GPU).active() is False


def test_block_transfer_from_gpu_to_ram():
    gpu = FakeGpu(vram_words=[0xCAFEBABE, 0x0BADF00D])
    dma = make_dma(gpu=gpu)
    base = channel_base(DmaPort.GPU)
    dma.write(base, 0x800)
    dma.write(base + 4, (1 << 16) | 2)
    dma.write(base + 8, (1 << 9) | ENABLE)
    assert [dma.ram.read(0x800), dma.ram.read(0x804)] == [0xCAFEBABE, 0x0BADF00D]


def test_cdrom_words_land_in_ram():
    cdrom = FakeCdrom([0xDEADBEEF, 0x01020304])
    dma = make_dma(cdrom=cdrom)
    base = channel_base(DmaPort.CDROM)
    dma.write(base, 0x1000)
    dma.write(base + 4, 2)
    dma.write(base + 8, ENABLE | TRIGGER)
    assert dma.ram.read(0x1000) == 0xDEADBEEF
    assert dma.ram.read(0x1004) == 0x01020304


def test_linked_list_sends_packets_in_order():
    gpu = FakeGpu()
    dma = make_dma(gpu=gpu)
    dma.ram.write(0x200, (2 << 24) | 0x300)
    dma.ram.write(0x204, 0xA0000001)
    dma.ram.write(0x208, 0xA0000002)
    dma.ram.write(0x300, (1 << 24) | 0xFFFFFF)
    dma.ram.write(0x304, 0xA0000003)
    base = channel_base(DmaPort.GPU)
    dma.write(base, 0x200)
    dma.write(base + 8, (2 << 9) | 1 | ENABLE)
    assert gpu.received == [0xA0000001, 0xA0000002, 0xA0000003]


def test_linked_list_to_other_port_raises():
    dma = make_dma()
    base = channel_base(DmaPort.SPU)
    with pytest.raises(ValueError):
        dma.write(base + 8, (2 << 9) | 1 | ENABLE)


def test_finished_transfer_raises_irq_once():
    calls = []
    dma = make_dma(on_irq=lambda: calls.append(True))
    dma.write(0x74, (1 << 23) | (1 << (16 + DmaPort.OTC)))
    base = channel_base(DmaPort.OTC)
    dma.write(base, 0x100)
    dma.write(base + 4, 1)
    dma.write(base + 8, ENABLE | TRIGGER)
    assert dma.interrupt.word & (1 << (24 + DmaPort.OTC))
    dma.step()
    dma.step()
    assert calls == [True]


def test_no_irq_without_enable():
    calls = []
    dma = make_dma(on_irq=lambda: calls.append(True))
    base = channel_base(DmaPort.OTC)
    dma.write(base, 0x100)
    dma.write(base + 4, 1)
    dma.write(base + 8, ENABLE | TRIGGER)
    dma.step()
    assert calls == []
    assert dma.interrupt.word == 0