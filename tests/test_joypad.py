import pytest

from pctation.joypad import Button, Joypad, reg_name


def transfer(joypad, value):
    joypad.write8(0x0, value)
    return joypad.read8(0x0)


def poll(joypad):
    return [transfer(joypad, v) for v in (0x01, 0x42, 0x00, 0x00, 0x00)]


def test_reg_names():
    assert reg_name(0x0) == "JOY_DATA"
    assert reg_name(0x5) == "JOY_STAT"
    assert reg_name(0x9) == "JOY_MODE"
    assert reg_name(0xA) == "JOY_CTRL"
    assert reg_name(0xE) == "JOY_BAUD"
    assert reg_name(0xC) == "<unknown>"


def test_idle_controller_sequence():
    assert poll(Joypad()) == [0xFF, 0x41, 0x5A, 0xFF, 0xFF]


def test_pressed_button_reported():
    joypad = Joypad()
    joypad.update_button(Button.CROSS, True)
    low, high = poll(joypad)[3:]
    assert low == 0xFF
    assert high & (1 << (Button.CROSS - 8)) == 0


def test_stat_after_transfer():
    joypad = Joypad()
    joypad.write8(0x0, 0x01)
    stat = joypad.read8(0x4)
    assert stat & 0b101 == 0b101
    assert stat & 0b10
    assert stat & 0x80
    assert joypad.read8(0x4) & 0x80 == 0


def test_data_read_clears_rx():
    joypad = Joypad()
    joypad.write8(0x0, 0x01)
    joypad.read8(0x0)
    assert joypad.read8(0x4) & 0b10 == 0
    assert joypad.read8(0x0) == 0xFF


def test_irq_after_delay():
    calls = []
    joypad = Joypad(lambda: calls.append(1))
    joypad.write8(0x0, 0x01)
    for _ in range(4):
        joypad.step()
    assert calls == []
    joypad.step()
    assert len(calls) == 1
    assert joypad.read8(0x5) == 0b10
    joypad.step()
    assert len(calls) == 2


def test_irq_acknowledge():
    calls = []
    joypad = Joypad(lambda: calls.append(1))
    joypad.write8(0x0, 0x01)
    for _ in range(5):
        joypad.step()
    joypad.write8(0xA, 0x10)
    assert joypad.read8(0x5) == 0
    joypad.step()
    assert len(calls) == 1


def test_mode_and_baud_round_trip():
    joypad = Joypad()
    joypad.write8(0x8, 0x0D)
    joypad.write8(0x9, 0x01)
    joypad.write8(0xE, 0x88)
    assert joypad.read8(0x8) == 0x0D
    assert joypad.read8(0x9) == 0x01
    assert joypad.read8(0xE) == 0x88
    assert joypad.read8(0xF) == 0


def test_memory_card_unimplemented():
    joypad = Joypad()
    joypad.write8(0x0, 0x81)
    assert joypad.read8(0x4) & 0x80
    assert joypad.read8(0x0) == 0xFF


def test_second_port_uses_second_controller():
    joypad = Joypad()
    joypad.controllers[1].update_button(0, True)
    joypad.write8(0xB, 0x20)  # select port 2
    low = poll(joypad)[3]
    assert low & 1 == 0


def test_unmapped_read_raises():
    with pytest.raises(ValueError):
        Joypad().read8(0xC)