import pytest

from pctation.dma_channel import (
    DmaChannel,
    MemoryAddressStep,
    SyncMode,
    TransferDirection,
)

ENABLE = 1 << 24
TRIGGER = 1 << 28


def control(sync_mode=0, from_ram=False, backward=False, enable=False, trigger=False):
    word = sync_mode << 9
    if from_ram:
        word |= 1
    if backward:
        word |= 2
    if enable:
        word |= ENABLE
    if trigger:
        word |= TRIGGER
    return word


def test_manual_mode_needs_enable_and_trigger():
    channel = DmaChannel(channel_control=control(enable=True))
    assert channel.active() is False
    channel.channel_control |= TRIGGER
    assert channel.active() is True


def test_request_mode_active_on_enable_only():
    channel = DmaChannel(channel_control=control(sync_mode=1, enable=True))
    assert channel.active() is True
    channel.channel_control = control(sync_mode=1)
    assert channel.active() is False


def test_decoded_fields():
    channel = DmaChannel(channel_control=control(sync_mode=2, from_ram=True, backward=True))
    assert channel.transfer_direction is TransferDirection.FROM_RAM
    assert channel.to_ram is False
    assert channel.memory_address_step is MemoryAddressStep.BACKWARD
    assert channel.sync_mode is SyncMode.LINKED_LIST
    assert channel.sync_mode_name == "Linked List"


def test_sync_mode_names():
    assert DmaChannel(channel_control=control(sync_mode=0)).sync_mode_name == "Manual"
    assert DmaChannel(channel_control=control(sync_mode=1)).sync_mode_name == "Request"
    assert DmaChannel(channel_control=control(sync_mode=3)).sync_mode_name == "<Invalid>"


def test_reserved_sync_mode_raises():
    channel = DmaChannel(channel_control=control(sync_mode=3))
    with pytest.raises(ValueError):
        _ = channel.sync_mode
    assert channel.sync_mode_name == "<Invalid>"
    assert channel.channel_control == control(sync_mode=3)


def test_manual_word_count_uses_low_half():
    channel = DmaChannel(channel_control=control(sync_mode=0), block_control=0x00AB0010)
    assert channel.transfer_word_count() == 0x10


def test_request_word_count_is_size_times_count():
    channel = DmaChannel(channel_control=control(sync_mode=1), block_control=(3 << 16) | 4)
    assert channel.transfer_word_count() == 12


def test_linked_list_word_count_raises():
    channel = DmaChannel(channel_control=control(sync_mode=2))
    with pytest.raises(ValueError):
        channel.transfer_word_count()


def test_transfer_finished_clears_only_enable_and_trigger():
    other_bits = control(sync_mode=2, from_ram=True)
    channel = DmaChannel(channel_control=other_bits | ENABLE | TRIGGER)
    channel.transfer_finished()
    assert channel.channel_control == other_bits
    assert channel.enable is False
    assert channel.manual_trigger is False