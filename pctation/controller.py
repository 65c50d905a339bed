"""Digital pad serial protocol."""

from __future__ import annotations

_BUTTON_COUNT = 16


class DigitalController:
    """A standard digital pad answering the controller access sequence."""

    def __init__(self) -> None:
        self.read_idx = 0
        self.buttons = 0xFFFF  # active-low
        self.buttons_down_mask = 0

    def ack(self) -> bool:
        """Whether the pad acknowledges (not after the last byte)."""
        return self.read_idx != 0

    def advance(self) -> None:
        self.read_idx += 1

    def reset(self) -> None:
        self.read_idx = 0

    def read(self, value: int) -> int:
        """Exchange one byte of the access sequence."""
        if self.read_idx == 0:
            if value == 0x01:
                self.advance()
            return 0xFF
        if self.read_idx == 1:
            if value == 0x42:
                self.advance()
                return 0x41  # digital pad ID low
            self.reset()
            return 0xFF
        if self.read_idx == 2:
            self.advance()
            return 0x5A  # ID high
        if self.read_idx == 3:
            self.advance()
            result = self.buttons & 0xFF
            self.buttons |= self.buttons_down_mask & 0x00FF
            self.buttons_down_mask &= 0xFF00
            return result
        if self.read_idx == 4:
            self.reset()
            result = (self.buttons >> 8) & 0xFF
            self.buttons |= self.buttons_down_mask & 0xFF00
            self.buttons_down_mask &= 0x00FF
            return result
        return 0xFF

    def update_button(self, button_index: int, was_pressed: bool) -> None:
        """Press a button now, or queue its release for the next poll."""
        if not 0 <= button_index < _BUTTON_COUNT:
            raise ValueError(f"invalid button index: {button_index}")
        bit = 1 << button_index
        if was_pressed:
            self.buttons &= ~bit & 0xFFFF
        else:
            self.buttons_down_mask |= bit