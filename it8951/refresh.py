"""
Display refresh: release a loaded area to the LUT engines and track when
the panel is done.

The controller can accept commands while the panel is still refreshing,
so "ready" on the bus does not mean "idle" on the panel. Refresh state is
never cached: it is read from the LUT status register on every call.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from it8951.commands import (CMD_DISPLAY_AREA_BUFFER, MODE_A2, MODE_GC16,
                             REG_LUTAFSR, REG_UP1SR, UP1SR_MONO_BIT)
from it8951.errors import DeviceNotResponding
from it8951.registers import Registers

if TYPE_CHECKING:
    from it8951.image import ImageRegion

DEFAULT_DISPLAY_TIMEOUT = 30.0


class RefreshState(str, Enum):
    REFRESHING = "refreshing"
    IDLE = "idle"


class RefreshController:
    """Triggers region refreshes and waits for the LUT engines to finish."""

    def __init__(self, registers: Registers, poll_interval: float = 0.1,
                 display_timeout: float | None = DEFAULT_DISPLAY_TIMEOUT,
                 mode_a2: int = MODE_A2):
        self.registers = registers
        self.poll_interval = poll_interval
        self.display_timeout = display_timeout
        self.mode_a2 = mode_a2

    @property
    def bus(self):
        return self.registers.transport.bus

    def state(self) -> RefreshState:
        if self.registers.read(REG_LUTAFSR) != 0:
            return RefreshState.REFRESHING
        return RefreshState.IDLE

    def wait_idle(self):
        """Block until every LUT engine is idle."""
        deadline = None
        if self.display_timeout is not None:
            deadline = self.bus.monotonic() + self.display_timeout

        while self.state() is RefreshState.REFRESHING:
            if deadline is not None and self.bus.monotonic() >= deadline:
                raise DeviceNotResponding(
                    f"Display still refreshing after {self.display_timeout}s")
            self.bus.sleep(self.poll_interval)

    def default_mode(self, bpp: int) -> int:
        return self.mode_a2 if bpp == 1 else MODE_GC16

    def display_area(self, x: int, y: int, w: int, h: int, mode: int, address: int):
        # Low half first here, unlike the LISAR programming order in ImageLoader
        self.registers.transport.send_command(CMD_DISPLAY_AREA_BUFFER, [
            x, y, w, h, mode, address & 0xFFFF, (address >> 16) & 0xFFFF])

    def refresh(self, region: ImageRegion, address: int, mode: int | None = None) -> int:
        """
        Refresh a loaded region. Returns the waveform mode used.

        In 1bpp mode this blocks until the refresh completes, then turns
        the threshold fill back off.
        """
        if mode is None:
            mode = self.default_mode(region.bpp)

        self.display_area(region.x, region.y, region.w, region.h, mode, address)

        if region.bpp == 1:
            self.wait_idle()
            self.registers.clear_bits(REG_UP1SR + 2, UP1SR_MONO_BIT)
        return mode
