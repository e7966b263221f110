"""
Image load pipeline: stream a packed pixel buffer into controller memory.

Callers supply pixels already packed in the controller's bit depth. The
loader programs the target address, declares the area and pixel format,
streams the buffer and, for 1bpp, switches the controller into its
black/white threshold fill for the next refresh.
"""

from __future__ import annotations

from dataclasses import dataclass

from it8951.commands import (BGVR_MONO, BPP_CODES, CMD_LOAD_IMAGE_AREA,
                             CMD_LOAD_IMAGE_END, REG_BGVR, REG_LISAR,
                             REG_UP1SR, UP1SR_MONO_BIT)
from it8951.config import DrawSettings
from it8951.device import DeviceInfo
from it8951.errors import UnsupportedBitDepth
from it8951.refresh import RefreshController
from it8951.registers import Registers
from it8951.transport import Transport

ALIGNMENT = 32


def bpp_code(bpp: int) -> int:
    """Controller pixel format code for a bit depth."""
    try:
        return BPP_CODES[bpp]
    except (KeyError, TypeError):
        raise UnsupportedBitDepth(bpp) from None


def align_down(value: int, alignment: int = ALIGNMENT) -> int:
    return value - (value % alignment)


@dataclass(frozen=True)
class ImageRegion:
    """An area as transmitted to the controller (after alignment)."""
    x: int
    y: int
    w: int
    h: int
    bpp: int
    endian: int
    rotation: int   # controller code 0-3

    @property
    def format_word(self) -> int:
        return (self.endian << 8) | (bpp_code(self.bpp) << 4) | self.rotation


class ImageLoader:
    """Loads pixel buffers into the IT8951 image memory."""

    def __init__(self, transport: Transport, registers: Registers,
                 refresh: RefreshController):
        self.transport = transport
        self.registers = registers
        self.refresh = refresh

    def resolve_region(self, info: DeviceInfo, x: int, y: int,
                       w: int | None, h: int | None,
                       settings: DrawSettings) -> ImageRegion:
        w = w or info.width
        h = h or info.height
        # Some Waveshare panels only accept 32-pixel aligned areas in 1bpp mode
        if settings.align_32:
            x = align_down(x)
            w = align_down(w)
        return ImageRegion(x, y, w, h, settings.bpp, settings.endian,
                           settings.rotation_code)

    def set_target_address(self, address: int):
        # High half first; DISPLAY_AREA_BUFFER takes the halves the other way round
        self.registers.write(REG_LISAR + 2, (address >> 16) & 0xFFFF)
        self.registers.write(REG_LISAR, address & 0xFFFF)

    def load(self, info: DeviceInfo, buffer: bytes, x: int = 0, y: int = 0,
             w: int | None = None, h: int | None = None,
             settings: DrawSettings | None = None) -> ImageRegion:
        """
        Load a packed pixel buffer into controller memory.

        Args:
            info: Device descriptor from bring-up
            buffer: Pixels packed at settings.bpp
            x, y: Position on the panel
            w, h: Area size (falsy means full panel)
            settings: Pixel format; defaults to 4bpp, unrotated

        Returns the region actually sent, which differs from the request
        when 32-pixel alignment is on.
        """
        settings = settings or DrawSettings()
        # Loading while the LUT engines run corrupts image memory
        self.refresh.wait_idle()

        region = self.resolve_region(info, x, y, w, h, settings)
        self.set_target_address(info.image_address)

        self.transport.send_command(CMD_LOAD_IMAGE_AREA, [
            region.format_word, region.x, region.y, region.w, region.h])
        self.transport.send_data(buffer)
        self.transport.send_command(CMD_LOAD_IMAGE_END)

        if region.bpp == 1:
            self.registers.set_bits(REG_UP1SR + 2, UP1SR_MONO_BIT)
            self.registers.write(REG_BGVR, BGVR_MONO)
        return region
