"""
Driver for IT8951 e-paper controllers over SPI.

Usage:
    from it8951 import IT8951, Config, MODE_GC16
    from it8951.bus import create_bus

    display = IT8951(create_bus('pi'), Config(vcom=1530, bpp=4))
    display.initialize()
    display.draw(packed_pixels, x=64, y=32, w=256, h=128, mode=MODE_GC16)
    display.close()
"""

from it8951.commands import MODE_A2, MODE_DU, MODE_GC16, MODE_INIT
from it8951.config import Config, DrawSettings
from it8951.device import DeviceInfo, SessionState
from it8951.driver import IT8951
from it8951.errors import (DeviceInfoError, DeviceNotResponding, IT8951Error,
                           UnsupportedBitDepth)
from it8951.image import ImageRegion
from it8951.refresh import RefreshState

__all__ = [
    'IT8951', 'Config', 'DrawSettings', 'DeviceInfo', 'ImageRegion',
    'SessionState', 'RefreshState',
    'IT8951Error', 'DeviceNotResponding', 'DeviceInfoError', 'UnsupportedBitDepth',
    'MODE_INIT', 'MODE_DU', 'MODE_GC16', 'MODE_A2',
]
