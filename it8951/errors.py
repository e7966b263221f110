"""Exceptions raised by the IT8951 driver."""


class IT8951Error(Exception):
    """Base class for driver errors."""


class DeviceNotResponding(IT8951Error, TimeoutError):
    """The controller did not become ready before the deadline."""


class DeviceInfoError(IT8951Error):
    """The device-info query returned a malformed response."""


class UnsupportedBitDepth(IT8951Error, ValueError):
    """Pixel bit depth has no controller format code."""

    def __init__(self, bpp):
        super().__init__(f"Unsupported bit depth: {bpp!r} (expected 1, 2, 4 or 8)")
        self.bpp = bpp
