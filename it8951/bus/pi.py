"""
Raspberry Pi bus for IT8951 boards (Waveshare HAT and compatibles).

SPI goes through lgpio's spidev wrapper; chip select is driven as a plain
GPIO because the controller needs CS held low across the preamble and the
payload of a frame, with busy polling in between. Free the hardware CE0
pin with `dtoverlay=spi0-0cs` in /boot/firmware/config.txt.

The kernel spidev buffer is 4096 bytes by default, which is why
Config.max_transfer defaults to the same value.

Requires: lgpio, SPI enabled, access to /dev/gpiochip* and /dev/spidev*.

Usage:
    from it8951.bus.pi import PiBus

    with PiBus(rst=17, cs=8, busy=24) as bus:
        ...
"""

from __future__ import annotations

import time

from it8951.bus import HIGH, LINE_BUSY, LINE_CS, LINE_RST, LOW

DEFAULT_SPEED_HZ = 12_000_000


class PiBus:
    """SPI + GPIO bus on a Raspberry Pi, via lgpio."""

    def __init__(self, rst: int = 17, cs: int = 8, busy: int = 24,
                 spi_device: int = 0, spi_channel: int = 0,
                 speed_hz: int = DEFAULT_SPEED_HZ):
        import lgpio

        self._lgpio = lgpio
        self._pins = {LINE_RST: rst, LINE_CS: cs, LINE_BUSY: busy}
        self._spi_device = spi_device
        self._spi_channel = spi_channel
        self.speed_hz = speed_hz
        self._spi = None

        try:
            self._chip = lgpio.gpiochip_open(4)   # Pi 5
        except Exception:
            self._chip = lgpio.gpiochip_open(0)   # Older Pi

        try:
            lgpio.gpio_claim_output(self._chip, cs, HIGH)
            lgpio.gpio_claim_output(self._chip, rst, HIGH)
            lgpio.gpio_claim_input(self._chip, busy, lgpio.SET_PULL_DOWN)
            self._spi = lgpio.spi_open(spi_device, spi_channel, speed_hz, 0)
        except Exception:
            self.close()
            raise
        print(f"PiBus: spidev{spi_device}.{spi_channel} @ {speed_hz} Hz, "
              f"RST={rst} CS={cs} BUSY={busy}")

    def write_bytes(self, data):
        self._lgpio.spi_write(self._spi, bytes(data))

    def transfer(self, data):
        count, rx = self._lgpio.spi_xfer(self._spi, bytes(data))
        if count < 0:
            raise OSError(f"SPI transfer failed: {self._lgpio.error_text(count)}")
        return bytes(rx)

    def set_line(self, line, level):
        self._lgpio.gpio_write(self._chip, self._pins[line], HIGH if level else LOW)

    def read_line(self, line):
        return self._lgpio.gpio_read(self._chip, self._pins[line])

    def sleep(self, seconds):
        time.sleep(seconds)

    def monotonic(self):
        return time.monotonic()

    def set_speed(self, hz):
        """Reopen SPI at a new clock rate (lgpio fixes the rate at open)."""
        self._lgpio.spi_close(self._spi)
        self._spi = self._lgpio.spi_open(self._spi_device, self._spi_channel, hz, 0)
        self.speed_hz = hz

    def close(self):
        if self._spi is not None:
            self._lgpio.spi_close(self._spi)
            self._spi = None
        if self._chip is not None:
            self._lgpio.gpiochip_close(self._chip)
            self._chip = None

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
