"""
Device session: IT8951 bring-up and power states.

Bring-up runs RESET -> ACTIVE -> CONFIGURED; the driver then clears the
panel once and marks the session READY. The device descriptor read during
bring-up is immutable afterwards.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import Enum

from it8951.bus import HIGH, LINE_RST, LOW
from it8951.commands import (CMD_GET_DEVICE_INFO, CMD_SLEEP, CMD_STANDBY,
                             CMD_SYS_RUN, CMD_VCOM, DEVICE_INFO_FORMAT,
                             DEVICE_INFO_SIZE, REG_I80CPCR)
from it8951.errors import DeviceInfoError
from it8951.registers import Registers
from it8951.transport import Transport, decode_word

# Power-on reset pulse: high, low, high (seconds)
RESET_TIMING = (0.2, 0.01, 0.2)


class SessionState(str, Enum):
    OFF = "off"
    RESET = "reset"
    ACTIVE = "active"
    CONFIGURED = "configured"
    READY = "ready"
    STANDBY = "standby"
    SLEEP = "sleep"
    CLOSED = "closed"


@dataclass(frozen=True)
class DeviceInfo:
    width: int
    height: int
    image_address: int
    firmware_version: str
    lut_version: str


def fix_string(data: bytes) -> bytes:
    """
    Swap each adjacent byte pair.

    The controller returns its identity strings as 16-bit words with the
    bytes transposed. The swap is its own inverse.
    """
    out = bytearray(data)
    for i in range(1, len(out), 2):
        out[i - 1], out[i] = out[i], out[i - 1]
    return bytes(out)


def _identity(raw: bytes) -> str:
    return fix_string(raw).split(b'\x00', 1)[0].decode('ascii', errors='replace')


def parse_device_info(response: bytes) -> DeviceInfo:
    """Decode the 40-byte GET_DEVICE_INFO response."""
    if len(response) != DEVICE_INFO_SIZE:
        raise DeviceInfoError(
            f"Device info must be {DEVICE_INFO_SIZE} bytes, got {len(response)}")
    width, height, addr_l, addr_h, firmware, lut = struct.unpack(DEVICE_INFO_FORMAT, response)
    return DeviceInfo(width=width, height=height,
                      image_address=(addr_h << 16) | addr_l,
                      firmware_version=_identity(firmware),
                      lut_version=_identity(lut))


class Session:
    """Owns bring-up, the device descriptor and the power state."""

    def __init__(self, transport: Transport, registers: Registers):
        self.transport = transport
        self.registers = registers
        self.state = SessionState.OFF
        self.info: DeviceInfo | None = None

    def bring_up(self, vcom: int) -> DeviceInfo:
        """Reset, activate, read device info, enable packed mode, calibrate VCOM."""
        self.reset()
        self.activate()

        self.info = self.read_device_info()
        print(f"IT8951: {self.info.width}x{self.info.height}, "
              f"buffer=0x{self.info.image_address:08x}")
        print(f"  firmware={self.info.firmware_version!r} lut={self.info.lut_version!r}")

        self.registers.write(REG_I80CPCR, 0x0001)  # I80 packed mode
        self.state = SessionState.CONFIGURED

        self.calibrate_vcom(vcom)
        self.transport.wait_for_ready()
        return self.info

    def reset(self):
        bus = self.transport.bus
        high, low, settle = RESET_TIMING
        bus.set_line(LINE_RST, HIGH)
        bus.sleep(high)
        bus.set_line(LINE_RST, LOW)
        bus.sleep(low)
        bus.set_line(LINE_RST, HIGH)
        bus.sleep(settle)
        self.state = SessionState.RESET

    def activate(self):
        self.transport.send_command(CMD_SYS_RUN)
        self.transport.wait_for_ready()
        self.state = SessionState.ACTIVE

    def read_device_info(self) -> DeviceInfo:
        self.transport.send_command(CMD_GET_DEVICE_INFO)
        return parse_device_info(self.transport.read_data(DEVICE_INFO_SIZE))

    def get_vcom(self) -> int:
        self.transport.wait_for_ready()
        self.transport.send_command(CMD_VCOM, [0])
        return decode_word(self.transport.read_data(2))

    def set_vcom(self, vcom: int):
        self.transport.send_command(CMD_VCOM, [1, vcom])

    def calibrate_vcom(self, target: int) -> bool:
        """Write target VCOM if the stored value differs. Returns True if written."""
        current = self.get_vcom()
        if current == target:
            return False
        # The write is trusted; the controller stores it in its own NVM
        self.set_vcom(target)
        print(f"  VCOM: -{current / 1000:.2f}V -> -{target / 1000:.2f}V")
        return True

    def mark_ready(self):
        self.state = SessionState.READY

    def standby(self):
        self.transport.send_command(CMD_STANDBY)
        self.state = SessionState.STANDBY

    def sleep(self):
        self.transport.send_command(CMD_SLEEP)
        self.state = SessionState.SLEEP

    def wake(self):
        self.activate()
        self.state = SessionState.READY
