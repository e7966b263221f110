"""
IT8951 SPI transaction framing.

Every transaction is a chip-select framed preamble word followed by a
payload, and the controller must report ready (busy line high) before each
of the two phases:

    command:  60 00 | opcode            (+ one write frame per parameter)
    write:    00 00 | payload...
    read:     10 00 | 2 dummy bytes | payload...

The two phases must stay separate transfers; the controller drops bytes
when they are coalesced. All words on the wire are big-endian. Pixel
payloads are raw bytes and pass through unchanged.
"""

from __future__ import annotations

import struct
from typing import Iterable

from it8951.bus import HIGH, LINE_BUSY, LINE_CS, LOW, Bus
from it8951.commands import PREAMBLE_COMMAND, PREAMBLE_READ, PREAMBLE_WRITE
from it8951.errors import DeviceNotResponding

DEFAULT_MAX_TRANSFER = 4096
DEFAULT_POLL_INTERVAL = 0.1  # Seconds between busy-line polls
DEFAULT_READY_TIMEOUT = 10.0


def encode_word(value: int) -> bytes:
    """16-bit value -> 2 bytes, big-endian."""
    if not 0 <= value <= 0xFFFF:
        raise ValueError(f"Value does not fit in 16 bits: {value}")
    return struct.pack('>H', value)


def decode_word(data: bytes) -> int:
    """2 bytes, big-endian -> 16-bit value."""
    if len(data) != 2:
        raise ValueError(f"Expected 2 bytes, got {len(data)}")
    return struct.unpack('>H', data)[0]


class Transport:
    """Ready-gated command/data framing over a Bus."""

    def __init__(self, bus: Bus, max_transfer: int = DEFAULT_MAX_TRANSFER,
                 poll_interval: float = DEFAULT_POLL_INTERVAL,
                 ready_timeout: float | None = DEFAULT_READY_TIMEOUT):
        if max_transfer <= 0:
            raise ValueError(f"max_transfer must be positive, got {max_transfer}")
        self.bus = bus
        self.max_transfer = max_transfer
        self.poll_interval = poll_interval
        self.ready_timeout = ready_timeout
        self.stalled = False    # Set once the ready line has timed out

    def wait_for_ready(self):
        """
        Block until the controller raises its ready line.

        The controller silently drops anything sent while busy. Raises
        DeviceNotResponding once ready_timeout seconds pass without ready;
        a timeout of None waits forever.
        """
        deadline = None
        if self.ready_timeout is not None:
            deadline = self.bus.monotonic() + self.ready_timeout

        while self.bus.read_line(LINE_BUSY) == LOW:
            if deadline is not None and self.bus.monotonic() >= deadline:
                self.stalled = True
                raise DeviceNotResponding(
                    f"Controller not ready after {self.ready_timeout}s")
            self.bus.sleep(self.poll_interval)

    def send_command(self, opcode: int, params: Iterable[int] = ()):
        """Send a command frame, then each parameter as its own write frame."""
        self.wait_for_ready()
        self.bus.set_line(LINE_CS, LOW)
        self.bus.write_bytes(encode_word(PREAMBLE_COMMAND))
        self.wait_for_ready()
        self.bus.write_bytes(encode_word(opcode))
        self.bus.set_line(LINE_CS, HIGH)

        for param in params:
            self.send_data(encode_word(param))

    def send_data(self, data: bytes):
        """Send a write frame, splitting the payload into max_transfer chunks."""
        self.wait_for_ready()
        self.bus.set_line(LINE_CS, LOW)
        self.bus.write_bytes(encode_word(PREAMBLE_WRITE))
        self.wait_for_ready()

        view = memoryview(bytes(data))
        for offset in range(0, len(view), self.max_transfer):
            self.bus.write_bytes(view[offset:offset + self.max_transfer].tobytes())
        self.bus.set_line(LINE_CS, HIGH)

    def read_data(self, n: int) -> bytes:
        """Send a read frame and return n payload bytes."""
        self.wait_for_ready()
        self.bus.set_line(LINE_CS, LOW)
        self.bus.write_bytes(encode_word(PREAMBLE_READ))
        self.wait_for_ready()

        self.bus.transfer(bytes(2))  # Turnaround, discarded
        self.wait_for_ready()

        result = self.bus.transfer(bytes(n))
        self.wait_for_ready()
        self.bus.set_line(LINE_CS, HIGH)
        return bytes(result)
