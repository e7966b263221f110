"""
Bus abstraction between the IT8951 protocol engine and the hardware.

The Bus protocol is everything the driver needs from the platform: ordered
byte writes and full-duplex transfers on SPI, three digital lines (chip
select, reset, busy) and a clock. Concrete implementations:
  - PiBus: Raspberry Pi SPI + GPIO through lgpio (the default)
  - SimBus: simulated IT8951 controller for development without hardware

Usage:
    from it8951.bus import create_bus

    bus = create_bus('pi', rst=17, cs=8, busy=24)
    bus = create_bus('sim', width=1200, height=825, output_dir='./frames')
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

# Line names
LINE_CS = 'cs'      # Chip select, active low
LINE_RST = 'rst'    # Reset, active low
LINE_BUSY = 'busy'  # Host ready: 1 = controller ready, 0 = busy

LOW = 0
HIGH = 1


@runtime_checkable
class Bus(Protocol):
    """Interface for IT8951 bus backends."""

    def write_bytes(self, data: bytes) -> None:
        """Write bytes on SPI, discarding anything clocked in."""
        ...

    def transfer(self, data: bytes) -> bytes:
        """Full-duplex transfer; returns as many bytes as were sent."""
        ...

    def set_line(self, line: str, level: int) -> None:
        ...

    def read_line(self, line: str) -> int:
        ...

    def sleep(self, seconds: float) -> None:
        ...

    def monotonic(self) -> float:
        """Clock used for ready/refresh deadlines."""
        ...

    def set_speed(self, hz: int) -> None:
        ...

    def close(self) -> None:
        """Release resources."""
        ...


def create_bus(backend: str = 'pi', **kwargs) -> Bus:
    """
    Factory for bus backends.

    Args:
        backend: 'pi' for Raspberry Pi SPI/GPIO, 'sim' for the simulator
        **kwargs: Passed to the backend constructor.
            pi: rst=17, cs=8, busy=24, spi_device=0, spi_channel=0, speed_hz=12_000_000
            sim: width=1872, height=1404, output_dir=None, ...
    """
    if backend == 'pi':
        from it8951.bus.pi import PiBus
        return PiBus(**kwargs)
    elif backend == 'sim':
        from it8951.bus.sim import SimBus
        return SimBus(**kwargs)
    else:
        raise ValueError(f"Unknown bus backend: {backend!r}")
