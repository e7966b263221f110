"""
IT8951 e-paper driver over SPI.

Wires the transport, register access, session, image loader and refresh
controller together behind the public operations.

Usage:
    from it8951 import IT8951, Config
    from it8951.bus import create_bus

    with IT8951(create_bus('pi'), Config(vcom=1530)) as display:
        display.initialize()
        display.draw(packed_pixels, x=0, y=0, w=400, h=300)
        display.clear()
"""

from __future__ import annotations

from it8951.bus import Bus
from it8951.commands import MODE_INIT
from it8951.config import Config, DrawSettings
from it8951.device import DeviceInfo, Session, SessionState
from it8951.errors import IT8951Error
from it8951.image import ImageLoader, ImageRegion
from it8951.refresh import RefreshController, RefreshState
from it8951.registers import Registers
from it8951.transport import Transport

# States in which the host interface answers commands
_AWAKE_STATES = (SessionState.ACTIVE, SessionState.CONFIGURED,
                 SessionState.READY, SessionState.STANDBY)


class IT8951:
    """IT8951 e-paper controller driver."""

    def __init__(self, bus: Bus, config: Config | None = None):
        self.bus = bus
        self.config = config or Config()
        self.transport = Transport(bus, max_transfer=self.config.max_transfer,
                                   poll_interval=self.config.poll_interval,
                                   ready_timeout=self.config.ready_timeout)
        self.registers = Registers(self.transport)
        self.session = Session(self.transport, self.registers)
        self.refresher = RefreshController(self.registers,
                                           poll_interval=self.config.poll_interval,
                                           display_timeout=self.config.display_timeout,
                                           mode_a2=self.config.mode_a2)
        self.loader = ImageLoader(self.transport, self.registers, self.refresher)

    # --- Device state ---

    @property
    def info(self) -> DeviceInfo:
        if self.session.info is None:
            raise IT8951Error("Display not initialized; call initialize() first")
        return self.session.info

    @property
    def width(self) -> int:
        return self.info.width

    @property
    def height(self) -> int:
        return self.info.height

    @property
    def state(self) -> SessionState:
        return self.session.state

    def refresh_state(self) -> RefreshState:
        return self.refresher.state()

    # --- Public operations ---

    def initialize(self, clear: bool = True) -> DeviceInfo:
        """Bring the controller up and blank the panel with the INIT waveform."""
        info = self.session.bring_up(self.config.vcom)
        if clear:
            self.clear(0xFF, MODE_INIT)
        self.session.mark_ready()
        return info

    def draw(self, buffer: bytes, x: int = 0, y: int = 0,
             w: int | None = None, h: int | None = None,
             mode: int | None = None,
             settings: DrawSettings | None = None) -> ImageRegion:
        """
        Load packed pixels into a region and refresh it.

        Args:
            buffer: Pixels packed at settings.bpp
            x, y: Position on the panel
            w, h: Region size (defaults to the full panel)
            mode: Waveform mode; defaults to A2 for 1bpp, GC16 otherwise
            settings: Pixel format; defaults to the Config values

        Returns the region sent to the controller (x and w may be rounded
        down when 32-pixel alignment is on).
        """
        settings = settings or self.config.draw_settings()
        region = self.loader.load(self.info, buffer, x, y, w, h, settings)
        self.refresher.refresh(region, self.info.image_address, mode)
        return region

    def clear(self, color: int = 0xFF, mode: int = MODE_INIT,
              settings: DrawSettings | None = None) -> ImageRegion:
        """Fill the whole panel with one byte value (0xFF = white)."""
        settings = settings or self.config.draw_settings()
        size = self.width * self.height * settings.bpp // 8
        return self.draw(bytes([color]) * size, 0, 0, self.width, self.height,
                         mode, settings)

    def wait_for_display_ready(self):
        self.refresher.wait_idle()

    def standby(self):
        self.session.standby()

    def sleep(self):
        self.session.sleep()

    def wake(self):
        self.session.wake()

    def get_vcom(self) -> int:
        return self.session.get_vcom()

    def set_vcom(self, vcom: int):
        if not 0 <= vcom <= 0xFFFF:
            raise ValueError(f"VCOM out of range: {vcom}")
        self.session.set_vcom(vcom)

    def read_register(self, address: int) -> int:
        return self.registers.read(address)

    def write_register(self, address: int, value: int):
        self.registers.write(address, value)

    def close(self, power_down: bool = True):
        """
        Put the controller to sleep and release the bus.

        SLEEP is only sent to a controller that is running and has not
        timed out; a failed SLEEP is reported and the bus still released,
        so an error from the operation that failed is not replaced.
        """
        if self.session.state is SessionState.CLOSED:
            return
        print("IT8951: shutdown")
        try:
            if (power_down and self.session.state in _AWAKE_STATES
                    and not self.transport.stalled):
                self.session.sleep()
        except IT8951Error as e:
            print(f"IT8951: sleep on shutdown failed: {e}")
        finally:
            self.bus.close()
            self.session.state = SessionState.CLOSED

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
