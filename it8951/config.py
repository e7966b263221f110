"""
Driver configuration.

Config holds everything fixed for the lifetime of a driver. DrawSettings is
the per-draw slice of it (bit depth, rotation, endianness, alignment); the
driver resolves one from Config for every draw call, and callers can pass a
modified copy instead of mutating shared state:

    from dataclasses import replace
    from it8951.config import Config

    config = Config.from_env(vcom=1530)
    mono = replace(config.draw_settings(), bpp=1)
    display.draw(buffer, settings=mono)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from it8951.commands import BPP_CODES, ENDIAN_BIG, ENDIAN_LITTLE, MODE_A2, ROTATIONS
from it8951.errors import UnsupportedBitDepth

ENV_PREFIX = 'IT8951_'


@dataclass(frozen=True)
class DrawSettings:
    """Pixel format of one draw call."""
    bpp: int = 4
    rotation: int = 0       # degrees
    endian: int = ENDIAN_LITTLE
    align_32: bool = False

    def __post_init__(self):
        _check_bpp(self.bpp)
        _check_rotation(self.rotation)
        _check_endian(self.endian)

    @property
    def rotation_code(self) -> int:
        return ROTATIONS[self.rotation]


@dataclass(frozen=True)
class Config:
    max_transfer: int = 4096        # Bytes per SPI write
    vcom: int = 2150                # Target VCOM, millivolts (magnitude)
    bpp: int = 4
    align_32: bool = False          # Round x/w down to 32 pixels (some Waveshare 1bpp panels)
    rotation: int = 0
    endian: int = ENDIAN_LITTLE
    mode_a2: int = MODE_A2          # Monochrome waveform mode, panel specific
    poll_interval: float = 0.1      # Seconds between busy/LUT polls
    ready_timeout: float | None = 10.0
    display_timeout: float | None = 30.0

    def __post_init__(self):
        _check_bpp(self.bpp)
        _check_rotation(self.rotation)
        _check_endian(self.endian)
        if self.max_transfer <= 0:
            raise ValueError(f"max_transfer must be positive, got {self.max_transfer}")
        if not 0 <= self.vcom <= 0xFFFF:
            raise ValueError(f"VCOM out of range: {self.vcom}")
        if self.poll_interval < 0:
            raise ValueError(f"poll_interval must not be negative, got {self.poll_interval}")

    def draw_settings(self) -> DrawSettings:
        return DrawSettings(bpp=self.bpp, rotation=self.rotation,
                            endian=self.endian, align_32=self.align_32)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides) -> Config:
        """
        Build a Config from IT8951_* environment variables.

        Keyword overrides win over the environment. Timeouts accept 'none'
        to wait forever.

        Recognized: IT8951_MAX_TRANSFER, IT8951_VCOM, IT8951_BPP,
        IT8951_ALIGN32, IT8951_ROTATION, IT8951_MODE_A2,
        IT8951_POLL_INTERVAL, IT8951_READY_TIMEOUT, IT8951_DISPLAY_TIMEOUT
        """
        env = os.environ if environ is None else environ
        values = {}

        for name, key, parse in (
            ('max_transfer', 'MAX_TRANSFER', _parse_int),
            ('vcom', 'VCOM', _parse_int),
            ('bpp', 'BPP', _parse_int),
            ('align_32', 'ALIGN32', _parse_bool),
            ('rotation', 'ROTATION', _parse_int),
            ('mode_a2', 'MODE_A2', _parse_int),
            ('poll_interval', 'POLL_INTERVAL', float),
            ('ready_timeout', 'READY_TIMEOUT', _parse_timeout),
            ('display_timeout', 'DISPLAY_TIMEOUT', _parse_timeout),
        ):
            raw = env.get(ENV_PREFIX + key)
            if raw is not None and raw.strip() != '':
                values[name] = parse(raw.strip())

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def _check_bpp(bpp):
    if bpp not in BPP_CODES:
        raise UnsupportedBitDepth(bpp)


def _check_rotation(rotation):
    if rotation not in ROTATIONS:
        raise ValueError(f"Rotation must be one of {sorted(ROTATIONS)}, got {rotation!r}")


def _check_endian(endian):
    if endian not in (ENDIAN_LITTLE, ENDIAN_BIG):
        raise ValueError(f"Unknown endianness: {endian!r}")


def _parse_int(value: str) -> int:
    return int(value, 0)


def _parse_bool(value: str) -> bool:
    return value.lower() in ('1', 'true', 'yes', 'on')


def _parse_timeout(value: str) -> float | None:
    if value.lower() in ('none', 'inf', 'forever'):
        return None
    return float(value)
