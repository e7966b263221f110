"""Tests for the image load pipeline."""

from unittest.mock import MagicMock, call

import pytest

from it8951.bus.sim import SimBus
from it8951.commands import (CMD_DISPLAY_AREA_BUFFER, CMD_LOAD_IMAGE_AREA,
                             CMD_LOAD_IMAGE_END, REG_BGVR, REG_LISAR,
                             REG_LUTAFSR, REG_UP1SR)
from it8951.config import Config, DrawSettings
from it8951.driver import IT8951
from it8951.errors import UnsupportedBitDepth
from it8951.image import ImageLoader, ImageRegion, align_down, bpp_code


def test_bpp_code_mapping():
    assert {bpp: bpp_code(bpp) for bpp in (1, 2, 4, 8)} == {1: 3, 2: 0, 4: 2, 8: 3}


@pytest.mark.parametrize('bpp', [0, 3, 16, None, '4'])
def test_bpp_code_rejects_unsupported(bpp):
    with pytest.raises(UnsupportedBitDepth):
        bpp_code(bpp)


def test_unsupported_bit_depth_is_value_error():
    with pytest.raises(ValueError):
        bpp_code(5)


def test_align_down():
    for x in range(0, 300):
        r = align_down(x)
        assert r <= x
        assert r % 32 == 0
        assert r == x - (x % 32)


def test_format_word():
    region = ImageRegion(0, 0, 8, 8, bpp=8, endian=1, rotation=2)
    assert region.format_word == (1 << 8) | (3 << 4) | 2


def test_target_address_high_then_low():
    registers = MagicMock()
    loader = ImageLoader(MagicMock(), registers, MagicMock())
    loader.set_target_address(0x001236F0)
    assert registers.write.call_args_list == [
        call(REG_LISAR + 2, 0x0012),
        call(REG_LISAR, 0x36F0),
    ]


def test_display_area_references_address_low_then_high():
    bus = SimBus(width=128, height=64, image_address=0x001236F0)
    display = IT8951(bus)
    display.initialize(clear=False)
    display.draw(bytes(64 * 32 // 2), 0, 0, 64, 32)

    params = bus.find(CMD_DISPLAY_AREA_BUFFER)[-1].params
    assert params[-2:] == [0x36F0, 0x0012]

    lisar = [(e['address'], e['value']) for e in bus.log
             if e['op'] == 'register_write' and e['address'] in (REG_LISAR, REG_LISAR + 2)]
    assert lisar == [(REG_LISAR + 2, 0x0012), (REG_LISAR, 0x36F0)]


def test_load_image_area_parameters(display, sim_bus):
    settings = DrawSettings(bpp=8, rotation=90)
    buffer = bytes(range(16)) * 4
    display.loader.load(display.info, buffer, 8, 4, 16, 4, settings)

    load = sim_bus.find(CMD_LOAD_IMAGE_AREA)[-1]
    assert load.params == [(0 << 8) | (3 << 4) | 1, 8, 4, 16, 4]
    assert bytes(load.data) == buffer
    assert sim_bus.opcodes()[-1] == CMD_LOAD_IMAGE_END


def test_load_defaults_to_full_panel(display, sim_bus):
    region = display.loader.load(display.info, bytes(128 * 64 // 2), 0, 0, 0, None)
    assert (region.w, region.h) == (128, 64)
    assert sim_bus.find(CMD_LOAD_IMAGE_AREA)[-1].params[3:] == [128, 64]


def test_load_alignment_rounds_x_and_w(display, sim_bus):
    settings = DrawSettings(bpp=4, align_32=True)
    region = display.loader.load(display.info, bytes(100 * 10 // 2), 40, 5, 100, 10, settings)

    assert (region.x, region.y, region.w, region.h) == (32, 5, 96, 10)
    assert sim_bus.find(CMD_LOAD_IMAGE_AREA)[-1].params[1:] == [32, 5, 96, 10]


def test_load_without_alignment_keeps_region(display):
    region = display.loader.load(display.info, bytes(50), 40, 5, 10, 10)
    assert (region.x, region.w) == (40, 10)


def test_load_waits_for_refresh_idle(sim_bus):
    display = IT8951(sim_bus)
    display.initialize(clear=False)
    display.draw(bytes(32 * 32 // 2), 0, 0, 32, 32)   # leaves the LUT busy
    mark = len(sim_bus.log)

    display.loader.load(display.info, bytes(32 * 32 // 2), 0, 0, 32, 32)

    ops = sim_bus.log[mark:]
    first_write = next(i for i, e in enumerate(ops) if e['op'] == 'register_write')
    status = [e['value'] for e in ops[:first_write]
              if e['op'] == 'register_read' and e['address'] == REG_LUTAFSR]
    assert status == [1, 1, 0]
    assert ops[first_write]['address'] == REG_LISAR + 2


def test_load_1bpp_enables_threshold_fill(display, sim_bus):
    sim_bus.registers[REG_UP1SR + 2] = 0x0100
    display.loader.load(display.info, bytes(128 * 64 // 8), settings=DrawSettings(bpp=1))

    assert sim_bus.registers[REG_UP1SR + 2] == 0x0104
    assert sim_bus.registers[REG_BGVR] == 0x00F0
    # Same format code as 8bpp
    assert (sim_bus.find(CMD_LOAD_IMAGE_AREA)[-1].params[0] >> 4) & 0xF == 3


def test_load_4bpp_leaves_update_registers_alone(display, sim_bus):
    display.loader.load(display.info, bytes(128 * 64 // 2))
    assert REG_BGVR not in sim_bus.registers


def test_load_streams_in_chunks():
    bus = SimBus(width=256, height=256)
    display = IT8951(bus, Config(max_transfer=1024))
    display.initialize(clear=False)
    bus.write_sizes.clear()

    display.loader.load(display.info, bytes(256 * 256 // 2))
    assert max(bus.write_sizes) == 1024
    assert sum(s for s in bus.write_sizes if s > 2) == 256 * 256 // 2
