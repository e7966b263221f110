"""Tests for register access."""

from pathlib import Path

import it8951
from it8951 import commands
from it8951.bus.sim import SimBus
from it8951.commands import CMD_READ_REGISTER, CMD_WRITE_REGISTER
from it8951.registers import Registers
from it8951.transport import Transport


def _registers(bus=None):
    bus = bus or SimBus(width=32, height=32)
    return bus, Registers(Transport(bus))


def test_write_register():
    bus, regs = _registers()
    regs.write(0x1138, 0xBEEF)
    assert bus.registers[0x1138] == 0xBEEF
    cmd = bus.find(CMD_WRITE_REGISTER)[0]
    assert cmd.params == [0x1138, 0xBEEF]


def test_read_register():
    bus, regs = _registers()
    bus.registers[0x0004] = 0x1234
    assert regs.read(0x0004) == 0x1234
    assert bus.find(CMD_READ_REGISTER)[0].params == [0x0004]


def test_read_is_not_cached():
    bus, regs = _registers()
    bus.registers[0x0004] = 1
    assert regs.read(0x0004) == 1
    bus.registers[0x0004] = 2
    assert regs.read(0x0004) == 2
    assert len(bus.find(CMD_READ_REGISTER)) == 2


def test_set_bits():
    bus, regs = _registers()
    bus.registers[0x113A] = 0x0101
    regs.set_bits(0x113A, 1 << 2)
    assert bus.registers[0x113A] == 0x0105


def test_clear_bits():
    bus, regs = _registers()
    bus.registers[0x113A] = 0xFFFF
    regs.clear_bits(0x113A, 1 << 2)
    assert bus.registers[0x113A] == 0xFFFB


def test_register_addresses_are_used():
    package = Path(it8951.__file__).parent
    sources = ''.join(p.read_text() for p in package.rglob('*.py')
                      if p.name != 'commands.py')
    for name in dir(commands):
        if name.startswith('REG_'):
            assert name in sources, name
