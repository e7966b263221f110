"""16-bit controller register access. No caching: every call is a bus round trip."""

from __future__ import annotations

from it8951.commands import CMD_READ_REGISTER, CMD_WRITE_REGISTER
from it8951.transport import Transport, decode_word, encode_word


class Registers:
    """Read/write IT8951 registers through command + data frames."""

    def __init__(self, transport: Transport):
        self.transport = transport

    def write(self, address: int, value: int):
        self.transport.send_command(CMD_WRITE_REGISTER)
        self.transport.send_data(encode_word(address))
        self.transport.send_data(encode_word(value))

    def read(self, address: int) -> int:
        self.transport.send_command(CMD_READ_REGISTER)
        self.transport.send_data(encode_word(address))
        return decode_word(self.transport.read_data(2))

    def set_bits(self, address: int, mask: int):
        """Read-modify-write: OR mask into the register."""
        self.write(address, self.read(address) | mask)

    def clear_bits(self, address: int, mask: int):
        """Read-modify-write: clear mask bits in the register."""
        self.write(address, self.read(address) & ~mask & 0xFFFF)
