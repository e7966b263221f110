"""
Simulated IT8951 controller for development without hardware.

SimBus implements the Bus protocol by decoding the SPI frames the driver
sends, the same way the controller does: a preamble word, then a payload,
with chip select framing and busy/ready handshakes. It keeps a register
file, VCOM, the controller image memory and a PIL framebuffer of what the
panel would show after each refresh.

Every frame must be preceded by an observed ready line, as on the real
controller; anything else raises ProtocolViolation.

Usage:
    from it8951.bus import create_bus

    bus = create_bus('sim', width=1200, height=825, output_dir='./frames')
    ...
    bus.framebuffer.show()  # Open in system viewer
"""

from __future__ import annotations

import os
import struct
from dataclasses import dataclass, field

from PIL import Image

from it8951.bus import HIGH, LINE_BUSY, LINE_CS, LINE_RST, LOW
from it8951.commands import (CMD_DISPLAY_AREA, CMD_DISPLAY_AREA_BUFFER,
                             CMD_GET_DEVICE_INFO, CMD_LOAD_IMAGE_AREA,
                             CMD_LOAD_IMAGE_END, CMD_READ_REGISTER, CMD_SLEEP,
                             CMD_STANDBY, CMD_SYS_RUN, CMD_VCOM,
                             CMD_WRITE_REGISTER, DEVICE_INFO_FORMAT,
                             PREAMBLE_COMMAND, PREAMBLE_READ, PREAMBLE_WRITE,
                             REG_LUTAFSR, REG_UP1SR, UP1SR_MONO_BIT)
from it8951.device import fix_string

# Pixel format code -> bits per pixel (1bpp is code 3 plus the UP1SR flag)
_FORMAT_BPP = {3: 8, 2: 4, 0: 2}

# The controller packs little-endian: first pixel in the low bits of a byte.
# PIL's raw unpackers want it in the high bits.
_SWAP_NIBBLES = bytes(((b & 0x0F) << 4) | (b >> 4) for b in range(256))
_REVERSE_PAIRS = bytes(((b & 0x03) << 6) | ((b & 0x0C) << 2) |
                       ((b & 0x30) >> 2) | (b >> 6) for b in range(256))


class ProtocolViolation(RuntimeError):
    """The driver broke the IT8951 framing rules."""


@dataclass
class SimCommand:
    """A decoded command frame and the data frames that followed it."""
    opcode: int
    params: list[int] = field(default_factory=list)
    data: bytearray = field(default_factory=bytearray)


class SimBus:
    """IT8951 controller simulator backed by a PIL framebuffer."""

    def __init__(self, width=1872, height=1404, image_address=0x001236E0,
                 firmware='SWv_0.1.1', lut='M841_TFA2812', vcom=2150,
                 busy_polls=0, refresh_polls=2, stuck_busy=False,
                 output_dir=None):
        self.width = width
        self.height = height
        self.image_address = image_address
        self.firmware = firmware
        self.lut = lut
        self.vcom = vcom
        self.busy_polls = busy_polls
        self.refresh_polls = refresh_polls
        self.stuck_busy = stuck_busy
        self.output_dir = output_dir

        self.registers: dict[int, int] = {}
        self.memory = Image.new('L', (width, height), 255)
        self.framebuffer = Image.new('L', (width, height), 255)
        self.frame_count = 0
        self.state = 'off'
        self.speed_hz = 0
        self.closed = False
        self.clock = 0.0
        self.log: list[dict] = []             # Operation log for testing
        self.commands: list[SimCommand] = []
        self.write_sizes: list[int] = []      # Payload write sizes, for chunking checks

        self._lines = {LINE_CS: HIGH, LINE_RST: HIGH}
        self._busy_remaining = busy_polls
        self._ready_seen = False
        self._frame: dict | None = None
        self._current: SimCommand | None = None
        self._pending_read: bytes | None = None
        self._read_buffer = bytearray()
        self._pending_load: SimCommand | None = None
        self._lut_remaining = 0

        if output_dir:
            os.makedirs(output_dir, exist_ok=True)

        print(f"SimBus: {width}x{height}, buffer=0x{image_address:08x}"
              + (f", saving to {output_dir}" if output_dir else ""))

    # --- Bus protocol ---

    def write_bytes(self, data):
        frame = self._open_frame('write')
        data = bytes(data)

        if frame['preamble'] is None:
            self._require_ready('preamble')
            if len(data) != 2:
                raise ProtocolViolation(
                    f"Preamble must be written alone, got {len(data)} bytes")
            frame['preamble'] = struct.unpack('>H', data)[0]
            if frame['preamble'] == PREAMBLE_READ:
                self._read_buffer = bytearray(2) + (self._pending_read or b'')
                self._pending_read = None
            elif frame['preamble'] not in (PREAMBLE_COMMAND, PREAMBLE_WRITE):
                raise ProtocolViolation(f"Unknown preamble 0x{frame['preamble']:04x}")
            return

        if frame['preamble'] == PREAMBLE_READ:
            raise ProtocolViolation("Write during a read frame")
        if not frame['payload_started']:
            self._require_ready('payload')
            frame['payload_started'] = True
        frame['payload'].extend(data)
        self.write_sizes.append(len(data))

    def transfer(self, data):
        frame = self._open_frame('transfer')
        if frame['preamble'] != PREAMBLE_READ:
            raise ProtocolViolation("Transfer outside a read frame")
        # Dummy turnaround bytes and the payload are separate ready-gated phases
        self._require_ready('read')
        n = len(data)
        out = bytes(self._read_buffer[:n]).ljust(n, b'\x00')
        del self._read_buffer[:n]
        self.log.append({'op': 'read', 'size': n})
        return out

    def set_line(self, line, level):
        level = HIGH if level else LOW
        previous = self._lines.get(line)
        self._lines[line] = level

        if line == LINE_CS:
            if previous == HIGH and level == LOW:
                self._frame = {'preamble': None, 'payload': bytearray(),
                               'payload_started': False}
            elif previous == LOW and level == HIGH:
                self._close_frame()
        elif line == LINE_RST and previous == LOW and level == HIGH:
            self._reset()

    def read_line(self, line):
        if line != LINE_BUSY:
            return self._lines.get(line, LOW)
        if self.stuck_busy:
            return LOW
        if self._busy_remaining > 0:
            self._busy_remaining -= 1
            return LOW
        self._ready_seen = True
        return HIGH

    def sleep(self, seconds):
        self.clock += seconds

    def monotonic(self):
        return self.clock

    def set_speed(self, hz):
        self.speed_hz = hz
        self.log.append({'op': 'speed', 'hz': hz})

    def close(self):
        self.closed = True
        self.log.append({'op': 'close'})

    # --- Inspection helpers ---

    def opcodes(self) -> list[int]:
        return [c.opcode for c in self.commands]

    def find(self, opcode: int) -> list[SimCommand]:
        return [c for c in self.commands if c.opcode == opcode]

    @property
    def mono_enabled(self) -> bool:
        return bool(self.registers.get(REG_UP1SR + 2, 0) & UP1SR_MONO_BIT)

    def device_info_bytes(self) -> bytes:
        """Device-info response as the controller sends it (strings pair-swapped)."""
        return struct.pack(
            DEVICE_INFO_FORMAT, self.width, self.height,
            self.image_address & 0xFFFF, (self.image_address >> 16) & 0xFFFF,
            fix_string(self.firmware.encode('ascii').ljust(16, b'\x00')),
            fix_string(self.lut.encode('ascii').ljust(16, b'\x00')))

    # --- Frame decoding ---

    def _open_frame(self, what):
        if self._lines[LINE_CS] != LOW or self._frame is None:
            raise ProtocolViolation(f"SPI {what} with chip select high")
        return self._frame

    def _require_ready(self, phase):
        if not self._ready_seen:
            raise ProtocolViolation(f"{phase} phase sent without waiting for ready")
        self._ready_seen = False

    def _close_frame(self):
        frame, self._frame = self._frame, None
        self._busy_remaining = self.busy_polls
        if frame is None or frame['preamble'] is None:
            return

        payload = bytes(frame['payload'])
        if frame['preamble'] == PREAMBLE_COMMAND:
            if len(payload) != 2:
                raise ProtocolViolation(f"Command frame carried {len(payload)} bytes")
            self._begin_command(struct.unpack('>H', payload)[0])
        elif frame['preamble'] == PREAMBLE_WRITE:
            self._on_data(payload)

    def _begin_command(self, opcode):
        cmd = SimCommand(opcode)
        self.commands.append(cmd)
        self._current = cmd
        self.log.append({'op': 'command', 'opcode': opcode})

        if opcode == CMD_SYS_RUN:
            self.state = 'run'
        elif opcode == CMD_STANDBY:
            self.state = 'standby'
        elif opcode == CMD_SLEEP:
            self.state = 'sleep'
        elif opcode == CMD_GET_DEVICE_INFO:
            self._pending_read = self.device_info_bytes()
        elif opcode == CMD_LOAD_IMAGE_END:
            self._pending_load = self._last_load()

    def _on_data(self, payload):
        cmd = self._current
        if cmd is None:
            self.log.append({'op': 'data', 'size': len(payload), 'stray': True})
            return

        if len(cmd.params) < self._param_count(cmd) and len(payload) == 2:
            cmd.params.append(struct.unpack('>H', payload)[0])
            if len(cmd.params) == self._param_count(cmd):
                self._execute(cmd)
        else:
            cmd.data.extend(payload)
            self.log.append({'op': 'data', 'size': len(payload)})

    @staticmethod
    def _param_count(cmd):
        if cmd.opcode == CMD_WRITE_REGISTER:
            return 2
        if cmd.opcode == CMD_READ_REGISTER:
            return 1
        if cmd.opcode == CMD_VCOM:
            return 2 if cmd.params and cmd.params[0] == 1 else 1
        if cmd.opcode in (CMD_LOAD_IMAGE_AREA, CMD_DISPLAY_AREA):
            return 5
        if cmd.opcode == CMD_DISPLAY_AREA_BUFFER:
            return 7
        return 0

    def _execute(self, cmd):
        p = cmd.params
        if cmd.opcode == CMD_WRITE_REGISTER:
            self.registers[p[0]] = p[1]
            self.log.append({'op': 'register_write', 'address': p[0], 'value': p[1]})
        elif cmd.opcode == CMD_READ_REGISTER:
            value = self._read_register(p[0])
            self._pending_read = struct.pack('>H', value)
            self.log.append({'op': 'register_read', 'address': p[0], 'value': value})
        elif cmd.opcode == CMD_VCOM:
            if p[0] == 0:
                self._pending_read = struct.pack('>H', self.vcom)
            else:
                self.vcom = p[1]
                self.log.append({'op': 'vcom', 'value': p[1]})
        elif cmd.opcode == CMD_DISPLAY_AREA_BUFFER:
            x, y, w, h, mode, addr_l, addr_h = p
            self._refresh(x, y, w, h, mode, (addr_h << 16) | addr_l)
        elif cmd.opcode == CMD_DISPLAY_AREA:
            x, y, w, h, mode = p
            self._refresh(x, y, w, h, mode, self.image_address)

    def _read_register(self, address):
        if address == REG_LUTAFSR:
            if self._lut_remaining > 0:
                self._lut_remaining -= 1
                return 0x0001
            return 0
        return self.registers.get(address, 0)

    def _last_load(self):
        for cmd in reversed(self.commands):
            if cmd.opcode == CMD_LOAD_IMAGE_AREA:
                return cmd
        return None

    def _reset(self):
        self.state = 'reset'
        self.registers.clear()
        self._current = None
        self._pending_read = None
        self._lut_remaining = 0
        self.log.append({'op': 'reset', 'time': self.clock})

    # --- Rendering ---

    def _refresh(self, x, y, w, h, mode, address):
        mono = self.mono_enabled
        if self._pending_load is not None:
            self._commit_load(self._pending_load, mono)
            self._pending_load = None

        box = (x, y, min(x + w, self.width), min(y + h, self.height))
        if box[2] > box[0] and box[3] > box[1]:
            self.framebuffer.paste(self.memory.crop(box), box[:2])

        self._lut_remaining = self.refresh_polls
        self.log.append({'op': 'refresh', 'x': x, 'y': y, 'w': w, 'h': h,
                         'mode': mode, 'address': address, 'mono': mono,
                         'frame': self.frame_count})
        if self.output_dir:
            path = os.path.join(self.output_dir, f'frame_{self.frame_count:04d}.png')
            self.framebuffer.save(path)
        self.frame_count += 1

    def _commit_load(self, cmd, mono):
        """Decode a loaded pixel buffer into controller memory."""
        if len(cmd.params) < 5:
            return
        packed, x, y, w, h = cmd.params
        bpp = 1 if mono else _FORMAT_BPP.get((packed >> 4) & 0x0F)
        if bpp is None or w == 0 or h == 0:
            return

        size = (w * bpp + 7) // 8 * h
        data = bytes(cmd.data[:size]).ljust(size, b'\xff')
        if bpp == 8:
            region = Image.frombytes('L', (w, h), data)
        elif bpp == 4:
            region = Image.frombytes('L', (w, h), data.translate(_SWAP_NIBBLES), 'raw', 'L;4')
        elif bpp == 2:
            region = Image.frombytes('L', (w, h), data.translate(_REVERSE_PAIRS), 'raw', 'L;2')
        else:
            region = Image.frombytes('1', (w, h), data, 'raw', '1;R').convert('L')
        self.memory.paste(region, (x, y))
