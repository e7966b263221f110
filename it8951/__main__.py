"""Entry point for `python -m it8951`."""

from __future__ import annotations

import argparse
import sys


def _int(value: str) -> int:
    """Integer argument, accepting 0x/0b prefixes."""
    return int(value, 0)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='it8951', description='IT8951 e-paper tool')
    parser.add_argument('--backend', choices=['pi', 'sim'], default='pi',
                        help='Bus backend (default: pi)')
    parser.add_argument('--sim-dir', metavar='DIR',
                        help='Simulator frame output directory (implies --backend sim)')
    parser.add_argument('--rst', type=int, default=17, help='Reset GPIO (default: 17)')
    parser.add_argument('--cs', type=int, default=8, help='Chip select GPIO (default: 8)')
    parser.add_argument('--busy', type=int, default=24, help='Busy GPIO (default: 24)')
    parser.add_argument('--speed', type=int, default=12_000_000,
                        help='SPI clock in Hz (default: 12000000)')
    parser.add_argument('--vcom', type=int, help='Target VCOM in mV (e.g. 1530 for -1.53V)')
    parser.add_argument('--bpp', type=int, choices=[1, 2, 4, 8], help='Pixel bit depth')
    parser.add_argument('--align32', action='store_true', default=None,
                        help='Round x/width down to 32 pixels')
    parser.add_argument('--no-clear', action='store_true',
                        help='Skip the full-panel clear during bring-up')

    sub = parser.add_subparsers(dest='command', required=True)
    sub.add_parser('info', help='Print device info')

    p = sub.add_parser('clear', help='Fill the whole panel')
    p.add_argument('--color', type=_int, default=0xFF, help='Fill byte (default: 0xFF)')
    p.add_argument('--mode', type=_int, default=0, help='Waveform mode (default: 0, INIT)')

    p = sub.add_parser('fill', help='Fill a region with one byte value')
    p.add_argument('value', type=_int)
    p.add_argument('x', type=_int)
    p.add_argument('y', type=_int)
    p.add_argument('w', type=_int)
    p.add_argument('h', type=_int)
    p.add_argument('--mode', type=_int, help='Waveform mode (default: GC16, A2 at 1bpp)')

    p = sub.add_parser('read-reg', help='Read a 16-bit register')
    p.add_argument('address', type=_int)

    p = sub.add_parser('write-reg', help='Write a 16-bit register')
    p.add_argument('address', type=_int)
    p.add_argument('value', type=_int)

    p = sub.add_parser('vcom', help='Read, or write with MV, the stored VCOM')
    p.add_argument('mv', type=_int, nargs='?')

    sub.add_parser('standby', help='Put the controller in standby')
    sub.add_parser('sleep', help='Put the controller to sleep')
    return parser


def main(argv: list[str] | None = None) -> int:
    from dotenv import load_dotenv

    from it8951.bus import create_bus
    from it8951.config import Config
    from it8951.driver import IT8951
    from it8951.errors import IT8951Error

    load_dotenv()
    args = build_parser().parse_args(argv)

    backend = 'sim' if args.sim_dir else args.backend
    try:
        config = Config.from_env(vcom=args.vcom, bpp=args.bpp, align_32=args.align32)
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    if backend == 'sim':
        bus = create_bus('sim', output_dir=args.sim_dir)
    else:
        bus = create_bus('pi', rst=args.rst, cs=args.cs, busy=args.busy,
                         speed_hz=args.speed)

    display = IT8951(bus, config)
    power_down = args.command != 'standby'
    try:
        info = display.initialize(clear=not args.no_clear)
        _run(display, info, args)
    except (IT8951Error, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        display.close(power_down=power_down)
    return 0


def _run(display, info, args):
    command = args.command
    if command == 'info':
        print(f"Size:      {info.width}x{info.height}")
        print(f"Buffer:    0x{info.image_address:08x}")
        print(f"Firmware:  {info.firmware_version}")
        print(f"LUT:       {info.lut_version}")
        print(f"VCOM:      -{display.get_vcom() / 1000:.2f}V")
    elif command == 'clear':
        display.clear(args.color, args.mode)
    elif command == 'fill':
        settings = display.config.draw_settings()
        size = args.w * args.h * settings.bpp // 8
        region = display.draw(bytes([args.value]) * size, args.x, args.y,
                              args.w, args.h, args.mode, settings)
        print(f"Filled {region.w}x{region.h} at ({region.x}, {region.y})")
    elif command == 'read-reg':
        value = display.read_register(args.address)
        print(f"0x{args.address:04x} = 0x{value:04x}")
    elif command == 'write-reg':
        display.write_register(args.address, args.value)
    elif command == 'vcom':
        if args.mv is not None:
            display.set_vcom(args.mv)
        print(f"VCOM: -{display.get_vcom() / 1000:.2f}V")
    elif command == 'standby':
        display.standby()
    elif command == 'sleep':
        display.sleep()


if __name__ == '__main__':
    sys.exit(main())
