"""Tests for the command-line entry point (simulator backend)."""

import pytest

import it8951.bus.sim as sim_module
from it8951.__main__ import build_parser, main
from it8951.commands import CMD_SLEEP, CMD_STANDBY


def test_parser_accepts_hex():
    args = build_parser().parse_args(['write-reg', '0x1138', '0x0004'])
    assert (args.address, args.value) == (0x1138, 0x0004)


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_info(capsys):
    assert main(['--backend', 'sim', '--no-clear', 'info']) == 0
    out = capsys.readouterr().out
    assert 'Size:      1872x1404' in out
    assert 'Buffer:    0x001236e0' in out
    assert 'SWv_0.1.1' in out


def test_clear_writes_frames(tmp_path):
    assert main(['--sim-dir', str(tmp_path), '--bpp', '8', 'clear', '--color', '0x00']) == 0
    # Bring-up clear + requested clear
    assert len(list(tmp_path.glob('frame_*.png'))) == 2


def test_fill_reports_aligned_region(capsys):
    assert main(['--backend', 'sim', '--no-clear', '--align32',
                 'fill', '0', '40', '0', '100', '8']) == 0
    assert 'Filled 96x8 at (32, 0)' in capsys.readouterr().out


def test_read_reg(capsys):
    assert main(['--backend', 'sim', '--no-clear', 'read-reg', '0x0004']) == 0
    assert '0x0004 = 0x0001' in capsys.readouterr().out


def test_vcom_set(capsys):
    assert main(['--backend', 'sim', '--no-clear', 'vcom', '1530']) == 0
    assert 'VCOM: -1.53V' in capsys.readouterr().out


def test_invalid_value_reports_error(capsys):
    assert main(['--backend', 'sim', '--no-clear', 'vcom', '70000']) == 1
    assert 'VCOM out of range' in capsys.readouterr().err


@pytest.fixture
def sim_buses(monkeypatch):
    """Record every simulator the CLI creates."""
    buses = []
    sim_class = sim_module.SimBus

    def factory(**kwargs):
        bus = sim_class(**kwargs)
        buses.append(bus)
        return bus

    monkeypatch.setattr(sim_module, 'SimBus', factory)
    return buses


def test_sleep_sent_once(sim_buses):
    assert main(['--backend', 'sim', '--no-clear', 'sleep']) == 0
    assert sim_buses[0].opcodes().count(CMD_SLEEP) == 1
    assert sim_buses[0].closed


def test_standby_leaves_controller_in_standby(sim_buses):
    assert main(['--backend', 'sim', '--no-clear', 'standby']) == 0
    opcodes = sim_buses[0].opcodes()
    assert opcodes.count(CMD_STANDBY) == 1
    assert CMD_SLEEP not in opcodes


def test_stuck_controller_reports_error(monkeypatch, capsys):
    sim_class = sim_module.SimBus
    monkeypatch.setattr(sim_module, 'SimBus',
                        lambda **kwargs: sim_class(stuck_busy=True, **kwargs))
    assert main(['--backend', 'sim', '--no-clear', 'info']) == 1
    assert 'Error: Controller not ready' in capsys.readouterr().err
