"""Tests for the command-line runner."""

import argparse
import importlib.util
import os
import sys

import pytest
import yaml

from flsimlab.config import PhaseDelays
from flsimlab.logging import SimLoggerFactory
from flsimlab.types import FLMode


ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
REPO_CONFIG = os.path.join(ROOT, 'config.yaml')


def load_script():
    """Import scripts/run_simulation.py as a module."""
    path = os.path.join(ROOT, 'scripts', 'run_simulation.py')
    spec = importlib.util.spec_from_file_location('run_simulation', path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


run_simulation = load_script()


def make_args(**overrides):
    """Namespace with every CLI option unset."""
    args = dict(
        config=None, mode=None, rounds=None, clients=None, unbalanced=False,
        lr=None, epochs=None, batch_size=None, seed=None, speed=None, verbose=False
    )
    args.update(overrides)
    return argparse.Namespace(**args)


@pytest.fixture
def fresh_loggers():
    """Drop cached engine loggers around a CLI run"""
    SimLoggerFactory.close_all()
    yield
    SimLoggerFactory.close_all()
    SimLoggerFactory.configure()


class TestBuildSettings:
    """Tests for merging the config file with overrides"""

    def test_repository_config(self):
        """Without overrides the shipped file is used as is"""
        settings = run_simulation.build_settings(make_args(config=REPO_CONFIG))

        assert settings.total_rounds == 10
        assert settings.seed == 42
        assert settings.delays == PhaseDelays()

    def test_missing_file_uses_defaults(self, tmp_path):
        """A config path that does not exist falls back to defaults"""
        settings = run_simulation.build_settings(make_args(config=str(tmp_path / "none.yaml")))

        assert settings.seed is None
        assert settings.num_clients == 3

    def test_overrides_win(self, tmp_path):
        """Command-line values replace file values"""
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({
            'simulation': {'mode': 'horizontal', 'total_rounds': 8},
            'clients': {'count': 4, 'balanced': True},
            'hyperparams': {'learning_rate': 0.1, 'batch_size': 64}
        }))

        settings = run_simulation.build_settings(make_args(
            config=str(path), mode='vertical', rounds=2, clients=5,
            unbalanced=True, lr=0.05, epochs=4, seed=11
        ))

        assert settings.mode == FLMode.VERTICAL
        assert settings.total_rounds == 2
        assert settings.num_clients == 5
        assert settings.balanced is False
        assert settings.learning_rate == 0.05
        assert settings.local_epochs == 4
        assert settings.batch_size == 64
        assert settings.seed == 11

    def test_speed_scales_delays(self):
        """--speed multiplies the pacing, 0 removes it"""
        halved = run_simulation.build_settings(make_args(speed=0.5))
        instant = run_simulation.build_settings(make_args(speed=0))

        assert halved.delays.distributing == pytest.approx(0.4)
        assert instant.delays == PhaseDelays.instant()


class TestMain:
    """Tests for the CLI entry point"""

    def test_run_prints_metrics(self, monkeypatch, capsys, fresh_loggers):
        """A short instant run completes and prints the table"""
        monkeypatch.setattr(sys, 'argv', [
            'run_simulation.py', '--config', REPO_CONFIG,
            '--speed', '0', '--rounds', '2'
        ])

        assert run_simulation.main() == 0

        out = capsys.readouterr().out
        assert 'accuracy' in out
        assert 'R1' in out
        assert 'R2' in out
        assert 'Rounds: 2/2' in out
        assert 'Clients: 3' in out

    @pytest.mark.parametrize("flag,value,key", [
        ('--clients', '0', 'num_clients'),
        ('--seed', '-1', 'seed'),
        ('--lr', '0', 'learning_rate'),
    ])
    def test_invalid_value_exits_with_usage(self, monkeypatch, capsys, fresh_loggers,
                                            flag, value, key):
        """Bad overrides are reported through the argument parser"""
        monkeypatch.setattr(sys, 'argv', [
            'run_simulation.py', '--config', REPO_CONFIG, '--speed', '0', flag, value
        ])

        with pytest.raises(SystemExit) as exc_info:
            run_simulation.main()

        assert exc_info.value.code == 2
        err = capsys.readouterr().err
        assert 'CONFIG_ERROR' in err
        assert key in err
