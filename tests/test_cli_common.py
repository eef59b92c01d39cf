"""
Tests for phylohmm.cli.common argument factories.
"""
import pytest
import argparse

from phylohmm.cli.common import (
    add_em_args,
    add_restart_args,
    add_log_args,
    add_verbose_args,
    add_version_args,
    config_from_args,
)
from phylohmm.training.config import EM_CONVERGENCE_THRESHOLD


class TestAddEMArgs:
    def test_defaults(self):
        parser = argparse.ArgumentParser()
        add_em_args(parser)
        args = parser.parse_args([])
        assert args.threshold == EM_CONVERGENCE_THRESHOLD
        assert args.max_iter is None
        assert args.pseudocount == 0.0

    def test_custom_default(self):
        parser = argparse.ArgumentParser()
        add_em_args(parser, threshold=0.5)
        args = parser.parse_args([])
        assert args.threshold == 0.5

    def test_overrides(self):
        parser = argparse.ArgumentParser()
        add_em_args(parser)
        args = parser.parse_args(['-t', '0.01', '--max-iter', '50', '--pseudocount', '1'])
        assert args.threshold == 0.01
        assert args.max_iter == 50
        assert args.pseudocount == 1.0

    def test_non_numeric_rejected(self):
        parser = argparse.ArgumentParser()
        add_em_args(parser)
        with pytest.raises(SystemExit):
            parser.parse_args(['--max-iter', 'many'])


class TestAddRestartArgs:
    def test_defaults(self):
        parser = argparse.ArgumentParser()
        add_restart_args(parser)
        args = parser.parse_args([])
        assert args.restarts == 10
        assert args.seed == 42

    def test_short_flags(self):
        parser = argparse.ArgumentParser()
        add_restart_args(parser, default_restarts=3)
        args = parser.parse_args(['-s', '7'])
        assert args.restarts == 3
        assert args.seed == 7


class TestAddLogArgs:
    def test_default_none(self):
        parser = argparse.ArgumentParser()
        add_log_args(parser)
        assert parser.parse_args([]).log is None

    def test_stdout(self):
        parser = argparse.ArgumentParser()
        add_log_args(parser)
        assert parser.parse_args(['-l', '-']).log == '-'


class TestAddVerboseArgs:
    def test_flag(self):
        parser = argparse.ArgumentParser()
        add_verbose_args(parser)
        assert parser.parse_args([]).verbose is False
        assert parser.parse_args(['-v']).verbose is True


class TestAddVersionArgs:
    def test_version_exits(self, capsys):
        from phylohmm import __version__
        parser = argparse.ArgumentParser(prog='phylohmm-train')
        add_version_args(parser)
        with pytest.raises(SystemExit):
            parser.parse_args(['--version'])
        assert __version__ in capsys.readouterr().out


class TestConfigFromArgs:
    def test_builds_config(self):
        parser = argparse.ArgumentParser()
        add_em_args(parser)
        config = config_from_args(parser.parse_args(['-t', '0.2', '--max-iter', '9']))
        assert config.threshold == 0.2
        assert config.max_iter == 9
        assert config.reestimate_state_models is True

    def test_invalid_values_raise(self):
        parser = argparse.ArgumentParser()
        add_em_args(parser)
        with pytest.raises(ValueError):
            config_from_args(parser.parse_args(['--max-iter', '0']))
