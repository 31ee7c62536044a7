"""Tests for the deploywatch command line."""

import logging

import pytest

from deploywatch import __version__
from deploywatch.cli import build_parser, load_config, main


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Isolate the CLI from the caller's environment."""
    for name in (
        'DEPLOYWATCH_APPLICATION', 'DEPLOYWATCH_GROUPS', 'DEPLOYWATCH_COMPACT',
        'FORCE_COLOR', 'TTY_COMPATIBLE', 'AWS_PROFILE',
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv('AWS_REGION', 'us-east-1')
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    yield
    logger = logging.getLogger('deploywatch')
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True


class TestParser:
    """Test argument parsing and overrides."""

    def test_overrides(self):
        """Test flags override configuration."""
        args = build_parser().parse_args([
            'd-1', 'd-2', '-a', 'shop', '-g', 'web,api',
            '--compact', '--hide-succeeded', '--status-mode', 'instance',
        ])

        config = load_config(args)

        assert config.filters.deployment_ids == ['d-1', 'd-2']
        assert config.filters.application == 'shop'
        assert config.filters.groups == ['web', 'api']
        assert config.display.compact is True
        assert config.display.hide_succeeded is True
        assert config.polling.status_mode == 'instance'

    def test_verbose_overrides_env(self, monkeypatch):
        """Test --verbose turns off compact mode set in the environment."""
        monkeypatch.setenv('DEPLOYWATCH_COMPACT', 'true')

        config = load_config(build_parser().parse_args(['d-1', '--verbose']))

        assert config.display.compact is False

    def test_unset_flags_keep_config(self):
        """Test omitted flags leave defaults alone."""
        config = load_config(build_parser().parse_args(['d-1']))

        assert config.display.compact is False
        assert config.display.hide_succeeded is False

    def test_compact_and_verbose_exclusive(self):
        """Test the two detail flags cannot be combined."""
        with pytest.raises(SystemExit):
            build_parser().parse_args(['--compact', '--verbose'])


class TestMain:
    """Test the entry point."""

    def test_version(self, capsys):
        """Test --version prints the version and exits 0."""
        assert main(['--version']) == 0
        assert capsys.readouterr().out.strip() == f'deploywatch {__version__}'

    def test_no_deployments(self, capsys):
        """Test a run with nothing to watch exits 1."""
        assert main([]) == 1
        assert 'No deployment IDs found' in capsys.readouterr().err

    def test_not_a_terminal(self, capsys, tmp_path):
        """Test the dashboard refuses to start without a terminal."""
        code = main(['d-1', '--log-file', str(tmp_path / 'deploywatch.log')])

        assert code == 1
        assert 'Error creating terminal' in capsys.readouterr().err


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
