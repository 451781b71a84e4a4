import pytest

from tcpcheck import config


def test_get_env_value_returns_first_non_empty(monkeypatch):
    monkeypatch.setenv('TCPCHECK_A', '')
    monkeypatch.setenv('TCPCHECK_B', 'second')

    assert config._get_env_value('TCPCHECK_A', 'TCPCHECK_B') == 'second'


def test_get_env_value_without_default_raises():
    with pytest.raises(KeyError):
        config._get_env_value('TCPCHECK_UNSET')


def test_defaults_without_environment():
    assert config.resolve_default_timeout() == config.DEFAULT_TIMEOUT_SECONDS
    assert config.resolve_default_verbosity() == config.DEFAULT_VERBOSITY


def test_defaults_from_environment(monkeypatch):
    monkeypatch.setenv('TCPCHECK_TIMEOUT', ' 0 ')
    monkeypatch.setenv('TCPCHECK_VERBOSE', '3')

    assert config.resolve_default_timeout() == 0.0
    assert config.resolve_default_verbosity() == 3


def test_invalid_verbosity_is_rejected(monkeypatch):
    monkeypatch.setenv('TCPCHECK_VERBOSE', 'high')

    with pytest.raises(ValueError, match='TCPCHECK_VERBOSE'):
        config.resolve_default_verbosity()


@pytest.mark.parametrize('value', ['inf', '-inf', 'nan', 'Infinity'])
def test_non_finite_timeout_is_rejected(monkeypatch, value):
    monkeypatch.setenv('TCPCHECK_TIMEOUT', value)

    with pytest.raises(ValueError, match='finite'):
        config.resolve_default_timeout()
