import dataclasses

import pytest

from adminserver.adapters.stats.registry import StatsRegistry
from adminserver.config import ServerConfig
from adminserver.settings import Settings

pytestmark = pytest.mark.unit


def test_config_is_immutable():
    config = ServerConfig(name='admin')
    with pytest.raises(dataclasses.FrozenInstanceError):
        config.address = ':9999'


def test_config_defaults():
    config = ServerConfig(name='admin')
    assert config.address == ':8080'
    assert config.health_check is None
    assert config.shutdown_hook is None
    assert config.middlewares == ()
    assert config.debug is False
    assert 'cmdline' in config.stats


def test_each_config_gets_its_own_registry():
    assert ServerConfig(name='a').stats is not ServerConfig(name='b').stats


def test_negative_shutdown_timeout_is_rejected():
    with pytest.raises(ValueError):
        ServerConfig(name='admin', shutdown_timeout=-1)


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv('SERVER_NAME', ' deploy-admin ')
    monkeypatch.setenv('SERVER_ADDRESS', '127.0.0.1:9090')
    monkeypatch.setenv('SHUTDOWN_TIMEOUT_S', '2.5')
    monkeypatch.setenv('DEBUG', 'true')
    monkeypatch.setenv('LOG_FORMAT', '')

    s = Settings(_env_file=None)

    assert s.SERVER_NAME == 'deploy-admin'
    assert s.SERVER_ADDRESS == '127.0.0.1:9090'
    assert s.SHUTDOWN_TIMEOUT_S == 2.5
    assert s.DEBUG is True
    assert s.LOG_FORMAT is None


def test_config_from_settings_with_overrides(monkeypatch):
    monkeypatch.setenv('SERVER_NAME', 'deploy-admin')
    monkeypatch.setenv('SHUTDOWN_TIMEOUT_S', '3')
    registry = StatsRegistry()

    config = ServerConfig.from_settings(Settings(_env_file=None), stats=registry, debug=True)

    assert config.name == 'deploy-admin'
    assert config.shutdown_timeout == 3.0
    assert config.stats is registry
    assert config.debug is True
