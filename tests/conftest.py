import logging

import pytest
from fastapi.testclient import TestClient

from adminserver.adapters.logging.levels import LogLevelController
from adminserver.adapters.stats.registry import StatsRegistry
from adminserver.config import ServerConfig
from adminserver.main import create_app


@pytest.fixture()
def stats():
    """A registry per test so published names never collide across tests."""
    return StatsRegistry()


@pytest.fixture()
def managed_logger():
    logger = logging.getLogger('adminserver.tests.managed')
    previous = logger.level
    logger.setLevel(logging.INFO)
    yield logger
    logger.setLevel(previous)


@pytest.fixture()
def log_levels(managed_logger):
    return LogLevelController(managed_logger)


@pytest.fixture()
def make_config(stats, log_levels):
    def _make(**overrides):
        values = dict(name='test-admin', stats=stats, log_levels=log_levels)
        values.update(overrides)
        return ServerConfig(**values)

    return _make


@pytest.fixture()
def make_client(make_config):
    """
    Build a TestClient around a freshly composed app.
    Returns (client, app) so tests can mount extra routes before calling.
    """
    clients = []

    def _make(**overrides):
        app = create_app(make_config(**overrides))
        client = TestClient(app)
        clients.append(client)
        return client, app

    yield _make

    for c in clients:
        c.close()
