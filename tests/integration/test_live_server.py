import asyncio
import socket
import threading
import time

import httpx
import pytest

from adminserver.domain.errors import ListenerError
from adminserver.server import Server

pytestmark = pytest.mark.integration

SLOW_HANDLER_S = 10.0
EPSILON_S = 1.5


def free_port():
    with socket.socket() as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


def wait_until_up(base_url, timeout=5.0):
    end = time.monotonic() + timeout
    while time.monotonic() < end:
        try:
            httpx.get(f'{base_url}/admin/health', timeout=0.5)
            return
        except httpx.TransportError:
            time.sleep(0.05)
    raise AssertionError(f'{base_url} never came up')


@pytest.fixture()
def test_server(make_config):
    server = Server(make_config(health_check=lambda: None))
    url = server.start_test()
    yield server, url
    server.stop_test()


def test_start_test_serves_admin_routes(test_server, stats):
    _, url = test_server
    stats.new_int('deploys').add(4)

    assert url.startswith('http://127.0.0.1:')
    assert httpx.get(f'{url}/admin/health').status_code == 204
    assert httpx.get(f'{url}/admin/stats').json() == {'deploys': 4}
    assert httpx.post(f'{url}/admin/logging/not-a-level').status_code == 400


def test_stop_test_closes_the_listener(make_config):
    server = Server(make_config())
    url = server.start_test()
    assert httpx.get(f'{url}/admin/health').status_code == 501

    server.stop_test()

    with pytest.raises(httpx.TransportError):
        httpx.get(f'{url}/admin/health', timeout=1.0)


def test_stop_drains_then_forces_slow_requests(make_config):
    events = []
    port = free_port()
    server = Server(
        make_config(
            address=f'127.0.0.1:{port}',
            shutdown_timeout=0.5,
            shutdown_hook=lambda: events.append(('hook', time.monotonic())),
        )
    )

    @server.app.get('/slow')
    async def slow():
        await asyncio.sleep(SLOW_HANDLER_S)
        return {'done': True}

    serve_thread = threading.Thread(target=server.start, daemon=True)
    serve_thread.start()
    base_url = f'http://127.0.0.1:{port}'
    wait_until_up(base_url)

    outcome = {}

    def call_slow():
        try:
            outcome['status'] = httpx.get(f'{base_url}/slow', timeout=SLOW_HANDLER_S * 2).status_code
        except httpx.TransportError as e:
            outcome['error'] = e
        outcome['finished'] = time.monotonic()

    client_thread = threading.Thread(target=call_slow, daemon=True)
    client_thread.start()
    time.sleep(0.3)

    started = time.monotonic()
    assert server.stop() is True
    elapsed = time.monotonic() - started

    serve_thread.join(timeout=5)
    client_thread.join(timeout=5)

    assert elapsed < 0.5 + EPSILON_S
    assert not serve_thread.is_alive()
    assert [name for name, _ in events] == ['hook']
    # Forced close: the slow request never completes normally.
    assert outcome.get('status') != 200
    assert 'error' in outcome or outcome['status'] == 500
    assert events[0][1] <= outcome['finished']

    with pytest.raises(httpx.TransportError):
        httpx.get(f'{base_url}/admin/health', timeout=1.0)


def test_start_fails_when_address_is_taken(make_config):
    with socket.socket() as holder:
        holder.bind(('127.0.0.1', 0))
        holder.listen()
        port = holder.getsockname()[1]

        server = Server(make_config(address=f'127.0.0.1:{port}'))
        with pytest.raises(ListenerError):
            server.start()
