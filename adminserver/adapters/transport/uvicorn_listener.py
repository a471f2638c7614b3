from __future__ import annotations

import asyncio
import contextlib
import logging
import socket
import threading
import time
from typing import TYPE_CHECKING, Iterator, List, Optional, Tuple

import uvicorn

from adminserver.domain.errors import ListenerError
from adminserver.domain.ports.listener import BeforeShutdown, ListenerPort

if TYPE_CHECKING:
    from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

# Slack on top of the drain deadline for uvicorn's own shutdown steps.
SHUTDOWN_EPSILON_S = 1.0
STARTUP_TIMEOUT_S = 5.0


def parse_address(address: str) -> Tuple[str, int]:
    """Split `host:port`. An empty host (`:8080`) means all interfaces."""
    host, sep, port = address.rpartition(':')
    if not sep:
        raise ListenerError(f'missing port in address {address!r}')
    host = host.strip('[]') or '0.0.0.0'
    try:
        number = int(port)
    except ValueError:
        raise ListenerError(f'invalid port in address {address!r}')
    if not 0 <= number <= 65535:
        raise ListenerError(f'port out of range in address {address!r}')
    return host, number


def bind_socket(host: str, port: int) -> socket.socket:
    family = socket.AF_INET6 if ':' in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
    except OSError as exc:
        sock.close()
        raise ListenerError(f'cannot bind {host}:{port}: {exc}') from exc
    return sock


class _DrainingServer(uvicorn.Server):
    """uvicorn server that runs a hook before draining and closes leftovers after it."""

    def __init__(self, config: uvicorn.Config, before_shutdown: BeforeShutdown = None) -> None:
        super().__init__(config)
        self._before_shutdown = before_shutdown

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        # A captured SIGINT/SIGTERM ends serving; it is not re-raised afterwards.
        with super().capture_signals():
            try:
                yield
            finally:
                if self._captured_signals:
                    logger.info('Shut down on signal %s', self._captured_signals[-1])
                self._captured_signals.clear()

    async def shutdown(self, sockets: Optional[List[socket.socket]] = None) -> None:
        if self._before_shutdown is not None:
            logger.info('Running shutdown hook')
            try:
                # Awaited in a worker thread: draining waits for it, requests keep running.
                await asyncio.to_thread(self._before_shutdown)
            except Exception:
                logger.exception('Shutdown hook failed')

        await super().shutdown(sockets=sockets)

        leftovers = list(self.server_state.connections)
        if leftovers:
            logger.warning('Closing %d connection(s) still open after drain', len(leftovers))
        for connection in leftovers:
            transport = getattr(connection, 'transport', None)
            if transport is not None and not transport.is_closing():
                transport.abort()


class UvicornListener(ListenerPort):
    def __init__(
        self,
        app: ASGIApp,
        address: str,
        *,
        shutdown_timeout: float,
        before_shutdown: BeforeShutdown = None,
    ) -> None:
        self.host, self.port = parse_address(address)
        config = uvicorn.Config(
            app,
            log_config=None,
            access_log=False,
            timeout_graceful_shutdown=shutdown_timeout,
        )
        self._server = _DrainingServer(config, before_shutdown=before_shutdown)
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._sock: Optional[socket.socket] = None

    @property
    def started(self) -> bool:
        return bool(self._server.started)

    def _run(self, sock: socket.socket) -> None:
        try:
            self._server.run(sockets=[sock])
        finally:
            sock.close()
            self._stopped.set()

    def serve(self) -> None:
        self._sock = bind_socket(self.host, self.port)
        self._run(self._sock)

    def _wait_started(self, timeout: float) -> bool:
        end = time.monotonic() + timeout
        while not self._server.started and not self._stopped.is_set():
            if time.monotonic() >= end:
                return False
            time.sleep(0.01)
        return bool(self._server.started)

    def shutdown(self, deadline: float) -> bool:
        deadline = max(deadline, 0.0)
        if not self._stopped.is_set():
            # uvicorn skips its shutdown sequence when asked to exit mid-startup.
            self._wait_started(deadline)
        self._server.config.timeout_graceful_shutdown = deadline
        self._server.should_exit = True
        stopped = self._stopped.wait(deadline + SHUTDOWN_EPSILON_S)
        if not stopped:
            logger.warning('Listener still shutting down after %.2fs', deadline)
        return stopped

    def start_background(self) -> str:
        self._sock = bind_socket(self.host, self.port)
        host, port = self._sock.getsockname()[:2]
        self._thread = threading.Thread(
            target=self._run,
            args=(self._sock,),
            name=f'listener-{port}',
            daemon=True,
        )
        self._thread.start()
        if not self._wait_started(STARTUP_TIMEOUT_S):
            self.close()
            raise ListenerError(f'listener on {host}:{port} did not start')
        return f'http://{host}:{port}'

    def close(self) -> None:
        self._server.force_exit = True
        self._server.should_exit = True
        if self._thread is not None:
            self._thread.join(timeout=STARTUP_TIMEOUT_S)
