"""
Server lifecycle.

A Server serves in exactly one mode: `start()` for production (blocking,
graceful draining, shutdown hook) or `start_test()` for tests (loopback,
background thread, no draining). Each mode has its own stop operation and
mixing them raises ServerStateError.
"""
import logging
import threading
from typing import Optional

from fastapi import FastAPI

from adminserver.adapters.transport.uvicorn_listener import UvicornListener
from adminserver.config import ServerConfig
from adminserver.domain.errors import ServerStateError
from adminserver.domain.ports.listener import ListenerFactory, ListenerPort
from adminserver.main import create_app

logger = logging.getLogger(__name__)

MODE_PRODUCTION = 'production'
MODE_TEST = 'test'

DEFAULT_STOP_GRACE_S = 5.0
TEST_ADDRESS = '127.0.0.1:0'


class Server:
    def __init__(
        self,
        config: ServerConfig,
        *,
        listener_factory: ListenerFactory = UvicornListener,
    ) -> None:
        self._config = config
        self._app = create_app(config)
        self._listener_factory = listener_factory
        self._listener: Optional[ListenerPort] = None
        self._mode: Optional[str] = None
        self._lock = threading.Lock()
        self._hook_called = False

    @property
    def app(self) -> FastAPI:
        return self._app

    @property
    def config(self) -> ServerConfig:
        return self._config

    @property
    def mode(self) -> Optional[str]:
        return self._mode

    def _claim(self, mode: str, listener: ListenerPort) -> None:
        with self._lock:
            if self._mode is not None:
                raise ServerStateError(f'server already started in {self._mode} mode')
            self._mode = mode
            self._listener = listener

    def _release(self) -> None:
        with self._lock:
            self._mode = None
            self._listener = None

    def _expect(self, mode: str, operation: str) -> ListenerPort:
        with self._lock:
            if self._mode != mode or self._listener is None:
                raise ServerStateError(
                    f'{operation}() is only valid in {mode} mode (current: {self._mode or "not started"})'
                )
            return self._listener

    def _run_shutdown_hook(self) -> None:
        with self._lock:
            if self._hook_called:
                return
            self._hook_called = True
        self._config.shutdown_hook()

    def start(self) -> None:
        """Serve on the configured address until shut down. Blocks."""
        before_shutdown = None
        if self._config.shutdown_hook is not None:
            before_shutdown = self._run_shutdown_hook
        listener = self._listener_factory(
            self._app,
            self._config.address,
            shutdown_timeout=self._config.shutdown_timeout,
            before_shutdown=before_shutdown,
        )
        self._claim(MODE_PRODUCTION, listener)
        logger.info('Starting server on %s', self._config.address)
        try:
            listener.serve()
        except Exception:
            self._release()
            raise
        logger.info('Server on %s stopped', self._config.address)

    def start_test(self) -> str:
        """Serve on an ephemeral loopback port from a background thread; return its URL."""
        listener = self._listener_factory(
            self._app,
            TEST_ADDRESS,
            shutdown_timeout=0,
            before_shutdown=None,
        )
        self._claim(MODE_TEST, listener)
        try:
            url = listener.start_background()
        except Exception:
            self._release()
            raise
        logger.info('Started test server on %s', url)
        return url

    def stop(self, grace: float = DEFAULT_STOP_GRACE_S) -> bool:
        """Shut down a server started with `start()`.

        Draining is bounded by the smaller of the configured shutdown timeout
        and `grace`. Returns False if serving had not finished by then.
        """
        listener = self._expect(MODE_PRODUCTION, 'stop')
        deadline = min(self._config.shutdown_timeout, grace)
        logger.info('Stopping server on %s (drain deadline %.2fs)', self._config.address, deadline)
        return listener.shutdown(deadline)

    def stop_test(self) -> None:
        listener = self._expect(MODE_TEST, 'stop_test')
        listener.close()
        logger.info('Stopped test server')
