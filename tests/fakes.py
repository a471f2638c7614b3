import threading
from typing import List, Optional

from adminserver.domain.errors import ListenerError
from adminserver.domain.ports.listener import BeforeShutdown, ListenerPort


class FakeListener(ListenerPort):
    """
    Stands in for the uvicorn listener.

    `inflight_s` simulates a request still running at shutdown: if it outlasts
    the drain deadline the fake records a forced close, otherwise a clean drain.
    """

    def __init__(
        self,
        app,
        address: str,
        *,
        shutdown_timeout: float,
        before_shutdown: BeforeShutdown = None,
        inflight_s: float = 0.0,
        fail_bind: bool = False,
    ):
        self.app = app
        self.address = address
        self.shutdown_timeout = shutdown_timeout
        self.before_shutdown = before_shutdown
        self.inflight_s = inflight_s
        self.fail_bind = fail_bind
        self.events: List[str] = []
        self.deadlines: List[float] = []
        self._stopped = threading.Event()
        self.serving = threading.Event()

    def _drain(self, deadline: float) -> None:
        if self.before_shutdown is not None:
            self.before_shutdown()
            self.events.append('hook')
        self.events.append('stop-accepting')
        if self.inflight_s > deadline:
            self.events.append('forced-close')
        else:
            self.events.append('drained')

    def serve(self) -> None:
        if self.fail_bind:
            raise ListenerError(f'cannot bind {self.address}: address already in use')
        self.events.append('serve')
        self.serving.set()
        self._stopped.wait()

    def shutdown(self, deadline: float) -> bool:
        self.deadlines.append(deadline)
        self._drain(deadline)
        self._stopped.set()
        return True

    def signal(self) -> None:
        """What an external SIGTERM would do: drain with the configured timeout."""
        self.shutdown(self.shutdown_timeout)

    def start_background(self) -> str:
        self.events.append('background')
        return 'http://127.0.0.1:54321'

    def close(self) -> None:
        self.events.append('closed')


class FakeListenerFactory:
    def __init__(self, **options):
        self.options = options
        self.created: List[FakeListener] = []

    @property
    def last(self) -> Optional[FakeListener]:
        return self.created[-1] if self.created else None

    def __call__(self, app, address, *, shutdown_timeout, before_shutdown=None):
        listener = FakeListener(
            app,
            address,
            shutdown_timeout=shutdown_timeout,
            before_shutdown=before_shutdown,
            **self.options,
        )
        self.created.append(listener)
        return listener
