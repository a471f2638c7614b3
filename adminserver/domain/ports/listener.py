import abc
from typing import Callable, Optional


class ListenerPort(abc.ABC):
    """Transport seam used by the server lifecycle.

    `serve()` blocks until the listener has shut down. `shutdown(deadline)`
    may be called from another thread; it starts the shutdown sequence,
    bounds draining by `deadline` seconds and waits for `serve()` to return.
    """

    @abc.abstractmethod
    def serve(self) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def shutdown(self, deadline: float) -> bool:
        """Return True when serving stopped within the deadline."""
        raise NotImplementedError

    @abc.abstractmethod
    def start_background(self) -> str:
        """Serve from a daemon thread without draining; return the base URL."""
        raise NotImplementedError

    @abc.abstractmethod
    def close(self) -> None:
        """Stop a background listener immediately."""
        raise NotImplementedError


# (app, address, shutdown_timeout, before_shutdown) -> listener
ListenerFactory = Callable[..., ListenerPort]
BeforeShutdown = Optional[Callable[[], None]]
