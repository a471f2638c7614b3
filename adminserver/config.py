from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional, Tuple

from adminserver.adapters.logging.levels import LogLevelController
from adminserver.adapters.stats.registry import StatsRegistry, default_registry
from adminserver.api.middleware import MiddlewareFn
from adminserver.domain.ports.health import HealthCheck, ShutdownHook

if TYPE_CHECKING:
    from adminserver.settings import Settings


@dataclass(frozen=True)
class ServerConfig:
    """Startup parameters for a Server. Read-only once the server is built.

    `stats` and `log_levels` are the registry and logger the admin endpoints
    act on; tests pass their own instances to stay off process-wide state.
    """

    name: str
    address: str = ':8080'
    shutdown_timeout: float = 10.0
    health_check: Optional[HealthCheck] = None
    shutdown_hook: Optional[ShutdownHook] = None
    middlewares: Tuple[MiddlewareFn, ...] = ()
    debug: bool = False
    stats: StatsRegistry = field(default_factory=default_registry)
    log_levels: LogLevelController = field(default_factory=LogLevelController)

    def __post_init__(self) -> None:
        if self.shutdown_timeout < 0:
            raise ValueError('shutdown_timeout must not be negative')
        # Freeze a caller's list so later mutation cannot reorder the chain.
        object.__setattr__(self, 'middlewares', tuple(self.middlewares))

    @classmethod
    def from_settings(cls, settings: Settings, **overrides) -> ServerConfig:
        values = dict(
            name=settings.SERVER_NAME,
            address=settings.SERVER_ADDRESS,
            shutdown_timeout=settings.SHUTDOWN_TIMEOUT_S,
            debug=settings.DEBUG,
        )
        values.update(overrides)
        return cls(**values)
