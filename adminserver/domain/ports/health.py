from typing import Awaitable, Callable, Union

# Raises on failure; returning normally means healthy.
HealthCheck = Callable[[], Union[None, Awaitable[None]]]

ShutdownHook = Callable[[], None]
