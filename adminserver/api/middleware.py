"""Request middleware.

The chain is fixed: recovery outermost, then request logging, then the
caller's middlewares in the order given, then the routes.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Awaitable, Callable, Sequence

from starlette.middleware.base import BaseHTTPMiddleware

from adminserver.api.errors import translate

if TYPE_CHECKING:
    from fastapi import FastAPI
    from starlette.requests import Request
    from starlette.responses import Response
    from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

MiddlewareFn = Callable[['Request', Callable[['Request'], Awaitable['Response']]], Awaitable['Response']]


class RecoveryMiddleware:
    """Translate any exception escaping the inner stack into a response.

    Nothing is written when the response has already started; the error is
    still classified, so unknown errors get logged.
    """

    def __init__(self, app: ASGIApp, debug: bool = False) -> None:
        self.app = app
        self.debug = debug

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope['type'] != 'http':
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_tracking(message: Message) -> None:
            nonlocal response_started
            if message['type'] == 'http.response.start':
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_tracking)
        except Exception as exc:
            rendered = translate(exc, debug=self.debug)
            if response_started:
                logger.warning(
                    'Response already committed for %s %s; dropping %d error response',
                    scope.get('method'),
                    scope.get('path'),
                    rendered.status_code,
                )
                return
            await rendered.to_response()(scope, receive, send)


class RequestLoggingMiddleware:
    """Log one line per request, tagged with the server name."""

    def __init__(self, app: ASGIApp, name: str) -> None:
        self.app = app
        self.name = name

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope['type'] != 'http':
            await self.app(scope, receive, send)
            return

        started_at = time.monotonic()
        status_code = 500

        async def send_recording(message: Message) -> None:
            nonlocal status_code
            if message['type'] == 'http.response.start':
                status_code = message['status']
            await send(message)

        try:
            await self.app(scope, receive, send_recording)
        finally:
            duration_ms = (time.monotonic() - started_at) * 1000
            logger.info(
                '[%s] %s %s %d %.2fms',
                self.name,
                scope['method'],
                scope['path'],
                status_code,
                duration_ms,
                extra={'server': self.name, 'status_code': status_code},
            )


def install_middlewares(
    app: FastAPI,
    *,
    name: str,
    middlewares: Sequence[MiddlewareFn] = (),
    debug: bool = False,
) -> None:
    # add_middleware prepends, so the outermost layer is added last.
    for dispatch in reversed(middlewares):
        app.add_middleware(BaseHTTPMiddleware, dispatch=dispatch)
    app.add_middleware(RequestLoggingMiddleware, name=name)
    app.add_middleware(RecoveryMiddleware, debug=debug)
