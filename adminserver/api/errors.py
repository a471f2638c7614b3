"""
Error translation.

Every error raised while handling a request ends up in `translate`, which
decides the status code and body the client sees. Categories are matched in
a fixed order and the first match wins:

1. UpstreamAPIError  -> 400, upstream status object as the JSON body
2. ErrorResponse     -> whatever the error renders for itself
3. HTTPException     -> standard JSON bodies for 404/405, status text otherwise
4. anything else     -> 500, logged, status text unless debug is on

Only the last category is logged; the others are expected client errors.
"""
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from http import HTTPStatus
from typing import Callable, Dict, Tuple

from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException
from starlette.responses import Response

from adminserver.domain import errors as de

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = 'application/json; charset=utf-8'
TEXT_CONTENT_TYPE = 'text/plain; charset=utf-8'


class ErrorCategory(str, Enum):
    UPSTREAM = 'upstream'
    DOMAIN = 'domain'
    FRAMEWORK = 'framework'
    UNKNOWN = 'unknown'


@dataclass(frozen=True)
class RenderedError:
    status_code: int
    body: bytes
    content_type: str
    headers: Dict[str, str] = field(default_factory=dict)

    def to_response(self) -> Response:
        return Response(
            content=self.body,
            status_code=self.status_code,
            headers=self.headers,
            media_type=self.content_type,
        )


def _json(status_code: int, payload, headers=None) -> RenderedError:
    body = json.dumps(payload).encode('utf-8')
    return RenderedError(int(status_code), body, JSON_CONTENT_TYPE, dict(headers or {}))


def _text(status_code: int, message: str, headers=None) -> RenderedError:
    # Plain-text errors end with a newline and opt out of content sniffing.
    merged = {'X-Content-Type-Options': 'nosniff'}
    merged.update(headers or {})
    return RenderedError(int(status_code), f'{message}\n'.encode('utf-8'), TEXT_CONTENT_TYPE, merged)


def _status_text(code: int) -> str:
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return ''


def _render_upstream(exc: de.UpstreamAPIError, debug: bool) -> RenderedError:
    return _json(HTTPStatus.BAD_REQUEST, exc.status)


def _render_domain(exc: de.ErrorResponse, debug: bool) -> RenderedError:
    status_code, body = exc.render()
    return _json(status_code, body)


def _render_framework(exc: HTTPException, debug: bool) -> RenderedError:
    code = exc.status_code
    headers = getattr(exc, 'headers', None) or {}
    if code == HTTPStatus.NOT_FOUND:
        return _json(code, de.NotFound().render()[1], headers)
    if code == HTTPStatus.METHOD_NOT_ALLOWED:
        return _json(code, de.MethodNotAllowed().render()[1], headers)

    message = _status_text(code)
    if debug:
        message = str(exc.detail)
    return _text(code, message, headers)


def _render_unknown(exc: BaseException, debug: bool) -> RenderedError:
    logger.error('Unhandled error: %s', exc, exc_info=exc)
    message = _status_text(HTTPStatus.INTERNAL_SERVER_ERROR)
    if debug:
        message = str(exc)
    return _text(HTTPStatus.INTERNAL_SERVER_ERROR, message)


Renderer = Callable[..., RenderedError]

RULES: Tuple[Tuple[ErrorCategory, type, Renderer], ...] = (
    (ErrorCategory.UPSTREAM, de.UpstreamAPIError, _render_upstream),
    (ErrorCategory.DOMAIN, de.ErrorResponse, _render_domain),
    (ErrorCategory.FRAMEWORK, HTTPException, _render_framework),
)


def classify(exc: BaseException) -> ErrorCategory:
    for category, kind, _ in RULES:
        if isinstance(exc, kind):
            return category
    return ErrorCategory.UNKNOWN


def translate(exc: BaseException, *, debug: bool = False) -> RenderedError:
    for _, kind, render in RULES:
        if isinstance(exc, kind):
            return render(exc, debug)
    return _render_unknown(exc, debug)


def register_exception_handlers(app: FastAPI, *, debug: bool = False) -> None:
    """Route every categorized error through `translate`.

    Unknown errors are left to the recovery middleware.
    """

    async def _translate(_: Request, exc: Exception) -> Response:
        return translate(exc, debug=debug).to_response()

    app.add_exception_handler(HTTPException, _translate)
    app.add_exception_handler(de.ErrorResponse, _translate)
    app.add_exception_handler(de.UpstreamAPIError, _translate)
