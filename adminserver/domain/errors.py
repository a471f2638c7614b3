import json
from http import HTTPStatus
from typing import Any, Dict, Optional, Tuple, Union


def _phrase(status: int) -> str:
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return ''


class ErrorResponse(Exception):
    """Base class for self-rendering errors.

    Raise subclasses of this from route handlers when the failure already
    knows how it should look to the client. The error translator writes the
    status and body returned by `render()` without inspecting them.
    """

    status = 500
    type = 'Error'

    def __init__(self, message: str = '', *, status: Optional[int] = None) -> None:
        if status is not None:
            self.status = status
        self.message = message or _phrase(self.status)
        super().__init__(self.message)

    def render(self) -> Tuple[int, Dict[str, Any]]:
        return self.status, {'type': self.type, 'message': self.message}


# 4xx
class BadRequest(ErrorResponse):
    status = 400
    type = 'BadRequest'


class Unauthorized(ErrorResponse):
    status = 401
    type = 'Unauthorized'


class Forbidden(ErrorResponse):
    status = 403
    type = 'Forbidden'


class NotFound(ErrorResponse):
    status = 404
    type = 'NotFound'


class MethodNotAllowed(ErrorResponse):
    status = 405
    type = 'MethodNotAllowed'


class Conflict(ErrorResponse):
    status = 409
    type = 'Conflict'


# 5xx
class InternalServerError(ErrorResponse):
    status = 500
    type = 'InternalServerError'


class UpstreamAPIError(Exception):
    """Wraps a structured status returned by the orchestration API.

    `status` is the upstream status object (kind, apiVersion, status, message,
    reason, details, code). It is passed to the client verbatim, so only wrap
    statuses whose message is safe to expose.
    """

    def __init__(self, status: Dict[str, Any]) -> None:
        self.status = dict(status)
        super().__init__(self.status.get('message') or self.status.get('reason') or 'upstream error')

    @property
    def code(self) -> Optional[int]:
        return self.status.get('code')

    @property
    def reason(self) -> Optional[str]:
        return self.status.get('reason')

    @classmethod
    def from_body(cls, raw: Union[str, bytes], *, code: Optional[int] = None) -> 'UpstreamAPIError':
        try:
            status = json.loads(raw)
        except ValueError:
            status = None
        if not isinstance(status, dict):
            text = raw.decode('utf-8', 'replace') if isinstance(raw, bytes) else raw
            status = {
                'kind': 'Status',
                'apiVersion': 'v1',
                'status': 'Failure',
                'message': text.strip(),
            }
        if code is not None:
            status.setdefault('code', code)
        return cls(status)


class ListenerError(Exception):
    """Raised when the transport cannot bind its listening address."""


class ServerStateError(RuntimeError):
    """Raised when a lifecycle operation does not match how the server was started."""


class InvalidLogLevel(ValueError):
    pass


class DuplicateVariable(KeyError):
    def __str__(self) -> str:
        return f'reuse of published variable name: {self.args[0]!r}'
