import logging
import threading
from typing import Dict, Optional

from adminserver.domain.errors import InvalidLogLevel
from adminserver.domain.ports.log_levels import LogLevelPort

TRACE = 5
logging.addLevelName(TRACE, 'TRACE')

LEVELS: Dict[str, int] = {
    'trace': TRACE,
    'debug': logging.DEBUG,
    'info': logging.INFO,
    'warn': logging.WARNING,
    'warning': logging.WARNING,
    'error': logging.ERROR,
    'fatal': logging.CRITICAL,
    'critical': logging.CRITICAL,
    'panic': logging.CRITICAL,
}


def parse_level(name: str) -> int:
    try:
        return LEVELS[name.strip().lower()]
    except (KeyError, AttributeError):
        raise InvalidLogLevel(f'not a valid log level: "{name}"')


class LogLevelController(LogLevelPort):
    """Runtime level switch for one logger (the root logger by default)."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or logging.getLogger()
        self._lock = threading.Lock()

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    @property
    def level(self) -> str:
        return logging.getLevelName(self._logger.getEffectiveLevel()).lower()

    def set_level(self, name: str) -> None:
        level = parse_level(name)
        with self._lock:
            self._logger.setLevel(level)
