"""
Logging setup for the process.

Everything, uvicorn included, goes through the root logger so the
log-level endpoint governs all output.
"""

import logging
import sys
from typing import Optional

from adminserver.adapters.logging.levels import parse_level

LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def configure_logging(level: str = 'info', fmt: Optional[str] = None) -> None:
    logging.basicConfig(
        level=parse_level(level),
        format=fmt or LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        stream=sys.stdout,
        force=True,
    )

    # Requests are already logged by RequestLoggingMiddleware.
    logging.getLogger('uvicorn.access').setLevel(logging.WARNING)
