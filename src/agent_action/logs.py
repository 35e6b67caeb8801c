"""Structured logging setup shared by the entry points.

Everything is written to stderr: the MCP servers speak their protocol over
stdout, and the prepare step reserves stdout for workflow commands.
"""

import logging
import sys
from typing import Optional, TextIO

import structlog


def configure_logging(level: str = "INFO", stream: Optional[TextIO] = None) -> None:
    """Configure structured JSON logging.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR).
        stream: Destination of log lines; stderr unless given.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stderr,
        level=getattr(logging, level.upper(), logging.INFO),
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
