"""Logging configuration using loguru: colored console or structured JSON.

Shared by the relay server (Hydra ``logging`` node) and the client core
(any object exposing the same attributes).  Standard-library loggers
(uvicorn, httpx, urllib3, boto) are funnelled into the same sinks.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable
from typing import Any

from loguru import logger

# Chatty at INFO; capped at WARNING once routed into loguru.
QUIET_LOGGERS = ("httpx", "httpcore", "urllib3", "botocore", "boto3", "s3transfer", "uvicorn.access")

_PRETTY_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
    "{extra}"
)


class _LoguruBridge(logging.Handler):
    """Re-emit a stdlib ``LogRecord`` through loguru at the caller's frame."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).bind(stdlib=record.name).log(
            level, record.getMessage()
        )


def route_stdlib_logging(quiet: Iterable[str] = QUIET_LOGGERS) -> None:
    """Send every stdlib log record to loguru and cap *quiet* loggers at WARNING.

    Also strips handlers that libraries (uvicorn in particular) attach to
    their own loggers so records are not printed twice.
    """
    logging.basicConfig(handlers=[_LoguruBridge()], level=0, force=True)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        std = logging.getLogger(name)
        std.handlers = []
        std.propagate = True
    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)


def setup_logging(cfg: Any) -> None:
    """Configure loguru from a ``logging`` config section.

    Parameters
    ----------
    cfg:
        Object with ``level``, ``colored``, ``format`` and optionally ``file``
        attributes.  ``format`` is ``"pretty"`` (colored console) or
        ``"structured"`` (JSON lines).  ``file``, when set, adds a rotating
        JSON-lines file sink at that path.
    """
    level = str(getattr(cfg, "level", "INFO")).upper()
    structured = getattr(cfg, "format", "pretty") == "structured"
    log_file = getattr(cfg, "file", None)

    logger.remove()
    if structured:
        logger.add(sys.stderr, level=level, serialize=True, colorize=False)
    else:
        logger.add(
            sys.stderr,
            level=level,
            format=_PRETTY_FORMAT,
            colorize=bool(getattr(cfg, "colored", True)),
        )
    if log_file:
        logger.add(str(log_file), level=level, serialize=True, rotation="10 MB", retention=5, enqueue=True)

    route_stdlib_logging()
    logger.info("Logging configured", level=level, json_mode=structured, file=log_file)
