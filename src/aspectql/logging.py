"""Structured logging for aspectql, built on structlog.

Events are dotted names with key/value context: ``query.planned``,
``query.executed``, ``query.timeout`` and ``query.backend_failure`` from the
executor, ``aspect.added``, ``relationship.added`` and
``relationship.removed`` from the writers. Every event carries the emitting
module as ``module``.

Output goes to stderr, rendered for a console on a TTY and as JSON lines
otherwise. The stream is resolved per logger and loggers are not cached, so
a redirected or replaced ``sys.stderr`` (as under the CLI test runner) is
always the one written to.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog


def _stderr_logger(*args: Any) -> structlog.PrintLogger:
    return structlog.PrintLogger(sys.stderr)


def setup_logging(level: str = "INFO") -> None:
    """Configure structlog for console or JSON output on stderr.

    Unknown level names fall back to INFO.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer()
            if sys.stderr.isatty()
            else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper(), logging.INFO)
        ),
        logger_factory=_stderr_logger,
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a logger whose events carry ``name`` as ``module``."""
    if name is None:
        return structlog.get_logger()  # type: ignore[no-any-return]
    return structlog.get_logger(module=name)  # type: ignore[no-any-return]
