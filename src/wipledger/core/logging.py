# src/wipledger/core/logging.py
"""Logging setup for the wipledger CLI.

structlog events and stdlib records (SQLAlchemy's) share one stderr handler
whose ProcessorFormatter renders either JSON lines or console output.
stdout is left to command output such as ``wipledger ledger --json``.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import ProcessorFormatter

# Capped at WARNING even under --verbose; statement echo drowns the ledger logs
_QUIET_LOGGERS = ("sqlalchemy",)

_PRE_CHAIN: list[Any] = [
    structlog.contextvars.merge_contextvars,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
]


def configure_logging(*, json_output: bool = False, level: str = "INFO") -> None:
    """Install the stderr handler and point structlog at stdlib logging.

    Safe to call again: the CLI configures once from flags, then again
    after settings are loaded.
    """
    numeric_level = logging.getLevelNamesMapping()[level.upper()]

    if json_output:
        renderers: list[Any] = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        renderers = [structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())]

    structlog.configure(
        processors=[*_PRE_CHAIN, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        ProcessorFormatter(
            processors=[ProcessorFormatter.remove_processors_meta, *renderers],
            foreign_pre_chain=_PRE_CHAIN,
        )
    )
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(numeric_level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))
