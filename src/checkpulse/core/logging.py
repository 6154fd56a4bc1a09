# src/checkpulse/core/logging.py
"""Structured logging for checkpulse.

structlog loggers and stdlib loggers (dynaconf, typer) share one handler on
the root logger. Its ProcessorFormatter renders both through the same
processor chain, as JSON lines or as plain console output. Log lines go to
stderr, leaving stdout for command output.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import ProcessorFormatter

# Chatty third-party loggers, never below WARNING
_NOISY_LOGGERS: tuple[str, ...] = ("dynaconf",)


def configure_logging(*, json_output: bool = False, level: str = "INFO") -> None:
    """Configure structlog and stdlib logging.

    Safe to call more than once; each call replaces the root handler.

    Args:
        json_output: Emit JSON lines instead of console output
        level: DEBUG, INFO, WARNING or ERROR
    """
    log_level = getattr(logging, level.upper())

    pre_chain: list[Any] = [
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    final_processors: list[Any] = [ProcessorFormatter.remove_processors_meta]
    if json_output:
        final_processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        final_processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=[*pre_chain, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Tests reconfigure between runs
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        ProcessorFormatter(
            processors=final_processors,
            foreign_pre_chain=pre_chain,
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Bound structlog logger for a module (pass __name__)."""
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger
