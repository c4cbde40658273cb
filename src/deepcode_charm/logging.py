"""Logging configuration for DeepCode Charm.

Everything goes through structlog rendered by stdlib handlers:

- console: colored in development, JSON otherwise
- ``<prefix>.log``: every event as JSON (when file logging is on)
- ``<prefix>_security.log``: only the security loggers, so forensic records
  can be kept and shipped separately from the main log
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

import structlog

from deepcode_charm.config import Settings, get_settings

SECURITY_LOGGER_NAME = "deepcode_charm.discord.security"

_SHARED_PROCESSORS = [
    structlog.contextvars.merge_contextvars,
    structlog.processors.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.StackInfoRenderer(),
    structlog.dev.set_exc_info,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
]


def _json_formatter() -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    )


def _rotating_handler(path: str, settings: Settings, level: int) -> RotatingFileHandler | None:
    try:
        handler = RotatingFileHandler(
            filename=path,
            maxBytes=settings.log_file_max_bytes,
            backupCount=settings.log_file_backup_count,
            encoding="utf-8",
        )
    except OSError as e:
        print(f"Warning: Could not open log file {path}: {e}", file=sys.stderr)
        return None
    handler.setLevel(level)
    handler.setFormatter(_json_formatter())
    return handler


def setup_logging() -> None:
    """Configure structured logging.

    Safe to call more than once; handlers from an earlier call are replaced.
    """
    settings = get_settings()
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(log_level)

    security_logger = logging.getLogger(SECURITY_LOGGER_NAME)
    for handler in list(security_logger.handlers):
        security_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                (
                    structlog.dev.ConsoleRenderer(colors=True)  # type: ignore[list-item]
                    if settings.is_development
                    else structlog.processors.JSONRenderer()
                ),
            ]
        )
    )
    root.addHandler(console_handler)

    log_to_file = settings.log_to_file
    if log_to_file:
        try:
            Path(settings.log_directory).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            # Fall back to console-only logging
            print(f"Warning: Could not create log directory: {e}", file=sys.stderr)
            log_to_file = False

    if log_to_file:
        main_handler = _rotating_handler(settings.log_file_path, settings, log_level)
        if main_handler is not None:
            root.addHandler(main_handler)
        # Security events are WARNING and above
        security_handler = _rotating_handler(
            settings.security_log_file_path, settings, logging.WARNING
        )
        if security_handler is not None:
            security_logger.addHandler(security_handler)

    structlog.configure(
        processors=[*_SHARED_PROCESSORS, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Reduce noise from discord.py internals
    logging.getLogger("discord").setLevel(logging.WARNING)
    logging.getLogger("discord.gateway").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger instance."""
    return structlog.get_logger(name)  # type: ignore[no-any-return]
