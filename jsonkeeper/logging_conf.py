"""Logging configuration built around structlog JSON logging."""

from __future__ import annotations

import logging
import logging.config

import structlog

from .config import LoggingConfig

LOGGER_NAME = "jsonkeeper"


def _handlers(config: LoggingConfig, level: str) -> dict:
    handlers: dict[str, dict] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": "plain",
            "stream": "ext://sys.stderr",
        },
    }
    if config.file_path is not None:
        config.file_path.parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.FileHandler",
            "level": level,
            "filename": str(config.file_path),
            "mode": "a",
            "encoding": "utf-8",
            "formatter": "plain",
        }
    return handlers


def configure_logging(config: LoggingConfig, verbose: bool = False) -> structlog.BoundLogger:
    """Configure structlog + stdlib handlers and return the application logger.

    The returned logger is meant to be handed to the components that log;
    they fall back to ``structlog.get_logger`` only when none is supplied.
    """

    level = "DEBUG" if verbose else config.level.upper()
    handlers = _handlers(config, level)
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "plain": {
                    "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                    "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
                }
            },
            "handlers": handlers,
            "loggers": {
                LOGGER_NAME: {
                    "handlers": list(handlers),
                    "level": level,
                    "propagate": False,
                },
            },
        }
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )
    return structlog.get_logger(LOGGER_NAME)


__all__ = ["LOGGER_NAME", "configure_logging"]
