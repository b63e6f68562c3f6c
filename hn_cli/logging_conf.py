"""Logging configuration built around structlog JSON logging."""

from __future__ import annotations

import logging.config
from pathlib import Path

import structlog

_LOGGING_INITIALISED = False

APP_LOG = "hn.log"
ERROR_LOG = "error.log"


def configure_logging(log_dir: Path | None = None, verbose: bool = False) -> structlog.BoundLogger:
    """Configure structlog + stdlib handlers and return application logger.

    The console only shows warnings unless ``verbose`` is set, so that listing
    output stays readable; the file handlers always receive JSON lines.
    """

    global _LOGGING_INITIALISED
    if _LOGGING_INITIALISED:
        return structlog.get_logger("hn_cli")

    handlers: dict[str, dict] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": "DEBUG" if verbose else "WARNING",
            "formatter": "plain",
        },
    }
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers["app_file"] = {
            "class": "logging.FileHandler",
            "level": "INFO",
            "filename": str(log_dir / APP_LOG),
            "formatter": "plain",
            "encoding": "utf-8",
        }
        handlers["error_file"] = {
            "class": "logging.FileHandler",
            "level": "ERROR",
            "filename": str(log_dir / ERROR_LOG),
            "formatter": "plain",
            "encoding": "utf-8",
        }

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "plain": {
                    "()": "pythonjsonlogger.json.JsonFormatter",
                    "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
                }
            },
            "handlers": handlers,
            "loggers": {
                "hn_cli": {
                    "handlers": list(handlers),
                    "level": "DEBUG" if verbose else "INFO",
                    "propagate": False,
                },
            },
        }
    )

    # Forward structlog events to stdlib logging; JSON rendering happens in the handlers
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
        cache_logger_on_first_use=True,
    )
    _LOGGING_INITIALISED = True
    return structlog.get_logger("hn_cli")


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    """Return the last N lines from a log file."""

    if not path.exists():
        return []
    with path.open("r", encoding="utf-8", errors="ignore") as stream:
        lines = stream.readlines()
    return lines[-line_count:]


__all__ = ["APP_LOG", "ERROR_LOG", "configure_logging", "tail_log"]
