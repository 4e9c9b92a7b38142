"""Logging configuration built around structlog JSON logging."""

from __future__ import annotations

import logging
import logging.config
import os
from pathlib import Path

import structlog

_LOGGING_INITIALISED = False

WATCHER_LOG_NAME = "watcher.log"
ERROR_LOG_NAME = "error.log"


def default_log_dir() -> Path:
    env_root = os.environ.get("THREAD_WATCHER_HOME")
    if env_root:
        return Path(env_root).expanduser().resolve() / "logs"
    return Path(__file__).resolve().parents[1] / "logs"


def configure_logging(verbose: bool = False, log_dir: Path | None = None) -> structlog.BoundLogger:
    """Configure structlog + stdlib handlers and return application logger."""

    global _LOGGING_INITIALISED
    log_dir = log_dir or default_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    watcher_log = log_dir / WATCHER_LOG_NAME
    error_log = log_dir / ERROR_LOG_NAME
    watcher_log.touch(exist_ok=True)
    error_log.touch(exist_ok=True)

    if not _LOGGING_INITIALISED:
        level = "DEBUG" if verbose else "INFO"
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
                "handlers": {
                    "console": {
                        "class": "logging.StreamHandler",
                        "level": level,
                        "formatter": "plain",
                    },
                    "watcher_file": {
                        "class": "logging.FileHandler",
                        "level": "INFO",
                        "filename": str(watcher_log),
                        "formatter": "plain",
                        "encoding": "utf-8",
                    },
                    "error_file": {
                        "class": "logging.FileHandler",
                        "level": "ERROR",
                        "filename": str(error_log),
                        "formatter": "plain",
                        "encoding": "utf-8",
                    },
                },
                "loggers": {
                    "thread_watcher": {
                        "handlers": ["console", "watcher_file", "error_file"],
                        "level": level,
                        "propagate": False,
                    },
                    # APScheduler is chatty at INFO; keep it on the file only
                    "apscheduler": {
                        "handlers": ["watcher_file", "error_file"],
                        "level": "WARNING",
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
            cache_logger_on_first_use=True,
        )
        _LOGGING_INITIALISED = True
    return structlog.get_logger("thread_watcher")


def get_logger(component: str) -> structlog.BoundLogger:
    """Return the application logger bound to a component name."""

    return structlog.get_logger(f"thread_watcher.{component}").bind(component=component)


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    """Return the last N lines from a log file."""

    if not path.exists():
        return []
    with path.open("r", encoding="utf-8", errors="ignore") as stream:
        lines = stream.readlines()
    return lines[-line_count:]


__all__ = [
    "ERROR_LOG_NAME",
    "WATCHER_LOG_NAME",
    "configure_logging",
    "default_log_dir",
    "get_logger",
    "tail_log",
]
