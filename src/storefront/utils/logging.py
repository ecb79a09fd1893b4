"""Structured logging for the storefront.

structlog renders every event; the standard library owns the handlers so
third-party loggers (uvicorn, protean) end up in the same stream. Console
output is colored in development and JSON lines in production or staging.
A rotating file handler is added only when ``LOG_DIR`` is set.

Request handlers bind ``path``, ``method`` and ``user_id`` with
:func:`add_context`; those keys are merged into every event logged until
:func:`clear_context` runs.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Any

import structlog

LEVELS_BY_ENV = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}

JSON_ENVS = ("production", "staging")


def current_env() -> str:
    return (os.getenv("ENV") or os.getenv("PROTEAN_ENV") or "development").lower()


def log_level() -> str:
    return os.getenv("LOG_LEVEL", LEVELS_BY_ENV.get(current_env(), "INFO")).upper()


def _handlers(level: str, log_dir: str | None) -> list[logging.Handler]:
    console = logging.StreamHandler(sys.stdout)
    handlers: list[logging.Handler] = [console]

    if log_dir:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                filename=path / "storefront.log",
                maxBytes=5 * 1024 * 1024,
                backupCount=3,
                encoding="utf-8",
            )
        )

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter("%(message)s"))
    return handlers


def _processors(env: str) -> list:
    shared = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
    ]
    if env in JSON_ENVS:
        return [*shared, structlog.processors.JSONRenderer()]
    return [*shared, structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]


def configure_logging(level: str | None = None, log_dir: str | None = None) -> None:
    """Install the root handlers and configure structlog on top of them."""
    level = (level or log_level()).upper()
    log_dir = log_dir or os.getenv("LOG_DIR")

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = _handlers(level, log_dir)

    structlog.configure(
        processors=_processors(current_env()),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def add_context(**kwargs: Any) -> None:
    structlog.contextvars.bind_contextvars(**{key: value for key, value in kwargs.items() if value is not None})


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
