"""Logging for the storefront checkout and the carts service.

Standard library handlers carry the output; structlog shapes the events.
Checkout events routinely carry customer details and design previews, so two
processors run ahead of the renderer: one masks contact fields, the other
shortens long string values such as data URLs.
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

# Keys whose values are replaced before rendering.
MASKED_KEYS = frozenset({"email", "customer_email", "payer_email", "phone", "customer_phone"})

MAX_VALUE_LENGTH = 200

_NOISY_LOGGERS = ("httpx", "httpcore", "asyncio", "protean", "uvicorn.access")


def current_env() -> str:
    return (os.getenv("ENVIRONMENT") or os.getenv("PROTEAN_ENV") or "development").lower()


def get_log_level(env: str | None = None) -> str:
    """``LOG_LEVEL`` wins; otherwise the level follows the environment."""
    env = env or current_env()
    return os.getenv("LOG_LEVEL", LEVELS_BY_ENV.get(env, "INFO")).upper()


def _mask(value: Any) -> str:
    text = str(value)
    if "@" in text:
        local, _, domain = text.partition("@")
        return f"{local[:1]}***@{domain}"
    return f"***{text[-2:]}" if len(text) > 2 else "***"


def mask_contact_details(_logger, _method_name, event_dict: dict) -> dict:
    """Mask email addresses and phone numbers bound onto an event."""
    for key in MASKED_KEYS & event_dict.keys():
        if event_dict[key]:
            event_dict[key] = _mask(event_dict[key])
    return event_dict


def shorten_long_values(_logger, _method_name, event_dict: dict) -> dict:
    """Cut string values past ``MAX_VALUE_LENGTH``; previews can run to megabytes."""
    for key, value in event_dict.items():
        if key != "event" and isinstance(value, str) and len(value) > MAX_VALUE_LENGTH:
            event_dict[key] = f"{value[:MAX_VALUE_LENGTH]}... ({len(value)} chars)"
    return event_dict


def setup_stdlib_logging(log_dir: str | Path = "logs", env: str | None = None) -> None:
    """Route the root logger to stderr and, outside tests, to rotating files."""
    env = env or current_env()
    log_level = get_log_level(env)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    root_logger.addHandler(console_handler)

    if env != "test":
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)

        for filename, level in (("storefront.log", log_level), ("storefront_error.log", logging.ERROR)):
            handler = logging.handlers.RotatingFileHandler(
                filename=log_dir / filename,
                maxBytes=10 * 1024 * 1024,
                backupCount=5,
                encoding="utf-8",
            )
            handler.setLevel(level)
            root_logger.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def build_processors(env: str) -> list:
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        mask_contact_details,
        shorten_long_values,
    ]

    if env in ("production", "staging"):
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=env != "test",
                exception_formatter=structlog.dev.RichTracebackFormatter(show_locals=False, max_frames=4),
            )
        )
    return processors


def configure_logging(log_dir: str | Path = "logs") -> None:
    """Configure stdlib handlers and structlog for the current environment."""
    env = current_env()
    setup_stdlib_logging(log_dir, env)
    structlog.configure(
        processors=build_processors(env),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_checkout_context(**kwargs: Any) -> None:
    """Bind values (order id, step) onto every subsequent log event."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_checkout_context() -> None:
    structlog.contextvars.clear_contextvars()
