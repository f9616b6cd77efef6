"""Structured logging configuration."""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

# Event keys that may carry provider credentials.
_SECRET_KEYS = frozenset(
    {
        "api_key",
        "auth_token",
        "access_token",
        "authorization",
        "service_role_key",
        "token",
    }
)

_NOISY_LOGGERS = ("uvicorn.access", "httpcore", "httpx", "litellm", "LiteLLM")


def redact_secrets(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Mask credential-looking values before rendering."""
    for key in _SECRET_KEYS.intersection(event_dict):
        value = event_dict[key]
        if value:
            text = str(value)
            event_dict[key] = f"{text[:4]}…" if len(text) > 8 else "***"
    return event_dict


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Configure structlog for Switchboard.

    Gateway code binds ``agent_id``/``provider``/``action`` through
    ``structlog.contextvars`` while a dispatch runs, so every event emitted by
    a provider handler carries the caller correlation without passing it around.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if fmt == "console":
        renderer: structlog.types.Processor = structlog.dev.ConsoleRenderer(colors=True)
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
