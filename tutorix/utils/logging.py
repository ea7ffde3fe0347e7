# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Structured logging for the auth core.

structlog renders events as JSON in production and as console output in
development. Credential material is masked before rendering: any event
key naming a password, passcode, secret or token is replaced by
``REDACTED``.

Example:
    >>> setup_logging(get_settings())
    >>> logger = get_logger(__name__)
    >>> logger.info("session_rotated", user_id=12, platform="ios")
"""

import logging
import sys
from typing import TYPE_CHECKING, Any, MutableMapping

import structlog
from structlog.types import Processor

if TYPE_CHECKING:
    from tutorix.core.config.settings import Settings

REDACTED = "***"

SENSITIVE_KEYS = frozenset(
    {
        "password",
        "new_password",
        "password_hash",
        "code",
        "otp",
        "otp_hash",
        "token",
        "token_hash",
        "access_token",
        "refresh_token",
        "secret",
        "secret_key",
    }
)

QUIET_LOGGERS = ("sqlalchemy", "sqlalchemy.engine", "asyncio")


def redact_sensitive(
    logger: Any,
    method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Mask credential values in an event dict."""
    for key in event_dict.keys() & SENSITIVE_KEYS:
        event_dict[key] = REDACTED
    return event_dict


def build_processors(json_output: bool) -> list[Processor]:
    """Processor chain for console or JSON rendering."""
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        redact_sensitive,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if json_output:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))
    return processors


def setup_logging(settings: "Settings") -> None:
    """Configure structlog and the stdlib root logger.

    Module loggers created with ``logging.getLogger(__name__)`` write
    through the root handler at the configured level.
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    json_output = not (settings.is_development or settings.debug)

    structlog.configure(
        processors=build_processors(json_output),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s", stream=sys.stdout, level=level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger("tutorix").setLevel(level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger named after the calling module."""
    return structlog.get_logger(name)


def bind_context(**kwargs: object) -> None:
    """Bind request-scoped values such as request_id or user_id."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Drop request-scoped values at the end of a request."""
    structlog.contextvars.clear_contextvars()
