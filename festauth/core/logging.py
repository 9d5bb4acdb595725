"""structlog setup for festauth.

Passwords, session tokens and reset tokens must never reach the log
output. Callers are expected not to pass them, and ``scrub_secrets``
masks any event key that looks like one anyway. E-mail addresses are
logged through ``redact_email``.
"""

import logging
import sys

import structlog

from festauth.core.config import get_settings

_SECRET_KEYS = frozenset({"password", "password_hash", "token", "reset_token", "authorization", "cookie"})
_MASK = "***"

_configured = False


def scrub_secrets(logger, method_name, event_dict):
    for key in event_dict.keys() & _SECRET_KEYS:
        event_dict[key] = _MASK
    return event_dict


def redact_email(email: str | None) -> str:
    """Shorten an e-mail address for log output (``al***@example.com``)."""
    if not email or "@" not in email:
        return "redacted"
    local, domain = email.split("@", 1)
    return f"{local[:2]}***@{domain}"


def _renderer(debug: bool) -> list[structlog.types.Processor]:
    if debug:
        return [structlog.dev.ConsoleRenderer(colors=True)]
    return [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]


def configure_logging() -> None:
    """Idempotent; every ``get_logger`` call goes through here first."""
    global _configured
    if _configured:
        return
    settings = get_settings()
    level = logging.getLevelName(settings.log_level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            scrub_secrets,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            *_renderer(settings.app_debug),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        # add_logger_name needs stdlib loggers (they carry a .name)
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    # uvicorn and SQLAlchemy log through stdlib
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    _configured = True


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    configure_logging()
    return structlog.get_logger(name)
