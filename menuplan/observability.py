from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional, TextIO

import structlog
from structlog import dev

from .config import Settings

_LOGGING_CONFIGURED = False
_SENTRY_CONFIGURED = False

# Request bodies carry the user's body metrics and medical conditions.
SENSITIVE_REQUEST_FIELDS = frozenset(
    {"weight", "height", "age", "gender", "bmi", "medicalConditions", "allergies"}
)

# These libraries log every HTTP exchange at INFO.
_CHATTY_LOGGERS = ("httpx", "httpcore", "openai")


def configure_logging(json_logs: bool, level: str = "INFO", *, stream: Optional[TextIO] = None) -> None:
    """Route stdlib and structlog records through one structlog formatter.

    Context bound with :func:`generation_context` (seed, attempt, variant)
    is merged into every record, including ones emitted through plain
    ``logging.getLogger(__name__)`` loggers.
    """
    global _LOGGING_CONFIGURED
    if _LOGGING_CONFIGURED:
        return

    log_level = getattr(logging, level.upper(), logging.INFO)
    timestamper = structlog.processors.TimeStamper(fmt="iso", utc=True)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        timestamper,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_logs:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer(sort_keys=True)
    else:
        renderer = dev.ConsoleRenderer(colors=False)

    # stdout is reserved for the CLI's menu output.
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=[
                structlog.contextvars.merge_contextvars,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                timestamper,
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(logger_name).handlers.clear()
        logging.getLogger(logger_name).propagate = True
        logging.getLogger(logger_name).setLevel(log_level)
    for logger_name in _CHATTY_LOGGERS:
        logging.getLogger(logger_name).setLevel(max(log_level, logging.WARNING))

    _LOGGING_CONFIGURED = True


@contextmanager
def generation_context(**values: Any) -> Iterator[None]:
    """Bind menu generation fields (seed, attempt, ...) to every log record inside the block."""
    with structlog.contextvars.bound_contextvars(**values):
        yield


def scrub_menu_request(event: Dict[str, Any], hint: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Sentry ``before_send`` hook that masks personal fields of a menu request body."""
    data = (event.get("request") or {}).get("data")
    if isinstance(data, dict):
        event["request"]["data"] = {
            key: "[Filtered]" if key in SENSITIVE_REQUEST_FIELDS else value for key, value in data.items()
        }
    return event


def init_sentry(settings: Settings) -> None:
    """Initialise Sentry when a DSN is configured."""
    global _SENTRY_CONFIGURED
    if _SENTRY_CONFIGURED or not settings.sentry_dsn:
        return

    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        traces_sample_rate=settings.sentry_traces_sample_rate,
        integrations=[
            FastApiIntegration(),
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
        ],
        before_send=scrub_menu_request,
        send_default_pii=False,
    )

    _SENTRY_CONFIGURED = True
