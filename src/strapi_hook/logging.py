"""Logging utilities and the request log sink for the gateway."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, NoReturn, cast

import structlog

if TYPE_CHECKING:  # pragma: no cover
    from .audit.record import AuditRecord

DEFAULT_LOG_LEVEL = "INFO"
REQUEST_EVENT = "http.request"


def setup_logging(level: str = DEFAULT_LOG_LEVEL) -> None:
    """Configure structlog for JSON output with contextvars support."""
    log_level = _coerce_log_level(level)

    structlog.reset_defaults()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        cache_logger_on_first_use=True,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
    )

    logging.basicConfig(level=log_level, format="%(message)s")


def _coerce_log_level(level: str) -> int:
    name = level.upper()
    numeric = logging.getLevelName(name)
    if isinstance(numeric, int):
        return numeric
    return logging.INFO


def get_logger(name: str | None = None) -> structlog.types.FilteringBoundLogger:
    return cast(structlog.types.FilteringBoundLogger, structlog.get_logger(name))


def bind_context(**kwargs: Any) -> None:
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context(*keys: str) -> None:
    if keys:
        structlog.contextvars.unbind_contextvars(*keys)
    else:
        structlog.contextvars.clear_contextvars()


class RequestLogSink:
    """Destination for audit records and request-scoped failures.

    One instance is built at startup and shared by every in-flight call;
    the underlying structlog logger is safe for concurrent use.
    """

    def __init__(self, logger: Any | None = None) -> None:
        self._logger = logger if logger is not None else get_logger("strapi_hook.audit")

    def log_request(self, record: AuditRecord) -> None:
        """Emit one completed request/response pair as a single event."""
        self._logger.info(REQUEST_EVENT, **record.to_log_fields())

    def error(self, exc: BaseException, message: str, **fields: Any) -> None:
        self._logger.error(message, error=str(exc), errorType=type(exc).__name__, **fields)

    def fatal(self, exc: BaseException, message: str, **fields: Any) -> NoReturn:
        self._logger.critical(message, error=str(exc), errorType=type(exc).__name__, **fields)
        raise SystemExit(1)
