"""FastAPI application factory for the strapi-hook gateway."""

from __future__ import annotations

import time
import uuid
from collections.abc import Awaitable
from typing import Callable

from fastapi import FastAPI, Request
from prometheus_client import Counter, Gauge, Histogram
from starlette import status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp

from .audit import AuditMiddleware
from .config import AppConfig, load_config
from .constants import CORRELATION_HEADER
from .dispatch import MethodDispatcher
from .errors import redact_sensitive, status_response
from .forwarder import Forwarder
from .logging import (
    DEFAULT_LOG_LEVEL,
    RequestLogSink,
    bind_context,
    clear_context,
    get_logger,
    setup_logging,
)

UNMATCHED_ROUTE = "unmatched"
OTHER_METHOD = "OTHER"
_KNOWN_METHODS = frozenset(
    {"GET", "HEAD", "POST", "PUT", "DELETE", "CONNECT", "OPTIONS", "TRACE", "PATCH"}
)

_REQUEST_COUNT = Counter(
    "strapi_hook_http_requests_total",
    "Total HTTP requests processed by the gateway.",
    ("method", "route", "status_code"),
)
_REQUEST_LATENCY = Histogram(
    "strapi_hook_http_request_duration_seconds",
    "Latency of HTTP requests handled by the gateway.",
    ("method", "route", "status_code"),
    buckets=(
        0.005,
        0.01,
        0.025,
        0.05,
        0.1,
        0.25,
        0.5,
        1.0,
        2.0,
        5.0,
        10.0,
    ),
)
_REQUEST_IN_PROGRESS = Gauge(
    "strapi_hook_http_requests_in_progress",
    "Concurrent HTTP requests being processed by the gateway.",
    ("method", "route"),
)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind correlation IDs and request metadata to the log context."""

    def __init__(self, app: ASGIApp, gateway_path: str) -> None:
        super().__init__(app)
        self._gateway_path = gateway_path
        self._logger = get_logger(__name__)

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER, str(uuid.uuid4()))
        request.state.correlation_id = correlation_id
        route = route_label(request.url.path, self._gateway_path)
        method = request.method.upper()
        if method not in _KNOWN_METHODS:
            method = OTHER_METHOD
        labels = {"method": method, "route": route}
        _REQUEST_IN_PROGRESS.labels(**labels).inc()
        bind_context(
            correlation_id=correlation_id,
            http_method=request.method,
            http_path=str(request.url.path),
        )
        start = time.perf_counter()
        status_code: int | None = None

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        except Exception:
            duration_ms = (time.perf_counter() - start) * 1000
            self._logger.exception("request.error", durationMs=duration_ms)
            raise
        finally:
            duration_seconds = time.perf_counter() - start
            status_value = str(status_code or status.HTTP_500_INTERNAL_SERVER_ERROR)
            _REQUEST_LATENCY.labels(method=method, route=route, status_code=status_value).observe(
                duration_seconds
            )
            _REQUEST_COUNT.labels(method=method, route=route, status_code=status_value).inc()
            _REQUEST_IN_PROGRESS.labels(**labels).dec()
            clear_context("correlation_id", "http_method", "http_path")


def route_label(path: str, gateway_path: str) -> str:
    """Metric label for a request path.

    Anything outside the gateway path shares one label so arbitrary 404
    paths cannot grow the number of series.
    """
    if path == gateway_path:
        return gateway_path
    return UNMATCHED_ROUTE


def create_app(
    config: AppConfig | None = None,
    log_level: str | None = None,
    *,
    sink: RequestLogSink | None = None,
    forwarder: Forwarder | None = None,
) -> FastAPI:
    """Create the gateway application.

    ``sink`` and ``forwarder`` default to instances built from ``config``;
    they are created once here and shared by every request.
    """
    if config is None:
        config = load_config()

    setup_logging(log_level or config.log_level or DEFAULT_LOG_LEVEL)
    logger = get_logger(__name__)

    if sink is None:
        sink = RequestLogSink()
    if forwarder is None:
        forwarder = Forwarder(config.target, timeout=config.forward_timeout_seconds)
    dispatcher = MethodDispatcher(forwarder, sink)

    app = FastAPI(title="strapi-hook", docs_url=None, redoc_url=None, openapi_url=None)
    app.state.config = config
    app.state.sink = sink
    app.state.forwarder = forwarder

    app.add_middleware(AuditMiddleware, sink=sink)
    app.add_middleware(RequestContextMiddleware, gateway_path=config.path)

    # An ASGI endpoint gets no method list from the router, so every verb
    # reaches the dispatcher.
    app.add_route(config.path, dispatcher, include_in_schema=False)

    @app.exception_handler(Exception)
    async def handle_unexpected_exception(request: Request, exc: Exception) -> Response:
        correlation_id = getattr(request.state, "correlation_id", None)
        logger.exception("http.unhandled_error", correlationId=correlation_id)
        return status_response(status.HTTP_500_INTERNAL_SERVER_ERROR)

    @app.on_event("startup")
    async def _startup_event() -> None:
        logger.info(
            "application.startup",
            path=config.path,
            port=config.port,
            target=redact_sensitive(config.target),
        )

    @app.on_event("shutdown")
    async def _shutdown_event() -> None:
        logger.info("application.shutdown")
        await forwarder.aclose()

    return app
