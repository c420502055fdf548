"""Method-based dispatch for the gateway path."""

from __future__ import annotations

from http import HTTPStatus

from starlette.requests import Request
from starlette.responses import Response
from starlette.types import Receive, Scope, Send

from .errors import ForwardError, forward_error_status, status_response
from .forwarder import Forwarder
from .logging import RequestLogSink

FORBIDDEN_METHODS = frozenset({"GET", "PUT", "DELETE"})


class MethodDispatcher:
    """Rejects read/update/delete verbs and forwards POSTs to the target.

    Mounted as a plain ASGI endpoint so the router hands over every verb,
    including ones it does not know.
    """

    def __init__(self, forwarder: Forwarder, sink: RequestLogSink) -> None:
        self._forwarder = forwarder
        self._sink = sink

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        response = await self.dispatch(Request(scope, receive=receive))
        await response(scope, receive, send)

    async def dispatch(self, request: Request) -> Response:
        method = request.method.upper()
        if method == "POST":
            return await self._forward(request)
        if method in FORBIDDEN_METHODS:
            return status_response(HTTPStatus.FORBIDDEN)
        return status_response(HTTPStatus.NOT_IMPLEMENTED)

    async def _forward(self, request: Request) -> Response:
        try:
            return await self._forwarder.relay(request)
        except ForwardError as exc:
            self._sink.error(exc, "Error while forwarding request", code=exc.code.value, **exc.details)
            return status_response(forward_error_status(exc))
