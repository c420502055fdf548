"""HTTP audit middleware."""

from __future__ import annotations

from http import HTTPStatus

from starlette.types import ASGIApp, Receive, Scope, Send

from ..errors import status_response
from ..logging import RequestLogSink
from .record import AuditRecord
from .recorder import ResponseRecorder
from .request import RequestAuditor


class AuditMiddleware:
    """Audits every HTTP call and releases the buffered response unchanged.

    Implemented as pure ASGI middleware so the inner application writes into a
    :class:`ResponseRecorder` instead of the connection; the recorded response
    is copied to the client before the audit record is logged.
    """

    def __init__(self, app: ASGIApp, sink: RequestLogSink) -> None:
        self.app = app
        self._sink = sink
        self._auditor = RequestAuditor(sink)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        record, replay = await self._auditor.capture(scope, receive)
        recorder = ResponseRecorder()

        try:
            await self.app(scope, replay, recorder)
        except Exception:
            if recorder.status is None:
                # Same bytes the outer error handler would send; once a
                # response has started it sends nothing more.
                await status_response(HTTPStatus.INTERNAL_SERVER_ERROR)(scope, replay, recorder)
            await self._release(recorder, send, record)
            raise

        await self._release(recorder, send, record)

    async def _release(self, recorder: ResponseRecorder, send: Send, record: AuditRecord) -> None:
        try:
            await recorder.flush(send)
        except OSError as exc:
            self._sink.error(exc, "Error while responding to request", url=record.url)

        record.status = recorder.effective_status
        record.response_body = recorder.body
        self._sink.log_request(record)
