"""Request side of the audit: metadata extraction and body replay."""

from __future__ import annotations

from typing import Any, Optional, Tuple, Union

from starlette.requests import ClientDisconnect, Request
from starlette.types import Message, Receive, Scope

from ..logging import RequestLogSink
from .record import AuditRecord, render_body

Address = Union[Tuple[str, int], str, None]


def ip_from_host_port(value: str) -> str:
    """Strip the port (and IPv6 brackets) from a ``host:port`` address.

    Returns an empty string when the value carries no port.
    """
    if value.startswith("["):
        end = value.find("]")
        if end < 0 or not value[end + 1 :].startswith(":"):
            return ""
        return value[1:end]
    host, sep, _ = value.rpartition(":")
    if not sep or ":" in host:
        return ""
    return host


def peer_ip(address: Address) -> str:
    """IP of an ASGI ``client``/``server`` address."""
    if address is None:
        return ""
    if isinstance(address, str):
        return ip_from_host_port(address)
    host = str(address[0])
    if host.startswith("[") and host.endswith("]"):
        return host[1:-1]
    return host


def request_target(scope: Scope) -> str:
    raw_path: Optional[bytes] = scope.get("raw_path")
    if raw_path:
        # Not every server strips the query from raw_path.
        target = raw_path.split(b"?", 1)[0].decode("latin-1")
    else:
        target = scope.get("path", "")
    query = scope.get("query_string", b"")
    if query:
        target = f"{target}?{query.decode('latin-1')}"
    return target


class RequestAuditor:
    """Builds the request half of an :class:`AuditRecord`.

    The body is read completely, so the returned ``receive`` callable
    replays the original bytes for whichever handler runs next.
    """

    def __init__(self, sink: RequestLogSink) -> None:
        self._sink = sink

    async def capture(self, scope: Scope, receive: Receive) -> tuple[AuditRecord, Receive]:
        request = Request(scope, receive=receive)
        try:
            body = await request.body()
        except ClientDisconnect as exc:
            self._sink.error(exc, "Unable to read request body", url=request_target(scope))
            body = b""

        record = AuditRecord(
            method=scope.get("method", ""),
            url=request_target(scope),
            user_agent=request.headers.get("user-agent", ""),
            referer=request.headers.get("referer", ""),
            protocol=f"HTTP/{scope.get('http_version', '1.1')}",
            host=request.headers.get("host") or request.url.netloc,
            remote_ip=peer_ip(scope.get("client")),
            server_ip=peer_ip(scope.get("server")),
            request_body=render_body(body),
        )
        return record, _replay(body, receive)


def _replay(body: bytes, receive: Receive) -> Receive:
    delivered = False

    async def replay() -> Message:
        nonlocal delivered
        if delivered:
            # Later reads only wait for disconnect notifications.
            return await receive()
        delivered = True
        message: dict[str, Any] = {"type": "http.request", "body": body, "more_body": False}
        return message

    return replay
