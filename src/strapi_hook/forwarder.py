"""Relay of accepted webhook calls to the configured target."""

from __future__ import annotations

from typing import Iterable, Optional

import httpx
from starlette.requests import Request
from starlette.responses import Response

from .errors import ForwardError, ForwardErrorCode, redact_sensitive
from .logging import get_logger

HOP_BY_HOP_HEADERS = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailer",
        "transfer-encoding",
        "upgrade",
    }
)
_REQUEST_EXCLUDED = HOP_BY_HOP_HEADERS | {"host", "content-length"}
# httpx hands back decoded content, so the upstream encoding and length no longer apply.
_RESPONSE_EXCLUDED = HOP_BY_HOP_HEADERS | {"content-length", "content-encoding"}


def filter_headers(
    headers: Iterable[tuple[str, str]], excluded: frozenset[str] | set[str]
) -> list[tuple[str, str]]:
    return [(name, value) for name, value in headers if name.lower() not in excluded]


class Forwarder:
    """POSTs the audited payload to ``target`` and returns the upstream reply.

    No retries are attempted; every call is bounded by ``timeout`` seconds.
    """

    def __init__(
        self,
        target: str,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.target = target
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
        self._logger = get_logger(__name__)

    async def relay(self, request: Request) -> Response:
        payload = await request.body()
        headers = filter_headers(request.headers.items(), _REQUEST_EXCLUDED)
        try:
            upstream = await self._client.post(self.target, content=payload, headers=headers)
        except httpx.TimeoutException as exc:
            raise ForwardError(
                "Target did not respond in time",
                code=ForwardErrorCode.TIMEOUT,
                details={"target": redact_sensitive(self.target)},
            ) from exc
        except httpx.HTTPError as exc:
            raise ForwardError(
                f"Unable to reach target: {exc}",
                code=ForwardErrorCode.UNREACHABLE,
                details={"target": redact_sensitive(self.target)},
            ) from exc

        self._logger.debug(
            "forward.complete",
            target=redact_sensitive(self.target),
            status_code=upstream.status_code,
        )
        response = Response(content=upstream.content, status_code=upstream.status_code)
        for name, value in filter_headers(upstream.headers.multi_items(), _RESPONSE_EXCLUDED):
            response.headers.append(name, value)
        return response

    async def aclose(self) -> None:
        await self._client.aclose()
