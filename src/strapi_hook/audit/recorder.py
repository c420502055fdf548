"""In-memory stand-in for the live response channel."""

from __future__ import annotations

from http import HTTPStatus
from typing import Optional

from starlette.types import Message, Send


class ResponseRecorder:
    """ASGI ``send`` replacement that buffers a complete response.

    Nothing reaches the client until :meth:`flush` is awaited with the real
    ``send`` callable.
    """

    def __init__(self) -> None:
        self.status: Optional[int] = None
        self.headers: list[tuple[bytes, bytes]] = []
        self._body = bytearray()

    async def __call__(self, message: Message) -> None:
        message_type = message["type"]
        if message_type == "http.response.start":
            self.status = int(message["status"])
            self.headers = [(bytes(k), bytes(v)) for k, v in message.get("headers", [])]
        elif message_type == "http.response.body":
            self._body.extend(message.get("body", b""))

    @property
    def body(self) -> bytes:
        return bytes(self._body)

    @property
    def effective_status(self) -> int:
        return self.status if self.status is not None else int(HTTPStatus.OK)

    async def flush(self, send: Send) -> None:
        """Write status, headers and the full body to ``send``."""
        await send(
            {
                "type": "http.response.start",
                "status": self.effective_status,
                "headers": list(self.headers),
            }
        )
        await send({"type": "http.response.body", "body": self.body, "more_body": False})
