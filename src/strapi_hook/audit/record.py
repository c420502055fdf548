"""Audit record capturing one request/response pair."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not a JSON value")


def _finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"{text} overflows a float")
    return value


def _strict_loads(data: bytes) -> Any:
    # NaN and Infinity would make the rendered log line invalid JSON.
    return json.loads(data, parse_constant=_reject_constant, parse_float=_finite_float)


def is_json(data: bytes) -> bool:
    try:
        _strict_loads(data)
    except (ValueError, RecursionError):
        return False
    return True


def render_body(data: bytes) -> bytes:
    """Return the logged representation of a payload.

    Valid JSON is kept byte-for-byte so it can be embedded as-is; anything
    else becomes an escaped JSON string literal.
    """
    if is_json(data):
        return data
    return json.dumps(data.decode("utf-8", "backslashreplace")).encode("utf-8")


def _embed(data: bytes) -> Any:
    # Logged bodies are JSON values, never raw byte strings.
    try:
        return _strict_loads(data)
    except (ValueError, RecursionError):
        return data.decode("utf-8", "backslashreplace")


@dataclass
class AuditRecord:
    """Request and response metadata for a single call."""

    method: str = ""
    url: str = ""
    user_agent: str = ""
    referer: str = ""
    protocol: str = ""
    host: str = ""
    remote_ip: str = ""
    server_ip: str = ""
    request_body: bytes = b""
    status: int = 0
    response_body: bytes = b""

    def to_log_fields(self) -> dict[str, Any]:
        return {
            "host": self.host,
            "method": self.method,
            "url": self.url,
            "agent": self.user_agent,
            "referer": self.referer,
            "protocol": self.protocol,
            "remoteIp": self.remote_ip,
            "serverIp": self.server_ip,
            "status": self.status,
            "request": _embed(self.request_body),
            "response": _embed(self.response_body),
        }
