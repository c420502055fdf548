"""Error taxonomy and plain status responses."""

from __future__ import annotations

import re
from enum import Enum
from http import HTTPStatus
from typing import Any, Optional

from starlette.responses import PlainTextResponse

_SENSITIVE_PATTERN = re.compile(r"(?i)(token|secret|password|key)=([^\s&]+)")
_USERINFO_PATTERN = re.compile(r"(?i)(https?://)[^/@\s]+@")


class ForwardErrorCode(str, Enum):
    TIMEOUT = "Timeout"
    UNREACHABLE = "Unreachable"


class ForwardError(RuntimeError):
    """Raised when an accepted call could not be relayed to the target."""

    def __init__(
        self,
        message: str,
        *,
        code: ForwardErrorCode,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}


def redact_sensitive(text: str) -> str:
    """Mask credentials embedded in URLs and obvious secrets in messages."""
    text = _USERINFO_PATTERN.sub(lambda m: f"{m.group(1)}***@", text)
    return _SENSITIVE_PATTERN.sub(lambda m: f"{m.group(1)}=***", text)


def default_message(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Unexpected Error"


def status_response(status_code: int) -> PlainTextResponse:
    """Plain-text response whose body is only the standard status phrase."""
    return PlainTextResponse(
        f"{default_message(status_code)}\n",
        status_code=int(status_code),
        headers={"X-Content-Type-Options": "nosniff"},
    )


def forward_error_status(exc: ForwardError) -> HTTPStatus:
    """Map relay failures to the status reported to the caller."""

    status_map = {
        ForwardErrorCode.TIMEOUT: HTTPStatus.GATEWAY_TIMEOUT,
        ForwardErrorCode.UNREACHABLE: HTTPStatus.BAD_GATEWAY,
    }
    return status_map.get(exc.code, HTTPStatus.BAD_GATEWAY)


__all__ = [
    "ForwardError",
    "ForwardErrorCode",
    "default_message",
    "forward_error_status",
    "redact_sensitive",
    "status_response",
]
