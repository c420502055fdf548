"""Global test fixtures and environment setup."""

from __future__ import annotations

import os
from typing import Any

import pytest

from strapi_hook.audit import AuditRecord
from strapi_hook.constants import ENV_PREFIX
from strapi_hook.logging import RequestLogSink


class RecordingSink(RequestLogSink):
    """Sink that keeps audit records and errors in memory."""

    def __init__(self) -> None:
        super().__init__()
        self.records: list[AuditRecord] = []
        self.errors: list[tuple[str, BaseException, dict[str, Any]]] = []

    def log_request(self, record: AuditRecord) -> None:
        self.records.append(record)

    def error(self, exc: BaseException, message: str, **fields: Any) -> None:
        self.errors.append((message, exc, fields))


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    # Keep a developer's own settings and ~/.strapi-hook.toml out of the tests.
    for name in list(os.environ):
        if name.startswith(ENV_PREFIX):
            monkeypatch.delenv(name)
    monkeypatch.setenv("HOME", str(tmp_path))


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()
