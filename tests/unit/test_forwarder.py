"""Tests for relaying accepted calls to the target."""

from __future__ import annotations

import httpx
import pytest
from fastapi.testclient import TestClient

from strapi_hook.app import create_app
from strapi_hook.config import AppConfig
from strapi_hook.errors import ForwardErrorCode
from strapi_hook.forwarder import Forwarder, filter_headers

TARGET = "http://upstream.test:10080/api"


def _client(sink, handler) -> TestClient:
    config = AppConfig(target=TARGET)
    forwarder = Forwarder(config.target, transport=httpx.MockTransport(handler))
    return TestClient(create_app(config=config, sink=sink, forwarder=forwarder))


def test_payload_and_headers_are_relayed_to_target(sink) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            content=b"accepted",
            headers={"content-type": "text/plain", "x-upstream": "cms", "connection": "close"},
        )

    payload = b'{"event":"media.create","media":{"id":3}}'
    response = _client(sink, handler).post(
        "/strapi",
        content=payload,
        headers={"content-type": "application/json", "authorization": "Bearer t"},
    )

    (upstream_request,) = seen
    assert upstream_request.method == "POST"
    assert str(upstream_request.url) == TARGET
    assert upstream_request.content == payload
    assert upstream_request.headers["content-type"] == "application/json"
    assert upstream_request.headers["authorization"] == "Bearer t"
    assert upstream_request.headers["host"] == "upstream.test:10080"

    assert response.status_code == 200
    assert response.content == b"accepted"
    assert response.headers["x-upstream"] == "cms"
    assert response.headers["content-length"] == "8"
    assert "connection" not in response.headers


def test_upstream_error_status_is_passed_through(sink) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(422, json={"error": "invalid entry"})

    response = _client(sink, handler).post("/strapi", content=b"{}")

    assert response.status_code == 422
    assert response.json() == {"error": "invalid entry"}
    assert sink.records[0].status == 422
    assert sink.errors == []


def test_timeout_maps_to_gateway_timeout(sink) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    response = _client(sink, handler).post("/strapi", content=b"{}")

    assert response.status_code == 504
    assert response.text == "Gateway Timeout\n"
    ((message, exc, fields),) = sink.errors
    assert message == "Error while forwarding request"
    assert exc.code is ForwardErrorCode.TIMEOUT
    assert fields["target"] == TARGET
    assert sink.records[0].status == 504


def test_unreachable_target_maps_to_bad_gateway(sink) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    response = _client(sink, handler).post("/strapi", content=b"{}")

    assert response.status_code == 502
    assert response.text == "Bad Gateway\n"
    assert sink.errors[0][1].code is ForwardErrorCode.UNREACHABLE


def test_filter_headers_drops_hop_by_hop_entries() -> None:
    headers = [("Connection", "keep-alive"), ("Host", "a"), ("X-Trace", "1")]

    assert filter_headers(headers, {"connection", "host"}) == [("X-Trace", "1")]


@pytest.mark.parametrize("secret_target", ["http://user:pw@upstream.test/api?token=abc"])
def test_failure_details_redact_target_credentials(sink, secret_target: str) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    config = AppConfig(target=secret_target)
    forwarder = Forwarder(config.target, transport=httpx.MockTransport(handler))
    client = TestClient(create_app(config=config, sink=sink, forwarder=forwarder))

    client.post("/strapi", content=b"{}")

    assert sink.errors[0][2]["target"] == "http://***@upstream.test/api?token=***"
