"""Tests for the indexing service HTTP client."""

from __future__ import annotations

import base64
import json

import httpx
import pytest

from mbox_indexer.core.config import DeliverySettings
from mbox_indexer.transport.http_client import DeliveryError, SearchiskoClient


def _settings(**overrides: object) -> DeliverySettings:
    values: dict[str, object] = {
        "service_host": "http://search.example.org",
        "service_path": "/v1/rest/content/",
        "content_type": "jbossorg_mailing_list",
        "username": "indexer",
        "password": "secret",
    }
    values.update(overrides)
    return DeliverySettings(**values)


def test_post_sends_document_with_basic_auth() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"status": "insert"})

    with SearchiskoClient(
        _settings(), max_connections=3, transport=httpx.MockTransport(handler)
    ) as client:
        response = client.post('{"subject": "Hi"}', "51921A3C.8020504@example.org")

    assert response == {"status": "insert"}
    request = seen[0]
    assert request.method == "POST"
    assert request.url.raw_path == (
        b"/v1/rest/content/jbossorg_mailing_list/51921A3C.8020504%40example.org"
    )
    expected = base64.b64encode(b"indexer:secret").decode("ascii")
    assert request.headers["Authorization"] == f"Basic {expected}"
    assert request.headers["Content-Type"].startswith("application/json")
    assert json.loads(request.content) == {"subject": "Hi"}


def test_document_id_is_fully_quoted() -> None:
    client = SearchiskoClient(
        _settings(), max_connections=1, transport=httpx.MockTransport(lambda _: httpx.Response(200))
    )
    try:
        assert client.endpoint("a/b c") == "/v1/rest/content/jbossorg_mailing_list/a%2Fb%20c"
    finally:
        client.close()


def test_empty_response_body_returns_none() -> None:
    with SearchiskoClient(
        _settings(username=None, password=None),
        max_connections=1,
        transport=httpx.MockTransport(lambda request: httpx.Response(204)),
    ) as client:
        assert client.post("{}", "id") is None


def test_error_status_raises_delivery_error() -> None:
    with SearchiskoClient(
        _settings(),
        max_connections=1,
        transport=httpx.MockTransport(lambda request: httpx.Response(503, text="down")),
    ) as client:
        with pytest.raises(DeliveryError, match="503"):
            client.post("{}", "id")


def test_transport_error_raises_delivery_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with SearchiskoClient(
        _settings(), max_connections=1, transport=httpx.MockTransport(handler)
    ) as client:
        with pytest.raises(DeliveryError, match="connection refused"):
            client.post("{}", "id")


def test_max_connections_must_be_positive() -> None:
    with pytest.raises(ValueError):
        SearchiskoClient(_settings(), max_connections=0)
