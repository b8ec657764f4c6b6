"""Tests for token introspection."""

from __future__ import annotations

import base64
from collections.abc import Iterator
from urllib.parse import parse_qs

import httpx
import pytest
from pytest_httpx import HTTPXMock

from monitoragent.clients.introspect import TokenIntrospector

URL = "https://auth.example.com/oauth2/introspect"


@pytest.fixture
def introspector() -> Iterator[TokenIntrospector]:
    introspector = TokenIntrospector(URL, "agent", "secret")
    yield introspector
    introspector.close()


class TestIsActive:
    """Tests for TokenIntrospector.is_active()."""

    def test_active(self, introspector: TokenIntrospector, httpx_mock: HTTPXMock) -> None:
        """Should post the token with basic auth and read the active flag."""
        httpx_mock.add_response(url=URL, method="POST", json={"active": True, "sub": "user"})

        assert introspector.is_active("abc") is True

        request = httpx_mock.get_request()
        assert request is not None
        assert parse_qs(request.content.decode()) == {"token": ["abc"]}
        expected = base64.b64encode(b"agent:secret").decode()
        assert request.headers["Authorization"] == f"Basic {expected}"

    def test_bearer_prefix_stripped(self, introspector: TokenIntrospector, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=URL, method="POST", json={"active": True})

        assert introspector.is_active("Bearer abc") is True

        request = httpx_mock.get_request()
        assert request is not None
        assert parse_qs(request.content.decode()) == {"token": ["abc"]}

    def test_inactive(self, introspector: TokenIntrospector, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=URL, method="POST", json={"active": False})
        assert introspector.is_active("abc") is False

    def test_server_error(self, introspector: TokenIntrospector, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=URL, method="POST", status_code=500)
        assert introspector.is_active("abc") is False

    def test_transport_error(self, introspector: TokenIntrospector, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_exception(httpx.ConnectError("refused"), url=URL)
        assert introspector.is_active("abc") is False

    def test_invalid_json(self, introspector: TokenIntrospector, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=URL, method="POST", text="not json")
        assert introspector.is_active("abc") is False

    def test_empty_token(self, introspector: TokenIntrospector) -> None:
        """No request is made without a token."""
        assert introspector.is_active("") is False
        assert introspector.is_active(None) is False

    def test_not_configured(self) -> None:
        introspector = TokenIntrospector("", "agent", "secret")
        assert introspector.is_active("abc") is False
