"""Tests for AsyncHttpClient and status translation."""

import json
from typing import Any

import httpx
import pytest

from nomyo.api.http_client import AsyncHttpClient, Endpoint, raise_for_status
from nomyo.config import ClientConfig
from nomyo.exceptions import (
    APIConnectionError,
    APIError,
    AuthenticationError,
    InvalidRequestError,
    RateLimitError,
    ServerError,
)


class MockTransport(httpx.AsyncBaseTransport):
    """Mock transport for testing."""

    def __init__(self) -> None:
        self._responses: list[httpx.Response | Exception] = []
        self.requests: list[httpx.Request] = []

    def add_response(
        self,
        status_code: int = httpx.codes.OK,
        json_data: dict[str, Any] | None = None,
        content: bytes = b"",
        headers: dict[str, str] | None = None,
    ) -> None:
        if json_data is not None:
            content = json.dumps(json_data).encode()
        self._responses.append(httpx.Response(status_code, content=content, headers=headers))

    def add_error(self, error: Exception) -> None:
        self._responses.append(error)

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig(router_url="https://router.test:12434")


@pytest.fixture
def mock_transport() -> MockTransport:
    return MockTransport()


@pytest.mark.asyncio
async def test_get_uses_router_base_url(
    config: ClientConfig, mock_transport: MockTransport
) -> None:
    mock_transport.add_response(content=b"pem")

    async with AsyncHttpClient(config, transport=mock_transport) as client:
        response = await client.get(Endpoint.PUBLIC_KEY)

    assert response.content == b"pem"
    request = mock_transport.requests[0]
    assert request.method == "GET"
    assert str(request.url) == "https://router.test:12434/pki/public_key"


@pytest.mark.asyncio
async def test_post_sends_raw_body_and_headers(
    config: ClientConfig, mock_transport: MockTransport
) -> None:
    mock_transport.add_response()

    async with AsyncHttpClient(config, transport=mock_transport) as client:
        await client.post(
            Endpoint.SECURE_COMPLETION,
            content=b"\x00\x01",
            headers={"Content-Type": "application/octet-stream"},
        )

    request = mock_transport.requests[0]
    assert request.url.path == "/v1/chat/secure_completion"
    assert request.content == b"\x00\x01"
    assert request.headers["content-type"] == "application/octet-stream"


@pytest.mark.asyncio
async def test_timeout_maps_to_connection_error(
    config: ClientConfig, mock_transport: MockTransport
) -> None:
    mock_transport.add_error(httpx.ReadTimeout("slow"))

    async with AsyncHttpClient(config, transport=mock_transport) as client:
        with pytest.raises(APIConnectionError, match="Connection to server timed out"):
            await client.get(Endpoint.PUBLIC_KEY)


@pytest.mark.asyncio
async def test_transport_failure_maps_to_connection_error(
    config: ClientConfig, mock_transport: MockTransport
) -> None:
    mock_transport.add_error(httpx.ConnectError("refused"))

    async with AsyncHttpClient(config, transport=mock_transport) as client:
        with pytest.raises(APIConnectionError, match="Failed to connect to router"):
            await client.get(Endpoint.PUBLIC_KEY)


@pytest.mark.asyncio
async def test_close_is_safe_when_never_opened(config: ClientConfig) -> None:
    await AsyncHttpClient(config).close()


@pytest.mark.asyncio
async def test_client_is_reopened_after_close(
    config: ClientConfig, mock_transport: MockTransport
) -> None:
    mock_transport.add_response()
    mock_transport.add_response()
    client = AsyncHttpClient(config, transport=mock_transport)

    await client.get(Endpoint.PUBLIC_KEY)
    await client.close()
    await client.get(Endpoint.PUBLIC_KEY)
    await client.close()

    assert len(mock_transport.requests) == 2


# Status translation


def _response(
    status: int, body: bytes = b"", headers: dict[str, str] | None = None
) -> httpx.Response:
    return httpx.Response(status, content=body, headers=headers)


def test_ok_does_not_raise() -> None:
    raise_for_status(_response(200))


def test_bad_request_maps_to_invalid_request_error() -> None:
    with pytest.raises(InvalidRequestError) as exc_info:
        raise_for_status(_response(400, b'{"detail": "missing model"}'))

    assert exc_info.value.message == "Bad request: missing model"
    assert exc_info.value.error_details == {"detail": "missing model"}


def test_unauthorized_maps_to_authentication_error() -> None:
    with pytest.raises(AuthenticationError) as exc_info:
        raise_for_status(_response(401, b'{"detail": "bad key"}'))

    assert exc_info.value.status_code == 401


def test_not_found_maps_to_api_error() -> None:
    with pytest.raises(APIError) as exc_info:
        raise_for_status(_response(404))

    assert exc_info.value.status_code == 404
    assert "Endpoint not found: Unknown error" in str(exc_info.value)


def test_too_many_requests_maps_to_rate_limit_error() -> None:
    with pytest.raises(RateLimitError) as exc_info:
        raise_for_status(_response(429, b'{"detail": "slow down"}', {"Retry-After": "12"}))

    assert exc_info.value.retry_after == 12
    assert exc_info.value.status_code == 429


def test_rate_limit_without_retry_after() -> None:
    with pytest.raises(RateLimitError) as exc_info:
        raise_for_status(_response(429))

    assert exc_info.value.retry_after is None


@pytest.mark.parametrize("status", [500, 502, 503])
def test_server_errors_map_to_server_error(status: int) -> None:
    with pytest.raises(ServerError) as exc_info:
        raise_for_status(_response(status, b"<html>gateway</html>"))

    assert exc_info.value.status_code == status
    assert exc_info.value.error_details == {}


def test_other_status_maps_to_generic_api_error() -> None:
    with pytest.raises(APIError) as exc_info:
        raise_for_status(_response(418))

    assert type(exc_info.value) is APIError
    assert exc_info.value.message == "Unexpected status code: 418"
