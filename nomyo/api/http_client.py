"""
Async HTTP transport for the nomyo router.

Moves opaque bytes to and from the router and translates outer-layer HTTP
status codes into the client exception hierarchy. Retries are not performed
here or in the protocol core.
"""

import asyncio
import json
from enum import StrEnum
from typing import Any

import httpx
import structlog

from nomyo.config import ClientConfig
from nomyo.exceptions import (
    APIConnectionError,
    APIError,
    AuthenticationError,
    InvalidRequestError,
    RateLimitError,
    ServerError,
)

logger = structlog.get_logger(__name__)


class Endpoint(StrEnum):
    PUBLIC_KEY = "/pki/public_key"
    SECURE_COMPLETION = "/v1/chat/secure_completion"


class AsyncHttpClient:
    """Async HTTP client for the router's PKI and secure-completion endpoints."""

    def __init__(
        self,
        config: ClientConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Args:
            config: Client configuration.
            transport: Optional transport for testing (mock transport).
        """
        self._config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    async def __aenter__(self) -> "AsyncHttpClient":
        await self._ensure_client()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self._config.router_url,
                    timeout=self._config.timeout,
                    transport=self._transport,
                )
            return self._client

    async def close(self) -> None:
        async with self._client_lock:
            if self._client is None:
                logger.debug("Client not open.")
                return
            await self._client.aclose()
            self._client = None

    async def get(self, endpoint: str) -> httpx.Response:
        """
        GET ``endpoint`` relative to the router URL.

        Raises:
            APIConnectionError: On timeout or transport failure.
        """
        return await self._send("GET", endpoint)

    async def post(
        self,
        endpoint: str,
        *,
        content: bytes,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """
        POST raw ``content`` to ``endpoint``.

        Raises:
            APIConnectionError: On timeout or transport failure.
        """
        return await self._send("POST", endpoint, content=content, headers=headers)

    async def _send(
        self,
        method: str,
        endpoint: str,
        *,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        client = await self._ensure_client()
        try:
            response = await client.request(method, endpoint, content=content, headers=headers)
        except httpx.TimeoutException as e:
            raise APIConnectionError("Connection to server timed out", endpoint=endpoint) from e
        except httpx.HTTPError as e:
            msg = f"Failed to connect to router: {e}"
            raise APIConnectionError(msg, endpoint=endpoint) from e

        logger.debug(
            "Router responded",
            method=method,
            endpoint=endpoint,
            status_code=response.status_code,
            size=len(response.content),
        )
        return response


def raise_for_status(response: httpx.Response) -> None:
    """
    Translate a non-200 response into the matching ``APIError`` subclass.

    The body is read as JSON when possible and its ``detail`` field surfaced.
    """
    status = response.status_code
    if status == httpx.codes.OK:
        return

    error_data: dict[str, Any] = {}
    try:
        parsed = json.loads(response.content)
        if isinstance(parsed, dict):
            error_data = parsed
    except (json.JSONDecodeError, UnicodeDecodeError):
        pass
    detail = error_data.get("detail", "Unknown error")

    if status == httpx.codes.BAD_REQUEST:
        raise InvalidRequestError(f"Bad request: {detail}", error_details=error_data)
    if status == httpx.codes.UNAUTHORIZED:
        msg = f"Invalid API key or authentication failed: {detail}"
        raise AuthenticationError(msg, error_details=error_data)
    if status == httpx.codes.NOT_FOUND:
        msg = f"Endpoint not found: {detail}"
        raise APIError(msg, status_code=status, error_details=error_data)
    if status == httpx.codes.TOO_MANY_REQUESTS:
        retry_after = response.headers.get("Retry-After")
        raise RateLimitError(
            f"Rate limit exceeded: {detail}",
            retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
            error_details=error_data,
        )
    if status >= httpx.codes.INTERNAL_SERVER_ERROR:
        raise ServerError(f"Server error: {detail}", status_code=status, error_details=error_data)

    msg = f"Unexpected status code: {status}"
    raise APIError(msg, status_code=status, error_details=error_data)
