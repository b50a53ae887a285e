"""
HTTP boundary for the assistant backend.

Thin wrapper around ``httpx.AsyncClient``: base URL, timeout and bearer token
come from settings; every transport or status error surfaces as ApiError.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from pocket_assistant.config import get_settings

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Exception raised when a backend request fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ApiClient:
    """
    Async client for the assistant backend.

    The underlying httpx client is created lazily and reused until ``close``.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the API client.

        Args:
            base_url: Backend base URL (uses config if not provided).
            timeout: Request timeout in seconds (uses config if not provided).
            token: Bearer token (uses config if not provided).
            transport: Optional httpx transport, e.g. ``httpx.MockTransport``.
        """
        settings = get_settings()
        self._base_url = base_url or settings.api_base_url
        self._timeout = timeout or settings.api_timeout
        self._token = token if token is not None else settings.api_token
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            headers = {"Accept": "application/json"}
            if self._token:
                headers["Authorization"] = f"Bearer {self._token}"
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers=headers,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def post_json(self, path: str, payload: dict[str, Any]) -> Any:
        """POST a JSON body and return the decoded JSON response."""
        client = await self._get_client()
        return await self._send(client.post(path, json=payload), path)

    async def post_multipart(
        self,
        path: str,
        *,
        files: dict[str, tuple[str, bytes, str]],
        data: dict[str, str],
    ) -> Any:
        """POST a multipart form and return the decoded JSON response."""
        client = await self._get_client()
        return await self._send(client.post(path, files=files, data=data), path)

    async def _send(self, request: Any, path: str) -> Any:
        try:
            response = await request
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning(f"[API] {path} failed status={e.response.status_code}")
            raise ApiError(
                f"Request to {path} failed with status {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.warning(f"[API] {path} transport error: {e}")
            raise ApiError(f"Network error: {e}") from e

        try:
            return response.json()
        except ValueError as e:
            raise ApiError(f"Invalid JSON from {path}", status_code=response.status_code) from e
