"""Client for the remote REST table holding the shared catalog."""

from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx

from ..config import Settings

logger = logging.getLogger(__name__)


class RemoteNotConfiguredError(RuntimeError):
    """Raised when a remote request is attempted without URL or access key."""


class RemoteStoreError(RuntimeError):
    """Raised when the remote store answers with a non-success status."""

    def __init__(self, status_code: int, body: str):
        super().__init__(body)
        self.status_code = status_code
        self.body = body

    @classmethod
    def from_response(cls, response: httpx.Response) -> "RemoteStoreError":
        return cls(response.status_code, response.text)


class RemoteStoreClient:
    """Thin wrapper around the remote store's REST endpoint."""

    _API_PREFIX = "/rest/v1"

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client

    @property
    def is_configured(self) -> bool:
        """Return whether both the base URL and access key are available."""

        return self._settings.remote_configured

    def build_url(self, path: str) -> str:
        base_url = (self._settings.remote_url or "").rstrip("/")
        return f"{base_url}{self._API_PREFIX}{path}"

    def _headers(self, extra: Mapping[str, str] | None = None) -> dict[str, str]:
        api_key = self._settings.remote_api_key or ""
        headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "Prefer": "return=representation",
        }
        if extra:
            headers.update(extra)
        return headers

    async def request(
        self,
        path: str,
        *,
        method: str = "GET",
        json: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        """Send a request to ``<base>/rest/v1<path>`` and return the raw response.

        Non-success statuses are returned to the caller; transport failures
        propagate as ``httpx.HTTPError``.
        """

        if not self.is_configured:
            raise RemoteNotConfiguredError("Remote store is not configured")

        url = self.build_url(path)
        logger.debug("%s %s", method, url)
        return await self._client.request(
            method,
            url,
            json=json,
            headers=self._headers(headers),
        )
