"""REST discovery for the Frame TV.

One ``GET /api/v2/`` on the control port returns the device description.
Uses httpx for async HTTP.  Nothing is retried: any failure raises
:class:`DiscoveryError` and the caller decides what to do.
"""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import quote

import httpx

from frameclient.config import DEFAULT_API_PORT
from frameclient.errors import DiscoveryError
from frameclient.protocol import ART_APP_CHANNEL

logger = logging.getLogger(__name__)

API_PATH = "/api/v2/"


def merge_device_info(body: dict) -> dict:
    """Flatten a ``/api/v2/`` response into one device-info mapping.

    ``isSupport`` is itself a JSON string and is decoded into ``support``.
    """
    info: dict[str, Any] = dict(body.get("device") or {})
    support: Any = {}
    raw_support = body.get("isSupport")
    if isinstance(raw_support, str) and raw_support:
        try:
            support = json.loads(raw_support)
        except json.JSONDecodeError:
            logger.warning("Ignoring malformed isSupport field: %.80r", raw_support)
    elif isinstance(raw_support, dict):
        support = raw_support
    info["support"] = support if isinstance(support, dict) else {}
    info["version"] = str(body.get("version", ""))
    return info


class DiscoveryClient:
    """Async client for the device-info endpoint.

    A single :class:`httpx.AsyncClient` is reused across calls.  Call
    :meth:`aclose` (or use as an async context manager) when done.
    """

    def __init__(
        self,
        port: int = DEFAULT_API_PORT,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.port = port
        self.timeout = timeout
        self._client: httpx.AsyncClient = httpx.AsyncClient(
            timeout=self.timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client and free resources."""
        await self._client.aclose()

    async def __aenter__(self) -> "DiscoveryClient":
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def api_url(self, host: str) -> str:
        return f"http://{host}:{self.port}{API_PATH}"

    def channel_url(self, host: str, client_name: str) -> str:
        """WebSocket URL of the art-app channel for *client_name*."""
        return (
            f"ws://{host}:{self.port}{API_PATH}channels/{ART_APP_CHANNEL}"
            f"?name={quote(client_name, safe='')}"
        )

    async def discover(self, host: str) -> dict:
        """Fetch and merge the device description of *host*."""
        url = self.api_url(host)
        try:
            response = await self._client.get(url)
        except (httpx.ConnectError, httpx.TimeoutException, httpx.NetworkError) as exc:
            raise DiscoveryError(f"Cannot reach TV at {url}: {exc}") from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise DiscoveryError(f"Request to {url} failed: {exc}") from exc
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise DiscoveryError(f"TV returned {response.status_code} for {url}") from exc
        try:
            body = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise DiscoveryError(f"Invalid JSON from {url}: {exc}") from exc
        if not isinstance(body, dict):
            raise DiscoveryError(f"Unexpected response from {url}: {body!r}")

        info = merge_device_info(body)
        logger.debug("Device info from %s: %s", host, info)
        return info
