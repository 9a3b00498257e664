"""
HTTP client for the OMaa server endpoints.
One request per call, no retries. Transport errors become NetworkError,
non-2xx answers become UpstreamError carrying the server's `error` text.
"""

from __future__ import annotations

import logging

import httpx

from omaa.errors import NetworkError, UpstreamError

logger = logging.getLogger(__name__)


class OmaaApiClient:
    """Async client for /api/*."""

    def __init__(
        self,
        base_url: str = "http://localhost:3000",
        timeout: float = 120,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport,
            ) as client:
                resp = await client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise NetworkError(f"Timeout after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise NetworkError(str(e) or e.__class__.__name__) from e

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if resp.status_code >= 400:
            message = data.get("error") or f"API error: {resp.status_code}"
            raise UpstreamError(str(message), status_code=resp.status_code)
        return data

    async def chat(self, messages: list[dict], provider: str) -> dict:
        return await self._request(
            "POST", "/api/chat", json={"messages": messages, "provider": provider},
        )

    async def health(self) -> dict | None:
        """Server health, or None when it can't be reached."""
        try:
            return await self._request("GET", "/api/health")
        except (NetworkError, UpstreamError) as e:
            logger.error("Health check failed: %s", e)
            return None

    async def create_checkout_session(self, plan: str = "monthly") -> dict:
        return await self._request("POST", "/api/create-checkout-session", json={"plan": plan})

    async def verify_session(self, session_id: str) -> dict:
        return await self._request("GET", "/api/verify-session", params={"session_id": session_id})

    async def subscription_status(self, session_id: str) -> dict:
        return await self._request(
            "GET", "/api/subscription-status", params={"session_id": session_id},
        )

    async def track_message(self, session_id: str) -> dict:
        return await self._request("POST", "/api/track-message", json={"session_id": session_id})
