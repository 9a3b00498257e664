"""
Base provider adapter.
Every provider implements build_request / parse_response so the registry
can treat them uniformly. complete() performs exactly one POST; there is
no retry and no fallback to another provider.
"""

from __future__ import annotations

import abc
import logging
import time
from dataclasses import dataclass, field

import httpx

from omaa.errors import ConfigurationError, NetworkError, UpstreamError
from omaa.models import Message, Role
from omaa.providers.catalog import ProviderConfig

logger = logging.getLogger(__name__)


@dataclass
class WireRequest:
    """A fully-built provider request, ready to POST."""
    url: str
    headers: dict = field(default_factory=dict)
    body: dict = field(default_factory=dict)


@dataclass
class ChatReply:
    """Plain-text reply extracted from a provider response."""
    content: str
    provider: str
    model: str = ""
    latency_ms: float = 0.0


def split_system(messages: list[Message]) -> tuple[str, list[Message]]:
    """
    Pull the system prompt out of a message list.
    Returns (first system content or "", remaining non-system messages).
    """
    system = next((m.content for m in messages if m.role == Role.SYSTEM), "")
    rest = [m for m in messages if m.role != Role.SYSTEM]
    return system, rest


class ProviderAdapter(abc.ABC):
    """
    Abstract chat-completion adapter.
    Subclasses know their provider's wire format; this class owns the HTTP call.
    """

    def __init__(
        self,
        config: ProviderConfig,
        api_key: str,
        model: str | None = None,
        url: str | None = None,
        timeout: float = 120,
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ):
        if not api_key:
            raise ConfigurationError(f"{config.display_name} API key not configured")
        self.config = config
        self.api_key = api_key
        self.model = model or config.default_model
        self.url = (url or config.endpoint).rstrip("/")
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.temperature = temperature

    @property
    def name(self) -> str:
        return self.config.identifier

    @abc.abstractmethod
    def build_request(
        self,
        messages: list[Message],
        system_prompt: str = "",
        model: str | None = None,
    ) -> WireRequest:
        """Translate (system prompt, history) into this provider's request."""
        ...

    @abc.abstractmethod
    def parse_response(self, data: dict) -> str:
        """Extract the reply text from this provider's JSON response."""
        ...

    def error_message(self, resp: httpx.Response) -> str:
        """Upstream error message if the body carries one, else a status-coded fallback."""
        try:
            data = resp.json()
        except ValueError:
            data = None
        if isinstance(data, dict):
            err = data.get("error")
            if isinstance(err, dict) and err.get("message"):
                return str(err["message"])
            if isinstance(err, str) and err:
                return err
        return f"{self.config.display_name} API error: {resp.status_code}"

    async def complete(
        self,
        messages: list[Message],
        system_prompt: str = "",
        model: str | None = None,
    ) -> ChatReply:
        """Send one chat-completion request and return the reply text."""
        req = self.build_request(messages, system_prompt=system_prompt, model=model)
        t0 = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(req.url, json=req.body, headers=req.headers)
        except httpx.TimeoutException as e:
            logger.warning("Provider '%s' timed out after %ss", self.name, self.timeout)
            raise NetworkError(f"Timeout after {self.timeout}s") from e
        except httpx.HTTPError as e:
            logger.warning("Provider '%s' request failed: %s", self.name, e)
            raise NetworkError(str(e)) from e

        latency = (time.monotonic() - t0) * 1000

        if resp.status_code >= 400:
            message = self.error_message(resp)
            logger.warning(
                "Provider '%s' returned HTTP %d: %s", self.name, resp.status_code, message,
            )
            raise UpstreamError(message, status_code=resp.status_code)

        try:
            content = self.parse_response(resp.json())
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise UpstreamError(
                f"Malformed {self.config.display_name} response", status_code=resp.status_code,
            ) from e

        logger.info("Provider '%s' answered in %.0fms", self.name, latency)
        return ChatReply(
            content=content,
            provider=self.name,
            model=req.body.get("model", self.model),
            latency_ms=latency,
        )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} provider={self.name!r} model={self.model!r}>"
