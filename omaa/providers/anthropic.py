"""
Anthropic Messages API adapter.

Differences from the OpenAI shape:
  - the system prompt is a top-level `system` field
  - the messages array never contains a system role
  - auth is an `x-api-key` header plus a pinned `anthropic-version`
  - the reply lives in content[0].text instead of choices[0].message.content
"""

from __future__ import annotations

from omaa.models import Message, Role
from omaa.providers.base import ProviderAdapter, WireRequest
from omaa.providers.catalog import ANTHROPIC, ProviderConfig

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicAdapter(ProviderAdapter):
    """Adapter for the Anthropic /messages endpoint."""

    def __init__(self, api_key: str, config: ProviderConfig = ANTHROPIC, **kwargs):
        super().__init__(config, api_key, **kwargs)

    def build_request(
        self,
        messages: list[Message],
        system_prompt: str = "",
        model: str | None = None,
    ) -> WireRequest:
        if not system_prompt:
            system_prompt = next((m.content for m in messages if m.role == Role.SYSTEM), "")

        body = {
            "model": model or self.model,
            "max_tokens": self.max_tokens,
            "messages": [m.to_dict() for m in messages if m.role != Role.SYSTEM],
        }
        if system_prompt:
            body["system"] = system_prompt

        return WireRequest(
            url=f"{self.url}/messages",
            headers={
                "Content-Type": "application/json",
                "x-api-key": self.api_key,
                "anthropic-version": ANTHROPIC_VERSION,
            },
            body=body,
        )

    def parse_response(self, data: dict) -> str:
        for block in data["content"]:
            if "text" in block:
                return block["text"]
        raise KeyError("text")
