"""
OpenAI chat-completions adapter.
The system prompt travels as the leading message of the array.
"""

from __future__ import annotations

from omaa.models import Message
from omaa.providers.base import ProviderAdapter, WireRequest
from omaa.providers.catalog import OPENAI, ProviderConfig


class OpenAIAdapter(ProviderAdapter):
    """Adapter for /chat/completions style endpoints."""

    def __init__(self, api_key: str, config: ProviderConfig = OPENAI, **kwargs):
        super().__init__(config, api_key, **kwargs)

    def build_request(
        self,
        messages: list[Message],
        system_prompt: str = "",
        model: str | None = None,
    ) -> WireRequest:
        wire_messages = []
        if system_prompt:
            wire_messages.append({"role": "system", "content": system_prompt})
        wire_messages.extend(m.to_dict() for m in messages)

        return WireRequest(
            url=f"{self.url}/chat/completions",
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.api_key}",
            },
            body={
                "model": model or self.model,
                "messages": wire_messages,
                "max_tokens": self.max_tokens,
                "temperature": self.temperature,
            },
        )

    def parse_response(self, data: dict) -> str:
        return data["choices"][0]["message"]["content"] or ""
