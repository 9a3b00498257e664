"""
DeepSeek adapter.
DeepSeek speaks the OpenAI wire format, only the endpoint and models differ.
"""

from __future__ import annotations

from omaa.providers.catalog import DEEPSEEK, ProviderConfig
from omaa.providers.openai import OpenAIAdapter


class DeepSeekAdapter(OpenAIAdapter):
    """OpenAI-compatible adapter pointed at api.deepseek.com."""

    def __init__(self, api_key: str, config: ProviderConfig = DEEPSEEK, **kwargs):
        super().__init__(api_key, config=config, **kwargs)
