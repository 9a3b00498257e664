"""
Chat transports.

ServerChatBackend  POST /api/chat — provider keys stay on the server.
DirectChatBackend  call the provider straight from the client with a key
                   the user stored locally (no server involved).

Both take the capped history plus the system prompt and return reply text.
"""

from __future__ import annotations

import abc
import logging

from omaa.client.api import OmaaApiClient
from omaa.client.storage import API_KEY_PREFIX, MODEL_PREFIX, PROVIDER, LocalStorage
from omaa.errors import ConfigurationError, UpstreamError
from omaa.models import Message
from omaa.providers.catalog import DEFAULT_PROVIDER, PROVIDER_CATALOG
from omaa.providers.registry import create_adapter

logger = logging.getLogger(__name__)


def stored_provider(storage: LocalStorage, default: str = DEFAULT_PROVIDER) -> str:
    provider = storage.get_item(PROVIDER) or default
    return provider if provider in PROVIDER_CATALOG else default


def stored_model(storage: LocalStorage, provider: str) -> str:
    return storage.get_item(MODEL_PREFIX + provider) or PROVIDER_CATALOG[provider].default_model


def save_preference(storage: LocalStorage, provider: str, model: str | None = None):
    """Persist the provider (and optionally model) choice."""
    config = PROVIDER_CATALOG.get(provider)
    if config is None:
        raise ConfigurationError(f"Unsupported provider: {provider}")
    if model and model not in config.model_ids:
        raise ConfigurationError(f"Unknown model '{model}' for {config.display_name}")
    storage.set_item(PROVIDER, provider)
    if model:
        storage.set_item(MODEL_PREFIX + provider, model)


def save_api_key(storage: LocalStorage, provider: str, api_key: str):
    if provider not in PROVIDER_CATALOG:
        raise ConfigurationError(f"Unsupported provider: {provider}")
    if api_key:
        storage.set_item(API_KEY_PREFIX + provider, api_key)
    else:
        storage.remove_item(API_KEY_PREFIX + provider)


class ChatBackend(abc.ABC):
    provider: str

    @abc.abstractmethod
    async def send(self, history: list[Message], system_prompt: str) -> str:
        ...


class ServerChatBackend(ChatBackend):
    def __init__(self, api: OmaaApiClient, provider: str = DEFAULT_PROVIDER):
        self.api = api
        self.provider = provider

    async def send(self, history: list[Message], system_prompt: str) -> str:
        messages = [{"role": "system", "content": system_prompt}] if system_prompt else []
        messages.extend(m.to_dict() for m in history)
        data = await self.api.chat(messages, self.provider)
        content = data.get("content")
        if content is None:
            raise UpstreamError(data.get("error") or "Empty response from server")
        return content


class DirectChatBackend(ChatBackend):
    def __init__(self, storage: LocalStorage, provider: str = DEFAULT_PROVIDER, **adapter_kwargs):
        self.storage = storage
        self.provider = provider
        self.adapter_kwargs = adapter_kwargs

    async def send(self, history: list[Message], system_prompt: str) -> str:
        api_key = self.storage.get_item(API_KEY_PREFIX + self.provider) or ""
        adapter = create_adapter(
            self.provider,
            api_key=api_key,
            model=stored_model(self.storage, self.provider),
            **self.adapter_kwargs,
        )
        reply = await adapter.complete(history, system_prompt=system_prompt)
        return reply.content
