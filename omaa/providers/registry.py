"""
Provider registry: identifier → adapter class.
Adapters are built on demand from config (server) or from a client-held key.
"""

from __future__ import annotations

from omaa.errors import ConfigurationError
from omaa.providers.anthropic import AnthropicAdapter
from omaa.providers.base import ProviderAdapter
from omaa.providers.catalog import PROVIDER_CATALOG
from omaa.providers.deepseek import DeepSeekAdapter
from omaa.providers.openai import OpenAIAdapter

# Provider id → adapter class
ADAPTERS: dict[str, type[ProviderAdapter]] = {
    "openai": OpenAIAdapter,
    "anthropic": AnthropicAdapter,
    "deepseek": DeepSeekAdapter,
}


def create_adapter(provider: str, api_key: str, **kwargs) -> ProviderAdapter:
    """
    Instantiate the adapter for `provider`.

    Raises:
        ConfigurationError: unknown provider id, or no api_key.
    """
    cls = ADAPTERS.get((provider or "").lower())
    if cls is None:
        raise ConfigurationError(
            f"Unsupported provider: {provider}. "
            f"Supported providers: {', '.join(sorted(ADAPTERS))}"
        )
    return cls(api_key, **kwargs)


def adapter_from_config(provider: str, cfg: dict) -> ProviderAdapter:
    """Build an adapter using the server's provider + chat config blocks."""
    if provider not in ADAPTERS:
        raise ConfigurationError(f"Unsupported provider: {provider}")
    p_cfg = cfg.get("providers", {}).get(provider, {}) or {}
    chat_cfg = cfg.get("chat", {})
    return create_adapter(
        provider,
        api_key=p_cfg.get("api_key", ""),
        model=p_cfg.get("model") or None,
        url=p_cfg.get("url") or None,
        timeout=chat_cfg.get("timeout", 120),
        max_tokens=chat_cfg.get("max_tokens", 1024),
        temperature=chat_cfg.get("temperature", 0.7),
    )


def configured_providers(cfg: dict) -> dict[str, bool]:
    """Which providers have a credential configured (never exposes the key)."""
    providers_cfg = cfg.get("providers", {})
    return {
        pid: bool((providers_cfg.get(pid) or {}).get("api_key"))
        for pid in PROVIDER_CATALOG
    }
