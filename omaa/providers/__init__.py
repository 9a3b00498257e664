"""
Provider adapters for OMaa.
One strategy per chat-completion API, selected through the registry.
"""
from omaa.providers.base import ChatReply, ProviderAdapter, WireRequest, split_system
from omaa.providers.catalog import PROVIDER_CATALOG, ProviderConfig
from omaa.providers.registry import ADAPTERS, adapter_from_config, create_adapter

__all__ = [
    "ADAPTERS",
    "ChatReply",
    "PROVIDER_CATALOG",
    "ProviderAdapter",
    "ProviderConfig",
    "WireRequest",
    "adapter_from_config",
    "create_adapter",
    "split_system",
]
