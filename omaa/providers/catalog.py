"""
Static provider catalog.
One read-only ProviderConfig per supported chat-completion API.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ProviderConfig:
    identifier: str
    display_name: str
    endpoint: str
    default_model: str
    models: tuple[tuple[str, str], ...] = ()

    @property
    def model_ids(self) -> list[str]:
        return [model_id for model_id, _ in self.models]


OPENAI = ProviderConfig(
    identifier="openai",
    display_name="OpenAI (ChatGPT)",
    endpoint="https://api.openai.com/v1",
    default_model="gpt-4o-mini",
    models=(
        ("gpt-4o", "GPT-4o (Recommended)"),
        ("gpt-4o-mini", "GPT-4o Mini (Faster)"),
        ("gpt-4-turbo", "GPT-4 Turbo"),
        ("gpt-3.5-turbo", "GPT-3.5 Turbo (Budget)"),
    ),
)

ANTHROPIC = ProviderConfig(
    identifier="anthropic",
    display_name="Anthropic (Claude)",
    endpoint="https://api.anthropic.com/v1",
    default_model="claude-sonnet-4-20250514",
    models=(
        ("claude-sonnet-4-20250514", "Claude Sonnet 4 (Recommended)"),
        ("claude-3-5-sonnet-20241022", "Claude 3.5 Sonnet"),
        ("claude-3-5-haiku-20241022", "Claude 3.5 Haiku (Fast)"),
        ("claude-3-opus-20240229", "Claude 3 Opus (Most Capable)"),
    ),
)

DEEPSEEK = ProviderConfig(
    identifier="deepseek",
    display_name="DeepSeek",
    endpoint="https://api.deepseek.com/v1",
    default_model="deepseek-chat",
    models=(
        ("deepseek-chat", "DeepSeek Chat (Recommended)"),
        ("deepseek-coder", "DeepSeek Coder"),
    ),
)

PROVIDER_CATALOG: dict[str, ProviderConfig] = {
    p.identifier: p for p in (OPENAI, ANTHROPIC, DEEPSEEK)
}

DEFAULT_PROVIDER = OPENAI.identifier
