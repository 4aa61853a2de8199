from __future__ import annotations

from typing import Tuple

from src.errors import ConfigurationError

from .config import ProviderConfig
from .providers import AnthropicProvider, GeminiProvider, LLMProvider, OllamaProvider, OpenAIProvider

PROVIDERS: dict[str, type[LLMProvider]] = {
    "anthropic": AnthropicProvider,
    "openai": OpenAIProvider,
    "ollama": OllamaProvider,
    "gemini": GeminiProvider,
    "google": GeminiProvider,
}


def split_model(model: str, default_provider: str) -> Tuple[str, str | None]:
    """Resolve ``provider:model`` strings; a bare model uses the default provider."""
    if ":" in model:
        provider_name, raw_model = model.split(":", 1)
        return provider_name.strip().lower(), raw_model.strip() or None
    return default_provider, model.strip() or None


def resolve_provider_class(name: str) -> type[LLMProvider]:
    try:
        return PROVIDERS[name.strip().lower()]
    except KeyError:
        raise ConfigurationError(
            f"Unknown provider: {name}", details={"known": sorted(PROVIDERS)}
        ) from None


async def create_provider(name: str, config: ProviderConfig | None = None) -> LLMProvider:
    """Build and initialize the provider registered under ``name``."""
    provider_cls = resolve_provider_class(name)
    provider = provider_cls(config or ProviderConfig(name=name))
    await provider.initialize()
    return provider
