from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ProviderConfig(BaseModel):
    """Settings for one model provider. Unset fields fall back to provider defaults."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, protected_namespaces=())

    name: str = "anthropic"
    model: str | None = None
    api_key: str | None = None
    base_url: str | None = None
    max_tokens: int = Field(default=4096, ge=1)
    temperature: float | None = None
    thinking_budget: int | None = Field(default=None, ge=1024)
    max_retries: int = Field(default=3, ge=0)
    initial_backoff_ms: float = Field(default=1000.0, ge=0)


DEFAULT_PROVIDER_CONFIG = ProviderConfig()
