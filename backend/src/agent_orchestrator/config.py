"""Orchestrator configuration: state directory, config file, env overrides, logging."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from main_config import (
    CONFIG_FILE_NAME,
    DEFAULT_SYSTEM_PROMPT_PATH as _DEFAULT_SYSTEM_PROMPT_PATH,
    HOME_STATE_DIR as _HOME_STATE_DIR,
    LOG_LEVEL_ENV,
    ROLES_FILE_NAME,
    SESSIONS_DIR_NAME,
    STATE_DIR_NAME,
)
from src.errors import ConfigurationError
from src.llm_core import PROVIDERS, ProviderConfig, split_model
from src.mcp_hub import ServerConfig

from .session_tools import SESSION_SERVER

logger = logging.getLogger(__name__)

# Path objects for use in this package (main_config uses os.path strings)
HOME_STATE_DIR = Path(_HOME_STATE_DIR)
DEFAULT_SYSTEM_PROMPT_PATH = Path(_DEFAULT_SYSTEM_PROMPT_PATH)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# env var -> (provider, field)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "ANTHROPIC_API_KEY": ("anthropic", "apiKey"),
    "ANTHROPIC_MODEL": ("anthropic", "model"),
    "OPENAI_API_KEY": ("openai", "apiKey"),
    "OPENAI_MODEL": ("openai", "model"),
    "OPENAI_BASE_URL": ("openai", "baseUrl"),
    "GEMINI_API_KEY": ("gemini", "apiKey"),
    "GOOGLE_API_KEY": ("gemini", "apiKey"),
    "OLLAMA_HOST": ("ollama", "baseUrl"),
}


class _Settings(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SessionSettings(_Settings):
    default_provider: str = "anthropic"
    auto_approve_tools: bool = False
    # None: keep looping until the model stops asking for tools
    max_tool_turns: int | None = Field(default=None, ge=1)
    state_dir: Path | None = None


class LoggingSettings(_Settings):
    level: str = "INFO"

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level {value!r}")
        return level


class AppConfig(_Settings):
    servers: dict[str, ServerConfig] = Field(
        default_factory=dict, validation_alias=AliasChoices("servers", "mcpServers")
    )
    session: SessionSettings = Field(default_factory=SessionSettings)
    providers: dict[str, ProviderConfig] = Field(default_factory=dict)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @field_validator("servers")
    @classmethod
    def _reserved_server_names(cls, servers: dict[str, ServerConfig]) -> dict[str, ServerConfig]:
        if SESSION_SERVER in servers:
            raise ValueError(f"server name {SESSION_SERVER!r} is reserved")
        return servers

    @model_validator(mode="after")
    def _name_providers(self) -> AppConfig:
        for name, provider in self.providers.items():
            provider.name = name
        return self

    def provider_name(self) -> str:
        name, _ = split_model(self.session.default_provider, self.session.default_provider)
        return name

    def provider_config(self, name: str | None = None) -> ProviderConfig:
        """Settings for ``name`` (default provider when omitted), model from ``provider:model`` if given."""
        spec = name or self.session.default_provider
        provider_name, model = split_model(spec, spec)
        config = self.providers.get(provider_name) or ProviderConfig(name=provider_name)
        updates: dict[str, Any] = {"name": provider_name}
        if model and ":" in spec:
            updates["model"] = model
        return config.model_copy(update=updates)


def find_state_dir(start: Path | str | None = None) -> Path:
    """Nearest ``.toolpilot`` directory at or above ``start``, else one in the home directory."""
    current = Path(start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / STATE_DIR_NAME
        if candidate.is_dir():
            return candidate
    HOME_STATE_DIR.mkdir(parents=True, exist_ok=True)
    return HOME_STATE_DIR


def sessions_dir(state_dir: Path) -> Path:
    return state_dir / SESSIONS_DIR_NAME


def roles_path(state_dir: Path) -> Path:
    return state_dir / ROLES_FILE_NAME


def _apply_env_overrides(raw: dict[str, Any], env: Mapping[str, str]) -> None:
    providers = raw.setdefault("providers", {})
    for var, (provider, key) in ENV_OVERRIDES.items():
        value = env.get(var)
        if not value:
            continue
        entry = providers.setdefault(provider, {"name": provider})
        entry[key] = value
    level = env.get(LOG_LEVEL_ENV)
    if level:
        raw.setdefault("logging", {})["level"] = level


def load_config(
    path: Path | str | None = None,
    *,
    state_dir: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> AppConfig:
    """Read, override from the environment and validate the application config.

    With no ``path`` the file is ``config.json`` in the discovered state
    directory; a missing file there means an all-defaults config.
    """
    if env is None:
        load_dotenv()
        env = os.environ

    if path is None:
        candidate = (state_dir or find_state_dir()) / CONFIG_FILE_NAME
        path = candidate if candidate.exists() else None

    raw: Any = {}
    if path is not None:
        try:
            raw = json.loads(Path(path).read_text(encoding="utf-8"))
        except OSError as exc:
            raise ConfigurationError(f"Cannot read config file {path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Config file {path} is not valid JSON: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigurationError(f"Config file {path} must contain a JSON object")

    _apply_env_overrides(raw, env)
    try:
        config = AppConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigurationError(
            "Invalid configuration",
            details=exc.errors(include_url=False, include_context=False, include_input=False),
        ) from exc

    if config.provider_name() not in PROVIDERS:
        raise ConfigurationError(
            f"Unknown provider: {config.session.default_provider}", details={"known": sorted(PROVIDERS)}
        )
    logger.debug("Loaded config with %d server(s)", len(config.servers))
    return config


def configure_logging(level: str | int = "INFO") -> None:
    """Set up root logging once; later calls only adjust the level."""
    level = os.getenv(LOG_LEVEL_ENV, level)
    if isinstance(level, str):
        level = level.upper()
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level)
        return
    logging.basicConfig(level=level, format=LOG_FORMAT)
