"""Role definitions: per-role prompt, instructions and server allow-list."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from src.errors import ConfigurationError

logger = logging.getLogger(__name__)


class RoleConfig(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    definition: str = ""
    instructions: str = ""
    # None: every configured server; []: none
    available_servers: list[str] | None = None


class RolesFile(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    roles: dict[str, RoleConfig] = Field(default_factory=dict)
    default_role: str | None = None


class RoleLoader:
    def __init__(self, roles: RolesFile | None = None) -> None:
        self._file = roles or RolesFile()

    @classmethod
    def from_file(cls, path: Path) -> RoleLoader:
        """Missing file means no roles; a broken one is a configuration error."""
        if not path.exists():
            logger.debug("No roles file at %s", path)
            return cls()
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            return cls(RolesFile.model_validate(raw))
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            raise ConfigurationError(f"Invalid roles file {path}: {exc}") from exc

    @property
    def default_role(self) -> str | None:
        return self._file.default_role

    def list_roles(self) -> list[str]:
        return list(self._file.roles)

    def get_role(self, name: str) -> RoleConfig:
        try:
            return self._file.roles[name]
        except KeyError:
            raise ConfigurationError(
                f"Unknown role: {name}", code="UNKNOWN_ROLE", details={"known": self.list_roles()}
            ) from None
