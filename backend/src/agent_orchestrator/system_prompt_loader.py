"""Prompt text shipped with the package, read once per file."""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from .config import DEFAULT_SYSTEM_PROMPT_PATH

logger = logging.getLogger(__name__)

PROMPTS_DIR = DEFAULT_SYSTEM_PROMPT_PATH.parent


@lru_cache(maxsize=None)
def load_prompt(path: Path) -> str:
    """Stripped file text; an unreadable file yields "" so sessions still start."""
    try:
        return path.read_text(encoding="utf-8").strip()
    except OSError as exc:
        logger.warning("Cannot read prompt file %s: %s", path, exc)
        return ""


def get_prompt(name: str) -> str:
    """Named prompt from the prompts directory, e.g. ``get_prompt("base_system_prompt")``."""
    return load_prompt(PROMPTS_DIR / f"{name}.md")


def get_default_system_prompt() -> str:
    return load_prompt(DEFAULT_SYSTEM_PROMPT_PATH)
