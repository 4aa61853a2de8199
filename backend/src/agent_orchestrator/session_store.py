"""Session load/save: one JSON file per session, named by session id."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path

from pydantic import ValidationError

from src.errors import SessionError

from .config import find_state_dir, sessions_dir
from .models import Session

logger = logging.getLogger(__name__)

_SAFE_ID = re.compile(r"[A-Za-z0-9][A-Za-z0-9_.-]*")


class SessionStorage:
    """Full-file overwrite per save; no partial writes are attempted."""

    def __init__(self, state_dir: Path) -> None:
        self.state_dir = Path(state_dir)
        self.sessions_dir = sessions_dir(self.state_dir)

    @classmethod
    def discover(cls, working_directory: Path | str | None = None) -> SessionStorage:
        return cls(find_state_dir(working_directory))

    def path_for(self, session_id: str) -> Path:
        if not _SAFE_ID.fullmatch(session_id):
            raise SessionError(f"Invalid session id: {session_id!r}", session_id, code="INVALID_SESSION_ID")
        return self.sessions_dir / session_id

    def exists(self, session_id: str) -> bool:
        return self.path_for(session_id).is_file()

    def save(self, session: Session) -> Path:
        path = self.path_for(session.id)
        payload = session.model_dump(mode="json", by_alias=True)
        try:
            self.sessions_dir.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, default=str)
        except OSError as exc:
            logger.error("Failed to save session %s to %s: %s", session.id, path, exc)
            raise SessionError(f"Failed to save session: {exc}", session.id, code="SAVE_FAILED") from exc
        return path

    def load(self, session_id: str) -> Session:
        path = self.path_for(session_id)
        if not path.is_file():
            raise SessionError(f"Session not found: {session_id}", session_id, code="RESUME_FAILED")
        try:
            with open(path, encoding="utf-8") as f:
                raw = json.load(f)
            return Session.model_validate(raw)
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            raise SessionError(
                f"Failed to load session {session_id}: {exc}", session_id, code="RESUME_FAILED"
            ) from exc

    def list_ids(self) -> list[str]:
        if not self.sessions_dir.is_dir():
            return []
        return sorted(p.name for p in self.sessions_dir.iterdir() if p.is_file())
