"""In-memory session registry and the parent/child relation table."""

from __future__ import annotations

from src.errors import SessionError

from .models import Session


class SessionRegistry:
    """Live sessions by id. Sessions are replaced whole, never edited in place."""

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def add(self, session: Session) -> None:
        if session.id in self._sessions:
            raise SessionError(f"Session already registered: {session.id}", session.id, code="SESSION_EXISTS")
        self._sessions[session.id] = session

    def get(self, session_id: str) -> Session:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise SessionError(f"Session not found: {session_id}", session_id, code="NOT_FOUND") from None

    def replace(self, session: Session) -> None:
        self.get(session.id)
        self._sessions[session.id] = session

    def ids(self) -> list[str]:
        return list(self._sessions)


class SessionHierarchy:
    """child -> parent and parent -> children, kept by id only."""

    def __init__(self) -> None:
        self._parents: dict[str, str] = {}
        self._children: dict[str, list[str]] = {}

    def link(self, parent_id: str, child_id: str) -> None:
        existing = self._parents.get(child_id)
        if existing is not None and existing != parent_id:
            raise SessionError(
                f"Session {child_id} already belongs to {existing}", child_id, code="HIERARCHY_CONFLICT"
            )
        self._parents[child_id] = parent_id
        children = self._children.setdefault(parent_id, [])
        if child_id not in children:
            children.append(child_id)

    def restore(self, session: Session) -> None:
        """Re-link a session loaded from disk."""
        if session.parent_id:
            self.link(session.parent_id, session.id)
        for child_id in session.child_session_ids:
            self.link(session.id, child_id)

    def parent_of(self, session_id: str) -> str | None:
        return self._parents.get(session_id)

    def children_of(self, session_id: str) -> list[str]:
        return list(self._children.get(session_id, []))
