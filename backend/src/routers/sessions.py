"""Sessions router: a thin HTTP surface over the session orchestrator."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from src.agent_orchestrator import Response, Session, SessionOrchestrator
from src.errors import ConfigurationError, SessionError

router = APIRouter(prefix="/sessions", tags=["sessions"])

_NOT_FOUND_CODES = {"NOT_FOUND", "RESUME_FAILED"}


class CreateSessionRequest(BaseModel):
    """Request body for POST /sessions."""

    role: str | None = Field(None, description="Role name from roles.json; default role when omitted")


class MessageRequest(BaseModel):
    """Request body for POST /sessions/{session_id}/messages."""

    message: str = Field(..., min_length=1, description="User message")


class CompleteChildRequest(BaseModel):
    summary: str = Field(..., description="Outcome reported back to the parent session")


def get_orchestrator(request: Request) -> SessionOrchestrator:
    return request.app.state.orchestrator


def _http_error(exc: SessionError | ConfigurationError) -> HTTPException:
    if isinstance(exc, SessionError) and exc.code in _NOT_FOUND_CODES:
        status = 404
    elif isinstance(exc, SessionError):
        status = 409
    else:
        status = 400
    return HTTPException(status_code=status, detail=exc.to_dict())


@router.post("", response_model=Session)
async def create_session(
    body: CreateSessionRequest, orchestrator: SessionOrchestrator = Depends(get_orchestrator)
) -> Session:
    try:
        return await orchestrator.create_session(body.role)
    except ConfigurationError as exc:
        raise _http_error(exc) from exc


@router.post("/{session_id}/resume", response_model=Session)
async def resume_session(session_id: str, orchestrator: SessionOrchestrator = Depends(get_orchestrator)) -> Session:
    try:
        return await orchestrator.resume_session(session_id)
    except (SessionError, ConfigurationError) as exc:
        raise _http_error(exc) from exc


@router.get("/{session_id}", response_model=Session)
async def get_session(session_id: str, orchestrator: SessionOrchestrator = Depends(get_orchestrator)) -> Session:
    try:
        return orchestrator.get_session(session_id)
    except SessionError as exc:
        raise _http_error(exc) from exc


@router.post("/{session_id}/messages", response_model=Response)
async def execute_message(
    session_id: str, body: MessageRequest, orchestrator: SessionOrchestrator = Depends(get_orchestrator)
) -> Response:
    """Run one user turn, including any tool calls it leads to, and return the final response."""
    try:
        return await orchestrator.execute_message(session_id, body.message)
    except SessionError as exc:
        raise _http_error(exc) from exc


@router.post("/{session_id}/complete", response_model=Response)
async def complete_child_session(
    session_id: str, body: CompleteChildRequest, orchestrator: SessionOrchestrator = Depends(get_orchestrator)
) -> Response:
    try:
        return await orchestrator.complete_child_session(session_id, body.summary)
    except SessionError as exc:
        raise _http_error(exc) from exc
