"""Session orchestrator: the model/tool loop, persistence and child sessions."""

from __future__ import annotations

import asyncio
import logging
import os
import platform
import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from src.errors import ConfigurationError, InvalidResponseError, ProviderError, SessionError, ToolError
from src.llm_core import LLMProvider
from src.mcp_hub import ConfirmationGate, McpHub, ToolCallResult
from src.tool_parser import ToolInvocationRequest, ToolRequestParser

from .config import AppConfig, roles_path
from .models import Message, MessageRole, Response, ResponseContent, ResponseType, Session, SessionStatus
from .prompt import SystemPromptEnhancer
from .registry import SessionHierarchy, SessionRegistry
from .roles import RoleConfig, RoleLoader
from .session_store import SessionStorage
from .session_tools import FINISH_CHILD_SESSION, RUN_CHILD_SESSION, SESSION_SERVER, session_tool_descriptors

logger = logging.getLogger(__name__)

# Sessions whose turn is already running in the current call chain.
_active_sessions: ContextVar[frozenset[str]] = ContextVar("active_sessions", default=frozenset())

HubFactory = Callable[..., McpHub]


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class OrchestratorOptions:
    """Options for the orchestrator loop."""

    max_tool_turns: int | None = None
    auto_approve_tools: bool = False
    working_directory: Path = field(default_factory=Path.cwd)


@dataclass
class _ToolOutcome:
    """What to do after a tool request: feed ``message`` back, or stop the loop."""

    message: Message | None = None
    result: ToolCallResult | None = None


class SessionOrchestrator:
    """
    Drives conversations: user turn, model turn, at most one tool call per
    model turn, repeat until the model answers without a tool request.

    Every mutation goes through ``update_session`` and is persisted before
    the next step. Turns on one session are serialized; a parent's turn may
    re-enter itself when a child session it started completes inside it.
    """

    def __init__(
        self,
        config: AppConfig,
        provider: LLMProvider,
        *,
        storage: SessionStorage | None = None,
        roles: RoleLoader | None = None,
        hub_factory: HubFactory = McpHub,
        confirm: ConfirmationGate | None = None,
        options: OrchestratorOptions | None = None,
    ) -> None:
        self.config = config
        self.provider = provider
        self.options = options or OrchestratorOptions(
            max_tool_turns=config.session.max_tool_turns,
            auto_approve_tools=config.session.auto_approve_tools,
        )
        state_dir = config.session.state_dir
        self.storage = storage or (
            SessionStorage(state_dir) if state_dir else SessionStorage.discover(self.options.working_directory)
        )
        self.roles = roles or RoleLoader.from_file(roles_path(self.storage.state_dir))
        self.registry = SessionRegistry()
        self.hierarchy = SessionHierarchy()
        self._hub_factory = hub_factory
        self._confirm = confirm
        self._hubs: dict[tuple[str, ...], McpHub] = {}
        self._hub_lock = asyncio.Lock()
        self._locks: dict[str, asyncio.Lock] = {}

    # ------------------------------------------------------------------
    # Hubs and roles
    # ------------------------------------------------------------------

    def _resolve_role(self, role_name: str | None) -> tuple[str | None, RoleConfig | None]:
        name = role_name or self.roles.default_role
        if name is None:
            return None, None
        return name, self.roles.get_role(name)

    async def hub_for(self, role: RoleConfig | None) -> McpHub:
        """One hub per distinct server selection, connected on first use."""
        servers = self.config.servers
        if role is not None and role.available_servers is not None:
            servers = {name: cfg for name, cfg in servers.items() if name in role.available_servers}
        key = tuple(servers)
        async with self._hub_lock:
            hub = self._hubs.get(key)
            if hub is None:
                hub = self._hub_factory(
                    servers, auto_approve_tools=self.options.auto_approve_tools, confirm=self._confirm
                )
                await hub.initialize_servers()
                hub.catalog.register_server_tools(SESSION_SERVER, session_tool_descriptors(), markup="direct")
                self._hubs[key] = hub
        return hub

    async def _hub_for_session(self, session: Session) -> McpHub:
        role = session.metadata.get("role")
        config = RoleConfig.model_validate(role) if isinstance(role, dict) else None
        return await self.hub_for(config)

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def _environment(self) -> dict[str, str]:
        return {
            "cwd": str(self.options.working_directory),
            "os": platform.system().lower(),
            "shell": os.environ.get("SHELL") or os.environ.get("COMSPEC", ""),
        }

    async def create_session(self, role_name: str | None = None, *, parent_id: str | None = None) -> Session:
        name, role = self._resolve_role(role_name)
        hub = await self.hub_for(role)
        enhancer = SystemPromptEnhancer(
            hub.catalog,
            self.options.working_directory,
            base_prompt=role.definition if role and role.definition else None,
        )
        if role is not None:
            enhancer.add_section(role.instructions)

        metadata: dict[str, Any] = {"timestamp": _iso_now(), "environment": self._environment()}
        if role is not None:
            metadata["role"] = {"name": name, **role.model_dump(by_alias=True)}
        if parent_id is not None:
            metadata["sessionHierarchy"] = {"parentId": parent_id, "childSessions": []}

        session = Session(
            system_prompt=enhancer.build(is_child=parent_id is not None),
            metadata=metadata,
            parent_id=parent_id,
        )
        self.registry.add(session)
        self.storage.save(session)
        logger.info("Created session %s (role %s)", session.id, name or "-")
        return session

    async def resume_session(self, session_id: str) -> Session:
        if session_id in self.registry:
            return self.registry.get(session_id)
        session = self.storage.load(session_id)
        self.hierarchy.restore(session)
        await self._hub_for_session(session)
        self.registry.add(session)
        logger.info("Resumed session %s with %d message(s)", session_id, len(session.messages))
        return session

    def get_session(self, session_id: str) -> Session:
        return self.registry.get(session_id)

    def update_session(self, session_id: str, **changes: Any) -> Session:
        """Replace the session with an updated copy and persist it."""
        session = self.registry.get(session_id).model_copy(update=changes)
        self.registry.replace(session)
        self.storage.save(session)
        return session

    def _append(self, session_id: str, message: Message) -> Session:
        session = self.registry.get(session_id)
        return self.update_session(session_id, messages=[*session.messages, message])

    # ------------------------------------------------------------------
    # The loop
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _turn(self, session_id: str) -> AsyncIterator[None]:
        held = _active_sessions.get()
        if session_id in held:
            yield
            return
        lock = self._locks.setdefault(session_id, asyncio.Lock())
        async with lock:
            token = _active_sessions.set(held | {session_id})
            try:
                yield
            finally:
                _active_sessions.reset(token)

    async def execute_message(self, session_id: str, message: str | Message) -> Response:
        """
        Append a user message and run model/tool turns until the model stops
        asking for tools. Provider, tool and empty-response failures come back
        as error-typed responses; session errors propagate.
        """
        self.registry.get(session_id)
        if isinstance(message, str):
            message = Message.user(message)
        async with self._turn(session_id):
            # the turn queued ahead of this one may have closed it
            session = self.registry.get(session_id)
            if session.status is not SessionStatus.ACTIVE:
                raise SessionError(
                    f"Session {session_id} is {session.status.value}", session_id, code="SESSION_CLOSED"
                )
            self._append(session_id, message)
            return await self._run_turns(session_id)

    async def _run_turns(self, session_id: str) -> Response:
        hub = await self._hub_for_session(self.registry.get(session_id))
        parser = ToolRequestParser(hub.catalog)
        tool_turns = 0
        while True:
            session = self.registry.get(session_id)
            try:
                reply = await self.provider.complete(session)
                if not reply.text:
                    raise InvalidResponseError("Provider returned an empty response", session_id)
            except (ProviderError, InvalidResponseError) as exc:
                logger.error("Model turn failed for session %s: %s", session_id, exc)
                return Response.from_error(exc, provider=self.provider.name, model=self.provider.model)

            self._append(
                session_id,
                Message.assistant(
                    reply.text,
                    provider=reply.provider,
                    model=reply.model,
                    usage={
                        "inputTokens": reply.input_tokens,
                        "outputTokens": reply.output_tokens,
                        "cacheWriteTokens": reply.cache_write_tokens,
                        "cacheReadTokens": reply.cache_read_tokens,
                    },
                ),
            )
            response = Response.from_text(
                reply.text,
                provider=reply.provider,
                model=reply.model,
                prompt_tokens=reply.input_tokens,
                completion_tokens=reply.output_tokens,
            )

            request = parser.parse(reply.text)
            if request is None:
                return response

            try:
                outcome = await self._dispatch(session_id, hub, request)
            except ToolError as exc:
                logger.error("Tool %s failed for session %s: %s", request.tool_name, session_id, exc)
                return Response.from_error(exc, provider=reply.provider, model=reply.model)
            if outcome.message is None:
                # handled by a child session; its completion already continued this one
                return self._latest_reply(session_id, response)

            self._append(session_id, outcome.message)
            tool_turns += 1
            if self.options.max_tool_turns is not None and tool_turns >= self.options.max_tool_turns:
                logger.warning("Session %s hit the tool turn limit (%d)", session_id, tool_turns)
                return Response(
                    type=ResponseType.TOOL_RESULT,
                    content=ResponseContent(text=outcome.message.content),
                    metadata=response.metadata,
                )

    def _latest_reply(self, session_id: str, fallback: Response) -> Response:
        session = self.registry.get(session_id)
        for message in reversed(session.messages):
            if message.role is MessageRole.ASSISTANT and message.content.strip():
                if message.content == fallback.content.text:
                    return fallback
                return Response.from_text(
                    message.content,
                    provider=message.metadata.get("provider", ""),
                    model=message.metadata.get("model", ""),
                )
        return fallback

    async def _dispatch(self, session_id: str, hub: McpHub, request: ToolInvocationRequest) -> _ToolOutcome:
        if request.server_name == SESSION_SERVER:
            return await self._run_session_tool(session_id, request)

        started = time.perf_counter()
        result = await hub.call_tool(request.server_name, request.tool_name, request.parameters)
        return _ToolOutcome(self._tool_result_message(request, result, time.perf_counter() - started), result)

    @staticmethod
    def _tool_result_message(request: ToolInvocationRequest, result: ToolCallResult, duration: float) -> Message:
        output = "\n".join(item.text for item in result.content if item.type == "text")
        call = {
            "toolName": request.tool_name,
            "serverName": request.server_name,
            "parameters": request.parameters,
            "timestamp": _iso_now(),
            "result": {
                "status": "success" if result.success else "error",
                "output": output,
                "duration": round(duration * 1000),
            },
        }
        if result.error:
            call["result"]["error"] = result.error
        return Message.user(result.model_dump_json(by_alias=True, exclude_none=True), toolCalls=[call])

    async def _run_session_tool(self, session_id: str, request: ToolInvocationRequest) -> _ToolOutcome:
        started = time.perf_counter()
        if request.tool_name == RUN_CHILD_SESSION:
            try:
                await self.create_child_session(
                    session_id, request.parameters["role"], request.parameters["prompt"]
                )
            except ConfigurationError as exc:
                result = ToolCallResult.failure(f"Could not start child session: {exc.message}")
                return _ToolOutcome(self._tool_result_message(request, result, time.perf_counter() - started), result)
            return _ToolOutcome()

        if request.tool_name == FINISH_CHILD_SESSION:
            if self.hierarchy.parent_of(session_id) is None:
                result = ToolCallResult.failure("This session has no parent session to report to")
                return _ToolOutcome(self._tool_result_message(request, result, time.perf_counter() - started), result)
            await self.complete_child_session(session_id, request.parameters["summary"])
            return _ToolOutcome()

        result = ToolCallResult.failure(f"Unknown session tool: {request.tool_name}")
        return _ToolOutcome(self._tool_result_message(request, result, time.perf_counter() - started), result)

    # ------------------------------------------------------------------
    # Child sessions
    # ------------------------------------------------------------------

    def _record_child(self, parent_id: str, child_id: str, status: SessionStatus, summary: str | None = None) -> None:
        parent = self.registry.get(parent_id)
        metadata = dict(parent.metadata)
        hierarchy = dict(metadata.get("sessionHierarchy") or {"parentId": parent.parent_id, "childSessions": []})
        entries = [e for e in hierarchy.get("childSessions", []) if e.get("id") != child_id]
        entry: dict[str, Any] = {"id": child_id, "status": status.value}
        if summary is not None:
            entry["summary"] = summary
        hierarchy["childSessions"] = [*entries, entry]
        metadata["sessionHierarchy"] = hierarchy
        child_ids = parent.child_session_ids
        if child_id not in child_ids:
            child_ids = [*child_ids, child_id]
        self.update_session(parent_id, metadata=metadata, child_session_ids=child_ids)

    async def create_child_session(self, parent_id: str, role_name: str, prompt: str) -> Session:
        """Create a child linked both ways to ``parent_id`` and run ``prompt`` in it."""
        await self.resume_session(parent_id)
        child = await self.create_session(role_name, parent_id=parent_id)
        self.hierarchy.link(parent_id, child.id)
        self._record_child(parent_id, child.id, SessionStatus.ACTIVE)
        logger.info("Session %s started child %s", parent_id, child.id)
        if prompt:
            await self.execute_message(child.id, prompt)
        return self.registry.get(child.id)

    async def complete_child_session(self, session_id: str, summary: str) -> Response:
        """Mark the child completed and continue its parent with the summary."""
        parent_id = self.hierarchy.parent_of(session_id)
        if parent_id is None:
            raise SessionError(f"Session {session_id} is not a child session", session_id, code="NOT_A_CHILD")
        # the parent may only be on disk when just the child was resumed
        await self.resume_session(parent_id)
        child = self.registry.get(session_id)
        metadata = dict(child.metadata)
        metadata["completedAt"] = _iso_now()
        metadata["summary"] = summary
        self.update_session(session_id, status=SessionStatus.COMPLETED, metadata=metadata)
        self._locks.pop(session_id, None)
        self._record_child(parent_id, session_id, SessionStatus.COMPLETED, summary)
        logger.info("Child session %s completed; resuming %s", session_id, parent_id)
        report = Message.user(summary, childSessionId=session_id, kind="child_session_result")
        return await self.execute_message(parent_id, report)

    # ------------------------------------------------------------------

    async def shutdown(self) -> None:
        for hub in self._hubs.values():
            await hub.dispose()
        self._hubs.clear()
        await self.provider.shutdown()
