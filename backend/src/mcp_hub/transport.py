"""Stdio transport: one child process speaking MCP JSON-RPC over its pipes.

The connection owns a background task that spawns the process, pumps its
stdout/stdin/stderr through anyio memory streams, and keeps an MCP
``ClientSession`` open until ``close()`` is called or the process exits.
Error and close callbacks are wired before the handshake starts so nothing
the server does during startup is lost.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from datetime import timedelta
from typing import Any, Awaitable, Callable

import anyio
from anyio.abc import TaskGroup
from mcp import ClientSession, types
from mcp.client.stdio import get_default_environment
from mcp.shared.message import SessionMessage
from pydantic import AnyUrl, ValidationError

from src.errors import ServerConnectionError

from .models import ServerConfig

logger = logging.getLogger(__name__)

CLIENT_INFO = types.Implementation(name="toolpilot", version="0.1.0")
STREAM_LIMIT = 16 * 1024 * 1024
CLOSE_TIMEOUT = 5.0

ErrorCallback = Callable[[Exception], "Awaitable[None] | None"]
CloseCallback = Callable[[], "Awaitable[None] | None"]
StderrCallback = Callable[[str], "Awaitable[None] | None"]


class TransportConnection:
    """Client side of one stdio tool server."""

    def __init__(
        self,
        name: str,
        config: ServerConfig,
        *,
        on_error: ErrorCallback | None = None,
        on_close: CloseCallback | None = None,
        on_stderr: StderrCallback | None = None,
    ) -> None:
        self.name = name
        self.config = config
        self.process: asyncio.subprocess.Process | None = None
        self.tools: list[types.Tool] = []
        self.stderr_lines: list[str] = []
        self._on_error = on_error
        self._on_close = on_close
        self._on_stderr = on_stderr
        self._session: ClientSession | None = None
        self._runner: asyncio.Task | None = None
        self._ready: asyncio.Future | None = None
        self._task_group: TaskGroup | None = None
        self._closing = asyncio.Event()

    @property
    def is_connected(self) -> bool:
        return self._session is not None

    async def start(self) -> list[types.Tool]:
        """Spawn the server, complete the MCP handshake and return its tool list."""
        if self._runner is not None:
            raise ServerConnectionError(f"Transport for {self.name} already started", self.name)
        self._ready = asyncio.get_running_loop().create_future()
        self._runner = asyncio.create_task(self._run(), name=f"mcp-transport:{self.name}")
        return await self._ready

    async def list_tools(self) -> list[types.Tool]:
        listing = await self._require_session().list_tools()
        self.tools = list(listing.tools)
        return self.tools

    async def call_tool(self, name: str, arguments: dict[str, Any], timeout: float) -> types.CallToolResult:
        session = self._require_session()
        return await session.call_tool(name, arguments, read_timeout_seconds=timedelta(seconds=timeout))

    async def read_resource(self, uri: str) -> types.ReadResourceResult:
        return await self._require_session().read_resource(AnyUrl(uri))

    async def close(self) -> None:
        self._closing.set()
        runner = self._runner
        if runner is None or runner.done():
            return
        await asyncio.wait({runner}, timeout=CLOSE_TIMEOUT)
        if not runner.done():
            runner.cancel()
            await asyncio.wait({runner})
        if self._ready is not None and not self._ready.done():
            self._ready.set_exception(ServerConnectionError(f"Connection to {self.name} closed", self.name))

    # ------------------------------------------------------------------
    # Background task
    # ------------------------------------------------------------------

    def _require_session(self) -> ClientSession:
        if self._session is None:
            raise ServerConnectionError(f"Server {self.name} is not connected", self.name)
        return self._session

    def _environment(self) -> dict[str, str]:
        return {**get_default_environment(), **self.config.env}

    async def _run(self) -> None:
        try:
            self.process = await asyncio.create_subprocess_exec(
                self.config.command,
                *self.config.args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self._environment(),
                limit=STREAM_LIMIT,
            )
        except OSError as exc:
            self._fail_handshake(exc)
            return

        read_writer, read_stream = anyio.create_memory_object_stream(0)
        write_stream, write_reader = anyio.create_memory_object_stream(0)
        try:
            async with anyio.create_task_group() as tg:
                self._task_group = tg
                tg.start_soon(self._pump_stdout, read_writer)
                tg.start_soon(self._pump_stdin, write_reader)
                tg.start_soon(self._pump_stderr)
                async with ClientSession(
                    read_stream,
                    write_stream,
                    read_timeout_seconds=timedelta(seconds=self.config.timeout),
                    client_info=CLIENT_INFO,
                ) as session:
                    await session.initialize()
                    listing = await session.list_tools()
                    self.tools = list(listing.tools)
                    self._session = session
                    if not self._ready.done():
                        self._ready.set_result(self.tools)
                    await self._closing.wait()
                tg.cancel_scope.cancel()
        except Exception as exc:
            if not self._ready.done():
                self._fail_handshake(exc)
            else:
                await self._notify(self._on_error, _root_cause(exc))
        finally:
            self._session = None
            self._task_group = None
            await self._terminate()

        if not self._ready.done():
            self._fail_handshake(None)
        elif not self._closing.is_set():
            self._closing.set()
            await self._notify(self._on_close)

    async def _pump_stdout(self, sink: Any) -> None:
        stdout = self.process.stdout
        async with sink:
            while True:
                try:
                    line = await stdout.readline()
                except ValueError as exc:
                    await self._notify(self._on_error, exc)
                    break
                if not line:
                    break
                text = line.decode("utf-8", errors="replace").strip()
                if not text:
                    continue
                try:
                    message = types.JSONRPCMessage.model_validate_json(text)
                except ValidationError as exc:
                    logger.warning(
                        "Ignoring non-protocol output from %s (%d errors): %s",
                        self.name,
                        exc.error_count(),
                        text[:200],
                    )
                    continue
                await sink.send(SessionMessage(message))
        # stdout closed: the process is gone, tear the session down
        if self._task_group is not None:
            self._task_group.cancel_scope.cancel()

    async def _pump_stdin(self, source: Any) -> None:
        stdin = self.process.stdin
        async with source:
            async for session_message in source:
                payload = session_message.message.model_dump_json(by_alias=True, exclude_none=True)
                stdin.write((payload + "\n").encode("utf-8"))
                await stdin.drain()

    async def _pump_stderr(self) -> None:
        stderr = self.process.stderr
        while True:
            line = await stderr.readline()
            if not line:
                return
            text = line.decode("utf-8", errors="replace").rstrip()
            if not text:
                continue
            logger.debug("[%s stderr] %s", self.name, text)
            self.stderr_lines.append(text)
            await self._notify(self._on_stderr, text)

    async def _terminate(self) -> None:
        process = self.process
        if process is None or process.returncode is not None:
            return
        if process.stdin is not None and not process.stdin.is_closing():
            process.stdin.close()
        try:
            await asyncio.wait_for(process.wait(), timeout=2.0)
            return
        except asyncio.TimeoutError:
            pass
        try:
            process.terminate()
            await asyncio.wait_for(process.wait(), timeout=2.0)
        except ProcessLookupError:
            return
        except asyncio.TimeoutError:
            logger.warning("Server %s did not exit, killing it", self.name)
            process.kill()
            await process.wait()

    def _fail_handshake(self, cause: BaseException | None) -> None:
        detail = str(_root_cause(cause)) if cause is not None else "process exited during handshake"
        stderr = "\n".join(self.stderr_lines[-20:])
        message = f"Failed to connect to {self.name}: {detail}"
        if stderr:
            message = f"{message}\n{stderr}"
        error = ServerConnectionError(message, self.name, details={"stderr": stderr} if stderr else None)
        if cause is not None:
            error.__cause__ = cause
        if not self._ready.done():
            self._ready.set_exception(error)

    async def _notify(self, callback: Callable[..., Any] | None, *args: Any) -> None:
        if callback is None:
            return
        try:
            result = callback(*args)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Transport callback for %s failed", self.name)


def _root_cause(error: BaseException) -> BaseException:
    while isinstance(error, BaseExceptionGroup) and error.exceptions:
        error = error.exceptions[0]
    return error
