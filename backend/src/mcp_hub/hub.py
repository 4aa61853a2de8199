"""McpHub: owns the connections to every configured tool server.

The hub is the only place tools are dispatched. It keeps one
``ServerConnection`` per configured server, sorted in configuration order,
and keeps the shared ``ToolCatalog`` in step with what each server lists.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Mapping

from mcp.shared.exceptions import McpError

from src.errors import ServerConnectionError, ToolDeclinedError, ToolError, ToolExecutionError, ToolNotFoundError

from .catalog import ToolCatalog
from .models import (
    ConnectionStatus,
    ResourceResponse,
    ServerConfig,
    ServerConnection,
    ToolCallResult,
    ToolDescriptor,
)
from .transport import TransportConnection

logger = logging.getLogger(__name__)

ConfirmationGate = Callable[[str, str, Mapping[str, Any]], Awaitable[bool]]
ConnectionFactory = Callable[..., TransportConnection]


async def console_confirmation(server_name: str, tool_name: str, arguments: Mapping[str, Any]) -> bool:
    """Ask on the terminal before a tool runs."""
    prompt = f"Do you want to run tool '{tool_name}' on server '{server_name}'? (Y/N) "
    answer = await asyncio.to_thread(input, prompt)
    return answer.strip().lower() in ("y", "yes")


class McpHub:
    def __init__(
        self,
        servers: Mapping[str, ServerConfig] | None = None,
        *,
        auto_approve_tools: bool = False,
        confirm: ConfirmationGate | None = None,
        connection_factory: ConnectionFactory = TransportConnection,
        catalog: ToolCatalog | None = None,
    ) -> None:
        self._servers: dict[str, ServerConfig] = dict(servers or {})
        self.auto_approve_tools = auto_approve_tools
        self._confirm = confirm or console_confirmation
        self._connection_factory = connection_factory
        self._connections: list[ServerConnection] = []
        self.catalog = catalog or ToolCatalog()
        self.is_connecting = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize_servers(self, configs: Mapping[str, ServerConfig] | None = None) -> None:
        """Connect every configured server. One server failing never stops the others."""
        await self.update_server_connections(self._servers if configs is None else configs)

    async def update_server_connections(self, servers: Mapping[str, ServerConfig]) -> None:
        self._servers = dict(servers)
        self.is_connecting = True
        try:
            for name in [c.name for c in self._connections if c.name not in self._servers]:
                await self.delete_connection(name)
                logger.info("Deleted MCP server: %s", name)
            await asyncio.gather(
                *(self._update_single_server(name, config) for name, config in self._servers.items())
            )
        finally:
            self.is_connecting = False
            self._sort_connections()

    async def _update_single_server(self, name: str, config: ServerConfig) -> None:
        current = self.find_connection(name)
        if current is not None and not self.has_config_changed(current.config, config):
            return
        try:
            await self._connect_to_server(name, config)
            logger.info("%s MCP server: %s", "Reconnected" if current else "Connected", name)
        except Exception as exc:
            logger.error("Failed to %s MCP server %s: %s", "update" if current else "connect", name, exc)

    @staticmethod
    def has_config_changed(current: ServerConfig | None, new: ServerConfig) -> bool:
        if current is None:
            return True
        old_values = current.model_dump()
        return any(old_values.get(key) != value for key, value in new.model_dump().items())

    async def _connect_to_server(self, name: str, config: ServerConfig) -> ServerConnection:
        await self.delete_connection(name)
        connection = ServerConnection(name=name, config=config, status=ConnectionStatus.CONNECTING)
        self._connections.append(connection)
        if config.disabled:
            connection.status = ConnectionStatus.DISCONNECTED
            return connection

        transport = self._connection_factory(
            name,
            config,
            on_error=lambda error: self._handle_transport_error(connection, error),
            on_close=lambda: self._handle_transport_close(connection),
            on_stderr=lambda line: connection.append_error(line),
        )
        connection.transport = transport
        try:
            tools = await transport.start()
        except Exception as exc:
            connection.status = ConnectionStatus.DISCONNECTED
            connection.append_error(str(exc))
            if isinstance(exc, ServerConnectionError):
                raise
            raise ServerConnectionError(f"Failed to connect to {name}: {exc}", name) from exc

        connection.tools = [self._to_descriptor(tool, config) for tool in tools]
        connection.status = ConnectionStatus.CONNECTED
        connection.error = ""
        self.catalog.register_server_tools(name, connection.tools)
        return connection

    @staticmethod
    def _to_descriptor(tool: Any, config: ServerConfig) -> ToolDescriptor:
        schema = dict(getattr(tool, "inputSchema", None) or {})
        schema.setdefault("type", "object")
        schema.setdefault("properties", {})
        schema.setdefault("required", [])
        return ToolDescriptor(
            name=tool.name,
            description=getattr(tool, "description", None) or "",
            input_schema=schema,
            always_allow=tool.name in config.always_allow,
        )

    def _handle_transport_error(self, connection: ServerConnection, error: Exception) -> None:
        logger.error("Transport error for %s: %s", connection.name, error)
        connection.status = ConnectionStatus.DISCONNECTED
        connection.append_error(str(error))

    def _handle_transport_close(self, connection: ServerConnection) -> None:
        logger.warning("Transport closed for %s", connection.name)
        connection.status = ConnectionStatus.DISCONNECTED

    async def restart_connection(self, server_name: str) -> None:
        connection = self.find_connection(server_name)
        if connection is None:
            return
        self.is_connecting = True
        connection.status = ConnectionStatus.CONNECTING
        connection.error = ""
        try:
            await self._connect_to_server(server_name, connection.config)
            logger.info("Restarted MCP server: %s", server_name)
        finally:
            self.is_connecting = False
            self._sort_connections()

    async def delete_connection(self, name: str) -> None:
        connection = self.find_connection(name)
        if connection is None:
            return
        if connection.transport is not None:
            try:
                await connection.transport.close()
            except Exception as exc:
                logger.error("Failed to close transport for %s: %s", name, exc)
        self._connections = [c for c in self._connections if c.name != name]
        self.catalog.unregister_server(name)

    async def dispose(self) -> None:
        for name in [c.name for c in self._connections]:
            await self.delete_connection(name)
        self.catalog.clear()

    def _sort_connections(self) -> None:
        order = {name: index for index, name in enumerate(self._servers)}
        self._connections.sort(key=lambda c: order.get(c.name, len(order)))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_connection(self, name: str) -> ServerConnection | None:
        return next((c for c in self._connections if c.name == name), None)

    def get_servers(self) -> list[ServerConnection]:
        return [c for c in self._connections if not c.disabled]

    def get_all_servers(self) -> list[ServerConnection]:
        return list(self._connections)

    def get_tool_catalog(self) -> ToolCatalog:
        return self.catalog

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _usable_connection(self, server_name: str, tool_name: str = "") -> ServerConnection:
        connection = self.find_connection(server_name)
        if connection is None:
            raise ToolNotFoundError(
                f"No connection found for server: {server_name}", tool_name, server_name
            )
        if connection.disabled:
            raise ToolNotFoundError(
                f'Server "{server_name}" is disabled and cannot be used', tool_name, server_name
            )
        if connection.transport is None or connection.status is not ConnectionStatus.CONNECTED:
            raise ToolExecutionError(
                f'Server "{server_name}" is not connected: {connection.error or connection.status.value}',
                tool_name,
                server_name,
            )
        return connection

    def _is_auto_approved(self, connection: ServerConnection, tool_name: str) -> bool:
        return self.auto_approve_tools or tool_name in connection.config.always_allow

    async def call_tool(
        self, server_name: str, tool_name: str, arguments: Mapping[str, Any] | None = None
    ) -> ToolCallResult:
        connection = self._usable_connection(server_name, tool_name)
        arguments = dict(arguments or {})

        if not self._is_auto_approved(connection, tool_name):
            if not await self._confirm(server_name, tool_name, arguments):
                raise ToolDeclinedError(
                    f"User declined to run tool '{tool_name}' on server '{server_name}'",
                    tool_name,
                    server_name,
                )

        timeout = connection.config.timeout
        logger.info("Calling tool %s on %s (timeout %ss)", tool_name, server_name, timeout)
        started = time.perf_counter()
        try:
            response = await connection.transport.call_tool(tool_name, arguments, timeout=timeout)
        except ToolError:
            raise
        except (McpError, ServerConnectionError, OSError, asyncio.TimeoutError) as exc:
            raise ToolExecutionError(
                f"Tool '{tool_name}' on server '{server_name}' failed: {exc}",
                tool_name,
                server_name,
            ) from exc
        finally:
            logger.debug("Tool %s on %s took %.3fs", tool_name, server_name, time.perf_counter() - started)
        return ToolCallResult.from_mcp(response)

    async def read_resource(self, server_name: str, uri: str) -> ResourceResponse:
        connection = self._usable_connection(server_name)
        try:
            response = await connection.transport.read_resource(uri)
        except (McpError, ServerConnectionError, OSError, asyncio.TimeoutError) as exc:
            raise ToolExecutionError(
                f"Reading resource {uri} from {server_name} failed: {exc}", "", server_name
            ) from exc
        return ResourceResponse.from_mcp(response)
