"""Tool server hub: connections, tool catalog and tool dispatch."""

from .catalog import ToolCatalog, ToolDocumentation
from .hub import ConfirmationGate, McpHub, console_confirmation
from .markup import format_mcp_tool_call, format_tool_call
from .models import (
    ConnectionStatus,
    ResourceResponse,
    ServerConfig,
    ServerConnection,
    TextContent,
    ToolCallResult,
    ToolDescriptor,
    ToolExample,
)
from .transport import TransportConnection

__all__ = [
    "ConfirmationGate",
    "ConnectionStatus",
    "McpHub",
    "ResourceResponse",
    "ServerConfig",
    "ServerConnection",
    "TextContent",
    "ToolCallResult",
    "ToolCatalog",
    "ToolDescriptor",
    "ToolDocumentation",
    "ToolExample",
    "TransportConnection",
    "console_confirmation",
    "format_mcp_tool_call",
    "format_tool_call",
]
