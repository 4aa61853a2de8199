"""Render tool invocations in the tag markup the model is taught to emit."""

from __future__ import annotations

import json
from typing import Any, Mapping

USE_MCP_TOOL = "use_mcp_tool"


def format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float, str)):
        return str(value)
    return json.dumps(value)


def format_tags(params: Mapping[str, Any], indent: str = "") -> list[str]:
    """One ``<key>value</key>`` line per parameter; lists become ``<item>`` runs."""
    lines: list[str] = []
    for key, value in params.items():
        if isinstance(value, Mapping) and value:
            lines.append(f"{indent}<{key}>")
            lines.extend(format_tags(value, indent + "  "))
            lines.append(f"{indent}</{key}>")
        elif isinstance(value, (list, tuple)) and value:
            lines.append(f"{indent}<{key}>")
            for item in value:
                lines.extend(format_tags({"item": item}, indent + "  "))
            lines.append(f"{indent}</{key}>")
        else:
            lines.append(f"{indent}<{key}>{format_value(value)}</{key}>")
    return lines


def format_tool_call(tool_name: str, params: Mapping[str, Any]) -> str:
    return "\n".join([f"<{tool_name}>", *format_tags(params), f"</{tool_name}>"])


def format_mcp_tool_call(server_name: str, tool_name: str, arguments: Mapping[str, Any]) -> str:
    lines = [
        f"<{USE_MCP_TOOL}>",
        f"<server_name>{server_name}</server_name>",
        f"<tool_name>{tool_name}</tool_name>",
        "<arguments>",
        *format_tags(arguments, "  "),
        "</arguments>",
        f"</{USE_MCP_TOOL}>",
    ]
    return "\n".join(lines)
