"""Registry of tool documentation, built from connected servers' tool lists."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Literal

from .markup import format_mcp_tool_call, format_tool_call
from .models import ToolDescriptor

logger = logging.getLogger(__name__)

Markup = Literal["mcp", "direct"]


@dataclass
class ToolDocumentation:
    server_name: str
    name: str
    description: str
    usage: str
    examples: list[str] = field(default_factory=list)
    schema: dict[str, Any] = field(default_factory=dict)


def default_value(prop: dict[str, Any]) -> Any:
    """Placeholder value for a schema property, used to build examples."""
    if "default" in prop:
        return prop["default"]
    kind = prop.get("type")
    if isinstance(kind, list):
        kind = next((k for k in kind if k != "null"), None)
    if kind == "string":
        if prop.get("enum"):
            return prop["enum"][0]
        return "example_string"
    if kind in ("number", "integer"):
        return prop.get("minimum", 0)
    if kind == "boolean":
        return False
    if kind == "array":
        items = prop.get("items") or {}
        if items.get("type") == "object":
            return [default_value(items)]
        return ["example_item"]
    if kind == "object":
        return {name: default_value(sub) for name, sub in (prop.get("properties") or {}).items()}
    return "example_value"


class ToolCatalog:
    """Maps tool names to documentation; the first server to register a name owns it."""

    def __init__(self) -> None:
        self._tools: dict[str, ToolDocumentation] = {}
        self._servers: dict[str, list[str]] = {}
        self._by_server: dict[str, dict[str, ToolDocumentation]] = {}

    def register_server_tools(
        self, server_name: str, tools: Iterable[ToolDescriptor], markup: Markup = "mcp"
    ) -> None:
        docs = {tool.name: self._document(server_name, tool, markup) for tool in tools}
        if server_name in self._by_server:
            self.unregister_server(server_name)
        self._by_server[server_name] = docs
        self._servers[server_name] = list(docs)
        for name, doc in docs.items():
            if name in self._tools and self._tools[name].server_name != server_name:
                logger.debug(
                    "Tool %s from %s shadowed by %s", name, server_name, self._tools[name].server_name
                )
                continue
            self._tools[name] = doc

    def unregister_server(self, server_name: str) -> None:
        self._servers.pop(server_name, None)
        self._by_server.pop(server_name, None)
        for name in [n for n, doc in self._tools.items() if doc.server_name == server_name]:
            del self._tools[name]
            replacement = next((docs[name] for docs in self._by_server.values() if name in docs), None)
            if replacement is not None:
                self._tools[name] = replacement

    def get_tool_documentation(self, tool_name: str) -> ToolDocumentation | None:
        return self._tools.get(tool_name)

    def get_server_tool_documentation(self, server_name: str, tool_name: str) -> ToolDocumentation | None:
        return self._by_server.get(server_name, {}).get(tool_name)

    def get_all_tools(self) -> list[str]:
        return list(self._tools)

    def get_server_tools(self, server_name: str) -> list[str]:
        return list(self._servers.get(server_name, []))

    def get_servers(self) -> list[str]:
        return list(self._servers)

    def is_tool_available(self, server_name: str, tool_name: str) -> bool:
        return tool_name in self._by_server.get(server_name, {})

    def get_catalog(self) -> dict[str, Any]:
        return {"tools": dict(self._tools), "servers": {k: list(v) for k, v in self._servers.items()}}

    def clear(self) -> None:
        self._tools.clear()
        self._servers.clear()
        self._by_server.clear()

    @staticmethod
    def _document(server_name: str, tool: ToolDescriptor, markup: Markup) -> ToolDocumentation:
        properties = tool.input_schema.get("properties") or {}

        def render(params: dict[str, Any]) -> str:
            if markup == "direct":
                return format_tool_call(tool.name, params)
            return format_mcp_tool_call(server_name, tool.name, params)

        usage = render(
            {name: prop.get("description") or f"{name} value" for name, prop in properties.items()}
        )
        if tool.examples:
            examples = [
                f"{example.description}\n{render(example.input)}" if example.description else render(example.input)
                for example in tool.examples
            ]
        else:
            examples = [render({name: default_value(prop) for name, prop in properties.items()})]

        return ToolDocumentation(
            server_name=server_name,
            name=tool.name,
            description=tool.description,
            usage=usage,
            examples=examples,
            schema=tool.input_schema,
        )
