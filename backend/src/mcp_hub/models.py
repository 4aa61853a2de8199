"""Data models for tool servers, their tools, and tool call results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from .transport import TransportConnection


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ServerConfig(BaseModel):
    """How to launch one stdio tool server."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    command: str
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)
    disabled: bool = False
    timeout: float = Field(default=60, ge=1, le=3600, description="Per-call timeout in seconds")
    always_allow: list[str] = Field(default_factory=list, alias="alwaysAllow")
    type: Literal["stdio"] = "stdio"


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


class ToolExample(BaseModel):
    description: str = ""
    input: dict[str, Any] = Field(default_factory=dict)


class ToolDescriptor(BaseModel):
    """A tool as listed by its server."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str = ""
    input_schema: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}, "required": []},
        alias="inputSchema",
    )
    always_allow: bool = Field(default=False, alias="alwaysAllow")
    examples: list[ToolExample] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Tool call results
# ---------------------------------------------------------------------------


class TextContent(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ImageContent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["image"] = "image"
    data: str
    mime_type: str = Field(alias="mimeType")


class ResourceBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    uri: str
    mime_type: str | None = Field(default=None, alias="mimeType")
    text: str | None = None
    blob: str | None = None


class ResourceContent(BaseModel):
    type: Literal["resource"] = "resource"
    resource: ResourceBody


ContentItem = Annotated[
    Union[TextContent, ImageContent, ResourceContent],
    Field(discriminator="type"),
]


class ToolCallResult(BaseModel):
    """Outcome of one tool call as reported by the server."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    content: list[ContentItem] = Field(default_factory=list)
    error: str | None = None

    @classmethod
    def from_mcp(cls, response: Any) -> ToolCallResult:
        """Keep only well-formed content items from an MCP ``CallToolResult``."""
        items: list[TextContent | ImageContent | ResourceContent] = []
        for item in getattr(response, "content", None) or []:
            kind = getattr(item, "type", None)
            if kind == "text" and isinstance(getattr(item, "text", None), str):
                items.append(TextContent(text=item.text))
            elif kind == "image" and isinstance(getattr(item, "data", None), str) and isinstance(
                getattr(item, "mimeType", None), str
            ):
                items.append(ImageContent(data=item.data, mime_type=item.mimeType))
            elif kind == "resource" and getattr(item, "resource", None) is not None:
                body = _resource_body(item.resource)
                if body is not None:
                    items.append(ResourceContent(resource=body))
        is_error = bool(getattr(response, "isError", False))
        error = None
        if is_error:
            error = "\n".join(i.text for i in items if isinstance(i, TextContent)) or "Tool reported an error"
        return cls(success=not is_error, content=items, error=error)

    @classmethod
    def failure(cls, message: str) -> ToolCallResult:
        return cls(success=False, content=[TextContent(text=message)], error=message)


class ResourceResponse(BaseModel):
    contents: list[ResourceBody] = Field(default_factory=list)

    @classmethod
    def from_mcp(cls, response: Any) -> ResourceResponse:
        bodies = [_resource_body(c) for c in getattr(response, "contents", None) or []]
        return cls(contents=[b for b in bodies if b is not None])


def _resource_body(resource: Any) -> ResourceBody | None:
    uri = getattr(resource, "uri", None)
    if uri is None:
        return None
    return ResourceBody(
        uri=str(uri),
        mime_type=getattr(resource, "mimeType", None),
        text=getattr(resource, "text", None),
        blob=getattr(resource, "blob", None),
    )


# ---------------------------------------------------------------------------
# Connections
# ---------------------------------------------------------------------------


class ConnectionStatus(str, Enum):
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


@dataclass
class ServerConnection:
    """Hub-side state of one tool server. Owned by the hub."""

    name: str
    config: ServerConfig
    status: ConnectionStatus = ConnectionStatus.CONNECTING
    error: str = ""
    tools: list[ToolDescriptor] = field(default_factory=list)
    transport: TransportConnection | None = field(default=None, repr=False)

    @property
    def disabled(self) -> bool:
        return self.config.disabled

    def append_error(self, message: str) -> None:
        self.error = f"{self.error}\n{message}" if self.error else message
