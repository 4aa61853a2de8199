"""Extract tool invocation requests from model output.

Two shapes are recognised. The direct form names the tool as the outer tag::

    <read_file>
    <path>notes.txt</path>
    </read_file>

and the routed form names server and tool explicitly::

    <use_mcp_tool>
    <server_name>files</server_name>
    <tool_name>read_file</tool_name>
    <arguments>
      <path>notes.txt</path>
    </arguments>
    </use_mcp_tool>

Candidates that are malformed, unknown to the catalog or fail validation are
logged and skipped; the parser never raises on model text.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Iterator

from src.errors import TagParseError, ToolError, ToolNotFoundError, ToolValidationError
from src.mcp_hub.catalog import ToolCatalog, ToolDocumentation
from src.mcp_hub.markup import USE_MCP_TOOL

from .schema import ArraySchema, ObjectSchema, SchemaNode, StringSchema, parameter_schema
from .tags import Element, is_valid_tag_name, iter_elements
from .validator import ParameterValidator
from .values import collect_children, element_value, normalize_value

logger = logging.getLogger(__name__)

SERVER_NAME_PATTERN = re.compile(r"[A-Za-z0-9][A-Za-z0-9_.-]*")


@dataclass
class ToolInvocationRequest:
    tool_name: str
    parameters: dict[str, Any]
    raw: str
    server_name: str | None = None


@dataclass
class TagBlock:
    name: str
    parameters: dict[str, Any]
    raw: str


def parse_tag_blocks(text: str) -> list[TagBlock]:
    """Every well-formed ``<name>...</name>`` parameter block, schema-free."""
    blocks: list[TagBlock] = []
    for element in iter_elements(text):
        if not is_valid_tag_name(element.name):
            logger.debug("Skipping block with invalid tag name <%s>", element.name)
            continue
        if element.children is None:
            if element.inner.strip():
                logger.debug("Skipping <%s>: text content, not parameters", element.name)
                continue
            blocks.append(TagBlock(element.name, {}, element.raw))
            continue
        value = element_value(element)
        if not isinstance(value, dict):
            logger.debug("Skipping <%s>: item list, not parameters", element.name)
            continue
        blocks.append(TagBlock(element.name, value, element.raw))
    return blocks


def bind_element(element: Element, schema: SchemaNode | None) -> Any:
    """Value of ``element`` shaped by the schema it is bound to."""
    if isinstance(schema, StringSchema):
        return element.inner.strip()
    if element.children is None:
        return normalize_value(element.inner)
    if isinstance(schema, ArraySchema) and all(c.name == "item" for c in element.children):
        return [bind_element(child, schema.items) for child in element.children]
    if isinstance(schema, ObjectSchema):
        return bind_children(element.children, schema)
    return element_value(element)


def bind_children(children: list[Element], schema: ObjectSchema) -> dict[str, Any]:
    return collect_children(children, lambda child: bind_element(child, schema.properties.get(child.name)))


class ToolRequestParser:
    def __init__(self, catalog: ToolCatalog, validator: ParameterValidator | None = None) -> None:
        self.catalog = catalog
        self.validator = validator or ParameterValidator()

    def parse(self, text: str) -> ToolInvocationRequest | None:
        """First valid request in document order, or None."""
        return next(self.iter_requests(text), None)

    def parse_all(self, text: str) -> list[ToolInvocationRequest]:
        return list(self.iter_requests(text))

    def iter_requests(self, text: str) -> Iterator[ToolInvocationRequest]:
        for element in iter_elements(text):
            yield from self._requests_in(element)

    def _requests_in(self, element: Element) -> Iterator[ToolInvocationRequest]:
        if element.name == USE_MCP_TOOL:
            builder = self._from_routed_block
        elif is_valid_tag_name(element.name) and self.catalog.get_tool_documentation(element.name):
            builder = self._from_direct_block
        else:
            # prose markup such as <thinking> may wrap a real request
            for inner in iter_elements(element.inner):
                yield from self._requests_in(inner)
            return

        try:
            request = builder(element)
        except (TagParseError, ToolError) as exc:
            logger.warning("Skipping invalid tool request <%s>: %s", element.name, exc)
            return
        yield request

    def _from_direct_block(self, element: Element) -> ToolInvocationRequest:
        doc = self.catalog.get_tool_documentation(element.name)
        schema = parameter_schema(doc.schema)
        if element.children is None:
            if element.inner.strip():
                raise TagParseError(f"<{element.name}> holds text instead of parameter tags")
            raw_params: dict[str, Any] = {}
        else:
            raw_params = bind_children(element.children, schema)
        parameters = self._validated(doc, schema, raw_params)
        return ToolInvocationRequest(
            tool_name=doc.name, parameters=parameters, raw=element.raw, server_name=doc.server_name
        )

    def _from_routed_block(self, element: Element) -> ToolInvocationRequest:
        if element.children is None:
            raise TagParseError(f"<{USE_MCP_TOOL}> must contain server_name, tool_name and arguments")
        fields = {child.name: child for child in element.children}
        for required in ("server_name", "tool_name"):
            if required not in fields or fields[required].children is not None:
                raise TagParseError(f"<{USE_MCP_TOOL}> is missing <{required}>")

        server_name = fields["server_name"].inner.strip()
        tool_name = fields["tool_name"].inner.strip()
        if not SERVER_NAME_PATTERN.fullmatch(server_name):
            raise TagParseError(f"Invalid server name: {server_name!r}")
        if not is_valid_tag_name(tool_name):
            raise TagParseError(f"Invalid tool name: {tool_name!r}")

        doc = self.catalog.get_server_tool_documentation(server_name, tool_name)
        if doc is None:
            raise ToolNotFoundError(f"Tool {tool_name} is not available on {server_name}", tool_name, server_name)
        schema = parameter_schema(doc.schema)

        arguments = fields.get("arguments")
        if arguments is None:
            raw_params: dict[str, Any] = {}
        elif arguments.children is not None:
            raw_params = bind_children(arguments.children, schema)
        else:
            raw_params = self._json_arguments(arguments.inner)
        parameters = self._validated(doc, schema, raw_params)
        return ToolInvocationRequest(
            tool_name=tool_name, parameters=parameters, raw=element.raw, server_name=server_name
        )

    @staticmethod
    def _json_arguments(text: str) -> dict[str, Any]:
        text = text.strip()
        if not text:
            return {}
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError as exc:
            raise TagParseError(f"Arguments are neither tags nor JSON: {exc}") from exc
        if not isinstance(decoded, dict):
            raise TagParseError("JSON arguments must be an object")
        return decoded

    def _validated(self, doc: ToolDocumentation, schema: ObjectSchema, raw_params: dict[str, Any]) -> dict[str, Any]:
        result = self.validator.validate(raw_params, schema)
        if not result.is_valid:
            summary = "; ".join(f"{e.parameter}: {e.message}" for e in result.errors)
            raise ToolValidationError(
                f"Invalid parameters for {doc.name}: {summary}",
                doc.name,
                doc.server_name,
                details=[e.to_dict() for e in result.errors],
            )
        return result.value
