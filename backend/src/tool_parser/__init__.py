"""Tag markup parsing and parameter validation for tool requests."""

from .parser import TagBlock, ToolInvocationRequest, ToolRequestParser, parse_tag_blocks
from .schema import (
    AnySchema,
    ArraySchema,
    BooleanSchema,
    NumberSchema,
    ObjectSchema,
    SchemaNode,
    StringSchema,
    parameter_schema,
    parse_schema,
)
from .validator import ParameterValidator, ValidationErrorCode, ValidationIssue, ValidationResult
from .values import normalize_value

__all__ = [
    "AnySchema",
    "ArraySchema",
    "BooleanSchema",
    "NumberSchema",
    "ObjectSchema",
    "ParameterValidator",
    "SchemaNode",
    "StringSchema",
    "TagBlock",
    "ToolInvocationRequest",
    "ToolRequestParser",
    "ValidationErrorCode",
    "ValidationIssue",
    "ValidationResult",
    "normalize_value",
    "parameter_schema",
    "parse_schema",
    "parse_tag_blocks",
]
