"""Closed set of parameter schema variants, built from JSON-Schema dicts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Union


@dataclass(frozen=True, kw_only=True)
class _Schema:
    description: str = ""
    default: Any = None
    enum: tuple[Any, ...] | None = None


@dataclass(frozen=True, kw_only=True)
class StringSchema(_Schema):
    pattern: str | None = None
    min_length: int | None = None
    max_length: int | None = None


@dataclass(frozen=True, kw_only=True)
class NumberSchema(_Schema):
    integer: bool = False
    minimum: float | None = None
    maximum: float | None = None
    exclusive_minimum: float | None = None
    exclusive_maximum: float | None = None


@dataclass(frozen=True, kw_only=True)
class BooleanSchema(_Schema):
    pass


@dataclass(frozen=True, kw_only=True)
class ArraySchema(_Schema):
    items: SchemaNode | None = None
    min_items: int | None = None
    max_items: int | None = None


@dataclass(frozen=True, kw_only=True)
class ObjectSchema(_Schema):
    properties: dict[str, SchemaNode] = field(default_factory=dict)
    required: tuple[str, ...] = ()
    # None: not stated. Top-level parameter maps treat that as closed.
    additional_properties: bool | None = None


@dataclass(frozen=True, kw_only=True)
class AnySchema(_Schema):
    pass


SchemaNode = Union[StringSchema, NumberSchema, BooleanSchema, ArraySchema, ObjectSchema, AnySchema]


def _numeric(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def _schema_type(raw: Mapping[str, Any]) -> str | None:
    kind = raw.get("type")
    if isinstance(kind, list):
        kind = next((k for k in kind if k != "null"), None)
    if kind is None and "properties" in raw:
        return "object"
    return kind


def parse_schema(raw: Mapping[str, Any] | None) -> SchemaNode:
    if not raw:
        return AnySchema()
    common: dict[str, Any] = {
        "description": raw.get("description") or "",
        "default": raw.get("default"),
        "enum": tuple(raw["enum"]) if isinstance(raw.get("enum"), list) else None,
    }
    kind = _schema_type(raw)
    if kind == "string":
        return StringSchema(
            pattern=raw.get("pattern"),
            min_length=raw.get("minLength"),
            max_length=raw.get("maxLength"),
            **common,
        )
    if kind in ("number", "integer"):
        exclusive_min = raw.get("exclusiveMinimum")
        exclusive_max = raw.get("exclusiveMaximum")
        minimum = _numeric(raw.get("minimum"))
        maximum = _numeric(raw.get("maximum"))
        # draft-04 style boolean exclusives
        if exclusive_min is True:
            exclusive_min, minimum = minimum, None
        if exclusive_max is True:
            exclusive_max, maximum = maximum, None
        return NumberSchema(
            integer=kind == "integer",
            minimum=minimum,
            maximum=maximum,
            exclusive_minimum=_numeric(exclusive_min),
            exclusive_maximum=_numeric(exclusive_max),
            **common,
        )
    if kind == "boolean":
        return BooleanSchema(**common)
    if kind == "array":
        items = raw.get("items")
        return ArraySchema(
            items=parse_schema(items) if isinstance(items, Mapping) else None,
            min_items=raw.get("minItems"),
            max_items=raw.get("maxItems"),
            **common,
        )
    if kind == "object":
        additional = raw.get("additionalProperties")
        return ObjectSchema(
            properties={
                name: parse_schema(prop)
                for name, prop in (raw.get("properties") or {}).items()
                if isinstance(prop, Mapping)
            },
            required=tuple(raw.get("required") or ()),
            additional_properties=None if additional is None else additional is not False,
            **common,
        )
    return AnySchema(**common)


def parameter_schema(raw: Mapping[str, Any] | None) -> ObjectSchema:
    """Schema for a tool's whole parameter map; always an object."""
    schema = parse_schema(raw)
    if isinstance(schema, ObjectSchema):
        return schema
    return ObjectSchema()
