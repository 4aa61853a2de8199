"""Validate parsed parameters against a tool's schema.

Validation is permissive about representation: tag content arrives as text,
so numeric strings count as numbers, "true"/"false" as booleans and JSON
text as arrays or objects. Coerced values are returned alongside the errors.
"""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping

from .schema import (
    AnySchema,
    ArraySchema,
    BooleanSchema,
    NumberSchema,
    ObjectSchema,
    SchemaNode,
    StringSchema,
    parameter_schema,
)

logger = logging.getLogger(__name__)

NUMERIC_TEXT = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


class ValidationErrorCode(str, Enum):
    MISSING_REQUIRED = "MISSING_REQUIRED"
    INVALID_TYPE = "INVALID_TYPE"
    OUT_OF_RANGE = "OUT_OF_RANGE"
    PATTERN_MISMATCH = "PATTERN_MISMATCH"
    UNKNOWN_PARAMETER = "UNKNOWN_PARAMETER"
    ENUM_MISMATCH = "ENUM_MISMATCH"
    INVALID_ARRAY_ITEMS = "INVALID_ARRAY_ITEMS"
    CUSTOM_VALIDATION_FAILED = "CUSTOM_VALIDATION_FAILED"


@dataclass
class ValidationIssue:
    parameter: str
    message: str
    code: ValidationErrorCode

    def to_dict(self) -> dict[str, str]:
        return {"parameter": self.parameter, "message": self.message, "code": self.code.value}


@dataclass
class ValidationResult:
    is_valid: bool
    errors: list[ValidationIssue] = field(default_factory=list)
    value: dict[str, Any] = field(default_factory=dict)


# Returns an error message, or None when the value passes.
CustomValidator = Callable[[str, Any, SchemaNode], "str | None"]

_MISSING = object()


class ParameterValidator:
    def __init__(self) -> None:
        self._custom_validators: list[CustomValidator] = []

    def add_custom_validator(self, validator: CustomValidator) -> None:
        self._custom_validators.append(validator)

    def validate(
        self, parameters: Mapping[str, Any], schema: ObjectSchema | Mapping[str, Any]
    ) -> ValidationResult:
        if not isinstance(schema, ObjectSchema):
            schema = parameter_schema(schema)
        errors: list[ValidationIssue] = []
        value = self._check_object(dict(parameters), schema, "", errors, top_level=True)
        return ValidationResult(is_valid=not errors, errors=errors, value=value if not errors else dict(parameters))

    # ------------------------------------------------------------------

    def _check(self, value: Any, schema: SchemaNode, path: str, errors: list[ValidationIssue]) -> Any:
        before = len(errors)
        if isinstance(schema, StringSchema):
            value = self._check_string(value, schema, path, errors)
        elif isinstance(schema, NumberSchema):
            value = self._check_number(value, schema, path, errors)
        elif isinstance(schema, BooleanSchema):
            value = self._check_boolean(value, path, errors)
        elif isinstance(schema, ArraySchema):
            value = self._check_array(value, schema, path, errors)
        elif isinstance(schema, ObjectSchema):
            value = self._check_object(value, schema, path, errors, top_level=False)
        if len(errors) > before:
            return value

        if schema.enum is not None and value not in schema.enum:
            errors.append(
                ValidationIssue(
                    path,
                    f"Value must be one of: {', '.join(map(str, schema.enum))}",
                    ValidationErrorCode.ENUM_MISMATCH,
                )
            )
            return value
        for validator in self._custom_validators:
            message = validator(path, value, schema)
            if message:
                errors.append(ValidationIssue(path, message, ValidationErrorCode.CUSTOM_VALIDATION_FAILED))
        return value

    @staticmethod
    def _type_error(path: str, expected: str, value: Any) -> ValidationIssue:
        return ValidationIssue(
            path, f"Expected {expected}, got {type(value).__name__}", ValidationErrorCode.INVALID_TYPE
        )

    def _check_string(self, value: Any, schema: StringSchema, path: str, errors: list[ValidationIssue]) -> Any:
        if not isinstance(value, str):
            errors.append(self._type_error(path, "string", value))
            return value
        if schema.min_length is not None and len(value) < schema.min_length:
            errors.append(
                ValidationIssue(path, f"Must be at least {schema.min_length} characters", ValidationErrorCode.OUT_OF_RANGE)
            )
        if schema.max_length is not None and len(value) > schema.max_length:
            errors.append(
                ValidationIssue(path, f"Must be at most {schema.max_length} characters", ValidationErrorCode.OUT_OF_RANGE)
            )
        if schema.pattern:
            try:
                matched = re.search(schema.pattern, value) is not None
            except re.error as exc:
                logger.warning("Ignoring invalid pattern %r for %s: %s", schema.pattern, path, exc)
                matched = True
            if not matched:
                errors.append(
                    ValidationIssue(path, f"Must match pattern: {schema.pattern}", ValidationErrorCode.PATTERN_MISMATCH)
                )
        return value

    def _check_number(self, value: Any, schema: NumberSchema, path: str, errors: list[ValidationIssue]) -> Any:
        number = value
        if isinstance(value, str) and NUMERIC_TEXT.fullmatch(value.strip()):
            number = float(value)
        if isinstance(number, bool) or not isinstance(number, (int, float)) or not math.isfinite(number):
            errors.append(self._type_error(path, "integer" if schema.integer else "number", value))
            return value
        if isinstance(number, float) and number.is_integer() and (schema.integer or isinstance(value, str)):
            number = int(number)
        if schema.integer and not isinstance(number, int):
            errors.append(self._type_error(path, "integer", value))
            return value

        if schema.minimum is not None and number < schema.minimum:
            errors.append(ValidationIssue(path, f"Must be >= {schema.minimum}", ValidationErrorCode.OUT_OF_RANGE))
        if schema.maximum is not None and number > schema.maximum:
            errors.append(ValidationIssue(path, f"Must be <= {schema.maximum}", ValidationErrorCode.OUT_OF_RANGE))
        if schema.exclusive_minimum is not None and number <= schema.exclusive_minimum:
            errors.append(
                ValidationIssue(path, f"Must be > {schema.exclusive_minimum}", ValidationErrorCode.OUT_OF_RANGE)
            )
        if schema.exclusive_maximum is not None and number >= schema.exclusive_maximum:
            errors.append(
                ValidationIssue(path, f"Must be < {schema.exclusive_maximum}", ValidationErrorCode.OUT_OF_RANGE)
            )
        return number

    def _check_boolean(self, value: Any, path: str, errors: list[ValidationIssue]) -> Any:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("true", "false"):
            return value.strip().lower() == "true"
        errors.append(self._type_error(path, "boolean", value))
        return value

    @staticmethod
    def _decode_json(value: Any, kind: type) -> Any:
        if isinstance(value, str):
            try:
                decoded = json.loads(value)
            except json.JSONDecodeError:
                return value
            if isinstance(decoded, kind):
                return decoded
        return value

    def _check_array(self, value: Any, schema: ArraySchema, path: str, errors: list[ValidationIssue]) -> Any:
        value = self._decode_json(value, list)
        if not isinstance(value, list):
            errors.append(self._type_error(path, "array", value))
            return value
        if schema.min_items is not None and len(value) < schema.min_items:
            errors.append(ValidationIssue(path, f"Must have at least {schema.min_items} items", ValidationErrorCode.OUT_OF_RANGE))
        if schema.max_items is not None and len(value) > schema.max_items:
            errors.append(ValidationIssue(path, f"Must have at most {schema.max_items} items", ValidationErrorCode.OUT_OF_RANGE))
        if schema.items is None or isinstance(schema.items, AnySchema):
            return value

        items = []
        for index, item in enumerate(value):
            item_errors: list[ValidationIssue] = []
            items.append(self._check(item, schema.items, f"{path}[{index}]", item_errors))
            for issue in item_errors:
                if issue.code is ValidationErrorCode.INVALID_TYPE:
                    issue.code = ValidationErrorCode.INVALID_ARRAY_ITEMS
            errors.extend(item_errors)
        return items

    def _check_object(
        self,
        value: Any,
        schema: ObjectSchema,
        path: str,
        errors: list[ValidationIssue],
        *,
        top_level: bool,
    ) -> Any:
        value = self._decode_json(value, dict)
        if not isinstance(value, dict):
            errors.append(self._type_error(path, "object", value))
            return value

        prefix = f"{path}." if path else ""
        result: dict[str, Any] = {}
        for name in schema.required:
            if value.get(name, _MISSING) in (_MISSING, None):
                errors.append(
                    ValidationIssue(
                        f"{prefix}{name}",
                        f"Missing required parameter: {name}",
                        ValidationErrorCode.MISSING_REQUIRED,
                    )
                )

        open_map = schema.additional_properties is True or (
            schema.additional_properties is None and not top_level and not schema.properties
        )
        for name, item in value.items():
            prop = schema.properties.get(name)
            if prop is None:
                if not open_map:
                    errors.append(
                        ValidationIssue(
                            f"{prefix}{name}", f"Unknown parameter: {name}", ValidationErrorCode.UNKNOWN_PARAMETER
                        )
                    )
                result[name] = item
                continue
            if item is None or (item == "" and not isinstance(prop, StringSchema)):
                # an empty optional tag counts as omitted
                if item is None or name not in schema.required:
                    continue
            result[name] = self._check(item, prop, f"{prefix}{name}", errors)
        return result
