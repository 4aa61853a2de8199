"""Unit tests for schema parsing and parameter validation."""
from __future__ import annotations

import unittest

from src.tool_parser import (
    ArraySchema,
    NumberSchema,
    ObjectSchema,
    ParameterValidator,
    StringSchema,
    ValidationErrorCode,
    parameter_schema,
    parse_schema,
)

SCHEMA = {
    "type": "object",
    "properties": {
        "path": {"type": "string", "pattern": r"^[\w./-]+$"},
        "count": {"type": "integer", "minimum": 1, "maximum": 10},
        "ratio": {"type": "number", "exclusiveMinimum": 0, "exclusiveMaximum": 1},
        "mode": {"type": "string", "enum": ["fast", "slow"]},
        "verbose": {"type": "boolean"},
        "tags": {"type": "array", "items": {"type": "string"}},
        "ids": {"type": "array", "items": {"type": "integer"}},
        "options": {"type": "object"},
    },
    "required": ["path"],
}


def codes(result) -> list[ValidationErrorCode]:
    return [e.code for e in result.errors]


class TestParseSchema(unittest.TestCase):
    def test_variants(self) -> None:
        schema = parameter_schema(SCHEMA)
        self.assertIsInstance(schema, ObjectSchema)
        self.assertIsInstance(schema.properties["path"], StringSchema)
        self.assertIsInstance(schema.properties["count"], NumberSchema)
        self.assertTrue(schema.properties["count"].integer)
        self.assertIsInstance(schema.properties["tags"], ArraySchema)
        self.assertEqual(schema.required, ("path",))

    def test_nullable_type_list(self) -> None:
        self.assertIsInstance(parse_schema({"type": ["null", "string"]}), StringSchema)

    def test_draft4_boolean_exclusive(self) -> None:
        schema = parse_schema({"type": "number", "minimum": 0, "exclusiveMinimum": True})
        self.assertIsNone(schema.minimum)
        self.assertEqual(schema.exclusive_minimum, 0)

    def test_non_object_parameter_schema(self) -> None:
        self.assertEqual(parameter_schema({"type": "string"}), ObjectSchema())
        self.assertEqual(parameter_schema(None), ObjectSchema())


class TestParameterValidator(unittest.TestCase):
    def setUp(self) -> None:
        self.validator = ParameterValidator()

    def validate(self, params):
        return self.validator.validate(params, SCHEMA)

    def test_valid_minimal(self) -> None:
        result = self.validate({"path": "src/app.py"})
        self.assertTrue(result.is_valid)
        self.assertEqual(result.value, {"path": "src/app.py"})

    def test_missing_required(self) -> None:
        result = self.validate({"count": 2})
        self.assertFalse(result.is_valid)
        self.assertEqual(codes(result), [ValidationErrorCode.MISSING_REQUIRED])
        self.assertEqual(result.errors[0].parameter, "path")

    def test_required_none_is_missing(self) -> None:
        result = self.validate({"path": None})
        self.assertEqual(codes(result), [ValidationErrorCode.MISSING_REQUIRED])

    def test_bounds_are_inclusive(self) -> None:
        self.assertTrue(self.validate({"path": "a", "count": 1}).is_valid)
        self.assertTrue(self.validate({"path": "a", "count": 10}).is_valid)

    def test_out_of_range(self) -> None:
        self.assertEqual(codes(self.validate({"path": "a", "count": 0})), [ValidationErrorCode.OUT_OF_RANGE])
        self.assertEqual(codes(self.validate({"path": "a", "count": 11})), [ValidationErrorCode.OUT_OF_RANGE])

    def test_exclusive_bounds(self) -> None:
        self.assertTrue(self.validate({"path": "a", "ratio": 0.5}).is_valid)
        self.assertFalse(self.validate({"path": "a", "ratio": 0}).is_valid)
        self.assertFalse(self.validate({"path": "a", "ratio": 1}).is_valid)

    def test_integer_rejects_fraction(self) -> None:
        self.assertEqual(codes(self.validate({"path": "a", "count": 2.5})), [ValidationErrorCode.INVALID_TYPE])

    def test_numeric_text_is_coerced(self) -> None:
        result = self.validate({"path": "a", "count": "5", "ratio": "0.25"})
        self.assertTrue(result.is_valid)
        self.assertEqual(result.value["count"], 5)
        self.assertEqual(result.value["ratio"], 0.25)

    def test_boolean_text_is_coerced(self) -> None:
        result = self.validate({"path": "a", "verbose": "TRUE"})
        self.assertTrue(result.is_valid)
        self.assertIs(result.value["verbose"], True)
        self.assertFalse(self.validate({"path": "a", "verbose": "yes"}).is_valid)

    def test_pattern_mismatch(self) -> None:
        self.assertEqual(codes(self.validate({"path": "a b"})), [ValidationErrorCode.PATTERN_MISMATCH])

    def test_invalid_pattern_is_ignored(self) -> None:
        result = self.validator.validate({"q": "x"}, {"properties": {"q": {"type": "string", "pattern": "("}}})
        self.assertTrue(result.is_valid)

    def test_enum(self) -> None:
        self.assertTrue(self.validate({"path": "a", "mode": "fast"}).is_valid)
        self.assertEqual(codes(self.validate({"path": "a", "mode": "medium"})), [ValidationErrorCode.ENUM_MISMATCH])

    def test_unknown_parameter(self) -> None:
        result = self.validate({"path": "a", "colour": "red"})
        self.assertEqual(codes(result), [ValidationErrorCode.UNKNOWN_PARAMETER])

    def test_additional_properties_allowed(self) -> None:
        schema = dict(SCHEMA, additionalProperties=True)
        result = self.validator.validate({"path": "a", "colour": "red"}, schema)
        self.assertTrue(result.is_valid)
        self.assertEqual(result.value["colour"], "red")

    def test_open_nested_object(self) -> None:
        result = self.validate({"path": "a", "options": {"anything": 1}})
        self.assertTrue(result.is_valid)

    def test_json_text_for_array_and_object(self) -> None:
        result = self.validate({"path": "a", "tags": '["x", "y"]', "options": '{"k": 1}'})
        self.assertTrue(result.is_valid)
        self.assertEqual(result.value["tags"], ["x", "y"])
        self.assertEqual(result.value["options"], {"k": 1})

    def test_array_item_errors(self) -> None:
        result = self.validate({"path": "a", "ids": [1, "two", 3]})
        self.assertEqual(codes(result), [ValidationErrorCode.INVALID_ARRAY_ITEMS])
        self.assertEqual(result.errors[0].parameter, "ids[1]")

    def test_not_an_array(self) -> None:
        self.assertEqual(codes(self.validate({"path": "a", "tags": 3})), [ValidationErrorCode.INVALID_TYPE])

    def test_empty_optional_tag_is_omitted(self) -> None:
        result = self.validate({"path": "a", "count": ""})
        self.assertTrue(result.is_valid)
        self.assertNotIn("count", result.value)

    def test_custom_validator(self) -> None:
        def no_parent_dirs(path: str, value, schema):
            if path == "path" and ".." in value:
                return "Parent directories are not allowed"
            return None

        self.validator.add_custom_validator(no_parent_dirs)
        result = self.validate({"path": "../etc"})
        self.assertEqual(codes(result), [ValidationErrorCode.CUSTOM_VALIDATION_FAILED])
        self.assertTrue(self.validate({"path": "etc"}).is_valid)

    def test_issue_to_dict(self) -> None:
        issue = self.validate({}).errors[0]
        self.assertEqual(
            issue.to_dict(),
            {"parameter": "path", "message": "Missing required parameter: path", "code": "MISSING_REQUIRED"},
        )


if __name__ == "__main__":
    unittest.main()
