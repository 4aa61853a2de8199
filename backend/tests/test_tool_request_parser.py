"""Unit tests for extracting tool requests from model output."""
from __future__ import annotations

import unittest

from src.mcp_hub import ToolCatalog, ToolDescriptor, format_mcp_tool_call
from src.tool_parser import ToolRequestParser


def make_catalog() -> ToolCatalog:
    catalog = ToolCatalog()
    catalog.register_server_tools(
        "files",
        [
            ToolDescriptor(
                name="read_file",
                description="Read a file",
                input_schema={
                    "type": "object",
                    "properties": {
                        "path": {"type": "string"},
                        "max_lines": {"type": "integer", "minimum": 1},
                    },
                    "required": ["path"],
                },
            ),
            ToolDescriptor(
                name="search",
                input_schema={
                    "type": "object",
                    "properties": {
                        "query": {"type": "string"},
                        "paths": {"type": "array", "items": {"type": "string"}},
                    },
                    "required": ["query"],
                },
            ),
        ],
    )
    catalog.register_server_tools("clock", [ToolDescriptor(name="now")])
    return catalog


class TestToolRequestParser(unittest.TestCase):
    def setUp(self) -> None:
        self.parser = ToolRequestParser(make_catalog())

    def test_direct_form(self) -> None:
        request = self.parser.parse("Let me look.\n<read_file>\n<path>a.txt</path>\n</read_file>")
        self.assertIsNotNone(request)
        self.assertEqual(request.tool_name, "read_file")
        self.assertEqual(request.server_name, "files")
        self.assertEqual(request.parameters, {"path": "a.txt"})
        self.assertTrue(request.raw.startswith("<read_file>"))

    def test_direct_form_coerces_numbers(self) -> None:
        request = self.parser.parse("<read_file><path>a.txt</path><max_lines>20</max_lines></read_file>")
        self.assertEqual(request.parameters, {"path": "a.txt", "max_lines": 20})

    def test_string_parameter_keeps_raw_text(self) -> None:
        request = self.parser.parse("<read_file><path>007</path></read_file>")
        self.assertEqual(request.parameters["path"], "007")
        request = self.parser.parse("<search><query>true</query></search>")
        self.assertEqual(request.parameters["query"], "true")

    def test_routed_form_with_tag_arguments(self) -> None:
        text = format_mcp_tool_call("files", "search", {"query": "TODO", "paths": ["src", "tests"]})
        request = self.parser.parse(text)
        self.assertEqual(request.server_name, "files")
        self.assertEqual(request.tool_name, "search")
        self.assertEqual(request.parameters, {"query": "TODO", "paths": ["src", "tests"]})

    def test_routed_form_with_json_arguments(self) -> None:
        text = (
            "<use_mcp_tool>\n<server_name>files</server_name>\n<tool_name>read_file</tool_name>\n"
            '<arguments>{"path": "b.txt", "max_lines": 5}</arguments>\n</use_mcp_tool>'
        )
        request = self.parser.parse(text)
        self.assertEqual(request.parameters, {"path": "b.txt", "max_lines": 5})

    def test_routed_form_without_arguments(self) -> None:
        text = "<use_mcp_tool><server_name>clock</server_name><tool_name>now</tool_name></use_mcp_tool>"
        request = self.parser.parse(text)
        self.assertEqual((request.server_name, request.tool_name, request.parameters), ("clock", "now", {}))

    def test_routed_form_unknown_tool_is_skipped(self) -> None:
        text = "<use_mcp_tool><server_name>clock</server_name><tool_name>read_file</tool_name></use_mcp_tool>"
        self.assertIsNone(self.parser.parse(text))

    def test_bad_json_arguments_are_skipped(self) -> None:
        text = (
            "<use_mcp_tool><server_name>files</server_name><tool_name>read_file</tool_name>"
            "<arguments>{path: nope}</arguments></use_mcp_tool>"
        )
        self.assertIsNone(self.parser.parse(text))

    def test_invalid_request_skipped_for_next_valid_one(self) -> None:
        text = (
            "<read_file><max_lines>3</max_lines></read_file>\n"
            "<read_file><path>good.txt</path></read_file>"
        )
        request = self.parser.parse(text)
        self.assertEqual(request.parameters, {"path": "good.txt"})

    def test_only_first_valid_request_is_returned(self) -> None:
        text = "<read_file><path>1.txt</path></read_file><read_file><path>2.txt</path></read_file>"
        self.assertEqual(self.parser.parse(text).parameters["path"], "1.txt")
        self.assertEqual([r.parameters["path"] for r in self.parser.parse_all(text)], ["1.txt", "2.txt"])

    def test_request_inside_thinking(self) -> None:
        text = "<thinking>I should check.\n<read_file><path>c.txt</path></read_file></thinking>"
        request = self.parser.parse(text)
        self.assertEqual(request.parameters, {"path": "c.txt"})

    def test_unknown_tags_are_ignored(self) -> None:
        self.assertIsNone(self.parser.parse("<write_file><path>x</path></write_file>"))
        self.assertIsNone(self.parser.parse("plain prose, no tags at all"))

    def test_text_body_is_not_a_request(self) -> None:
        self.assertIsNone(self.parser.parse("<read_file>a.txt</read_file>"))

    def test_unknown_parameter_rejects_request(self) -> None:
        self.assertIsNone(self.parser.parse("<read_file><path>a</path><mode>x</mode></read_file>"))


if __name__ == "__main__":
    unittest.main()
