"""Unit tests for the tool catalog and tool call markup."""
from __future__ import annotations

import unittest

from src.mcp_hub import ToolCatalog, ToolDescriptor, ToolExample, format_mcp_tool_call, format_tool_call
from src.mcp_hub.catalog import default_value

READ_FILE = ToolDescriptor(
    name="read_file",
    description="Read a file",
    input_schema={
        "type": "object",
        "properties": {"path": {"type": "string", "description": "File to read"}},
        "required": ["path"],
    },
)


class TestMarkup(unittest.TestCase):
    def test_format_tool_call(self) -> None:
        text = format_tool_call("read_file", {"path": "a.txt", "lines": [1, 2], "raw": False})
        self.assertEqual(
            text,
            "<read_file>\n<path>a.txt</path>\n<lines>\n  <item>1</item>\n  <item>2</item>\n</lines>\n"
            "<raw>false</raw>\n</read_file>",
        )

    def test_empty_collections_render_as_json(self) -> None:
        self.assertIn("<tags>[]</tags>", format_tool_call("t", {"tags": []}))
        self.assertIn("<opts>{}</opts>", format_tool_call("t", {"opts": {}}))

    def test_format_mcp_tool_call(self) -> None:
        text = format_mcp_tool_call("files", "read_file", {"path": "a.txt"})
        self.assertTrue(text.startswith("<use_mcp_tool>\n<server_name>files</server_name>"))
        self.assertIn("<tool_name>read_file</tool_name>", text)
        self.assertIn("<arguments>\n  <path>a.txt</path>\n</arguments>", text)


class TestDefaultValue(unittest.TestCase):
    def test_placeholders(self) -> None:
        self.assertEqual(default_value({"type": "string"}), "example_string")
        self.assertEqual(default_value({"type": "string", "enum": ["a", "b"]}), "a")
        self.assertEqual(default_value({"type": "integer", "minimum": 3}), 3)
        self.assertEqual(default_value({"type": "boolean"}), False)
        self.assertEqual(default_value({"type": "array"}), ["example_item"])
        self.assertEqual(default_value({"type": "string", "default": "x"}), "x")
        self.assertEqual(
            default_value({"type": "object", "properties": {"n": {"type": "number"}}}), {"n": 0}
        )


class TestToolCatalog(unittest.TestCase):
    def setUp(self) -> None:
        self.catalog = ToolCatalog()

    def test_register_and_lookup(self) -> None:
        self.catalog.register_server_tools("files", [READ_FILE])
        doc = self.catalog.get_tool_documentation("read_file")
        self.assertEqual(doc.server_name, "files")
        self.assertEqual(doc.description, "Read a file")
        self.assertIn("<server_name>files</server_name>", doc.usage)
        self.assertIn("<path>File to read</path>", doc.usage)
        self.assertIn("<path>example_string</path>", doc.examples[0])
        self.assertEqual(self.catalog.get_servers(), ["files"])
        self.assertEqual(self.catalog.get_server_tools("files"), ["read_file"])
        self.assertTrue(self.catalog.is_tool_available("files", "read_file"))
        self.assertFalse(self.catalog.is_tool_available("other", "read_file"))

    def test_direct_markup_and_examples(self) -> None:
        tool = READ_FILE.model_copy(
            update={"examples": [ToolExample(description="Read the readme", input={"path": "README.md"})]}
        )
        self.catalog.register_server_tools("session", [tool], markup="direct")
        doc = self.catalog.get_tool_documentation("read_file")
        self.assertTrue(doc.usage.startswith("<read_file>"))
        self.assertEqual(doc.examples, ["Read the readme\n<read_file>\n<path>README.md</path>\n</read_file>"])

    def test_first_server_keeps_name(self) -> None:
        self.catalog.register_server_tools("a", [READ_FILE])
        self.catalog.register_server_tools("b", [READ_FILE])
        self.assertEqual(self.catalog.get_tool_documentation("read_file").server_name, "a")
        self.assertIsNotNone(self.catalog.get_server_tool_documentation("b", "read_file"))

    def test_unregister_promotes_remaining_server(self) -> None:
        self.catalog.register_server_tools("a", [READ_FILE])
        self.catalog.register_server_tools("b", [READ_FILE])
        self.catalog.unregister_server("a")
        self.assertEqual(self.catalog.get_tool_documentation("read_file").server_name, "b")
        self.catalog.unregister_server("b")
        self.assertIsNone(self.catalog.get_tool_documentation("read_file"))
        self.assertEqual(self.catalog.get_all_tools(), [])

    def test_reregister_replaces_server_tools(self) -> None:
        self.catalog.register_server_tools("a", [READ_FILE, ToolDescriptor(name="stat")])
        self.catalog.register_server_tools("a", [ToolDescriptor(name="stat")])
        self.assertEqual(self.catalog.get_server_tools("a"), ["stat"])

    def test_get_catalog_and_clear(self) -> None:
        self.catalog.register_server_tools("a", [READ_FILE])
        snapshot = self.catalog.get_catalog()
        self.assertEqual(snapshot["servers"], {"a": ["read_file"]})
        self.assertIn("read_file", snapshot["tools"])
        self.catalog.clear()
        self.assertEqual(self.catalog.get_servers(), [])


if __name__ == "__main__":
    unittest.main()
