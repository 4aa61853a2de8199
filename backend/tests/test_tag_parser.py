"""Unit tests for the tag scanner, value normalization and schema-free blocks."""
from __future__ import annotations

import unittest

from src.mcp_hub.markup import format_tool_call
from src.tool_parser import normalize_value, parse_tag_blocks
from src.tool_parser.tags import is_valid_tag_name, iter_elements


class TestNormalizeValue(unittest.TestCase):
    def test_empty_and_whitespace(self) -> None:
        self.assertEqual(normalize_value(""), "")
        self.assertEqual(normalize_value("   \n"), "")

    def test_booleans_any_case(self) -> None:
        self.assertIs(normalize_value("true"), True)
        self.assertIs(normalize_value("FALSE"), False)

    def test_numbers(self) -> None:
        self.assertEqual(normalize_value("42"), 42)
        self.assertEqual(normalize_value("-3.5"), -3.5)
        self.assertEqual(normalize_value("1e3"), 1000.0)

    def test_leading_zero_stays_text(self) -> None:
        self.assertEqual(normalize_value("007"), "007")

    def test_json_literals(self) -> None:
        self.assertEqual(normalize_value('["a", 1]'), ["a", 1])
        self.assertEqual(normalize_value('{"k": true}'), {"k": True})
        self.assertEqual(normalize_value("[not json"), "[not json")

    def test_plain_text_is_trimmed(self) -> None:
        self.assertEqual(normalize_value("  hello world \n"), "hello world")


class TestIterElements(unittest.TestCase):
    def test_prose_around_blocks(self) -> None:
        text = "I will read it.\n<read_file><path>a.txt</path></read_file>\nDone."
        elements = list(iter_elements(text))
        self.assertEqual([e.name for e in elements], ["read_file"])
        self.assertEqual(elements[0].children[0].inner, "a.txt")

    def test_unclosed_tag_is_skipped(self) -> None:
        text = "<broken><path>x</path> and then <ok><a>1</a></ok>"
        names = [e.name for e in iter_elements(text)]
        self.assertIn("ok", names)
        self.assertNotIn("broken", names)

    def test_stray_closing_tag_is_skipped(self) -> None:
        text = "</oops><tool><a>1</a></tool>"
        self.assertEqual([e.name for e in iter_elements(text)], ["tool"])

    def test_text_content_means_leaf(self) -> None:
        element = next(iter_elements("<note>some <b>bold</b> text</note>"))
        self.assertTrue(element.is_leaf)

    def test_nested_same_name(self) -> None:
        element = next(iter_elements("<a><a>1</a></a>"))
        self.assertEqual(element.raw, "<a><a>1</a></a>")
        self.assertEqual(element.children[0].inner, "1")


class TestTagNames(unittest.TestCase):
    def test_valid_names(self) -> None:
        self.assertTrue(is_valid_tag_name("read_file"))
        self.assertTrue(is_valid_tag_name("tool2"))

    def test_invalid_names(self) -> None:
        self.assertFalse(is_valid_tag_name("ReadFile"))
        self.assertFalse(is_valid_tag_name("2tool"))
        self.assertFalse(is_valid_tag_name("read-file"))


class TestParseTagBlocks(unittest.TestCase):
    def test_formatted_call_parses_back(self) -> None:
        params = {"path": "notes.txt", "recursive": True, "depth": 3, "tags": ["a", "b"]}
        blocks = parse_tag_blocks(format_tool_call("list_files", params))
        self.assertEqual(len(blocks), 1)
        self.assertEqual(blocks[0].name, "list_files")
        self.assertEqual(blocks[0].parameters, params)

    def test_parse_format_parse_is_stable(self) -> None:
        cases = {
            "flat": "<t><path>a.txt</path><force>TRUE</force><ratio>0.5</ratio></t>",
            "nested map": "<t><opts><mode>fast</mode><limits><n>2</n></limits></opts></t>",
            "list of maps": (
                "<t><rows><item><id>1</id><name>a</name></item>"
                "<item><id>2</id><name>b</name></item></rows></t>"
            ),
            "nested lists": "<t><grid><item><item>1</item><item>2</item></item><item><item>3</item></item></grid></t>",
            "single item list": "<t><tags><item>solo</item></tags></t>",
            "empty values": "<t><note></note><n>1</n><blank>   </blank></t>",
            "repeated names": "<t><f>a</f><f>b</f></t>",
        }
        for label, text in cases.items():
            with self.subTest(label):
                first = parse_tag_blocks(text)
                self.assertEqual(len(first), 1)
                formatted = format_tool_call(first[0].name, first[0].parameters)
                second = parse_tag_blocks(formatted)
                self.assertEqual(len(second), 1)
                self.assertEqual(second[0].name, first[0].name)
                self.assertEqual(second[0].parameters, first[0].parameters)
                self.assertEqual(format_tool_call(second[0].name, second[0].parameters), formatted)

    def test_shapes_survive_round_trip(self) -> None:
        blocks = parse_tag_blocks(
            "<t><rows><item><id>1</id></item></rows><grid><item><item>3</item></item></grid><note></note></t>"
        )
        self.assertEqual(blocks[0].parameters, {"rows": [{"id": 1}], "grid": [[3]], "note": ""})

    def test_item_list(self) -> None:
        blocks = parse_tag_blocks("<sum><items><item>1</item><item>2</item></items></sum>")
        self.assertEqual(blocks[0].parameters, {"items": [1, 2]})

    def test_repeated_names_accumulate(self) -> None:
        blocks = parse_tag_blocks("<t><f>a</f><f>b</f><f>c</f></t>")
        self.assertEqual(blocks[0].parameters, {"f": ["a", "b", "c"]})

    def test_nested_objects(self) -> None:
        blocks = parse_tag_blocks("<t><opts><mode>fast</mode><n>2</n></opts></t>")
        self.assertEqual(blocks[0].parameters, {"opts": {"mode": "fast", "n": 2}})

    def test_empty_block_has_no_parameters(self) -> None:
        blocks = parse_tag_blocks("<list_servers></list_servers>")
        self.assertEqual(blocks[0].parameters, {})

    def test_uppercase_and_text_blocks_skipped(self) -> None:
        text = "<Bad><a>1</a></Bad><prose>just words</prose><good><a>1</a></good>"
        self.assertEqual([b.name for b in parse_tag_blocks(text)], ["good"])

    def test_malformed_blocks_between_valid_ones(self) -> None:
        text = (
            "<first><x>1</x></first>\n"
            "<half_open><x>2</x>\n"
            "</nothing>\n"
            "<second><y>two</y></second>"
        )
        blocks = parse_tag_blocks(text)
        self.assertEqual([b.name for b in blocks], ["first", "second"])
        self.assertEqual(blocks[1].parameters, {"y": "two"})


if __name__ == "__main__":
    unittest.main()
