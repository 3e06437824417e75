# test_intent_metadata.py
#
# Run:
#   python -m unittest -v

import unittest

from intent_metadata import (
    extract_property_shortcuts,
    parse_pipe_metadata,
    split_pipe_metadata,
    split_table_row,
)
from intent_model import DiagnosticCode, Severity


class TestSplitPipeMetadata(unittest.TestCase):
    def test_no_separator(self):
        self.assertEqual(split_pipe_metadata("just content"), ["just content"])

    def test_splits_on_space_pipe_space(self):
        self.assertEqual(
            split_pipe_metadata("Ship it | owner: Sam | due: Friday"),
            ["Ship it", "owner: Sam", "due: Friday"],
        )

    def test_bare_pipe_does_not_split(self):
        self.assertEqual(split_pipe_metadata("a|b | c"), ["a|b", "c"])

    def test_escaped_pipe_does_not_split(self):
        self.assertEqual(
            split_pipe_metadata(r"A \| B | owner: John"),
            [r"A \| B", "owner: John"],
        )

    def test_odd_backslash_run_escapes_separator(self):
        self.assertEqual(split_pipe_metadata("A\\ | B"), ["A\\ | B"])

    def test_even_backslash_run_still_splits(self):
        self.assertEqual(split_pipe_metadata("A\\\\ | B"), ["A\\\\", "B"])


class TestParsePipeMetadata(unittest.TestCase):
    def test_properties(self):
        content, props, diags = parse_pipe_metadata(
            "Database migration | owner: Ahmed | due: Sunday", 1
        )
        self.assertEqual(content, "Database migration")
        self.assertEqual(props, {"owner": "Ahmed", "due": "Sunday"})
        self.assertEqual(diags, [])

    def test_escaped_pipe_in_value(self):
        _, props, _ = parse_pipe_metadata(r"Do thing | owner: Jo\|hn", 1)
        self.assertEqual(props, {"owner": "Jo|hn"})

    def test_invalid_segment_goes_back_to_content(self):
        content, props, diags = parse_pipe_metadata("Do thing | owner Ahmed", 4, column=7)
        self.assertEqual(content, "Do thing | owner Ahmed")
        self.assertEqual(props, {})
        self.assertEqual(len(diags), 1)
        self.assertEqual(diags[0].code, DiagnosticCode.INVALID_PROPERTY_SEGMENT)
        self.assertEqual(diags[0].severity, Severity.WARNING)
        self.assertEqual(diags[0].line, 4)
        # segment starts after 'Do thing | ' (11 chars) from column 7
        self.assertEqual(diags[0].column, 18)

    def test_key_with_backslash_is_rejected(self):
        content, props, diags = parse_pipe_metadata(r"X | ow\ner: Sam", 1)
        self.assertEqual(props, {})
        self.assertEqual(content, r"X | ow\ner: Sam")
        self.assertEqual(diags[0].code, DiagnosticCode.INVALID_PROPERTY_SEGMENT)

    def test_key_with_pipe_is_rejected(self):
        content, props, diags = parse_pipe_metadata("a | k|x: v", 1)
        self.assertEqual(props, {})
        self.assertEqual(content, "a | k|x: v")
        self.assertEqual(diags[0].code, DiagnosticCode.INVALID_PROPERTY_SEGMENT)

    def test_content_is_unescaped_once(self):
        content, _, _ = parse_pipe_metadata(r"a\\|b", 1)
        self.assertEqual(content, r"a\|b")


class TestSplitTableRow(unittest.TestCase):
    def test_bare_pipes(self):
        self.assertEqual(split_table_row("Name|Age | City"), ["Name", "Age", "City"])

    def test_empty_cells_are_dropped(self):
        self.assertEqual(split_table_row("| A || B |"), ["A", "B"])

    def test_escaped_pipe_stays_in_cell(self):
        self.assertEqual(split_table_row(r"a\|b | c"), ["a|b", "c"])

    def test_escaped_backslash_then_pipe_splits(self):
        self.assertEqual(split_table_row(r"a\\|b"), ["a\\", "b"])


class TestPropertyShortcuts(unittest.TestCase):
    def test_owner_and_priority(self):
        content, props = extract_property_shortcuts("Launch feature @ahmed !high")
        self.assertEqual(content, "Launch feature")
        self.assertEqual(props, {"owner": "ahmed", "priority": "high"})

    def test_no_shortcuts_leaves_content_untouched(self):
        content, props = extract_property_shortcuts("email me  at a@b.c")
        self.assertEqual(content, "email me  at a@b.c")
        self.assertEqual(props, {})

    def test_spacing_inside_content_is_kept(self):
        content, props = extract_property_shortcuts("a  ```x   y``` @bob")
        self.assertEqual(content, "a  ```x   y```")
        self.assertEqual(props, {"owner": "bob"})

    def test_shortcut_between_words(self):
        content, _ = extract_property_shortcuts("fix  !low the   build")
        self.assertEqual(content, "fix  the   build")


if __name__ == "__main__":
    unittest.main()
