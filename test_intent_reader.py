# test_intent_reader.py
#
# Run:
#   python -m unittest -v

import contextlib
import io
import json
import tempfile
import unittest
from pathlib import Path

import intent_reader as m
from intent_model import BlockKind, DiagnosticCode


class TestIntentReader(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.root = Path(self.tmp.name)

    def tearDown(self) -> None:
        self.tmp.cleanup()

    # ---------- helpers ----------
    def write(self, rel: str, content, *, binary: bool = False) -> Path:
        """
        Write `content` to a file relative to the temporary test directory.

        Returns:
            The absolute Path to the written file.
        """
        p = self.root / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        if binary:
            p.write_bytes(content)
        else:
            p.write_text(content, encoding="utf-8")
        return p

    def run_main(self, argv):
        out, err = io.StringIO(), io.StringIO()
        with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
            code = m.main(argv)
        return code, out.getvalue(), err.getvalue()

    # ---------- safe_input_path ----------
    def test_safe_input_path_rejects_empty(self):
        with self.assertRaises(ValueError):
            m.safe_input_path("  ")

    def test_safe_input_path_rejects_nul(self):
        with self.assertRaises(ValueError):
            m.safe_input_path("a\x00b.it")

    def test_safe_input_path_rejects_traversal(self):
        with self.assertRaises(ValueError):
            m.safe_input_path(str(self.root / ".." / "x.it"))

    def test_safe_input_path_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            m.safe_input_path(str(self.root / "missing.it"))

    def test_safe_input_path_directory(self):
        (self.root / "dir").mkdir()
        with self.assertRaises(IsADirectoryError):
            m.safe_input_path(str(self.root / "dir"))

    def test_safe_input_path_outside_root(self):
        inner = self.root / "inner"
        inner.mkdir()
        outside = self.write("doc.it", "title: x")
        with self.assertRaises(ValueError):
            m.safe_input_path(str(outside), root=inner)

    def test_safe_input_path_suffixes(self):
        p = self.write("notes.html", "title: x")
        with self.assertRaises(ValueError):
            m.safe_input_path(str(p), suffixes=m.INTENT_SUFFIXES)
        doc = self.write("Doc.IT", "title: x")
        self.assertEqual(m.safe_input_path(str(doc), suffixes=m.INTENT_SUFFIXES), doc.resolve())

    # ---------- read_intent_source ----------
    def test_read_strips_bom(self):
        p = self.write("bom.it", "\ufefftitle: Hello".encode("utf-8"), binary=True)
        self.assertEqual(m.read_intent_source(p), "title: Hello")

    def test_read_rejects_invalid_utf8(self):
        p = self.write("bad.it", b"title: \xff\xfe", binary=True)
        with self.assertRaises(ValueError):
            m.read_intent_source(p)

    # ---------- parse_intent_file ----------
    def test_parse_intent_file(self):
        p = self.write("doc.it", "title: Doc\r\nsection: S\r\n- task: T\r\n")
        doc = m.parse_intent_file(p)
        self.assertEqual(doc.metadata.title, "Doc")
        self.assertEqual(doc.blocks[1].children[0].kind, BlockKind.LIST_ITEM)

    def test_parse_markdown_file(self):
        p = self.write("doc.md", "# Doc\n\n## Part\n- **one**\n")
        doc = m.parse_intent_file(p, markdown=True)
        self.assertEqual(doc.metadata.title, "Doc")
        self.assertEqual(doc.blocks[1].kind, BlockKind.SECTION)
        self.assertEqual(doc.blocks[1].children[0].text, "one")

    # ---------- main ----------
    def test_main_outline_and_diagnostics(self):
        p = self.write("doc.it", "title: Doc\nend:\n")
        code, out, err = self.run_main([str(p)])
        self.assertEqual(code, 0)
        self.assertIn("title Doc", out)
        self.assertIn("doc.it:2:1: warning UNEXPECTED_END", err)

    def test_main_json(self):
        p = self.write("doc.it", "headers: A | B\nrow: 1 | 2\n")
        code, out, _ = self.run_main([str(p), "--json"])
        self.assertEqual(code, 0)
        data = json.loads(out)
        self.assertEqual(data["blocks"][0]["type"], "table")
        self.assertEqual(data["blocks"][0]["table"], {"headers": ["A", "B"], "rows": [["1", "2"]]})
        self.assertEqual(data["metadata"], {"language": "ltr"})
        self.assertEqual(data["diagnostics"], [])

    def test_main_events_trace(self):
        p = self.write("doc.it", "note: hi\n")
        code, out, _ = self.run_main([str(p), "--events"])
        self.assertEqual(code, 0)
        self.assertIn("\033[90m[block ", out)

    def test_main_missing_file(self):
        code, _, err = self.run_main([str(self.root / "nope.it")])
        self.assertEqual(code, 2)
        self.assertIn("[intent_reader] Invalid input", err)

    def test_main_rejects_wrong_suffix(self):
        p = self.write("doc.md", "# Doc\n")
        code, _, err = self.run_main([str(p)])
        self.assertEqual(code, 2)
        self.assertIn("Unsupported file type", err)
        code, out, _ = self.run_main([str(p), "--markdown"])
        self.assertEqual(code, 0)
        self.assertIn("title Doc", out)

    def test_main_bad_config(self):
        p = self.write("doc.it", "note: hi\n")
        cfg = self.write("config.yml", "- not a mapping\n")
        code, _, err = self.run_main([str(p), "--config", str(cfg)])
        self.assertEqual(code, 2)
        self.assertIn("Failed to load config", err)

    def test_main_unterminated_code_still_succeeds(self):
        p = self.write("doc.it", "code:\necho 1\n")
        code, out, err = self.run_main([str(p)])
        self.assertEqual(code, 0)
        self.assertIn(DiagnosticCode.UNTERMINATED_CODE_BLOCK.value, err)
        self.assertIn("code echo 1", out)


if __name__ == "__main__":
    unittest.main()
