"""Tests for bimbus/output/writers.py.

Covers each output format, file naming, and writing to disk.
"""

import io
import os
import sys
import tempfile
import unittest
from datetime import date

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from docx import Document as DocxDocument

from bimbus.output.writers import (
    FORMATS,
    DocxFormat,
    HtmlFormat,
    MarkdownFormat,
    TextFormat,
    document_title,
    get_format,
    output_filename,
    sanitize_basename,
    write_document,
    write_intermediates,
)

SECTIONS = {
    "Introduction": "Intro text.",
    "Summary": "First para.\n\nSecond <para> & more.",
    "Technical Details": "Tech text.",
}
DAY = date(2024, 3, 9)


class TestFormats(unittest.TestCase):

    def test_markdown(self):
        out = MarkdownFormat().render("Doc", {"Summary": "hello"}).decode("utf-8")
        self.assertTrue(out.startswith("# Doc\n"))
        self.assertIn("## Summary", out)
        self.assertLess(out.index("## Summary"), out.index("hello"))

    def test_html(self):
        out = HtmlFormat().render("Doc", {"Summary": "hello"}).decode("utf-8")
        self.assertIn("<h1>Doc</h1>", out)
        self.assertIn("<h2>Summary</h2>", out)
        self.assertIn("<p>hello</p>", out)

    def test_html_paragraphs_and_escaping(self):
        out = HtmlFormat().render("A & B", SECTIONS).decode("utf-8")
        self.assertIn("<h1>A &amp; B</h1>", out)
        self.assertIn("<p>First para.</p>", out)
        self.assertIn("<p>Second &lt;para&gt; &amp; more.</p>", out)

    def test_text_bare_headers(self):
        out = TextFormat().render("Doc", {"Summary": "hello"}).decode("utf-8")
        self.assertEqual(out, "Doc\n\nSummary\n\nhello\n")

    def test_section_order_preserved(self):
        for fmt in (MarkdownFormat(), HtmlFormat(), TextFormat()):
            out = fmt.render("Doc", SECTIONS).decode("utf-8")
            positions = [out.index(name) for name in SECTIONS]
            self.assertEqual(positions, sorted(positions), fmt.name)

    def test_docx_bold_title_run_and_plain_body(self):
        data = DocxFormat().render("Doc", {"Summary": "hello"})
        doc = DocxDocument(io.BytesIO(data))
        self.assertEqual(doc.paragraphs[0].text, "Doc")
        section_para = doc.paragraphs[1]
        runs = section_para.runs
        self.assertEqual(runs[0].text, "Summary")
        self.assertTrue(runs[0].bold)
        self.assertIn("hello", runs[1].text)
        self.assertFalse(runs[1].bold)

    def test_docx_one_paragraph_per_section(self):
        doc = DocxDocument(io.BytesIO(DocxFormat().render("Doc", SECTIONS)))
        self.assertEqual(len(doc.paragraphs), 1 + len(SECTIONS))


class TestGetFormat(unittest.TestCase):

    def test_known_names(self):
        self.assertEqual(set(FORMATS), {"markdown", "html", "text", "docx"})
        self.assertEqual(get_format("HTML").extension, "html")
        self.assertEqual(get_format("markdown").extension, "md")
        self.assertEqual(get_format("text").extension, "txt")
        self.assertEqual(get_format("docx").extension, "docx")

    def test_unknown_raises(self):
        with self.assertRaises(ValueError):
            get_format("pdf")


class TestNaming(unittest.TestCase):

    def test_sanitize_replaces_periods(self):
        self.assertEqual(sanitize_basename("/a/b/my.file.ts"), "my-file-ts")

    def test_output_filename(self):
        self.assertEqual(
            output_filename("src/index.ts", "md", today=DAY), "index-ts--2024-03-09.md"
        )

    def test_intermediate_filename(self):
        self.assertEqual(
            output_filename("index.ts", "txt", tag="plain", today=DAY),
            "index-ts--plain--2024-03-09.txt",
        )

    def test_defaults_to_today(self):
        name = output_filename("x.py", "md")
        self.assertIn(date.today().isoformat(), name)

    def test_document_title(self):
        self.assertEqual(document_title("/tmp/x/main.py"), "Documentation for main.py")


class TestWriteDocument(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()

    def test_writes_and_returns_absolute_path(self):
        dest = os.path.join(self.tmpdir, "out.md")
        path = write_document({"Summary": "hello"}, "markdown", dest, title="T")
        self.assertTrue(os.path.isabs(path))
        with open(path, encoding="utf-8") as fh:
            self.assertIn("## Summary", fh.read())

    def test_overwrites_existing_file(self):
        dest = os.path.join(self.tmpdir, "out.txt")
        with open(dest, "w") as fh:
            fh.write("old content")
        write_document({"Summary": "new"}, "text", dest)
        with open(dest, encoding="utf-8") as fh:
            content = fh.read()
        self.assertNotIn("old content", content)
        self.assertIn("new", content)

    def test_write_intermediates(self):
        paths = write_intermediates(
            {"purpose": "- a\n- b", "plain": "", "technical": "- t"},
            "lib/util.py",
            self.tmpdir,
            today=DAY,
        )
        self.assertEqual(
            [os.path.basename(p) for p in paths],
            [
                "util-py--purpose--2024-03-09.txt",
                "util-py--plain--2024-03-09.txt",
                "util-py--technical--2024-03-09.txt",
            ],
        )
        with open(paths[0], encoding="utf-8") as fh:
            self.assertEqual(fh.read(), "- a\n- b\n")
        with open(paths[1], encoding="utf-8") as fh:
            self.assertEqual(fh.read(), "")


if __name__ == "__main__":
    unittest.main()
