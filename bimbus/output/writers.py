"""Serialise a SectionSet to Markdown, HTML, plain text or DOCX.

Each format is a small class exposing ``name``, ``extension`` and
``render(title, sections) -> bytes``; :func:`get_format` picks one by
name once at startup so the pipeline never branches on format again.

Output files are named deterministically from the input file::

    <input base, '.' → '-'>--<YYYY-MM-DD>.<ext>
    <input base, '.' → '-'>--<perspective>--<YYYY-MM-DD>.txt   (--keep)

An existing file with the same name is overwritten.
"""

import html
import io
import logging
import os
import re
from datetime import date

from docx import Document as DocxDocument

logger = logging.getLogger(__name__)

_PARAGRAPH_BREAK = re.compile(r"\n[ \t]*\n\s*")


def _paragraphs(text: str) -> list[str]:
    return [p.strip() for p in _PARAGRAPH_BREAK.split(text.strip()) if p.strip()]


# ── Formats ─────────────────────────────────────────────────────────


class OutputFormat:
    """Base class for a document format."""

    name: str = ""
    extension: str = ""

    def render(self, title: str, sections: dict[str, str]) -> bytes:
        raise NotImplementedError


class MarkdownFormat(OutputFormat):
    name = "markdown"
    extension = "md"

    def render(self, title: str, sections: dict[str, str]) -> bytes:
        parts = [f"# {title}", ""]
        for section, body in sections.items():
            parts.extend([f"## {section}", "", body.strip(), ""])
        return "\n".join(parts).encode("utf-8")


class HtmlFormat(OutputFormat):
    name = "html"
    extension = "html"

    def render(self, title: str, sections: dict[str, str]) -> bytes:
        escaped_title = html.escape(title)
        parts = [
            "<!DOCTYPE html>",
            "<html>",
            "<head>",
            '<meta charset="utf-8">',
            f"<title>{escaped_title}</title>",
            "</head>",
            "<body>",
            f"<h1>{escaped_title}</h1>",
        ]
        for section, body in sections.items():
            parts.append(f"<h2>{html.escape(section)}</h2>")
            for para in _paragraphs(body):
                parts.append(f"<p>{html.escape(para)}</p>")
        parts.extend(["</body>", "</html>", ""])
        return "\n".join(parts).encode("utf-8")


class TextFormat(OutputFormat):
    name = "text"
    extension = "txt"

    def render(self, title: str, sections: dict[str, str]) -> bytes:
        parts = [title, ""]
        for section, body in sections.items():
            parts.extend([section, "", body.strip(), ""])
        return "\n".join(parts).encode("utf-8")


class DocxFormat(OutputFormat):
    """Word document: one paragraph per section, bold name run + body run."""

    name = "docx"
    extension = "docx"

    def render(self, title: str, sections: dict[str, str]) -> bytes:
        doc = DocxDocument()
        doc.add_heading(title, level=0)
        for section, body in sections.items():
            para = doc.add_paragraph()
            para.add_run(section).bold = True
            para.add_run("\n" + body.strip())
        buffer = io.BytesIO()
        doc.save(buffer)
        return buffer.getvalue()


FORMATS: dict[str, OutputFormat] = {
    fmt.name: fmt
    for fmt in (MarkdownFormat(), HtmlFormat(), TextFormat(), DocxFormat())
}


def get_format(name: str) -> OutputFormat:
    """Return the format registered under *name*.

    Raises
    ------
    ValueError
        If *name* is not one of :data:`FORMATS`.
    """
    try:
        return FORMATS[name.lower().strip()]
    except KeyError:
        raise ValueError(
            f"Unknown file type '{name}'. Supported: {', '.join(FORMATS)}"
        ) from None


# ── File naming & writing ───────────────────────────────────────────


def sanitize_basename(input_path: str) -> str:
    """Base name of *input_path* with every ``.`` replaced by ``-``."""
    return os.path.basename(input_path).replace(".", "-")


def output_filename(
    input_path: str,
    extension: str,
    *,
    tag: str | None = None,
    today: date | None = None,
) -> str:
    """Build ``<base>--[<tag>--]<YYYY-MM-DD>.<extension>``."""
    today = today or date.today()
    parts = [sanitize_basename(input_path)]
    if tag:
        parts.append(tag)
    parts.append(today.isoformat())
    return f"{'--'.join(parts)}.{extension}"


def document_title(input_path: str) -> str:
    return f"Documentation for {os.path.basename(input_path)}"


def write_document(
    sections: dict[str, str],
    filetype: str,
    destination: str,
    *,
    title: str = "Documentation",
) -> str:
    """Render *sections* in *filetype* and write them to *destination*.

    Returns
    -------
    str
        Absolute path of the written file.
    """
    data = get_format(filetype).render(title, sections)
    with open(destination, "wb") as fh:
        fh.write(data)
    path = os.path.abspath(destination)
    logger.info(f"Wrote {len(data):,} bytes to {path}")
    return path


def write_intermediates(
    notes: dict[str, str],
    input_path: str,
    output_dir: str,
    *,
    today: date | None = None,
) -> list[str]:
    """Write each perspective's raw notes to its own ``.txt`` file.

    *notes* maps perspective tag → accumulated text.  Returns the
    absolute paths written, in the order of *notes*.
    """
    paths: list[str] = []
    for tag, text in notes.items():
        path = os.path.join(
            output_dir, output_filename(input_path, "txt", tag=tag, today=today)
        )
        with open(path, "w", encoding="utf-8") as fh:
            fh.write(text)
            if text:
                fh.write("\n")
        paths.append(os.path.abspath(path))
        logger.info(f"Kept intermediate {tag} notes at {path}")
    return paths
