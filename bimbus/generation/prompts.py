"""Prompt templates for the window pass and the summary pass.

Prompts are built as a :class:`StructuredPrompt`, an ordered list of
named sections, and only rendered to text at the client boundary.
Tests can therefore check a single section by name instead of
matching the whole prompt string.

Window prompts always contain, in order::

    framing → role → format → [continue] → format_example → code

The output-format example is stated twice on purpose: once after the
role-play instruction and again right before the code block.  Models
follow the dash-list layout much more consistently that way.
"""

import textwrap
from dataclasses import dataclass

from bimbus.ingestion.chunker import Window

# ── Perspectives ────────────────────────────────────────────────────


@dataclass(frozen=True)
class Perspective:
    """One commentary angle, accumulated independently across windows."""

    tag: str
    label: str
    role: str
    example: str


PURPOSE = Perspective(
    tag="purpose",
    label="purpose",
    role=textwrap.dedent("""\
        You are a senior developer explaining to a junior developer
        WHY this code exists.  Focus on the purpose of each part and
        how it fits into the program as a whole.  Be friendly and
        encouraging."""),
    example="- Lines 12-18 set up the command-line options so the user can choose the input file.",
)

PLAIN = Perspective(
    tag="plain",
    label="plain-language",
    role=textwrap.dedent("""\
        You are a senior developer explaining this code to a
        junior developer who is new to programming.  Use plain,
        everyday language, avoid jargon, and use a simple analogy when
        it helps.  Be patient and clear."""),
    example="- Lines 12-18 are like a menu: they list the choices the user can make when starting the program.",
)

TECHNICAL = Perspective(
    tag="technical",
    label="technical",
    role=textwrap.dedent("""\
        You are a senior developer walking a junior developer through
        the technical details of this code.  Name the functions,
        libraries, data structures and control flow involved.  Be
        precise and concise."""),
    example="- Lines 12-18 call `program.option()` four times to register the -t, -i, -o and -v flags on the Commander instance.",
)

PERSPECTIVES: tuple[Perspective, ...] = (PURPOSE, PLAIN, TECHNICAL)
PERSPECTIVES_BY_TAG: dict[str, Perspective] = {p.tag: p for p in PERSPECTIVES}


# ── Structured prompt ───────────────────────────────────────────────


@dataclass(frozen=True)
class StructuredPrompt:
    """Ordered ``(name, text)`` sections rendered with blank lines between."""

    sections: tuple[tuple[str, str], ...]

    def names(self) -> list[str]:
        return [name for name, _ in self.sections]

    def section(self, name: str) -> str:
        """Return the text of section *name*.

        Raises
        ------
        KeyError
            If the prompt has no such section.
        """
        for section_name, text in self.sections:
            if section_name == name:
                return text
        raise KeyError(name)

    def render(self) -> str:
        return "\n\n".join(text for _, text in self.sections)


# ── Window pass ─────────────────────────────────────────────────────

FORMAT_INSTRUCTION = textwrap.dedent("""\
    Write your explanation as a list.  Every item MUST start with a dash
    and MUST mention the line numbers it refers to.  Do not write
    headings, introductions, or conclusions.  For example:""")

CONTINUE_INSTRUCTION = textwrap.dedent("""\
    This is a continuation of an explanation you have already started.
    Carry on naturally from your last point, which was:""")

FORMAT_REMINDER = "Remember to use exactly this format:"


def build_window_prompt(
    file_name: str,
    window: Window,
    numbered_code: str,
    perspective: Perspective,
    continuation: str | None = None,
) -> StructuredPrompt:
    """Build the prompt explaining one window from one perspective.

    Parameters
    ----------
    file_name : str
        Base name of the source file, quoted in the framing sentence.
    window : Window
        The line range being explained.
    numbered_code : str
        The window's lines, already prefixed with line numbers.
    perspective : Perspective
        Which commentary angle to role-play.
    continuation : str | None
        Last line accumulated so far for *perspective*.  ``None`` (or
        empty) on the first window, in which case no ``continue``
        section is emitted.
    """
    sections: list[tuple[str, str]] = [
        (
            "framing",
            f"The following code is lines {window.first_line} to "
            f"{window.last_line} of the file {file_name}.",
        ),
        ("role", perspective.role),
        ("format", f"{FORMAT_INSTRUCTION}\n{perspective.example}"),
    ]
    if continuation and continuation.strip():
        sections.append(
            ("continue", f'{CONTINUE_INSTRUCTION}\n"{continuation.strip()}"')
        )
    sections.append(("format_example", f"{FORMAT_REMINDER}\n{perspective.example}"))
    sections.append(("code", f"CODE:\n{numbered_code}"))
    return StructuredPrompt(tuple(sections))


# ── Summary pass ────────────────────────────────────────────────────

SUMMARY_ROLE = textwrap.dedent("""\
    You are a senior developer writing the "{section}" section of the
    documentation for the file {file_name}.  Below are {label} notes a
    colleague took while reading the file line by line.""")

SUMMARY_TASK = textwrap.dedent("""\
    Using only these notes, write {paragraphs} of flowing prose for the
    "{section}" section.  Separate paragraphs with a blank line.  Do
    not use lists, headings, or line numbers, and do not repeat the
    section title.""")


def build_summary_prompt(
    section_name: str,
    file_name: str,
    perspective: Perspective,
    notes: str,
    paragraphs: str,
) -> StructuredPrompt:
    """Build the second-round prompt for one output section.

    *paragraphs* is the length instruction chosen by the summarizer's
    tier function, e.g. ``"three paragraphs"``.
    """
    return StructuredPrompt((
        (
            "role",
            SUMMARY_ROLE.format(
                section=section_name, file_name=file_name, label=perspective.label
            ),
        ),
        ("task", SUMMARY_TASK.format(paragraphs=paragraphs, section=section_name)),
        ("notes", f"NOTES:\n{notes}"),
    ))
