"""Second-round summarisation of the accumulated notes.

Each output section is produced from one perspective's notes with a
single request.  The requested length follows a simple tier function
of how many note lines were collected, so a 20-line script does not
get five paragraphs of padding.

The post-processing step (:func:`trim_leading_paragraph`) is a
best-effort heuristic: models asked for several paragraphs tend to
open with a generic "This section describes..." paragraph, which is
dropped when the reply is long enough to spare it.  It is not
guaranteed to remove anything meaningful, nor only boilerplate.
"""

import logging
import re
import time
from collections.abc import Iterator

from bimbus.config import CFG
from bimbus.generation.accumulator import Accumulator
from bimbus.generation.llm import DEFAULT_RETRIES, DEFAULT_RETRY_DELAY, complete
from bimbus.generation.prompts import PERSPECTIVES_BY_TAG, build_summary_prompt

logger = logging.getLogger(__name__)

DEFAULT_LINE_CAP = int(CFG.get("summary_line_cap", 400))
DEFAULT_PARAGRAPH_THRESHOLD = int(CFG.get("paragraph_threshold", 2))
DEFAULT_REQUEST_DELAY = float(CFG.get("request_delay", 0))

# Output section → perspective tag, in document order
SECTIONS: tuple[tuple[str, str], ...] = (
    ("Introduction", "purpose"),
    ("Summary", "plain"),
    ("Technical Details", "technical"),
)

# Sections whose replies usually open with a throat-clearing paragraph
TRIMMED_SECTIONS: tuple[str, ...] = ("Summary", "Technical Details")

TIER_PARAGRAPHS: dict[str, str] = {
    "short": "one paragraph",
    "medium": "three paragraphs",
    "long": "five paragraphs",
}

_PARAGRAPH_BREAK = re.compile(r"\n[ \t]*\n\s*")


def length_tier(line_count: int) -> str:
    """Map an accumulated line count to ``short`` / ``medium`` / ``long``."""
    if line_count <= 30:
        return "short"
    if line_count <= 50:
        return "medium"
    return "long"


def count_paragraphs(text: str) -> int:
    """Number of non-empty, blank-line-delimited paragraphs in *text*."""
    return sum(1 for para in _PARAGRAPH_BREAK.split(text.strip()) if para.strip())


def trim_leading_paragraph(text: str, threshold: int = DEFAULT_PARAGRAPH_THRESHOLD) -> str:
    """Drop the first paragraph of *text* if it has more than *threshold*.

    The blank line(s) following the dropped paragraph go with it.
    Text with *threshold* paragraphs or fewer is returned unchanged.
    """
    if count_paragraphs(text) <= threshold:
        return text
    stripped = text.strip()
    match = _PARAGRAPH_BREAK.search(stripped)
    if match is None:
        return text
    return stripped[match.end():]


def iter_summaries(
    llm,
    accumulator: Accumulator,
    file_name: str,
    *,
    line_cap: int = DEFAULT_LINE_CAP,
    paragraph_threshold: int = DEFAULT_PARAGRAPH_THRESHOLD,
    retries: int = DEFAULT_RETRIES,
    retry_delay: float = DEFAULT_RETRY_DELAY,
    request_delay: float = DEFAULT_REQUEST_DELAY,
) -> Iterator[tuple[str, str]]:
    """Yield ``(section_name, text)`` for each section in :data:`SECTIONS` order.

    Parameters
    ----------
    llm
        A LangChain chat model returned by :func:`get_llm`.
    accumulator : Accumulator
        Notes collected during the window pass.
    file_name : str
        Base name of the documented file, quoted in the prompts.
    line_cap : int
        Only the first *line_cap* note lines per perspective are sent
        (``0`` sends everything).
    paragraph_threshold : int
        Passed to :func:`trim_leading_paragraph` for trimmed sections.
    retries, retry_delay
        Retry policy forwarded to :func:`complete`.
    request_delay : float
        Seconds to wait before each request.

    Raises
    ------
    CompletionError
        If any request exhausts its retries.
    """
    for section_name, tag in SECTIONS:
        notes = accumulator.truncated(tag, line_cap)
        tier = length_tier(len(notes))
        prompt = build_summary_prompt(
            section_name,
            file_name,
            PERSPECTIVES_BY_TAG[tag],
            "\n".join(notes),
            TIER_PARAGRAPHS[tier],
        )
        logger.info(
            f"Summarising '{section_name}' from {len(notes)} {tag} line(s) (tier={tier})"
        )

        if request_delay > 0:
            time.sleep(request_delay)
        text = complete(llm, prompt.render(), retries=retries, retry_delay=retry_delay)

        if section_name in TRIMMED_SECTIONS:
            text = trim_leading_paragraph(text, paragraph_threshold)
        yield section_name, text


def summarize(llm, accumulator: Accumulator, file_name: str, **kwargs) -> dict[str, str]:
    """Build the whole SectionSet at once; see :func:`iter_summaries`."""
    return dict(iter_summaries(llm, accumulator, file_name, **kwargs))
