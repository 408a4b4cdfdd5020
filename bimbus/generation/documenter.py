"""Document a source file window-by-window, then summarise.

Pipeline (strictly sequential, one request in flight at a time)::

    read file → windows → 3 perspectives per window → accumulator
              → 3 summary prompts → post-process → output writer

Nothing is written to disk until every completion has succeeded; a
:class:`~bimbus.generation.llm.CompletionError` anywhere aborts the
run with no partial output.

Usage (programmatic)::

    from bimbus.generation.documenter import document_file
    path = document_file("src/index.ts", api_key="sk-...", filetype="html")
"""

import logging
import os
import time
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import date

from bimbus.config import CFG
from bimbus.generation.accumulator import Accumulator
from bimbus.generation.llm import (
    DEFAULT_PROVIDER,
    DEFAULT_RETRIES,
    DEFAULT_RETRY_DELAY,
    DEFAULT_TEMPERATURE,
    complete,
    default_model_for,
    get_llm,
)
from bimbus.generation.prompts import PERSPECTIVES, build_window_prompt
from bimbus.generation.session_logger import WindowRequestLog, log_document_session
from bimbus.generation.summarizer import (
    DEFAULT_LINE_CAP,
    DEFAULT_PARAGRAPH_THRESHOLD,
    DEFAULT_REQUEST_DELAY,
    SECTIONS,
    iter_summaries,
)
from bimbus.ingestion.chunker import (
    DEFAULT_OVERLAP,
    DEFAULT_WINDOW_SIZE,
    count_windows,
    iter_windows,
    read_document,
)
from bimbus.output.writers import (
    document_title,
    get_format,
    output_filename,
    write_document,
    write_intermediates,
)

logger = logging.getLogger(__name__)

LOG_SESSIONS = bool(CFG.get("log_sessions", False))


@dataclass
class DocumentProgress:
    """Progress update yielded by :func:`document_file_iter`."""

    step: int          # completed requests so far
    total: int         # total requests for the run
    phase: str         # "explaining" | "summarizing" | "done"
    label: str         # human-readable description of the last step
    output_path: str | None = None  # set only when phase == "done"
    intermediate_paths: list[str] = field(default_factory=list)


def document_file_iter(
    filepath: str,
    *,
    api_key: str | None = None,
    provider: str | None = None,
    model: str | None = None,
    temperature: float = DEFAULT_TEMPERATURE,
    filetype: str = "markdown",
    output_dir: str = ".",
    keep: bool = False,
    window_size: int = DEFAULT_WINDOW_SIZE,
    overlap: int = DEFAULT_OVERLAP,
    line_cap: int = DEFAULT_LINE_CAP,
    paragraph_threshold: int = DEFAULT_PARAGRAPH_THRESHOLD,
    retries: int = DEFAULT_RETRIES,
    retry_delay: float = DEFAULT_RETRY_DELAY,
    request_delay: float = DEFAULT_REQUEST_DELAY,
    log_session: bool = LOG_SESSIONS,
    today: date | None = None,
) -> Iterator[DocumentProgress]:
    """Document *filepath*, yielding progress after every request.

    This is the API the CLI drives its progress bar from.

    Yields
    ------
    DocumentProgress
        One update per completion request, plus a final
        ``phase="done"`` update carrying the output path.

    Raises
    ------
    FileNotFoundError
        If *filepath* does not exist.
    ValueError
        If the file is empty, or *filetype* / the window policy is invalid.
    CompletionError
        If a request exhausts its retries.
    """
    if not os.path.isfile(filepath):
        raise FileNotFoundError(f"Input file not found: {filepath}")

    fmt = get_format(filetype)
    document = read_document(filepath)
    if document.line_count == 0:
        raise ValueError(f"{filepath} is empty, nothing to document")

    provider = provider or DEFAULT_PROVIDER
    model = model or default_model_for(provider)
    llm = get_llm(model=model, temperature=temperature, provider=provider, api_key=api_key)

    file_name = os.path.basename(filepath)
    num_windows = count_windows(document.line_count, window_size, overlap)
    total = num_windows * len(PERSPECTIVES) + len(SECTIONS)
    logger.info(
        f"Documenting {file_name}: {document.line_count} line(s), "
        f"{num_windows} window(s), {total} request(s) via {provider}/{model}"
    )

    accumulator = Accumulator()
    request_logs: list[WindowRequestLog] = []
    step = 0
    t0 = time.time()

    # ── Pass 1: explain each window from every perspective ─────────
    for window in iter_windows(document.line_count, window_size, overlap):
        numbered = document.numbered(window)
        for perspective in PERSPECTIVES:
            prompt = build_window_prompt(
                file_name,
                window,
                numbered,
                perspective,
                continuation=accumulator.last_line(perspective.tag),
            ).render()

            if request_delay > 0 and step > 0:
                time.sleep(request_delay)
            reply = complete(llm, prompt, retries=retries, retry_delay=retry_delay)
            kept = accumulator.append(perspective.tag, reply)

            request_logs.append(WindowRequestLog(
                perspective=perspective.tag,
                first_line=window.first_line,
                last_line=window.last_line,
                prompt_chars=len(prompt),
                kept_lines=kept,
            ))
            step += 1
            yield DocumentProgress(
                step=step,
                total=total,
                phase="explaining",
                label=f"Lines {window.first_line}-{window.last_line} ({perspective.label})",
            )

    # ── Pass 2: summarise the accumulated notes ────────────────────
    sections: dict[str, str] = {}
    for section_name, text in iter_summaries(
        llm,
        accumulator,
        file_name,
        line_cap=line_cap,
        paragraph_threshold=paragraph_threshold,
        retries=retries,
        retry_delay=retry_delay,
        request_delay=request_delay,
    ):
        sections[section_name] = text
        step += 1
        yield DocumentProgress(
            step=step, total=total, phase="summarizing", label=section_name
        )

    # ── Write output ───────────────────────────────────────────────
    out_path = os.path.join(
        output_dir, output_filename(filepath, fmt.extension, today=today)
    )
    out_path = write_document(sections, fmt.name, out_path, title=document_title(filepath))

    intermediate_paths: list[str] = []
    if keep:
        intermediate_paths = write_intermediates(
            {tag: accumulator.snapshot(tag) for tag in accumulator.tags},
            filepath,
            output_dir,
            today=today,
        )

    elapsed = time.time() - t0
    logger.info(f"✅ Wrote {out_path} in {elapsed:.1f}s")

    if log_session:
        log_document_session(
            input_path=filepath,
            filetype=fmt.name,
            provider=provider,
            model=model,
            temperature=temperature,
            requests=request_logs,
            sections=sections,
            output_path=out_path,
            elapsed_seconds=elapsed,
        )

    yield DocumentProgress(
        step=total,
        total=total,
        phase="done",
        label="Done",
        output_path=out_path,
        intermediate_paths=intermediate_paths,
    )


def document_file(filepath: str, **kwargs) -> str | None:
    """Like :func:`document_file_iter`, but silent; returns the output path,
    or ``None`` if the run never reached the ``done`` phase."""
    output_path: str | None = None
    for update in document_file_iter(filepath, **kwargs):
        if update.phase == "done":
            output_path = update.output_path
    return output_path
