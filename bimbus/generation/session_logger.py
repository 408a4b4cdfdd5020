"""Log a documentation run to a timestamped file in logs/.

Enabled with ``log_sessions = true`` in config.txt.  Each run writes a
single ``YYYYMMDD_HHMMSS_document.log`` file containing:

* Active config.txt settings
* Input path, output format, provider, model, temperature
* One record per window request (perspective, line range, kept lines)
* The final sections as sent to the output writer
* Output file path and timing
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime

from bimbus.config import config_as_text

logger = logging.getLogger(__name__)

LOGS_DIR = os.path.join("logs")


@dataclass
class WindowRequestLog:
    """One window/perspective request for logging."""

    perspective: str
    first_line: int
    last_line: int
    prompt_chars: int
    kept_lines: int


def log_document_session(
    *,
    input_path: str,
    filetype: str,
    provider: str,
    model: str,
    temperature: float,
    requests: list[WindowRequestLog] | None = None,
    sections: dict[str, str] | None = None,
    output_path: str | None = None,
    elapsed_seconds: float | None = None,
    logs_dir: str = LOGS_DIR,
) -> str:
    """Write a complete documentation session to a log file.

    Returns
    -------
    str
        Path to the log file.
    """
    os.makedirs(logs_dir, exist_ok=True)

    now = datetime.now()
    filename = now.strftime("%Y%m%d_%H%M%S_document.log")
    filepath = os.path.join(logs_dir, filename)

    separator = "─" * 72

    with open(filepath, "w", encoding="utf-8") as fh:
        # ── Config ──────────────────────────────────────────────────
        fh.write("CONFIG\n")
        fh.write(f"{separator}\n")
        fh.write(f"{config_as_text()}\n")
        fh.write(f"{separator}\n\n")

        # ── Parameters ──────────────────────────────────────────────
        fh.write("DOCUMENT SESSION\n")
        fh.write(f"{separator}\n")
        fh.write(f"Timestamp:    {now.isoformat()}\n")
        fh.write(f"Input:        {input_path}\n")
        fh.write(f"Format:       {filetype}\n")
        fh.write(f"Provider:     {provider}\n")
        fh.write(f"Model:        {model}\n")
        fh.write(f"Temperature:  {temperature}\n")
        if output_path:
            fh.write(f"Output:       {output_path}\n")
        if elapsed_seconds is not None:
            mins, secs = divmod(int(elapsed_seconds), 60)
            fh.write(f"Elapsed:      {elapsed_seconds:.1f}s ({mins:02d}:{secs:02d})\n")
        total = len(requests) if requests else 0
        fh.write(f"Requests:     {total}\n")
        fh.write(f"{separator}\n\n")

        # ── Per-request details ─────────────────────────────────────
        if requests:
            for i, req in enumerate(requests, 1):
                fh.write(
                    f"[{i}/{total}] {req.perspective}  "
                    f"lines {req.first_line}-{req.last_line}  "
                    f"prompt {req.prompt_chars:,} chars  "
                    f"kept {req.kept_lines} line(s)\n"
                )
            fh.write(f"\n{separator}\n\n")

        # ── Final sections ──────────────────────────────────────────
        if sections:
            for name, text in sections.items():
                fh.write(f"{name.upper()}\n")
                fh.write(f"{separator}\n")
                fh.write(f"{text}\n")
                fh.write(f"{separator}\n\n")

    logger.info(f"Document session logged to {filepath}")
    return filepath
