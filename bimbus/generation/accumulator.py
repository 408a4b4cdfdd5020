"""Per-perspective collection of model output lines."""

import logging

from bimbus.generation.prompts import PERSPECTIVES

logger = logging.getLogger(__name__)


class Accumulator:
    """Ordered, append-only line store keyed by perspective tag.

    Only lines that are non-empty after stripping are kept, but the
    stored value is the line exactly as the model wrote it.  No
    deduplication or capping happens here; truncation is applied by the
    summarizer through :meth:`truncated`.
    """

    def __init__(self, tags: tuple[str, ...] | None = None):
        tags = tags if tags is not None else tuple(p.tag for p in PERSPECTIVES)
        self._lines: dict[str, list[str]] = {tag: [] for tag in tags}

    @property
    def tags(self) -> tuple[str, ...]:
        return tuple(self._lines)

    def append(self, perspective: str, reply_text: str) -> int:
        """Add the non-blank lines of *reply_text*; return how many were kept."""
        kept = [line for line in reply_text.splitlines() if line.strip()]
        self._lines[perspective].extend(kept)
        logger.debug(f"{perspective}: +{len(kept)} line(s)")
        return len(kept)

    def lines(self, perspective: str) -> list[str]:
        return list(self._lines[perspective])

    def line_count(self, perspective: str) -> int:
        return len(self._lines[perspective])

    def last_line(self, perspective: str) -> str | None:
        """Continuation fragment for the next window, or ``None`` if empty."""
        lines = self._lines[perspective]
        return lines[-1] if lines else None

    def snapshot(self, perspective: str) -> str:
        return "\n".join(self._lines[perspective])

    def truncated(self, perspective: str, limit: int) -> list[str]:
        """First *limit* lines of *perspective*; ``limit <= 0`` means no cap."""
        lines = self._lines[perspective]
        return list(lines[:limit]) if limit > 0 else list(lines)
