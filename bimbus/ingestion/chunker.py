"""Split a source file into overlapping line-range windows.

A :class:`Document` is read once and never mutated.  Windows are
half-open ``[start, end)`` ranges over its lines, produced lazily by
:func:`iter_windows` in a single forward pass.  Consecutive windows
share ``overlap`` lines so the model sees some context from the
previous request.

Usage::

    from bimbus.ingestion.chunker import read_document, iter_windows

    doc = read_document("src/index.ts")
    for window in iter_windows(doc.line_count, 100, 20):
        print(window, doc.numbered(window)[:40])
"""

import logging
from collections.abc import Iterator
from dataclasses import dataclass

from bimbus.config import CFG

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SIZE = int(CFG["window_size"])
DEFAULT_OVERLAP = int(CFG["window_overlap"])


@dataclass(frozen=True)
class Window:
    """Half-open line-index range ``[start, end)`` (0-based)."""

    start: int
    end: int

    @property
    def first_line(self) -> int:
        """1-based number of the first line in the window."""
        return self.start + 1

    @property
    def last_line(self) -> int:
        """1-based number of the last line in the window."""
        return self.end

    def __len__(self) -> int:
        return self.end - self.start


@dataclass(frozen=True)
class Document:
    """The raw input file as an immutable sequence of lines."""

    path: str
    lines: tuple[str, ...]

    @property
    def line_count(self) -> int:
        return len(self.lines)

    def numbered(self, window: Window) -> str:
        """Return the window's lines prefixed with 1-based line numbers."""
        return "\n".join(
            f"{number}: {line}"
            for number, line in enumerate(
                self.lines[window.start:window.end], start=window.first_line
            )
        )


def read_document(path: str) -> Document:
    """Read *path* as UTF-8 text and split it on line boundaries.

    Undecodable bytes are replaced rather than aborting the run, since
    source files occasionally carry stray Latin-1 characters.
    """
    with open(path, encoding="utf-8", errors="replace") as fh:
        lines = tuple(fh.read().splitlines())
    logger.info(f"Read {path}: {len(lines)} line(s)")
    return Document(path=path, lines=lines)


def iter_windows(
    line_count: int,
    window_size: int = DEFAULT_WINDOW_SIZE,
    overlap: int = DEFAULT_OVERLAP,
) -> Iterator[Window]:
    """Yield windows covering ``[0, line_count)`` in increasing order.

    Each window after the first starts ``window_size - overlap`` lines
    after the previous one.  Ends are clamped to *line_count*, and the
    iteration stops right after the first window that reaches it, so
    the final window may be shorter than *window_size*.

    Parameters
    ----------
    line_count : int
        Number of lines in the document.  Zero yields nothing.
    window_size : int
        Lines per window (>= 1).
    overlap : int
        Lines shared by consecutive windows (0 <= overlap < window_size).

    Raises
    ------
    ValueError
        If the window policy would never advance.
    """
    if window_size < 1:
        raise ValueError(f"window_size must be >= 1, got {window_size}")
    if overlap < 0 or overlap >= window_size:
        raise ValueError(
            f"overlap must be in [0, window_size), got overlap={overlap}, "
            f"window_size={window_size}"
        )

    step = window_size - overlap
    start = 0
    while start < line_count:
        end = min(start + window_size, line_count)
        yield Window(start, end)
        if end == line_count:
            return
        start = max(0, start + step)


def count_windows(
    line_count: int,
    window_size: int = DEFAULT_WINDOW_SIZE,
    overlap: int = DEFAULT_OVERLAP,
) -> int:
    """Return how many windows :func:`iter_windows` will yield."""
    return sum(1 for _ in iter_windows(line_count, window_size, overlap))
