"""Load documenter settings from config.txt.

Reads a simple ``key = value`` text file from the project root.
Blank lines and lines starting with ``#`` are ignored.
Integer-looking values are cast to ``int`` automatically.

Usage::

    from bimbus.config import CFG

    window_size = CFG["window_size"]   # int
    llm_model   = CFG["llm_model"]     # str

If config.txt is missing, sensible defaults are used so the CLI
still works.
"""

import logging
import os
import re

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

logger = logging.getLogger(__name__)

# ── Load .env (provider API keys, OLLAMA_HOST, etc.) ────────────────
load_dotenv()  # reads .env from project root, if present

_console = Console()

# ── Defaults ────────────────────────────────────────────────────────
DEFAULTS: dict[str, str | int | bool] = {
    "llm_provider": "openai",
    "llm_model": "gpt-4o-mini",
    "llm_temperature": "0.3",
    "window_size": 100,
    "window_overlap": 20,
    "max_retries": 3,
    "retry_delay": 0,
    "request_delay": 0,
    "summary_line_cap": 400,
    "paragraph_threshold": 2,
    "log_sessions": False,
}

CONFIG_PATH = os.path.join(os.path.dirname(__file__), os.pardir, "config.txt")


# Values recognised as boolean true / false (case-insensitive).
_BOOL_TRUE = frozenset({"true", "yes", "on"})
_BOOL_FALSE = frozenset({"false", "no", "off"})
# "#" opens a comment at line start or after whitespace only
_COMMENT = re.compile(r"(?:^|\s)#")


def load_config(path: str = CONFIG_PATH) -> dict[str, str | int | bool]:
    """Parse *path* and return a merged dict of defaults + overrides.

    File format (one pair per line)::

        # comment
        window_size = 120
        llm_model = gpt-4o-mini  # or gpt-4.1
        log_sessions = true

    Boolean values are recognised as true/yes/on and false/no/off
    (case-insensitive).  Digits are always integers, so ``retry_delay = 0``
    stays a number.

    Returns
    -------
    dict[str, str | int | bool]
        Merged configuration.  Keys not present in the file keep
        their default values.
    """
    cfg: dict[str, str | int | bool] = dict(DEFAULTS)

    resolved = os.path.normpath(path)
    if not os.path.isfile(resolved):
        logger.warning(f"Config file not found at {resolved}, using defaults")
        return cfg

    with open(resolved, encoding="utf-8") as fh:
        for lineno, raw_line in enumerate(fh, start=1):
            line = _COMMENT.split(raw_line, 1)[0].strip()
            if not line:
                continue
            if "=" not in line:
                logger.warning(
                    f"config.txt:{lineno}: skipping malformed line: {line!r}"
                )
                continue
            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip()

            if value.lower() in _BOOL_TRUE:
                cfg[key] = True
                continue
            if value.lower() in _BOOL_FALSE:
                cfg[key] = False
                continue

            if value.isdigit():
                value = int(value)

            cfg[key] = value

    logger.info(f"Loaded config from {resolved}: {cfg}")
    return cfg


# Module-level singleton, imported everywhere as ``from bimbus.config import CFG``
CFG: dict[str, str | int | bool] = load_config()


def print_config(cfg: dict[str, str | int | bool] | None = None, title: str = "config.txt") -> None:
    """Pretty-print a configuration mapping using a rich table.

    The CLI calls this in verbose mode with the fully resolved run
    settings (config.txt merged with command-line flags).
    """
    cfg = cfg if cfg is not None else CFG
    table = Table(
        title=title,
        title_style="bold yellow",
        border_style="yellow",
        show_header=True,
        header_style="bold",
        padding=(0, 2),
    )
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="white bold")
    for key, value in cfg.items():
        table.add_row(str(key), str(value))
    _console.print(table)


def config_as_text(cfg: dict[str, str | int | bool] | None = None) -> str:
    """Return the active configuration as a plain-text block for log files."""
    cfg = cfg if cfg is not None else CFG
    lines = [f"{k} = {v}" for k, v in cfg.items()]
    return "\n".join(lines)
