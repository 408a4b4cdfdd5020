"""Command-line entry point for bimbus.

Usage::

    bimbus -t $OPENAI_API_KEY -i src/index.ts
    bimbus -t $OPENAI_API_KEY -i app.py -o docs -f html --keep --verbose

Exit codes: ``0`` on success, ``1`` on any validation error or an
unrecoverable completion / filesystem failure.
"""

import argparse
import logging
import os
import sys

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from bimbus.config import print_config
from bimbus.generation.documenter import DocumentProgress, document_file_iter
from bimbus.generation.llm import (
    DEFAULT_MODEL,
    DEFAULT_PROVIDER,
    DEFAULT_TEMPERATURE,
    CompletionError,
    default_model_for,
)
from bimbus.ingestion.chunker import DEFAULT_OVERLAP, DEFAULT_WINDOW_SIZE
from bimbus.output.writers import FORMATS

__version__ = "1.0.0"

logger = logging.getLogger(__name__)

console = Console()
err_console = Console(stderr=True)

HELP_HINT = "Run 'bimbus -h' for help"


class ValidationError(Exception):
    """Bad command-line input; reported with a help hint, exit code 1."""


def print_ascii_banner() -> None:
    console.print(
        Panel.fit(
            """[bold deep_sky_blue1]
 ___ _           _                _   ___
| _ |_)_ __  ___| |__ _  _ ___   /_\\ |_ _|
| _ \\ | '  \\/ _ \\ '_ \\ || (_-<  / _ \\ | |
|___/_|_|_|_\\___/_.__/\\_,_/__/ /_/ \\_\\___|
[/bold deep_sky_blue1]
 [grey70]Source code, explained[/grey70]
 --------------------------------
""",
            border_style="grey39",
        )
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bimbus",
        description="Explain a source file with an LLM and write the result as a document",
    )
    parser.add_argument("-t", "--token", help="LLM API access token")
    parser.add_argument("-i", "--input", help="Input file to document")
    parser.add_argument(
        "-o",
        "--output",
        default=None,
        help="Output directory (default: current directory)",
    )
    parser.add_argument(
        "-f",
        "--filetype",
        default="markdown",
        help=f"Output file type: {' | '.join(FORMATS)} (default: markdown)",
    )
    parser.add_argument(
        "-k",
        "--keep",
        action="store_true",
        help="Also keep the intermediate per-perspective notes",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Print the resolved configuration and per-request token usage",
    )
    parser.add_argument(
        "--provider",
        default=None,
        help=f"LLM provider (default: {DEFAULT_PROVIDER}, from config.txt)",
    )
    parser.add_argument(
        "--model",
        default=None,
        help=(
            f"Model name (default: {DEFAULT_MODEL} from config.txt, "
            "or the provider's default model when --provider differs)"
        ),
    )
    parser.add_argument(
        "--temperature",
        type=float,
        default=DEFAULT_TEMPERATURE,
        help=f"Sampling temperature (default: {DEFAULT_TEMPERATURE})",
    )
    parser.add_argument(
        "-V", "--version", action="version", version=f"%(prog)s {__version__}"
    )
    return parser


def validate_args(args: argparse.Namespace) -> None:
    """Check required flags and paths before any work is done.

    Fills in ``args.output`` and normalises ``args.filetype``.

    Raises
    ------
    ValidationError
        On the first problem found.
    """
    if not args.token:
        raise ValidationError("Please specify an API token using -t")
    if not args.input:
        raise ValidationError("Please specify an input file using -i")

    args.filetype = args.filetype.lower().strip()
    if args.filetype not in FORMATS:
        raise ValidationError(
            f"Invalid file type '{args.filetype}'. Choose one of: {', '.join(FORMATS)}"
        )

    if not os.path.exists(args.input):
        raise ValidationError(f"Input file does not exist: {args.input}")
    if not os.path.isfile(args.input):
        raise ValidationError(f"Input path is not a file: {args.input}")
    if os.path.getsize(args.input) == 0:
        raise ValidationError(f"Input file is empty: {args.input}")

    args.output = args.output or os.getcwd()
    if not os.path.exists(args.output):
        raise ValidationError(f"Output directory does not exist: {args.output}")
    if not os.path.isdir(args.output):
        raise ValidationError(f"Output path is not a directory: {args.output}")


def _mask(token: str) -> str:
    return f"{token[:4]}…" if len(token) > 4 else "…"


def _report_error(message: str) -> None:
    err_console.print(f"[bold red]Error:[/bold red] {escape(message)}", soft_wrap=True)
    err_console.print(HELP_HINT)


def run(args: argparse.Namespace) -> DocumentProgress:
    """Run the documenter with a live progress bar; return the final update."""
    progress_layout = [
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
        TimeElapsedColumn(),
        TextColumn("({task.completed}/{task.total})"),
    ]

    final: DocumentProgress | None = None
    with Progress(*progress_layout, console=console) as progress:
        task_id = progress.add_task("Reading input...", total=None)
        for update in document_file_iter(
            args.input,
            api_key=args.token,
            provider=args.provider,
            model=args.model,
            temperature=args.temperature,
            filetype=args.filetype,
            output_dir=args.output,
            keep=args.keep,
        ):
            progress.update(
                task_id,
                total=update.total,
                completed=update.step,
                description=escape(update.label),
            )
            final = update
    return final


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, validate them and document the input file."""
    argv = sys.argv[1:] if argv is None else argv
    parser = build_parser()

    if not argv:
        parser.print_help(sys.stderr)
        return 1

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s  %(levelname)-8s  %(message)s",
        datefmt="%H:%M:%S",
    )

    print_ascii_banner()

    try:
        validate_args(args)
    except ValidationError as exc:
        _report_error(str(exc))
        return 1

    if args.verbose:
        print_config(
            {
                "token": _mask(args.token),
                "input": args.input,
                "output": args.output,
                "filetype": args.filetype,
                "keep": args.keep,
                "provider": args.provider or DEFAULT_PROVIDER,
                "model": args.model or default_model_for(args.provider or DEFAULT_PROVIDER),
                "temperature": args.temperature,
                "window_size": DEFAULT_WINDOW_SIZE,
                "window_overlap": DEFAULT_OVERLAP,
            },
            title="Run settings",
        )

    console.print("Running bimbus...")

    try:
        final = run(args)
    except CompletionError as exc:
        _report_error(str(exc))
        return 1
    except (OSError, ValueError, ImportError) as exc:
        _report_error(str(exc))
        return 1

    console.print(f"\n✅ Written to: [bold]{escape(final.output_path)}[/bold]")
    for path in final.intermediate_paths:
        console.print(f"   Kept notes: {escape(path)}")
    console.print("Done!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
