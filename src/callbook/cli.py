"""
CLI entry point for callbook.

This module provides the Typer-based command-line interface for callbook.
The commands are read-only: they inspect verified files and never write
them.

Commands:
    inspect     Show the calls and test inputs in a verified file
    check       Parse a verified file the way a replaying test would

Architecture Note:
    The CLI is intentionally thin - it reads the file and delegates to the
    sequence and report modules. Everything it does is available
    programmatically.
"""

import json
import logging
import traceback
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from callbook import __version__
from callbook.errors import CallbookError
from callbook.registry import ObjectRegistry
from callbook.report import generate_json_report, print_sequence_report
from callbook.schema import DEFAULT_CONFIG, FormatConfig, load_config
from callbook.sequence import CallSequence, parse_text, render_text

# Initialize Typer app with metadata
app = typer.Typer(
    name="callbook",
    help="Inspect and check verified call sequence files.",
    add_completion=False,
    no_args_is_help=True,
)

# Rich console for formatted output
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]callbook[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """
    callbook - Record and replay call sequences for characterization tests.

    Verified files list every call a test made against its dependencies,
    with the values they returned. These commands help review them.
    """
    pass


def _configure_logging(verbose: bool) -> None:
    """Send library debug logs to stderr when --verbose is given."""
    if not verbose:
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load_format(config_path: Path | None) -> FormatConfig:
    """Load the format configuration, or the defaults."""
    if config_path is None:
        return DEFAULT_CONFIG
    return load_config(config_path)


def _output_json_error(error_type: str, message: str, include_traceback: bool = False) -> None:
    """Output an error in JSON format."""
    output = {
        "error": True,
        "error_type": error_type,
        "message": message,
    }
    if include_traceback:
        output["traceback"] = traceback.format_exc()
    print(json.dumps(output, indent=2, ensure_ascii=False))


@app.command()
def inspect(
    file_path: Annotated[
        Path,
        typer.Argument(
            help="Path to the verified text file.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ],
    config_path: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help="Path to a format configuration YAML file.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output the parsed calls in JSON format.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            help="Enable verbose output for debugging.",
        ),
    ] = False,
) -> None:
    """
    Show the calls and test inputs in a verified file.

    Values are shown as they are written; nothing is resolved.

    Example:
        $ callbook inspect tests/OrderService.Checkout.paid.verified.txt
    """
    _configure_logging(verbose)

    try:
        config = _load_format(config_path)
        parsed = parse_text(file_path.read_text(encoding="utf-8"), config)
    except Exception as e:
        if json_output:
            _output_json_error("parse_error", str(e), verbose)
        else:
            console.print(f"[red]Error reading {file_path.name}: {escape(str(e))}[/red]")
            if verbose:
                console.print(f"[dim]{traceback.format_exc()}[/dim]")
        raise typer.Exit(code=1)

    if json_output:
        print(generate_json_report(parsed.records, parsed.test_inputs, file_path))
    else:
        print_sequence_report(parsed.records, parsed.test_inputs, console=console, title=file_path.name)


@app.command()
def check(
    file_path: Annotated[
        Path,
        typer.Argument(
            help="Path to the verified text file.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ],
    config_path: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help="Path to a format configuration YAML file.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ] = None,
) -> None:
    """
    Parse a verified file the way a replaying test would.

    Fails on malformed parameter lines and on <unknown> placeholders, which
    would fail every replay of the file. Also reports whether the file is in
    the form callbook itself renders.

    Example:
        $ callbook check tests/OrderService.Checkout.paid.verified.txt
    """
    try:
        config = _load_format(config_path)
        text = file_path.read_text(encoding="utf-8")
        sequence = CallSequence(text, ObjectRegistry(), source_path=file_path, config=config)
    except CallbookError as e:
        console.print(f"[red]✗[/red] {file_path.name}")
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=1)
    except Exception as e:
        console.print(f"[red]✗[/red] {file_path.name}")
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    console.print(
        f"[green]✓[/green] {file_path.name}: "
        f"{len(sequence.expected)} calls, {len(sequence.test_inputs)} test inputs"
    )

    canonical = render_text(sequence.expected, sequence.test_inputs, config)
    if canonical != text:
        console.print("[yellow]  Not in rendered form; re-recording will reformat it.[/yellow]")


if __name__ == "__main__":
    app()
