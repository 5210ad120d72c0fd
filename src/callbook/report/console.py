"""
Console report generator for callbook.

Prints a parsed call sequence as a rich table so an operator can review a
verified file without reading the raw glyph lines.

Design Principles:
    - Human-readable first: one row per call, outcome at a glance
    - Placeholders stand out: missing values are highlighted
    - Same order as the text: row numbers are sequence positions
"""

from collections.abc import Mapping, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from callbook.schema import MISSING_VALUE, ArgumentKind, CallRecord


# Outcome icons
ICON_RETURNS = "[green]→[/green]"
ICON_THROWS = "[red]✗[/red]"
ICON_VOID = "[dim]○[/dim]"
ICON_MISSING = "[yellow]?[/yellow]"


def print_sequence_report(
    records: Sequence[CallRecord],
    test_inputs: Mapping[str, str],
    console: Console | None = None,
    title: str | None = None,
) -> None:
    """
    Print a call sequence report.

    Args:
        records: Calls in sequence order
        test_inputs: Encoded test inputs by name
        console: Rich Console instance (creates one if not provided)
        title: Heading shown in the header panel
    """
    if console is None:
        console = Console()

    _print_header(console, title or "Call sequence", records)
    console.print()

    if test_inputs:
        _print_test_inputs(console, test_inputs)
        console.print()

    if records:
        _print_calls(console, records)
    else:
        console.print("[dim]No calls recorded[/dim]")


def _print_header(console: Console, title: str, records: Sequence[CallRecord]) -> None:
    """Print the title panel with call counts."""
    thrown = sum(1 for r in records if r.error is not None)
    missing = sum(1 for r in records if r.result == MISSING_VALUE)

    header = Text()
    header.append(f" {title} ", style="bold")
    header.append("│ ", style="dim")
    header.append(f"{len(records)} calls", style="bold cyan")
    if thrown:
        header.append(" │ ", style="dim")
        header.append(f"{thrown} raise", style="bold red")
    if missing:
        header.append(" │ ", style="dim")
        header.append(f"{missing} missing", style="bold yellow")

    console.print(Panel(header, expand=False))


def _print_test_inputs(console: Console, test_inputs: Mapping[str, str]) -> None:
    """Print the preamble values."""
    console.print("[bold]Test Inputs[/bold]")
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Name", style="dim")
    table.add_column("Value")
    for name, value in test_inputs.items():
        table.add_row(name, Text(value))
    console.print(table)


def _print_calls(console: Console, records: Sequence[CallRecord]) -> None:
    """Print one row per call."""
    console.print("[bold]Calls[/bold]")
    console.print()

    table = Table(show_header=True, header_style="bold", expand=True)
    table.add_column("#", style="dim", width=3, justify="right")
    table.add_column("", width=2, justify="center")
    table.add_column("Method", style="cyan")
    table.add_column("Arguments", overflow="fold")
    table.add_column("Outcome", overflow="fold")

    for position, record in enumerate(records, start=1):
        icon, outcome = _format_outcome(record)
        arguments = "\n".join(
            f"{'out ' if a.kind == ArgumentKind.OUTPUT else ''}{a.name}: {a.value}"
            for a in record.arguments
        )
        table.add_row(str(position), icon, record.method_name, Text(arguments), outcome)

    console.print(table)


def _format_outcome(record: CallRecord) -> tuple[str, Text]:
    """Icon and text for the outcome column."""
    if record.error is not None:
        return ICON_THROWS, Text(record.error, style="red")
    if record.result == MISSING_VALUE:
        return ICON_MISSING, Text(MISSING_VALUE, style="yellow")
    if record.result is not None:
        return ICON_RETURNS, Text(_truncate(record.result, 80))
    return ICON_VOID, Text("void", style="dim")


def _truncate(s: str, max_len: int) -> str:
    """Truncate string with ellipsis."""
    if len(s) <= max_len:
        return s
    return s[: max_len - 3] + "..."
