"""
Rich console utilities for dual-mode CLI output.

Provides readable terminal output for humans and structured JSON for
automation. All output functions adapt to the global output_mode setting.

This module provides:
- OutputMode: Class to manage output format (text/json)
- Context managers: spinner()
- Output functions: success(), error(), warning(), info()
- Display functions: print_change(), print_rollback(), print_summary()

Human Mode (--format text):
    - Rich panels with diff highlighting
    - ANSI colors and Unicode symbols

Agent Mode (--format json):
    - Structured JSON output to stdout
    - No ANSI codes or spinners
"""

from __future__ import annotations

import json
import sys
from contextlib import contextmanager
from typing import Any

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text


class OutputMode:
    """
    Output mode configuration for dual-mode CLI.

    Attributes:
        format: Output format - "text" (human) or "json" (agent)
        quiet: If True, suppress non-essential output
        _json_buffer: Internal buffer for JSON output in agent mode
    """

    def __init__(self, format_type: str = "text", quiet: bool = False):
        if format_type not in ["text", "json"]:
            raise ValueError(f"Invalid format: {format_type}. Must be 'text' or 'json'")

        self.format = format_type
        self.quiet = quiet
        self._json_buffer: dict[str, Any] = {}

    def is_human(self) -> bool:
        """Return True if format is "text"."""
        return self.format == "text"

    def is_agent(self) -> bool:
        """Return True if format is "json"."""
        return self.format == "json"

    def add_json(self, key: str, value: Any) -> None:
        """Add key-value pair to the JSON buffer."""
        self._json_buffer[key] = value

    def append_json(self, key: str, value: Any) -> None:
        """Append value to a list stored under key in the JSON buffer."""
        self._json_buffer.setdefault(key, []).append(value)

    def flush_json(self) -> None:
        """
        Output buffered JSON to stdout and clear buffer.

        Only outputs in agent mode. In human mode, this is a no-op.
        """
        if self.is_agent() and self._json_buffer:
            json.dump(self._json_buffer, sys.stdout, indent=2, default=str)
            sys.stdout.write("\n")
            sys.stdout.flush()
            self._json_buffer.clear()


# Global output mode instance (set by CLI flags)
output_mode = OutputMode()

# Global Rich console instances for human mode
console = Console()  # stdout
console_err = Console(stderr=True)  # stderr


def strip_markup(text: str) -> str:
    """Render Rich markup such as [blue]...[/blue] to plain text, honouring escapes."""
    return Text.from_markup(text).plain


@contextmanager
def spinner(message: str):
    """
    Context manager for showing a spinner during operations.

    Displays a Rich spinner with message in human mode. Silent otherwise.
    """
    if output_mode.is_human() and not output_mode.quiet:
        with console.status(f"[bold blue]{message}", spinner="dots") as status:
            yield status
    else:
        yield None


def success(message: str) -> None:
    """
    Print a success message.

    Human mode: Green checkmark with message
    Agent mode: Buffer to JSON
    """
    if output_mode.is_human():
        console.print(f"[green]✓[/green] {message}")
    elif output_mode.is_agent():
        output_mode.add_json("status", "success")
        output_mode.add_json("message", message)


def error(message: str) -> None:
    """
    Print an error message.

    Human mode: Red X with message to stderr
    Agent mode: Buffer to JSON
    """
    if output_mode.is_human():
        console_err.print(f"[red]✗[/red] {message}", style="red")
    elif output_mode.is_agent():
        output_mode.add_json("status", "error")
        output_mode.add_json("error", message)


def warning(message: str) -> None:
    """
    Print a warning message.

    Human mode: Yellow warning symbol with message
    Agent mode: Buffer to JSON
    """
    if output_mode.is_human():
        console.print(f"[yellow]⚠[/yellow] {message}", style="yellow")
    elif output_mode.is_agent():
        output_mode.add_json("warning", message)


def info(message: str) -> None:
    """
    Print an info message.

    Human mode: Blue info symbol with message
    Agent/Quiet mode: Silent
    """
    if output_mode.is_human() and not output_mode.quiet:
        console.print(f"[blue]ℹ[/blue] {message}")


def print_change(
    header: list[str], body: str, errored: bool = False, color: bool = True
) -> None:
    """
    Print one presented change.

    Human mode: Panel titled with the header, diff body highlighted
    Agent mode: Buffer {"target", "command", "errored", "body"} under "changes"

    Args:
        header: Header lines from Change.present() (may hold Rich markup)
        body: Body text from Change.present()
        errored: Whether the change is in an error state
        color: Use diff syntax highlighting for the body

    Examples:
        >>> header, body = change.present()
        >>> print_change(header, body, errored=change.error_state is not None)
    """
    if output_mode.is_agent():
        target = strip_markup(header[0])
        command = "".join(header[1:]).strip().removeprefix(">>").strip()
        output_mode.append_json(
            "changes",
            {
                "target": target.removeprefix("Target:").strip(),
                "command": command.strip().strip("[]").lower(),
                "errored": errored,
                "body": body,
            },
        )
        return

    # header[0] carries markup, the rest ("[SET]") must be shown literally
    title = " ".join([header[0].strip(), *(escape(line.strip()) for line in header[1:])])

    if errored:
        content: Any = Text(body.rstrip("\n"), style="bold red")
    elif color:
        content = Syntax(body.rstrip("\n"), "diff", theme="ansi_dark", background_color="default")
    else:
        content = Text(body.rstrip("\n"))

    console.print(
        Panel(
            content,
            title=title,
            title_align="left",
            border_style="red" if errored else "cyan",
            box=box.ROUNDED,
        )
    )


def print_rollback(doc_path: str, rollback: str) -> None:
    """
    Print the rollback patch text for one change.

    Human mode: Dim label with the patch as JSON
    Agent mode: Buffer {"target", "rollback"} under "rollbacks"
    """
    if output_mode.is_agent():
        output_mode.append_json("rollbacks", {"target": doc_path, "rollback": rollback})
        return

    console.print(f"[dim]rollback for[/dim] [blue]{escape(doc_path)}[/blue]")
    console.print(Syntax(rollback, "json", theme="ansi_dark", background_color="default"))


def print_summary(resolved: int, failed: int) -> None:
    """
    Print a summary of how many changes resolved.

    Human mode: Rich table
    Agent mode: Buffer counts
    """
    if output_mode.is_agent():
        output_mode.add_json("resolved_count", resolved)
        output_mode.add_json("failed_count", failed)
        return

    if output_mode.quiet:
        return

    table = Table(title="Preview Summary", box=box.ROUNDED)
    table.add_column("Resolved", justify="right", style="green")
    table.add_column("Failed", justify="right", style="red" if failed else "dim")
    table.add_row(str(resolved), str(failed))
    console.print(table)
