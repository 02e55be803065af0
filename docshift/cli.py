"""
CLI entrypoint for docshift.

Provides a dual-mode command-line interface with:
- Human-friendly output: Rich panels, highlighted diffs, colored text
- Agent-friendly output: Structured JSON for automation

Commands:
    preview: Resolve every change in a plan and show its diff
    rollback: Resolve every change in a plan and print its rollback patch
    validate: Validate a change plan without resolving it

Exit codes:
    0: Success - all changes resolved
    1: Configuration error (missing file, invalid YAML, schema errors)
    3: Partial failure (some changes failed to resolve)
    4: Complete failure (no change resolved)

Examples:
    # Preview a plan with highlighted diffs
    docshift preview --plan plan.yaml

    # Machine-readable preview
    docshift preview --plan plan.yaml --format json

    # Print rollback patches for later use
    docshift rollback --plan plan.yaml
"""

from pathlib import Path

import typer
from rich.traceback import install as install_rich_traceback

from docshift.change import Change
from docshift.config.loader import build_changes, load_plan
from docshift.exceptions import ChangeError, ConfigurationError
from docshift.utils.console import (
    error,
    info,
    output_mode,
    print_change,
    print_rollback,
    print_summary,
    spinner,
    success,
    warning,
)
from docshift.utils.logging import setup_logging

# Install Rich tracebacks for better error messages
install_rich_traceback(show_locals=False)

# Exit codes
EXIT_SUCCESS = 0  # All changes resolved
EXIT_CONFIG_ERROR = 1  # Plan could not be loaded
EXIT_PARTIAL_FAILURE = 3  # Some changes failed to resolve
EXIT_COMPLETE_FAILURE = 4  # All changes failed to resolve

app = typer.Typer(
    name="docshift",
    help="Preview document database changes and derive their rollbacks",
    add_completion=False,
)


def _load_changes(plan: Path) -> tuple[list[Change], bool, bool]:
    """
    Load a plan and build its changes, exiting with EXIT_CONFIG_ERROR on failure.

    Returns:
        (changes, color, show_rollback)
    """
    try:
        migration_plan = load_plan(plan)
    except ConfigurationError as e:
        error(str(e))
        if output_mode.is_agent():
            output_mode.add_json("error_type", type(e).__name__)
            output_mode.flush_json()
        raise typer.Exit(EXIT_CONFIG_ERROR) from e

    settings = migration_plan.settings
    return build_changes(migration_plan), settings.color, settings.show_rollback


def _resolve_all(changes: list[Change]) -> int:
    """Resolve each change independently and return how many failed."""
    failed = 0
    for change in changes:
        try:
            change.resolve()
        except ChangeError:
            # recorded on the change and rendered inline by present()
            failed += 1
    return failed


def _exit_code(total: int, failed: int) -> int:
    if failed == 0:
        return EXIT_SUCCESS
    if failed == total:
        return EXIT_COMPLETE_FAILURE
    return EXIT_PARTIAL_FAILURE


@app.command()
def preview(
    plan: Path = typer.Option(
        ...,
        "--plan",
        "-p",
        help="Path to YAML change plan",
    ),
    format: str = typer.Option(
        "text",
        "--format",
        "-f",
        help="Output format: 'text' or 'json'",
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable diff highlighting",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging to stderr",
    ),
):
    """
    Resolve every change in a plan and show before/after diffs.

    Changes that cannot be resolved are shown inline as error blocks;
    they never stop the remaining changes from being previewed.

    Examples:
      docshift preview --plan plan.yaml
      docshift preview --plan plan.yaml --format json
    """
    output_mode.format = format
    setup_logging(verbose=verbose)

    changes, color, show_rollback = _load_changes(plan)

    with spinner(f"Resolving {len(changes)} change(s)..."):
        failed = _resolve_all(changes)

    for change in changes:
        header, body = change.present()
        errored = change.error_state is not None
        print_change(header, body, errored=errored, color=color and not no_color)
        if show_rollback and not errored:
            print_rollback(change.doc_path, change.rollback)

    print_summary(len(changes) - failed, failed)
    if failed:
        warning(f"{failed} of {len(changes)} change(s) could not be resolved")
    else:
        success(f"Resolved {len(changes)} change(s)")

    output_mode.flush_json()
    raise typer.Exit(_exit_code(len(changes), failed))


@app.command()
def rollback(
    plan: Path = typer.Option(
        ...,
        "--plan",
        "-p",
        help="Path to YAML change plan",
    ),
    format: str = typer.Option(
        "text",
        "--format",
        "-f",
        help="Output format: 'text' or 'json'",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging to stderr",
    ),
):
    """
    Resolve every change in a plan and print its rollback patch.

    A rollback patch applied to the change's after state restores its
    before state. Store it as the instruction of a later change to undo.

    Examples:
      docshift rollback --plan plan.yaml --format json > rollbacks.json
    """
    output_mode.format = format
    setup_logging(verbose=verbose)

    changes, _, _ = _load_changes(plan)
    failed = _resolve_all(changes)

    for change in changes:
        if change.error_state is None:
            print_rollback(change.doc_path, change.rollback)
        else:
            warning(f"No rollback for {change.doc_path}: {change.error_state}")

    output_mode.flush_json()
    raise typer.Exit(_exit_code(len(changes), failed))


@app.command()
def validate(
    plan: Path = typer.Option(
        ...,
        "--plan",
        "-p",
        help="Path to YAML change plan",
    ),
    format: str = typer.Option(
        "text",
        "--format",
        "-f",
        help="Output format: 'text' or 'json'",
    ),
):
    """
    Validate a change plan without resolving it.

    Checks:
    - YAML syntax is valid
    - Every change has a non-empty doc_path and a known command

    Exit codes:
      0: Plan is valid
      1: Plan is invalid
    """
    output_mode.format = format

    changes, _, _ = _load_changes(plan)

    success("Change plan is valid")
    info(f"Changes: {len(changes)}")

    if output_mode.is_agent():
        output_mode.add_json("valid", True)
        output_mode.add_json("changes_count", len(changes))
        output_mode.flush_json()

    raise typer.Exit(EXIT_SUCCESS)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
    ),
):
    """
    docshift - preview schema-less document changes and derive rollbacks.

    Use 'docshift COMMAND --help' for detailed command documentation.
    """
    if version:
        from rich.console import Console

        Console().print(f"[bold cyan]docshift[/bold cyan] version {_read_version()}")
        raise typer.Exit(EXIT_SUCCESS)

    if ctx.invoked_subcommand is None:
        from rich.console import Console

        console = Console()
        console.print("[yellow]Use --help to see available commands[/yellow]")
        console.print()
        console.print("Commands:")
        console.print("  preview   Resolve a change plan and show diffs")
        console.print("  rollback  Print rollback patches for a change plan")
        console.print("  validate  Validate a change plan without resolving it")


def _read_version() -> str:
    """Read version from installed package metadata."""
    from importlib.metadata import PackageNotFoundError, version

    try:
        return version("docshift")
    except PackageNotFoundError:
        return "0.1.0"


if __name__ == "__main__":
    app()
