"""Typer-based CLI for reviewed-patch."""

import logging
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from . import __version__
from .config import ReviewConfig
from .diff_parser import DiffParseError, parse_diff
from .git import detect_session
from .hashing import HunkFingerprinter
from .ledger import ReviewLedger, last_updated_display
from .models.projection import ProcessedDiff
from .paths import StoragePaths
from .processor import DiffProcessor
from .review import HunkReviewLoop

app = typer.Typer(
    name="reviewed-patch",
    help="Interactive diff patch review tool with persistent tracking",
    add_completion=False,
)

console = Console()
err_console = Console(stderr=True)


def _configure_logging(verbose: bool) -> None:
    """Route library logging through rich on stderr."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)
    root.addHandler(RichHandler(console=err_console, show_path=False, show_time=False))
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"reviewed-patch v{__version__}")
        raise typer.Exit()


def _read_diff_text(file: str | None) -> str:
    """Read diff text from a file or stdin."""
    if file:
        return Path(file).read_text(encoding="utf-8", errors="replace")
    if sys.stdin.isatty():
        raise DiffParseError("No diff provided. Pipe a diff into reviewed-patch or use --file.")
    return sys.stdin.buffer.read().decode("utf-8", errors="replace")


def _print_summary(view: ProcessedDiff) -> None:
    table = Table(title="Review Summary")
    table.add_column("File", style="cyan")
    table.add_column("Reviewed", justify="right")
    table.add_column("Hunks", justify="right")

    for processed_file in view.files:
        reviewed = processed_file.reviewed_count
        total = len(processed_file.hunks)
        style = "green" if reviewed == total else "yellow"
        table.add_row(
            escape(processed_file.file.display_path),
            f"[{style}]{reviewed}[/{style}]",
            str(total),
        )

    console.print(table)
    console.print(
        f"[bold]{view.reviewed_hunks} of {view.total_hunks} hunk(s) reviewed[/bold], "
        f"{view.unreviewed_hunks} remaining"
    )


def _save_failed(e: OSError) -> None:
    console.print(f"[red]Error: review was not saved: {escape(str(e))}[/red]")
    raise typer.Exit(code=1)


@app.command()
def review(
    file: str = typer.Option(
        None,
        "--file",
        "-f",
        help="Read diff from file instead of stdin",
    ),
    storage_dir: str = typer.Option(
        None,
        "--storage-dir",
        "-s",
        help="Override storage directory (default: REVIEWED_PATCH_STORAGE_DIR env or ~/.reviewed-patch)",
    ),
    reset: bool = typer.Option(
        False,
        "--reset",
        help="Clear all reviewed hunks (all sessions)",
    ),
    reset_session: bool = typer.Option(
        False,
        "--reset-session",
        help="Clear reviewed hunks for current session only",
    ),
    stats: bool = typer.Option(
        False,
        "--stats",
        help="Show review statistics",
    ),
    summary: bool = typer.Option(
        False,
        "--summary",
        help="Print per-file review progress and exit",
    ),
    normalize_whitespace: Optional[bool] = typer.Option(
        None,
        "--normalize-whitespace/--exact-whitespace",
        help="Ignore whitespace-only differences when fingerprinting hunks",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Enable debug logging",
    ),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
):
    """Review a diff hunk by hunk, remembering what has been reviewed.

    Reviewed hunks are tracked per repository and branch, so the same change
    shows up again on another branch until it is reviewed there.
    """
    _configure_logging(verbose)

    config = ReviewConfig.from_env(
        cli_storage_dir=storage_dir,
        cli_normalize_whitespace=normalize_whitespace,
    )
    paths = StoragePaths.from_config(config)

    ledger = ReviewLedger(paths.reviewed_file)
    load_result = ledger.load()
    if load_result.degraded:
        console.print("[yellow]Previous review history could not be used; starting empty.[/yellow]")

    # Detect current git session (repo + branch)
    session = detect_session()
    if session:
        ledger.select_session(session.session_id, session.repo_name, session.branch_name)
        console.print(f"[dim]Session: {escape(session.repo_name)} ({escape(session.branch_name)})[/dim]")

    if stats:
        ledger_stats = ledger.get_stats()
        console.print("[bold]Review Statistics:[/bold]")
        console.print(f"  Total reviewed hunks: {ledger_stats.total_reviewed_hunks}")
        console.print(f"  Last updated: {last_updated_display(ledger_stats.last_updated)}")
        return

    if reset:
        try:
            ledger.reset()
        except OSError as e:
            _save_failed(e)
        console.print("[green]All reviews have been reset.[/green]")
        return

    if reset_session:
        try:
            result = ledger.reset_session()
        except OSError as e:
            _save_failed(e)
        if not result.session_found:
            console.print("[yellow]No session detected (not in a git repository); nothing was reset.[/yellow]")
        else:
            console.print(
                f"[green]Reviews cleared for session: {escape(result.session_id)}[/green] "
                f"[dim]({result.records_removed} removed, {result.records_kept} still reviewed elsewhere)[/dim]"
            )
        return

    try:
        diff_text = _read_diff_text(file)
        files = parse_diff(diff_text)
    except (OSError, DiffParseError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    processor = DiffProcessor(ledger, HunkFingerprinter(config.normalize_whitespace))
    processed = processor.process(files)

    if processed.total_hunks == 0:
        console.print("No changes found in diff.")
        return

    if summary:
        _print_summary(processed)
        return

    if processed.unreviewed_hunks == 0:
        console.print("[green]All hunks have been reviewed![/green]")
        console.print(f"Total: {processed.total_hunks} hunks")
        return

    console.print(
        f"{processed.reviewed_hunks} of {processed.total_hunks} hunk(s) already reviewed; "
        f"{processed.unreviewed_hunks} to go."
    )

    loop = HunkReviewLoop(
        ledger,
        processor.filter_unreviewed(processed),
        output_fn=lambda text: console.print(text, markup=False, highlight=False),
    )
    try:
        result = loop.run()
    except OSError as e:
        _save_failed(e)
    except KeyboardInterrupt:
        console.print("\n[dim]Interrupted.[/dim]")
        raise typer.Exit(code=130)

    console.print(
        f"[bold]Marked {result['marked']}, unmarked {result['unmarked']}[/bold] "
        f"[dim]({result['reviewed']} of {result['total']} shown hunk(s) now reviewed)[/dim]"
    )


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
