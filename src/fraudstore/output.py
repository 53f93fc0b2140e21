"""Rich-based output formatting for CLI."""

from __future__ import annotations

from datetime import datetime
from typing import Any

import pyarrow as pa
from rich.console import Console
from rich.table import Table

import fraudstore.backends as backends
import fraudstore.errors as errors
import fraudstore.loader as loader

# Global console instance
console = Console()


def _cell(value: Any) -> str:
    if value is None:
        return "[dim]null[/dim]"
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    if isinstance(value, float):
        return f"{value:g}"
    return str(value)


def render_error(e: errors.FraudStoreError) -> None:
    """Display a structured error message."""
    console.print(f"[bold red]Error:[/bold red] {e.context}\n")
    console.print(f"[yellow]Cause:[/yellow] {e.cause}\n")
    console.print(f"[green]Fix:[/green] {e.fix}")


def render_table(data: pa.Table, title: str | None = None) -> None:
    """Render a PyArrow table as a Rich table.

    Args:
        data: Rows to display.
        title: Optional title shown above the table.
    """
    if data.num_rows == 0:
        console.print(f"[dim]{title or 'Result'}: no rows[/dim]")
        return

    table = Table(title=title, show_header=True, header_style="bold")
    for name in data.column_names:
        table.add_column(name)
    for row in data.to_pylist():
        table.add_row(*(_cell(value) for value in row.values()))

    console.print(table)
    console.print(f"[dim]{data.num_rows} row(s)[/dim]")


def render_counts(counts: dict[str, int]) -> None:
    """Render row counts per stored table."""
    table = Table(show_header=True, header_style="bold")
    table.add_column("Table")
    table.add_column("Rows", justify="right")
    for name, count in counts.items():
        table.add_row(name, str(count))
    console.print(table)


def render_load_result(result: loader.LoadResult) -> None:
    """Render the outcome of a bulk load."""
    if result.ignored_columns:
        console.print(
            f"[yellow]Ignored column(s):[/yellow] {', '.join(result.ignored_columns)}"
        )
    message = f"[green]✓[/green] Loaded {result.total} row(s) into {result.table}"
    if result.updated:
        message += f" [dim]({result.inserted} inserted, {result.updated} updated)[/dim]"
    console.print(message)


def render_purge_preview(preview: backends.PurgeResult) -> None:
    """Render what a customer purge is about to delete."""
    console.print(f"[bold]Purging customer {preview.customer_id}[/bold]")
    console.print(f"  [red]-[/red] {preview.transactions} transaction(s)")
    console.print(f"  [red]-[/red] {preview.predictions} prediction(s)")


def prompt_purge() -> bool:
    """Prompt user to confirm a purge. Returns True if confirmed."""
    console.print()
    response = console.input(
        "[yellow]This cannot be undone. Continue?[/yellow] [dim](y/N)[/dim] "
    )
    return response.lower() in ("y", "yes")


def render_purge_result(result: backends.PurgeResult) -> None:
    """Render the rows removed by a purge."""
    console.print(
        f"[green]✓[/green] Purged customer {result.customer_id}: "
        f"{result.transactions} transaction(s), {result.predictions} prediction(s) removed"
    )


def render_cancelled() -> None:
    """Render message when an action is cancelled."""
    console.print("[dim]Cancelled[/dim]")
