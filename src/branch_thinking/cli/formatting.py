"""Rich formatting helpers for the branch-thinking CLI.

Rich auto-detects TTY and degrades gracefully when piped (no ANSI codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.table import Table

if TYPE_CHECKING:
    from branch_thinking.models.branch import BranchIndexEntry

_STATE_STYLES = {
    "active": "green",
    "suspended": "yellow",
    "dead_end": "red",
    "completed": "cyan",
}


def get_console() -> Console:
    """Create a Rich Console that auto-detects TTY for graceful pipe degradation."""
    return Console(stderr=False)


def format_branch_table(
    entries: list[BranchIndexEntry],
    console: Console,
    *,
    active_id: str | None = None,
) -> None:
    """Display branch index entries as a table."""
    if not entries:
        console.print("[dim]No branches.[/dim]")
        return

    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("", width=1)
    table.add_column("Branch", style="bold")
    table.add_column("State")
    table.add_column("Priority", justify="right")
    table.add_column("Thoughts", justify="right", style="green")
    table.add_column("Updated", style="dim")

    for entry in entries:
        style = _STATE_STYLES.get(entry.state.value, "white")
        table.add_row(
            "*" if entry.id == active_id else "",
            escape(entry.id),
            f"[{style}]{entry.state.value}[/{style}]",
            f"{entry.priority:.3f}",
            str(entry.thought_count),
            entry.last_updated.strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)


def format_error(message: str, console: Console) -> None:
    """Display an error message."""
    console.print(f"[red]Error:[/red] {escape(message)}", highlight=False)
