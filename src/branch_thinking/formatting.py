"""Text rendering for branches.

format_branch_history() and format_branch_status() return plain strings;
they are what the transport sends back to callers. pprint_branch() renders
the same status with rich for terminals.

To avoid circular imports, this module does NOT import domain models
at module level. Functions access object attributes dynamically.
"""
from __future__ import annotations

from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

EMPTY_HISTORY_TEMPLATE = "Branch {branch_id} has no thoughts yet."

_STATE_STYLES = {
    "active": "green",
    "suspended": "yellow",
    "dead_end": "red",
    "completed": "cyan",
}


def truncate(text: str, max_chars: int) -> str:
    """Cut text to max_chars, appending '...' when anything was dropped."""
    text = " ".join(text.split())
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + "..."


def format_thought(thought: Any, position: int) -> list[str]:
    """Render one thought as indented lines, numbered from 1."""
    stamp = thought.timestamp.strftime("%Y-%m-%d %H:%M:%S")
    lines = [
        f"{position}. [{thought.type}] confidence {thought.confidence:.2f} @ {stamp}",
        f"   {thought.content}",
    ]
    if thought.key_points:
        lines.append("   Key points:")
        lines.extend(f"     - {point}" for point in thought.key_points)
    if thought.related_insights:
        lines.append(
            "   Related insights: " + ", ".join(iid[:8] for iid in thought.related_insights)
        )
    if thought.cross_refs:
        lines.append("   Cross-references:")
        lines.extend(f"     {ref}" for ref in thought.cross_refs)
    return lines


def format_branch_history(branch: Any) -> str:
    """Render every thought of a branch in insertion order.

    A branch with no thoughts renders EMPTY_HISTORY_TEMPLATE.
    """
    if not branch.thoughts:
        return EMPTY_HISTORY_TEMPLATE.format(branch_id=branch.id)

    count = len(branch.thoughts)
    noun = "thought" if count == 1 else "thoughts"
    lines = [f"History of branch {branch.id} [{branch.state.value}] ({count} {noun})", ""]
    for i, thought in enumerate(branch.thoughts, start=1):
        lines.extend(format_thought(thought, i))
    return "\n".join(lines)


def format_branch_status(branch: Any, *, incoming_refs: int = 0, preview_chars: int = 50) -> str:
    """Render a branch's state, priority, counts and latest thought."""
    latest = branch.thoughts[-1] if branch.thoughts else None
    parent = branch.parent_branch_id or "(root)"
    preview = truncate(latest.content, preview_chars) if latest is not None else "(no thoughts)"
    lines = [
        f"Branch {branch.id} [{branch.state.value}]",
        f"  Priority:   {branch.priority:.3f}",
        f"  Parent:     {parent}",
        f"  Thoughts:   {len(branch.thoughts)}",
        f"  Insights:   {len(branch.insights)}",
        f"  Cross-refs: {len(branch.cross_refs)} outgoing, {incoming_refs} incoming",
        f"  Latest:     {preview}",
    ]
    return "\n".join(lines)


def _make_console(file: Any = None) -> Console:
    """Create a Console, optionally writing to a file-like object."""
    if file is not None:
        return Console(file=file, force_terminal=True, width=100)
    return Console()


def pprint_branch(
    branch: Any,
    *,
    incoming_refs: int = 0,
    preview_chars: int = 50,
    file: Any = None,
) -> None:
    """Pretty-print a branch's status in a rich panel.

    Args:
        branch: A ThoughtBranch instance.
        incoming_refs: Incoming cross-reference count to display.
        preview_chars: Max characters of the latest thought to show.
        file: Optional file-like object for output (used in tests).
    """
    console = _make_console(file)
    state = branch.state.value
    style = _STATE_STYLES.get(state, "white")
    latest = branch.thoughts[-1] if branch.thoughts else None

    body_parts: list[str] = [
        f"[bold]State:[/bold]      [{style}]{state}[/{style}]",
        f"[bold]Priority:[/bold]   {branch.priority:.3f}",
        f"[bold]Parent:[/bold]     {escape(branch.parent_branch_id or '(root)')}",
        f"[bold]Thoughts:[/bold]   {len(branch.thoughts)}",
        f"[bold]Insights:[/bold]   {len(branch.insights)}",
        f"[bold]Cross-refs:[/bold] {len(branch.cross_refs)} out / {incoming_refs} in",
    ]
    if latest is not None:
        body_parts.append(
            f"[bold]Latest:[/bold]     {escape(truncate(latest.content, preview_chars))}"
        )

    panel = Panel(
        "\n".join(body_parts),
        title=f"[bold]{escape(branch.id)}[/bold]",
        border_style=style,
    )
    console.print(panel)
