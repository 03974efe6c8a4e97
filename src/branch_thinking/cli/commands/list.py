"""branch-thinking list -- show saved branches from the index."""

from __future__ import annotations

import click

from branch_thinking.cli.formatting import format_branch_table, format_error, get_console


@click.command("list")
@click.pass_context
def list_branches(ctx: click.Context) -> None:
    """List saved branches, highest priority first, without loading branch files."""
    from branch_thinking.manager import BranchManager
    from branch_thinking.models.branch import BranchState
    from branch_thinking.persistence import PersistenceManager

    console = get_console()
    try:
        with PersistenceManager(BranchManager(), ctx.obj["storage_dir"]) as persistence:
            entries = persistence.list_index()
        active_id = next((e.id for e in entries if e.state == BranchState.ACTIVE), None)
        format_branch_table(entries, console, active_id=active_id)
    except SystemExit:
        raise
    except Exception as e:
        format_error(str(e), console)
        raise SystemExit(1) from None
