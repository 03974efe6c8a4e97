"""branch-thinking history -- print the transcript of a saved branch."""

from __future__ import annotations

import click


@click.command()
@click.argument("branch_id")
@click.pass_context
def history(ctx: click.Context, branch_id: str) -> None:
    """Print every thought of BRANCH_ID in order."""
    from branch_thinking.cli import _saved_state

    with _saved_state(ctx) as (manager, _persistence, console):
        console.print(manager.get_branch_history(branch_id), markup=False, highlight=False)
