"""branch-thinking status -- show one saved branch."""

from __future__ import annotations

import click


@click.command()
@click.argument("branch_id")
@click.pass_context
def status(ctx: click.Context, branch_id: str) -> None:
    """Show state, priority, counts and latest thought of BRANCH_ID."""
    from branch_thinking.cli import _saved_state
    from branch_thinking.exceptions import UnknownBranchError

    with _saved_state(ctx) as (manager, _persistence, console):
        branch = manager.get_branch(branch_id)
        if branch is None:
            raise UnknownBranchError(branch_id)
        branch.pprint(
            incoming_refs=manager.get_incoming_reference_count(branch_id),
            file=console.file,
        )
