"""branch-thinking serve -- run the MCP tool server on stdio."""

from __future__ import annotations

import click
from rich.console import Console

from branch_thinking.cli.formatting import format_error


@click.command()
@click.option(
    "--autosave-interval",
    default=60.0,
    envvar="BRANCH_THINKING_AUTOSAVE",
    type=click.FloatRange(min=0),
    show_default=True,
    help="Seconds between auto-saves (0 disables).",
)
@click.pass_context
def serve(ctx: click.Context, autosave_interval: float) -> None:
    """Serve the branch-thinking tool over MCP stdio."""
    from branch_thinking.exceptions import PersistenceError
    from branch_thinking.models.config import BranchThinkingConfig
    from branch_thinking.server import serve as run

    config = BranchThinkingConfig(
        storage_dir=ctx.obj["storage_dir"],
        autosave_interval=autosave_interval,
    )
    try:
        run(config)
    except PersistenceError as e:
        format_error(f"Fatal error initializing server: {e}", Console(stderr=True))
        raise SystemExit(1) from None
