"""branch-thinking CLI -- serve the MCP tool or inspect saved branches.

This module is NEVER imported from branch_thinking/__init__.py.
It is only loaded via the ``branch-thinking`` entry point defined in pyproject.toml.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

try:
    import click
except ImportError:
    raise ImportError(
        "CLI dependencies not installed. Install with: pip install branch-thinking[cli]"
    ) from None

from branch_thinking.cli.formatting import format_error, get_console
from branch_thinking.models.config import DEFAULT_STORAGE_DIR

if TYPE_CHECKING:
    from collections.abc import Iterator

    from rich.console import Console

    from branch_thinking.manager import BranchManager
    from branch_thinking.persistence import PersistenceManager


def configure_logging(level: str) -> None:
    """Send log records to stderr through rich (stdout carries MCP traffic)."""
    from rich.console import Console
    from rich.logging import RichHandler

    handler = RichHandler(console=Console(stderr=True), show_path=False)
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )


@click.group()
@click.option(
    "--storage-dir",
    default=DEFAULT_STORAGE_DIR,
    envvar="BRANCH_THINKING_DIR",
    show_default=True,
    help="Directory holding saved branches.",
)
@click.option(
    "--log-level",
    default="WARNING",
    envvar="BRANCH_THINKING_LOG_LEVEL",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Log level for stderr output.",
)
@click.pass_context
def cli(ctx: click.Context, storage_dir: str, log_level: str) -> None:
    """branch-thinking: branching chains of thought with insights and cross-references."""
    ctx.ensure_object(dict)
    ctx.obj["storage_dir"] = storage_dir
    ctx.obj["log_level"] = log_level
    configure_logging(log_level)


@contextmanager
def _saved_state(ctx: click.Context) -> Iterator[tuple[BranchManager, PersistenceManager, Console]]:
    """Load saved branches read-only; yields (manager, persistence, console).

    Formats exceptions as CLI errors and exits with status 1.
    """
    from branch_thinking.manager import BranchManager
    from branch_thinking.persistence import PersistenceManager

    console = get_console()
    try:
        manager = BranchManager()
        persistence = PersistenceManager(manager, ctx.obj["storage_dir"])
        try:
            persistence.load_state()
            yield manager, persistence, console
        finally:
            persistence.close()
    except SystemExit:
        raise
    except Exception as e:
        format_error(str(e), console)
        raise SystemExit(1) from None


# Register subcommands after cli group is defined
from branch_thinking.cli.commands.history import history  # noqa: E402
from branch_thinking.cli.commands.list import list_branches  # noqa: E402
from branch_thinking.cli.commands.serve import serve  # noqa: E402
from branch_thinking.cli.commands.status import status  # noqa: E402

cli.add_command(serve)
cli.add_command(list_branches)
cli.add_command(status)
cli.add_command(history)
