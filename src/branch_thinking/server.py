"""MCP stdio server exposing the ``branch-thinking`` tool.

The server is a pure caller of BranchManager: it parses a JSON tool call,
dispatches either a thought or a navigation command, and wraps the result
(or the error) in a CallToolResult. Requests are handled one at a time on
a single event loop; autosave runs as a task on the same loop.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import CallToolResult, TextContent, Tool, ToolAnnotations

from branch_thinking._version import __version__
from branch_thinking.exceptions import BranchThinkingError, PersistenceError
from branch_thinking.formatting import truncate
from branch_thinking.manager import BranchManager
from branch_thinking.persistence import PersistenceManager

if TYPE_CHECKING:
    from branch_thinking.models.config import BranchThinkingConfig

logger = logging.getLogger(__name__)

TOOL_NAME = "branch-thinking"

TOOL_DESCRIPTION = """A tool for managing multiple branches of thought with insights and cross-references.

Each thought can:
- Belong to a specific branch
- Generate insights
- Create cross-references to other branches
- Include confidence scores and key points

The system tracks:
- Branch priorities and states
- Relationships between thoughts
- Accumulated insights
- Cross-branch connections

Commands:
- list: Show all branches and their status
- focus [branchId]: Switch focus to a specific branch
- history [branchId?]: Show the history of thoughts in a branch (uses active branch if none specified)"""

TOOL_INPUT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "content": {"type": "string", "description": "The thought content"},
        "branchId": {
            "type": "string",
            "description": "Optional: ID of the branch (generated if not provided)",
        },
        "parentBranchId": {
            "type": "string",
            "description": "Optional: ID of the parent branch",
        },
        "type": {
            "type": "string",
            "description": "Type of thought (e.g., 'analysis', 'hypothesis', 'observation', 'conclusion')",
        },
        "confidence": {"type": "number", "description": "Optional: Confidence score (0-1)"},
        "keyPoints": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Optional: Key points identified in the thought",
        },
        "relatedInsights": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Optional: IDs of related insights",
        },
        "crossRefs": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "toBranch": {"type": "string"},
                    "type": {"type": "string"},
                    "reason": {"type": "string"},
                    "strength": {"type": "number"},
                },
                "required": ["toBranch", "type"],
            },
            "description": "Optional: Cross-references to other branches",
        },
        "command": {
            "type": "object",
            "description": "Optional: Navigation command",
            "properties": {
                "type": {
                    "type": "string",
                    "enum": ["list", "focus", "history"],
                    "description": "Command type",
                },
                "branchId": {
                    "type": "string",
                    "description": "Branch ID for commands that require it",
                },
            },
            "required": ["type"],
        },
    },
    "anyOf": [
        {"required": ["content", "type"]},
        {"required": ["command"]},
    ],
}

_WRITE = ToolAnnotations(
    readOnlyHint=False,
    destructiveHint=False,
    idempotentHint=False,
    openWorldHint=False,
)


def _text_result(text: str) -> CallToolResult:
    return CallToolResult(content=[TextContent(type="text", text=text)])


def _json_result(payload: dict[str, Any]) -> CallToolResult:
    return _text_result(json.dumps(payload, indent=2))


def _error_result(message: str) -> CallToolResult:
    """Return a CallToolResult with isError=True."""
    return CallToolResult(
        content=[
            TextContent(
                type="text",
                text=json.dumps({"error": message, "status": "failed"}, indent=2),
            )
        ],
        isError=True,
    )


class BranchThinkingServer:
    """Dispatches tool calls to a BranchManager."""

    def __init__(
        self,
        manager: BranchManager,
        persistence: PersistenceManager | None = None,
        *,
        preview_chars: int = 50,
    ) -> None:
        self._manager = manager
        self._persistence = persistence
        self._preview_chars = preview_chars

    @property
    def manager(self) -> BranchManager:
        return self._manager

    def process_thought(self, arguments: Any) -> CallToolResult:
        """Handle one ``branch-thinking`` tool call."""
        if not isinstance(arguments, dict):
            return _error_result("Tool arguments must be an object")
        try:
            if arguments.get("command"):
                return self._handle_command(arguments["command"])

            thought = self._manager.add_thought(arguments)
            branch = self._manager.get_branch(thought.branch_id)
            assert branch is not None
            logger.info("\n%s", self._manager.format_branch_status(branch))

            active = self._manager.get_active_branch()
            return _json_result({
                "thoughtId": thought.id,
                "branchId": thought.branch_id,
                "branchState": branch.state.value,
                "branchPriority": branch.priority,
                "numInsights": len(branch.insights),
                "numCrossRefs": len(branch.cross_refs),
                "activeBranch": active.id if active is not None else None,
            })
        except BranchThinkingError as e:
            return _error_result(str(e))

    def _handle_command(self, command: Any) -> CallToolResult:
        if not isinstance(command, dict) or not command.get("type"):
            raise BranchThinkingError("Command must be an object with a 'type'")
        command_type = command["type"]
        branch_id = command.get("branchId")
        if branch_id is not None and not isinstance(branch_id, str):
            raise BranchThinkingError("branchId must be a string")

        if command_type == "list":
            return _text_result(self.render_branch_list())

        if command_type == "focus":
            if not branch_id:
                raise BranchThinkingError("branchId required for focus command")
            self._manager.set_active_branch(branch_id)
            branch = self._manager.get_branch(branch_id)
            assert branch is not None
            logger.info("\n%s", self._manager.format_branch_status(branch))
            return _json_result({
                "status": "success",
                "message": f"Now focused on branch: {branch_id}",
                "activeBranch": branch_id,
            })

        if command_type == "history":
            if not branch_id:
                active = self._manager.get_active_branch()
                if active is None:
                    raise BranchThinkingError("No active branch and no branchId provided")
                branch_id = active.id
            return _text_result(self._manager.get_branch_history(branch_id))

        raise BranchThinkingError(f"Unknown command: {command_type}")

    def render_branch_list(self) -> str:
        """One line per branch, highest priority first, active branch marked."""
        branches = sorted(
            self._manager.get_all_branches(), key=lambda b: b.priority, reverse=True
        )
        if not branches:
            return "No branches yet."
        active = self._manager.get_active_branch()
        active_id = active.id if active is not None else None
        lines = ["Current Branches:"]
        for b in branches:
            prefix = "->" if b.id == active_id else "  "
            latest = b.thoughts[-1].content if b.thoughts else ""
            lines.append(
                f"{prefix} {b.id} [{b.state.value}] ({b.priority:.2f}) - "
                f"{truncate(latest, self._preview_chars)}"
            )
        return "\n".join(lines)


def build_server(app: BranchThinkingServer) -> Server:
    """Register the branch-thinking tool on a low-level MCP Server."""
    server = Server("branch-thinking-server", version=__version__)

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        return [
            Tool(
                name=TOOL_NAME,
                description=TOOL_DESCRIPTION,
                inputSchema=TOOL_INPUT_SCHEMA,
                annotations=_WRITE,
            )
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> CallToolResult:
        if name != TOOL_NAME:
            return CallToolResult(
                content=[TextContent(type="text", text=f"Unknown tool: {name}")],
                isError=True,
            )
        return app.process_thought(arguments)

    return server


async def run_server(config: BranchThinkingConfig) -> None:
    """Load state, start autosave, and serve over stdio until EOF.

    Raises:
        PersistenceError: If persisted state cannot be loaded.
    """
    manager = BranchManager.from_config(config)
    persistence = PersistenceManager(manager, config.storage_dir)
    try:
        persistence.load_state()
    except PersistenceError:
        persistence.close()
        raise

    try:
        app = BranchThinkingServer(
            manager, persistence, preview_chars=config.status_preview_chars
        )
        server = build_server(app)
        if config.autosave_interval > 0:
            persistence.start_autosave(config.autosave_interval)

        async with stdio_server() as (read_stream, write_stream):
            logger.info("Branch Thinking MCP Server running on stdio")
            await server.run(read_stream, write_stream, server.create_initialization_options())
    finally:
        persistence.stop_autosave()
        try:
            persistence.save_state()
        except PersistenceError as e:
            logger.warning("Final save failed: %s", e)
        persistence.close()


def serve(config: BranchThinkingConfig) -> None:
    """Blocking entry point used by the CLI."""
    asyncio.run(run_server(config))
