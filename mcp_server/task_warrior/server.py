#!/usr/bin/env python3
"""
Task Warrior MCP Server

Exposes Taskwarrior to MCP clients through eight project-scoped tools.
Queries are restricted to one project unless the client explicitly asks
for a cross-project view, so a language model never receives the whole
task database at once.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from mcp.server import Server
from mcp.server.models import InitializationOptions
from mcp.server.stdio import stdio_server
from mcp.types import CallToolResult, ServerCapabilities, TextContent, Tool, ToolsCapability

from . import __version__
from .config import TaskWarriorConfig, configure_logging
from .errors import TaskWarriorError
from .interpreter import TaskResult
from .operations import REPORTS
from .service import TaskWarrior

logger = logging.getLogger("task-warrior-mcp")

SERVER_NAME = "task-warrior-mcp"

INSTRUCTIONS = (
    "Taskwarrior MCP server. PROJECT SCOPING IS MANDATORY: add_task requires `project`; "
    "list_tasks and search_tasks require `project` and prepend it to every filter so that "
    "unrelated tasks never flood the context. Pass all_projects=true only when the user "
    "explicitly asks for a cross-project view. "
    "Tools: add_task, list_tasks, search_tasks, get_task, modify_task, complete_task, "
    "delete_task, annotate_task. "
    "Date syntax: today, tomorrow, eow, eom, friday, 2025-06-15, 2025-06-15T14:30, +3d, later. "
    "Virtual filter tags: +OVERDUE, +DUE, +TODAY, +READY, +ACTIVE, +BLOCKED, +BLOCKING, +WAITING."
)

_ID_PROPERTY = {"type": ["string", "integer"], "description": "Task ID (numeric) or UUID"}

# Global service instance
task_warrior: Optional[TaskWarrior] = None


def get_task_warrior() -> TaskWarrior:
    """Get or create the global TaskWarrior service."""
    global task_warrior
    if task_warrior is None:
        task_warrior = TaskWarrior(config=TaskWarriorConfig.from_env())
    return task_warrior


def set_task_warrior(service: Optional[TaskWarrior]) -> None:
    """Replace the global service (None resets to lazy creation)."""
    global task_warrior
    task_warrior = service


def format_result(result: TaskResult) -> TextContent:
    """Render a structured result as JSON text content."""
    return TextContent(type="text", text=result.model_dump_json(exclude_none=True, indent=2))


def format_error(error: Dict[str, Any]) -> CallToolResult:
    """Wrap a classified failure as an error tool result."""
    return CallToolResult(
        content=[TextContent(type="text", text=json.dumps({"error": error}, indent=2))],
        isError=True,
    )


server = Server(SERVER_NAME)


@server.list_tools()
async def handle_list_tools() -> List[Tool]:
    """List available Taskwarrior tools."""
    return [
        Tool(
            name="add_task",
            description=(
                "Add a new task. `project` is REQUIRED; every task must belong to a project. "
                "Supports due dates (today/tomorrow/eow/eom/friday/ISO datetime), tags, "
                "dot-notation subprojects (e.g. Work.Backend), priorities (H/M/L), wait dates "
                "(hide until actionable) and scheduled dates (when you plan to start)."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "description": {"type": "string", "description": "Task description"},
                    "project": {
                        "type": "string",
                        "description": "Project this task belongs to, dot-notation for subprojects",
                    },
                    "due": {"type": "string", "description": "Due date, e.g. tomorrow, eow, 2025-06-15"},
                    "tags": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Tags without the + prefix",
                    },
                    "priority": {"type": "string", "enum": ["H", "M", "L"], "description": "Priority"},
                    "wait": {"type": "string", "description": "Hide the task from reports until this date"},
                    "scheduled": {"type": "string", "description": "When you plan to start"},
                },
                "required": ["description", "project"],
            },
        ),
        Tool(
            name="list_tasks",
            description=(
                "List tasks sorted by urgency. `project` is REQUIRED and is prepended as a filter. "
                "Use `filter` for extra narrowing (+urgent, priority:H, +OVERDUE, +DUE, +READY, "
                "+BLOCKED). Use `report` to switch views. Only set `all_projects=true` for "
                "explicit cross-project requests."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "project": {"type": "string", "description": "Project to scope the query to"},
                    "filter": {"type": "string", "description": "Additional filter terms"},
                    "report": {
                        "type": "string",
                        "enum": list(REPORTS),
                        "description": "Report to run (default: next, urgency-sorted)",
                    },
                    "all_projects": {
                        "type": "boolean",
                        "description": "Query ALL projects instead of one (default: false)",
                    },
                },
                "required": [],
            },
        ),
        Tool(
            name="search_tasks",
            description=(
                "Search task descriptions for text. `project` is REQUIRED and scopes the search. "
                "Only set `all_projects=true` for explicit cross-project searches."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "pattern": {"type": "string", "description": "Text the description must contain"},
                    "project": {"type": "string", "description": "Project to scope the search to"},
                    "filter": {"type": "string", "description": "Additional filter terms, e.g. priority:H"},
                    "all_projects": {
                        "type": "boolean",
                        "description": "Search ALL projects instead of one (default: false)",
                    },
                },
                "required": ["pattern"],
            },
        ),
        Tool(
            name="get_task",
            description="Get all attributes of one task by ID or UUID, including annotations and urgency.",
            inputSchema={
                "type": "object",
                "properties": {"id": _ID_PROPERTY},
                "required": ["id"],
            },
        ),
        Tool(
            name="modify_task",
            description=(
                "Modify a task. Pass modifications as a space-separated string: "
                "'due:friday priority:H +newtag -oldtag project:Work'. "
                "Clear a field by omitting its value: 'due: priority:'."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "id": _ID_PROPERTY,
                    "modifications": {"type": "string", "description": "Modification terms"},
                },
                "required": ["id", "modifications"],
            },
        ),
        Tool(
            name="complete_task",
            description="Mark a task as completed.",
            inputSchema={
                "type": "object",
                "properties": {"id": _ID_PROPERTY},
                "required": ["id"],
            },
        ),
        Tool(
            name="delete_task",
            description="Delete a task.",
            inputSchema={
                "type": "object",
                "properties": {"id": _ID_PROPERTY},
                "required": ["id"],
            },
        ),
        Tool(
            name="annotate_task",
            description=(
                "Attach a timestamped note to a task. Use for progress updates, links, "
                "or context that should not be lost."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "id": _ID_PROPERTY,
                    "note": {"type": "string", "description": "Note text"},
                },
                "required": ["id", "note"],
            },
        ),
    ]


# Arguments are checked by validate_request only, so schema violations
# come back as classified errors too
@server.call_tool(validate_input=False)
async def handle_call_tool(name: str, arguments: Optional[Dict[str, Any]]) -> CallToolResult:
    """Handle tool calls by running them through the TaskWarrior service."""
    service = get_task_warrior()
    try:
        result = await service.execute(name, arguments or {})
    except TaskWarriorError as e:
        logger.warning(f"Tool {name} failed: {e.category}/{e.reason}: {e.message}")
        return format_error(e.to_dict())
    except Exception as e:
        logger.exception(f"Unexpected error in tool {name}")
        return format_error({"category": "internal", "reason": type(e).__name__, "message": str(e)})

    return CallToolResult(content=[format_result(result)], isError=False)


async def main(config: Optional[TaskWarriorConfig] = None) -> None:
    """Run the MCP server over stdio."""
    config = config or TaskWarriorConfig.from_env()
    configure_logging(config.log_level)
    set_task_warrior(TaskWarrior(config=config))
    logger.info(f"Starting {SERVER_NAME} {__version__} (task executable: {config.executable})")

    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            InitializationOptions(
                server_name=SERVER_NAME,
                server_version=__version__,
                capabilities=ServerCapabilities(tools=ToolsCapability()),
                instructions=INSTRUCTIONS,
            ),
        )


def run() -> None:
    """Console entry point."""
    import asyncio
    asyncio.run(main())


if __name__ == "__main__":
    run()
