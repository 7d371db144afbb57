"""Command-line interface: run the MCP server or call the tools by hand."""

import asyncio
from pathlib import Path
from typing import Awaitable, List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .config import TaskWarriorConfig, configure_logging
from .errors import TaskWarriorError
from .interpreter import TaskResult
from .models import MutationResult, Task, TaskList, TaskLookup, TaskStatus
from .service import TaskWarrior

app = typer.Typer(help="Task Warrior MCP - project-scoped Taskwarrior tools for AI assistants")
console = Console()
err_console = Console(stderr=True)


class State:
    """Options given before the subcommand."""
    config: TaskWarriorConfig = TaskWarriorConfig()


state = State()


@app.callback()
def main(
    task_bin: Optional[str] = typer.Option(None, "--task-bin", help="Taskwarrior executable"),
    data: Optional[Path] = typer.Option(None, "--data", help="Taskwarrior data directory"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Seconds before a task call is aborted"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING or ERROR"),
):
    """Load configuration from TASKWARRIOR_MCP_* variables and the options above."""
    try:
        state.config = TaskWarriorConfig.from_env(
            executable=task_bin,
            data_location=data,
            timeout_seconds=timeout,
            log_level=log_level,
        )
    except ValueError as e:
        err_console.print(f"[red]Invalid configuration: {e}[/red]")
        raise typer.Exit(1)
    configure_logging(state.config.log_level)


def get_service() -> TaskWarrior:
    """Build the service for the current configuration."""
    return TaskWarrior(config=state.config)


def call(operation: Awaitable[TaskResult]) -> TaskResult:
    """Run one service call, turning classified failures into exit status 1."""
    try:
        return asyncio.run(operation)
    except TaskWarriorError as e:
        err_console.print(f"[red]Error ({e.category}/{e.reason}): {e.message}[/red]")
        raise typer.Exit(1)


def format_task_status(status: str) -> Text:
    """Format task status with colors."""
    colors = {
        TaskStatus.PENDING.value: "yellow",
        TaskStatus.WAITING.value: "blue",
        TaskStatus.COMPLETED.value: "green",
        TaskStatus.DELETED.value: "dim",
        TaskStatus.BLOCKED.value: "red",
    }
    return Text(status.upper(), style=colors.get(status, "white"))


def format_task_priority(priority: Optional[str]) -> Text:
    """Format task priority with colors."""
    colors = {"H": "red bold", "M": "yellow", "L": "dim"}
    return Text(priority or "", style=colors.get(priority or "", "white"))


def print_task_table(result: TaskList) -> None:
    if not result.tasks:
        console.print("[yellow]No tasks found[/yellow]")
        return

    scope = result.scope or "all projects"
    table = Table(show_header=True, header_style="bold magenta", title=f"{result.report} ({scope})")
    table.add_column("ID", style="dim", width=8)
    table.add_column("Description", style="bold")
    table.add_column("Project")
    table.add_column("Status", justify="center")
    table.add_column("Pri", justify="center")
    table.add_column("Due")
    table.add_column("Tags")
    table.add_column("Urg", justify="right")

    for task in result.tasks:
        table.add_row(
            str(task.identifier),
            task.description,
            task.project or "",
            format_task_status(task.status),
            format_task_priority(task.priority),
            task.due.strftime("%Y-%m-%d %H:%M") if task.due else "",
            ", ".join(sorted(task.tags)),
            f"{task.urgency:.1f}" if task.urgency is not None else "",
        )

    console.print(table)


def print_task_panel(task: Task) -> None:
    info_lines = [
        f"ID: {task.identifier}",
        f"UUID: {task.uuid}",
        f"Description: {task.description}",
        f"Project: {task.project or '-'}",
        f"Status: {task.status}",
    ]
    if task.priority:
        info_lines.append(f"Priority: {task.priority}")
    for label in ("due", "scheduled", "wait", "entry", "end"):
        value = getattr(task, label)
        if value:
            info_lines.append(f"{label.title()}: {value.strftime('%Y-%m-%d %H:%M:%S')}")
    if task.tags:
        info_lines.append(f"Tags: {', '.join(sorted(task.tags))}")
    if task.urgency is not None:
        info_lines.append(f"Urgency: {task.urgency:.2f}")
    for annotation in task.annotations:
        stamp = annotation.entry.strftime("%Y-%m-%d %H:%M") if annotation.entry else ""
        info_lines.append(f"  {stamp} {annotation.description}")

    console.print(Panel("\n".join(info_lines), title="Task Information"))


def print_confirmation(result: MutationResult) -> None:
    if result.message:
        console.print(f"[green]{result.message}[/green]")
    else:
        console.print(f"[green]{result.operation} succeeded for task {result.id}[/green]")


def emit(result: TaskResult, as_json: bool) -> None:
    """Print a result as JSON or in human form."""
    if as_json:
        console.print_json(result.model_dump_json(exclude_none=True))
    elif isinstance(result, TaskList):
        print_task_table(result)
    elif isinstance(result, TaskLookup):
        if result.task is None:
            console.print(f"[yellow]Task {result.id} not found[/yellow]")
        else:
            print_task_panel(result.task)
    else:
        print_confirmation(result)


@app.command()
def serve():
    """Run the MCP server over stdio."""
    from .server import main as serve_main
    asyncio.run(serve_main(state.config))


@app.command()
def add(
    description: str = typer.Argument(..., help="Task description"),
    project: str = typer.Option(..., "--project", "-p", help="Project (required)"),
    due: Optional[str] = typer.Option(None, "--due", help="Due date"),
    priority: Optional[str] = typer.Option(None, "--priority", help="H, M or L"),
    wait: Optional[str] = typer.Option(None, "--wait", help="Hide until this date"),
    scheduled: Optional[str] = typer.Option(None, "--scheduled", help="Planned start"),
    tags: Optional[List[str]] = typer.Option(None, "--tag", "-t", help="Tag (repeatable)"),
    as_json: bool = typer.Option(False, "--json", help="Print the structured result"),
):
    """Create a new task."""
    result = call(get_service().add_task(
        description,
        project,
        due=due,
        tags=tags,
        priority=priority,
        wait=wait,
        scheduled=scheduled,
    ))
    emit(result, as_json)


@app.command("list")
def list_tasks(
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Project to list"),
    filter: Optional[str] = typer.Option(None, "--filter", "-f", help="Extra filter terms"),
    report: Optional[str] = typer.Option(None, "--report", "-r", help="next, list, all, completed, waiting, blocked"),
    all_projects: bool = typer.Option(False, "--all-projects", help="Query every project"),
    as_json: bool = typer.Option(False, "--json", help="Print the structured result"),
):
    """List tasks in one project."""
    result = call(get_service().list_tasks(project, filter=filter, report=report, all_projects=all_projects))
    emit(result, as_json)


@app.command()
def search(
    pattern: str = typer.Argument(..., help="Text the description must contain"),
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Project to search"),
    filter: Optional[str] = typer.Option(None, "--filter", "-f", help="Extra filter terms"),
    all_projects: bool = typer.Option(False, "--all-projects", help="Search every project"),
    as_json: bool = typer.Option(False, "--json", help="Print the structured result"),
):
    """Search task descriptions."""
    result = call(get_service().search_tasks(pattern, project, filter=filter, all_projects=all_projects))
    emit(result, as_json)


@app.command()
def show(
    task_id: str = typer.Argument(..., help="Task ID or UUID"),
    as_json: bool = typer.Option(False, "--json", help="Print the structured result"),
):
    """Show detailed information about a task."""
    result = call(get_service().get_task(task_id))
    emit(result, as_json)
    if not result.found:
        raise typer.Exit(1)


@app.command()
def modify(
    task_id: str = typer.Argument(..., help="Task ID or UUID"),
    modifications: str = typer.Argument(..., help="e.g. 'due:friday priority:H +tag'"),
):
    """Modify a task."""
    emit(call(get_service().modify_task(task_id, modifications)), False)


@app.command()
def done(task_id: str = typer.Argument(..., help="Task ID or UUID")):
    """Mark a task as completed."""
    emit(call(get_service().complete_task(task_id)), False)


@app.command()
def delete(task_id: str = typer.Argument(..., help="Task ID or UUID")):
    """Delete a task."""
    emit(call(get_service().delete_task(task_id)), False)


@app.command()
def annotate(
    task_id: str = typer.Argument(..., help="Task ID or UUID"),
    note: str = typer.Argument(..., help="Note text"),
):
    """Attach a note to a task."""
    emit(call(get_service().annotate_task(task_id, note)), False)


if __name__ == "__main__":
    app()
