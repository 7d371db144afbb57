"""Request pipeline: validate, build, run, interpret."""

import logging
from typing import Any, Dict, Iterable, Mapping, Optional

from .command_builder import build_command
from .config import TaskWarriorConfig
from .interpreter import TaskResult, interpret
from .models import MutationResult, TaskList, TaskLookup
from .operations import validate_request
from .runner import ProcessRunner

logger = logging.getLogger(__name__)


class TaskWarrior:
    """
    Stateless front door to the task executable.

    Every call validates its arguments, builds one command, runs it once
    and interprets the outcome. Nothing is cached between calls; the task
    executable owns all data.
    """

    def __init__(self, runner: Optional[ProcessRunner] = None, config: Optional[TaskWarriorConfig] = None):
        """Use ``runner`` if given, otherwise build one from ``config``."""
        if runner is None:
            config = config or TaskWarriorConfig()
            runner = ProcessRunner(
                executable=config.executable,
                timeout_seconds=config.timeout_seconds,
                data_location=config.data_location,
                taskrc=config.taskrc,
            )
        self.runner = runner

    async def execute(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> TaskResult:
        """
        Handle one tool call end to end.

        Raises:
            TaskWarriorError: any classified failure, before or after execution
        """
        request = validate_request(name, arguments)
        command = build_command(request)
        outcome = await self.runner.run(command.argv)
        return interpret(request, command, outcome)

    async def add_task(
        self,
        description: str,
        project: str,
        due: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
        priority: Optional[str] = None,
        wait: Optional[str] = None,
        scheduled: Optional[str] = None,
    ) -> MutationResult:
        """Create a task filed under ``project``."""
        arguments: Dict[str, Any] = {
            "description": description,
            "project": project,
            "due": due,
            "priority": priority,
            "wait": wait,
            "scheduled": scheduled,
        }
        if tags is not None:
            arguments["tags"] = list(tags)
        return await self.execute("add_task", arguments)

    async def list_tasks(
        self,
        project: Optional[str] = None,
        filter: Optional[str] = None,
        report: Optional[str] = None,
        all_projects: bool = False,
    ) -> TaskList:
        """List tasks in ``project`` (or everywhere when ``all_projects``)."""
        return await self.execute(
            "list_tasks",
            {"project": project, "filter": filter, "report": report, "all_projects": all_projects},
        )

    async def search_tasks(
        self,
        pattern: str,
        project: Optional[str] = None,
        filter: Optional[str] = None,
        all_projects: bool = False,
    ) -> TaskList:
        """Find tasks whose description contains ``pattern``."""
        return await self.execute(
            "search_tasks",
            {"pattern": pattern, "project": project, "filter": filter, "all_projects": all_projects},
        )

    async def get_task(self, id: str) -> TaskLookup:
        return await self.execute("get_task", {"id": id})

    async def modify_task(self, id: str, modifications: str) -> MutationResult:
        return await self.execute("modify_task", {"id": id, "modifications": modifications})

    async def complete_task(self, id: str) -> MutationResult:
        return await self.execute("complete_task", {"id": id})

    async def delete_task(self, id: str) -> MutationResult:
        return await self.execute("delete_task", {"id": id})

    async def annotate_task(self, id: str, note: str) -> MutationResult:
        return await self.execute("annotate_task", {"id": id, "note": note})
