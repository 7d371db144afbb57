"""Task Warrior MCP - project-scoped Taskwarrior access for AI assistants."""

__version__ = "0.1.0"

from .command_builder import Command, build_command
from .config import TaskWarriorConfig
from .errors import (
    CommandError,
    InfrastructureError,
    InterpreterError,
    TaskWarriorError,
    ValidationError,
)
from .interpreter import interpret
from .models import MutationResult, Task, TaskList, TaskLookup, TaskPriority, TaskStatus
from .operations import OPERATION_SPECS, Operation, OperationRequest, validate_request
from .runner import ProcessOutcome, ProcessRunner
from .service import TaskWarrior

__all__ = [
    "Command",
    "CommandError",
    "InfrastructureError",
    "InterpreterError",
    "MutationResult",
    "OPERATION_SPECS",
    "Operation",
    "OperationRequest",
    "ProcessOutcome",
    "ProcessRunner",
    "Task",
    "TaskList",
    "TaskLookup",
    "TaskPriority",
    "TaskStatus",
    "TaskWarrior",
    "TaskWarriorConfig",
    "TaskWarriorError",
    "ValidationError",
    "build_command",
    "interpret",
    "validate_request",
]
