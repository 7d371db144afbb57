"""Classified failures raised while handling a Taskwarrior request."""

from enum import Enum
from typing import Any, Dict, Optional


class ValidationReason(str, Enum):
    """Why a request was rejected before any command was built."""
    MISSING_FIELD = "missing_field"
    MISSING_PROJECT_SCOPE = "missing_project_scope"
    EMPTY_FIELD = "empty_field"
    INVALID_VALUE = "invalid_value"
    UNKNOWN_OPERATION = "unknown_operation"


class InfrastructureReason(str, Enum):
    """Environment-level failures around running the task executable."""
    EXECUTABLE_NOT_FOUND = "executable_not_found"
    TIMEOUT = "timeout"
    PROCESS_SPAWN_FAILED = "process_spawn_failed"


class TaskWarriorError(Exception):
    """
    Base class for every classified failure.

    Each subclass fixes a ``category``; ``reason`` narrows it down and
    ``details`` carries whatever the caller needs to diagnose the problem.
    """

    category = "error"

    def __init__(self, message: str, reason: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.reason = reason
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for tool results and CLI output."""
        payload = {
            "category": self.category,
            "reason": self.reason,
            "message": self.message,
        }
        payload.update(self.details)
        return payload


class ValidationError(TaskWarriorError):
    """Caller-correctable request problem; no process was spawned."""

    category = "validation"

    def __init__(self, reason: ValidationReason, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, reason.value, details)
        self.field = field


class InfrastructureError(TaskWarriorError):
    """The task executable could not be run to completion."""

    category = "infrastructure"

    def __init__(self, reason: InfrastructureReason, message: str, executable: Optional[str] = None):
        details = {"executable": executable} if executable else {}
        super().__init__(message, reason.value, details)


class CommandError(TaskWarriorError):
    """Taskwarrior rejected the command; its own diagnostic is passed through."""

    category = "command"

    def __init__(
        self,
        diagnostic: str,
        exit_code: int,
        matched_rule: str,
        matched_pattern: Optional[str] = None,
    ):
        message = diagnostic or f"task exited with status {exit_code}"
        super().__init__(
            message,
            "command_rejected",
            {
                "exit_code": exit_code,
                "matched_rule": matched_rule,
                "matched_pattern": matched_pattern,
            },
        )
        self.exit_code = exit_code
        self.matched_rule = matched_rule
        self.matched_pattern = matched_pattern


class InterpreterError(TaskWarriorError):
    """Taskwarrior exited cleanly but its output broke the export contract."""

    category = "interpreter"

    def __init__(self, message: str, excerpt: str):
        super().__init__(message, "malformed_output", {"excerpt": excerpt})
        self.excerpt = excerpt
