"""Classify Taskwarrior process outcomes and parse their output."""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple, Union

from pydantic import ValidationError as ModelValidationError

from .command_builder import Command
from .errors import CommandError, InterpreterError
from .models import MutationResult, Task, TaskList, TaskLookup
from .operations import Operation, OperationRequest
from .runner import ProcessOutcome

logger = logging.getLogger(__name__)

EXCERPT_LENGTH = 500

# Stderr wording differs between Taskwarrior releases; ambiguous output
# falls through to a CommandError rather than an empty result.
_USAGE_ERROR_PATTERNS: Tuple[str, ...] = (
    "invalid",
    "unrecognized",
    "not a valid",
    "mismatched",
    "cannot",
    "could not",
    "unknown",
)
_CONCURRENT_ACCESS_PATTERNS: Tuple[str, ...] = (
    "lock",
)
_NO_MATCH_PATTERNS: Tuple[str, ...] = (
    "no matches",
    "no tasks specified",
    "no tasks found",
)

_CREATED = re.compile(r"Created task (?P<id>[0-9a-fA-F-]+)")
_ACTED_ON = re.compile(
    r"(?:Modifying|Modified|Completed|Deleting|Deleted|Annotating|Annotated) task (?P<id>[0-9a-fA-F-]+) '(?P<description>.*)'"
)
_AFFECTED = re.compile(r"(?:Modified|Completed|Deleted|Annotated) (?P<count>\d+) tasks?\b")

TaskResult = Union[TaskList, TaskLookup, MutationResult]


@dataclass(frozen=True)
class FailureClassification:
    """Which rule matched a non-zero exit, and on what text."""
    rule: str
    pattern: Optional[str]

    @property
    def is_no_match(self) -> bool:
        return self.rule == "no_match"


def _first_match(haystack: str, patterns: Tuple[str, ...]) -> Optional[str]:
    for pattern in patterns:
        if pattern in haystack:
            return pattern
    return None


def classify_failure(outcome: ProcessOutcome) -> FailureClassification:
    """Deterministically classify a non-zero exit from its output text."""
    haystack = f"{outcome.stderr}\n{outcome.stdout}".lower()

    pattern = _first_match(haystack, _USAGE_ERROR_PATTERNS)
    if pattern is not None:
        return FailureClassification("usage_error", pattern)

    pattern = _first_match(haystack, _CONCURRENT_ACCESS_PATTERNS)
    if pattern is not None:
        return FailureClassification("concurrent_access", pattern)

    pattern = _first_match(haystack, _NO_MATCH_PATTERNS)
    if pattern is not None:
        return FailureClassification("no_match", pattern)

    return FailureClassification("fallback_command_error", None)


def _diagnostic(outcome: ProcessOutcome) -> str:
    return "\n".join(part for part in (outcome.stderr, outcome.stdout) if part)


def _excerpt(text: str) -> str:
    if len(text) <= EXCERPT_LENGTH:
        return text
    return text[: EXCERPT_LENGTH - 3] + "..."


def _load_json(stdout: str) -> Any:
    try:
        return json.loads(stdout)
    except json.JSONDecodeError:
        pass
    # Tolerate stray lines (footnotes, overrides) around the JSON array
    start, end = stdout.find("["), stdout.rfind("]")
    if start == -1 or end <= start:
        raise InterpreterError("task export did not produce JSON", _excerpt(stdout))
    try:
        return json.loads(stdout[start : end + 1])
    except json.JSONDecodeError as error:
        raise InterpreterError(f"task export produced invalid JSON: {error}", _excerpt(stdout)) from error


def parse_tasks(stdout: str) -> List[Task]:
    """
    Parse ``task export`` output into Task records.

    Raises:
        InterpreterError: output is empty, not JSON, or records do not validate
    """
    if not stdout.strip():
        raise InterpreterError("task export produced no output", "")
    data = _load_json(stdout)
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise InterpreterError(
            f"task export produced {type(data).__name__}, expected an array", _excerpt(stdout)
        )
    try:
        return [Task.model_validate(item) for item in data]
    except ModelValidationError as error:
        raise InterpreterError(
            f"task export record did not match the expected shape: {error.error_count()} error(s)",
            _excerpt(stdout),
        ) from error


def parse_confirmation(request: OperationRequest, stdout: str) -> MutationResult:
    """Best-effort extraction of what a mutation acted upon."""
    task_id = request.params.get("id")
    description = request.params.get("description")
    affected = None

    created = _CREATED.search(stdout)
    if created:
        task_id = created.group("id")
        affected = 1
    acted = _ACTED_ON.search(stdout)
    if acted:
        task_id = task_id or acted.group("id")
        description = acted.group("description")
    count = _AFFECTED.search(stdout)
    if count:
        affected = int(count.group("count"))

    return MutationResult(
        operation=request.operation.value,
        id=task_id,
        description=description,
        affected=affected,
        message=stdout,
    )


def _query_result(request: OperationRequest, tasks: List[Task]) -> TaskResult:
    if request.operation == Operation.GET_TASK:
        task_id = request.params["id"]
        if not tasks:
            return TaskLookup(id=task_id, found=False)
        if len(tasks) > 1:
            logger.warning(f"Identifier {task_id} matched {len(tasks)} tasks, returning the first")
        return TaskLookup(id=task_id, found=True, task=tasks[0])

    report = request.params.get("report", "list")
    return TaskList(
        operation=request.operation.value,
        scope=request.scoped_project,
        report=report,
        count=len(tasks),
        tasks=tasks,
    )


def interpret(request: OperationRequest, command: Command, outcome: ProcessOutcome) -> TaskResult:
    """
    Turn a finished invocation into a structured result.

    Raises:
        CommandError: Taskwarrior rejected the command
        InterpreterError: zero exit but unusable export output
    """
    spec = request.spec

    if not outcome.succeeded:
        classification = classify_failure(outcome)
        if classification.is_no_match and spec.returns_records:
            logger.debug(f"{command.operation.value}: no matching tasks (exit {outcome.exit_code})")
            return _query_result(request, [])
        logger.warning(
            f"{command.operation.value} failed with exit {outcome.exit_code} "
            f"({classification.rule}): {_excerpt(_diagnostic(outcome))}"
        )
        raise CommandError(
            _diagnostic(outcome),
            exit_code=outcome.exit_code,
            matched_rule=classification.rule,
            matched_pattern=classification.pattern,
        )

    if spec.returns_records:
        return _query_result(request, parse_tasks(outcome.stdout))

    return parse_confirmation(request, outcome.stdout)
