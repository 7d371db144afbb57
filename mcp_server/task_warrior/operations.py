"""Declarative operation table and request validation.

Every tool maps to an ``OperationSpec`` row. ``validate_request`` is the only
place the table is enforced, so the project-scope policy can be read off the
table itself.
"""

import logging
import re
import shlex
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .errors import ValidationError, ValidationReason

logger = logging.getLogger(__name__)


class Operation(str, Enum):
    """The eight tools exposed to clients."""
    ADD_TASK = "add_task"
    LIST_TASKS = "list_tasks"
    SEARCH_TASKS = "search_tasks"
    GET_TASK = "get_task"
    MODIFY_TASK = "modify_task"
    COMPLETE_TASK = "complete_task"
    DELETE_TASK = "delete_task"
    ANNOTATE_TASK = "annotate_task"


class ScopeRule(str, Enum):
    """How an operation relates to the mandatory project scope."""
    REQUIRED = "required"    # project must be given
    ESCAPABLE = "escapable"  # project must be given unless all_projects is true
    IMPLICIT = "implicit"    # task addressed by id, already scoped


REPORTS = ("next", "list", "all", "completed", "waiting", "blocked")
DEFAULT_REPORT = "next"
PRIORITIES = ("H", "M", "L")
DATE_FIELDS = ("due", "wait", "scheduled")

_NUMERIC_ID = re.compile(r"^[1-9][0-9]*$")
_UUID_ID = re.compile(r"^[0-9a-fA-F]{8}(-[0-9a-fA-F]{4}){0,3}(-[0-9a-fA-F]{12})?$")


@dataclass(frozen=True)
class OperationSpec:
    """One row of the operation table."""
    operation: Operation
    required: Tuple[str, ...]
    optional: Tuple[str, ...] = ()
    scope: ScopeRule = ScopeRule.IMPLICIT
    free_text: Tuple[str, ...] = ()
    returns_records: bool = False

    @property
    def accepted(self) -> Tuple[str, ...]:
        return self.required + self.optional


OPERATION_SPECS: Dict[Operation, OperationSpec] = {
    Operation.ADD_TASK: OperationSpec(
        Operation.ADD_TASK,
        required=("description", "project"),
        optional=("due", "tags", "priority", "wait", "scheduled"),
        scope=ScopeRule.REQUIRED,
        free_text=("description",),
    ),
    Operation.LIST_TASKS: OperationSpec(
        Operation.LIST_TASKS,
        required=("project",),
        optional=("filter", "report", "all_projects"),
        scope=ScopeRule.ESCAPABLE,
        returns_records=True,
    ),
    Operation.SEARCH_TASKS: OperationSpec(
        Operation.SEARCH_TASKS,
        required=("pattern", "project"),
        optional=("filter", "all_projects"),
        scope=ScopeRule.ESCAPABLE,
        free_text=("pattern",),
        returns_records=True,
    ),
    Operation.GET_TASK: OperationSpec(
        Operation.GET_TASK,
        required=("id",),
        returns_records=True,
    ),
    Operation.MODIFY_TASK: OperationSpec(
        Operation.MODIFY_TASK,
        required=("id", "modifications"),
        free_text=("modifications",),
    ),
    Operation.COMPLETE_TASK: OperationSpec(Operation.COMPLETE_TASK, required=("id",)),
    Operation.DELETE_TASK: OperationSpec(Operation.DELETE_TASK, required=("id",)),
    Operation.ANNOTATE_TASK: OperationSpec(
        Operation.ANNOTATE_TASK,
        required=("id", "note"),
        free_text=("note",),
    ),
}


@dataclass(frozen=True)
class OperationRequest:
    """A request that passed validation; ``params`` holds normalised values."""
    operation: Operation
    params: Dict[str, Any] = field(default_factory=dict)

    @property
    def spec(self) -> OperationSpec:
        return OPERATION_SPECS[self.operation]

    @property
    def scoped_project(self) -> Optional[str]:
        """Project to inject, or None when the scope was explicitly escaped."""
        if self.params.get("all_projects"):
            return None
        return self.params.get("project")


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _require_text(name: str, value: Any) -> str:
    if not isinstance(value, str):
        raise ValidationError(
            ValidationReason.INVALID_VALUE, f"'{name}' must be text", field=name
        )
    if not value.strip():
        raise ValidationError(
            ValidationReason.EMPTY_FIELD, f"'{name}' must not be empty", field=name
        )
    return value


def validate_identifier(value: Any) -> str:
    """Accept a positive working-set id or a full/abbreviated UUID."""
    if isinstance(value, bool):
        raise ValidationError(ValidationReason.INVALID_VALUE, "'id' must be a task id or UUID", field="id")
    if isinstance(value, int):
        value = str(value)
    text = _require_text("id", value).strip()
    if _NUMERIC_ID.match(text) or _UUID_ID.match(text):
        return text
    raise ValidationError(
        ValidationReason.INVALID_VALUE,
        f"'id' must be a positive task number or a UUID, got {text!r}",
        field="id",
    )


def split_terms(name: str, text: Any) -> List[str]:
    """
    Tokenise a filter or modification string with shell-style quoting.

    Each token becomes one argument for the task executable, so quoted
    values such as ``description:"two words"`` stay together. Configuration
    overrides are refused because they would change how the command runs.
    """
    text = _require_text(name, text)
    try:
        tokens = shlex.split(text)
    except ValueError as error:
        raise ValidationError(
            ValidationReason.INVALID_VALUE, f"'{name}' is not well formed: {error}", field=name
        ) from error
    for token in tokens:
        if not token.strip():
            raise ValidationError(
                ValidationReason.INVALID_VALUE, f"'{name}' contains an empty term", field=name
            )
        if token.lower().startswith(("rc.", "rc:")):
            raise ValidationError(
                ValidationReason.INVALID_VALUE,
                f"'{name}' may not override configuration ({token})",
                field=name,
            )
    return tokens


# Command and report names Taskwarrior recognises anywhere on the command
# line; the first one it sees becomes the command.
TASK_COMMANDS = (
    "active", "add", "all", "annotate", "append", "blocked", "blocking",
    "burndown", "calc", "calendar", "colors", "columns", "commands",
    "completed", "config", "context", "count", "delete", "denotate",
    "diagnostics", "done", "duplicate", "edit", "execute", "export",
    "ghistory", "help", "history", "ids", "import", "information", "list",
    "log", "logo", "long", "ls", "minimal", "modify", "news", "newest", "next",
    "oldest", "overdue", "prepend", "projects", "purge", "ready", "recurring",
    "reports", "show", "start", "stats", "stop", "summary", "sync",
    "synchronize", "tags", "timesheet", "udas", "unblocked", "undo", "uuids",
    "version", "waiting",
)
FILTER_OPERATORS = ("and", "or", "xor", "not")
_BARE_WORD = re.compile(r"^_?[A-Za-z]+$")


def _names_command(token: str) -> bool:
    # Taskwarrior accepts unambiguous abbreviations of two or more letters
    word = token.lower()
    if word.startswith("_"):
        return True
    if not _BARE_WORD.match(word) or word in FILTER_OPERATORS or len(word) < 2:
        return False
    return any(command.startswith(word) for command in TASK_COMMANDS)


def split_filter(text: Any) -> List[str]:
    """
    Tokenise filter text and make sure it can only narrow a query.

    Parentheses must nest within the filter itself, so a stray ``)`` cannot
    close the group that keeps user terms inside the project scope. Command
    words and ``--`` are refused so filter text is never read as a command.
    """
    tokens = split_terms("filter", text)
    depth = 0
    for token in tokens:
        if token == "--":
            raise ValidationError(
                ValidationReason.INVALID_VALUE, "'filter' may not contain '--'", field="filter"
            )
        if _names_command(token):
            raise ValidationError(
                ValidationReason.INVALID_VALUE,
                f"'filter' term {token!r} is a Taskwarrior command; "
                "use description.contains:<text> to match words",
                field="filter",
            )
        for ch in token:
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1
                if depth < 0:
                    break
        if depth < 0:
            break
    if depth != 0:
        raise ValidationError(
            ValidationReason.INVALID_VALUE, "'filter' has unbalanced parentheses", field="filter"
        )
    return tokens


def _normalise_tags(value: Any) -> List[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple, set)):
        raise ValidationError(ValidationReason.INVALID_VALUE, "'tags' must be a list of text", field="tags")
    tags = []
    for tag in value:
        if not isinstance(tag, str):
            raise ValidationError(ValidationReason.INVALID_VALUE, "'tags' must be a list of text", field="tags")
        tag = tag.strip().lstrip("+")
        if not tag or any(ch.isspace() for ch in tag):
            raise ValidationError(
                ValidationReason.INVALID_VALUE,
                f"tag {tag!r} must be a single non-empty word",
                field="tags",
            )
        if tag not in tags:
            tags.append(tag)
    return tags


def _normalise_project(value: Any) -> str:
    project = _require_text("project", value).strip()
    if any(ch.isspace() for ch in project):
        raise ValidationError(
            ValidationReason.INVALID_VALUE,
            f"'project' must not contain whitespace, got {project!r}",
            field="project",
        )
    return project


def _check_scope(spec: OperationSpec, arguments: Mapping[str, Any]) -> bool:
    """Enforce the project-scope rule; returns the effective all_projects flag."""
    all_projects = arguments.get("all_projects", False)
    if all_projects is None:
        all_projects = False
    if not isinstance(all_projects, bool):
        raise ValidationError(
            ValidationReason.INVALID_VALUE, "'all_projects' must be true or false", field="all_projects"
        )
    if spec.scope == ScopeRule.IMPLICIT:
        return False
    if spec.scope == ScopeRule.REQUIRED:
        all_projects = False
    if not all_projects and _is_blank(arguments.get("project")):
        if spec.scope == ScopeRule.ESCAPABLE:
            hint = "pass 'project' or set all_projects=true for an explicit cross-project query"
        else:
            hint = "every task must belong to a project"
        raise ValidationError(
            ValidationReason.MISSING_PROJECT_SCOPE,
            f"{spec.operation.value} requires 'project': {hint}",
            field="project",
        )
    return all_projects


def validate_request(name: str, arguments: Optional[Mapping[str, Any]]) -> OperationRequest:
    """
    Check a tool call against the operation table.

    Args:
        name: Tool name as received from the client
        arguments: Raw argument mapping

    Returns:
        OperationRequest with normalised parameters

    Raises:
        ValidationError: on any missing, empty or malformed parameter
    """
    try:
        operation = Operation(name)
    except ValueError:
        raise ValidationError(ValidationReason.UNKNOWN_OPERATION, f"Unknown tool: {name}") from None
    spec = OPERATION_SPECS[operation]
    arguments = dict(arguments or {})

    for key in arguments:
        if key not in spec.accepted:
            logger.debug(f"Ignoring unknown parameter {key!r} for {name}")

    for key in spec.required:
        if key == "project" and spec.scope != ScopeRule.IMPLICIT:
            continue
        if key not in arguments or arguments[key] is None:
            raise ValidationError(
                ValidationReason.MISSING_FIELD, f"{name} requires '{key}'", field=key
            )

    all_projects = _check_scope(spec, arguments)

    params: Dict[str, Any] = {}
    if "all_projects" in spec.accepted:
        params["all_projects"] = all_projects
    if "project" in spec.accepted and not _is_blank(arguments.get("project")):
        params["project"] = _normalise_project(arguments["project"])

    for key in spec.free_text:
        params[key] = _require_text(key, arguments[key])

    if "id" in spec.required:
        params["id"] = validate_identifier(arguments["id"])

    if operation == Operation.MODIFY_TASK:
        params["modifications"] = split_terms("modifications", arguments["modifications"])

    for key in DATE_FIELDS:
        if key in spec.accepted and arguments.get(key) is not None:
            # Taskwarrior is the authority on date syntax
            params[key] = _require_text(key, arguments[key]).strip()

    if "priority" in spec.accepted and arguments.get("priority") is not None:
        priority = _require_text("priority", arguments["priority"]).strip().upper()
        if priority not in PRIORITIES:
            raise ValidationError(
                ValidationReason.INVALID_VALUE,
                f"'priority' must be one of {', '.join(PRIORITIES)}",
                field="priority",
            )
        params["priority"] = priority

    if "tags" in spec.accepted and arguments.get("tags") is not None:
        params["tags"] = _normalise_tags(arguments["tags"])

    if "filter" in spec.accepted and not _is_blank(arguments.get("filter")):
        params["filter"] = split_filter(arguments["filter"])

    if "report" in spec.accepted:
        report = arguments.get("report")
        if _is_blank(report):
            report = DEFAULT_REPORT
        report = _require_text("report", report).strip().lower()
        if report not in REPORTS:
            raise ValidationError(
                ValidationReason.INVALID_VALUE,
                f"'report' must be one of {', '.join(REPORTS)}",
                field="report",
            )
        params["report"] = report

    return OperationRequest(operation=operation, params=params)
