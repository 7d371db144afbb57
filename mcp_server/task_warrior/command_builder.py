"""Build Taskwarrior argument vectors from validated requests."""

from dataclasses import dataclass
from typing import List, Sequence, Tuple

from .operations import Operation, OperationRequest

# Never let the task executable stop and ask for confirmation
CONFIRMATION_OFF = "rc.confirmation=off"
JSON_ARRAY_ON = "rc.json.array=on"

# Everything after this marker is literal description or annotation text
END_OF_OPTIONS = "--"


@dataclass(frozen=True)
class Command:
    """Argument vector for one invocation of the task executable."""
    operation: Operation
    argv: Tuple[str, ...]

    def __str__(self) -> str:
        return " ".join(self.argv)


def scope_terms(request: OperationRequest) -> List[str]:
    """
    Project term followed by the user's filter terms.

    The project term always comes first. User terms are grouped in
    parentheses so an ``or`` among them cannot widen the project scope.
    """
    terms: List[str] = []
    project = request.scoped_project
    if project is not None:
        terms.append(f"project:{project}")
    user_terms: Sequence[str] = request.params.get("filter") or ()
    if user_terms:
        if project is not None:
            terms.extend(["(", *user_terms, ")"])
        else:
            terms.extend(user_terms)
    return terms


def _add_args(request: OperationRequest) -> List[str]:
    params = request.params
    args = ["add", f"project:{params['project']}"]
    for key in ("due", "priority", "wait", "scheduled"):
        if params.get(key):
            args.append(f"{key}:{params[key]}")
    args.extend(f"+{tag}" for tag in params.get("tags", ()))
    args.extend([END_OF_OPTIONS, params["description"]])
    return args


def _list_args(request: OperationRequest) -> List[str]:
    return [JSON_ARRAY_ON, *scope_terms(request), "export", request.params["report"]]


def _search_args(request: OperationRequest) -> List[str]:
    terms = scope_terms(request)
    # description match goes right after the project term, ahead of user filters
    position = 1 if request.scoped_project is not None else 0
    terms.insert(position, f"description.contains:{request.params['pattern']}")
    return [JSON_ARRAY_ON, *terms, "export", "list"]


def _get_args(request: OperationRequest) -> List[str]:
    return [JSON_ARRAY_ON, request.params["id"], "export"]


def _modify_args(request: OperationRequest) -> List[str]:
    return [request.params["id"], "modify", *request.params["modifications"]]


def _done_args(request: OperationRequest) -> List[str]:
    return [request.params["id"], "done"]


def _delete_args(request: OperationRequest) -> List[str]:
    return [request.params["id"], "delete"]


def _annotate_args(request: OperationRequest) -> List[str]:
    return [request.params["id"], "annotate", END_OF_OPTIONS, request.params["note"]]


_BUILDERS = {
    Operation.ADD_TASK: _add_args,
    Operation.LIST_TASKS: _list_args,
    Operation.SEARCH_TASKS: _search_args,
    Operation.GET_TASK: _get_args,
    Operation.MODIFY_TASK: _modify_args,
    Operation.COMPLETE_TASK: _done_args,
    Operation.DELETE_TASK: _delete_args,
    Operation.ANNOTATE_TASK: _annotate_args,
}


def build_command(request: OperationRequest) -> Command:
    """Turn a validated request into the argv passed to the task executable."""
    args = _BUILDERS[request.operation](request)
    return Command(operation=request.operation, argv=(CONFIRMATION_OFF, *args))
