"""Task records parsed from Taskwarrior export output, and operation results."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional, Set, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

TASKWARRIOR_DATE_FORMAT = "%Y%m%dT%H%M%SZ"


class TaskStatus(str, Enum):
    """Task status as reported by Taskwarrior."""
    PENDING = "pending"
    COMPLETED = "completed"
    DELETED = "deleted"
    WAITING = "waiting"
    RECURRING = "recurring"
    BLOCKED = "blocked"


class TaskPriority(str, Enum):
    """Taskwarrior priority levels."""
    HIGH = "H"
    MEDIUM = "M"
    LOW = "L"


def parse_taskwarrior_date(value: Any) -> Any:
    """Convert Taskwarrior's compact UTC timestamps; anything else is left to pydantic."""
    if isinstance(value, str) and len(value) == 16 and value.endswith("Z") and "T" in value:
        try:
            return datetime.strptime(value, TASKWARRIOR_DATE_FORMAT).replace(tzinfo=timezone.utc)
        except ValueError:
            return value
    return value


class Annotation(BaseModel):
    """A timestamped note attached to a task."""

    model_config = ConfigDict(extra="ignore")

    entry: Optional[datetime] = Field(None, description="When the note was added")
    description: str = Field(..., description="Note text")

    @field_validator("entry", mode="before")
    @classmethod
    def _parse_entry(cls, value: Any) -> Any:
        return parse_taskwarrior_date(value)


class Task(BaseModel):
    """
    One task as emitted by ``task export``.

    Taskwarrior owns every attribute; this model only reads them. User
    defined attributes and other unknown keys are ignored.
    """

    model_config = ConfigDict(extra="ignore", use_enum_values=True)

    id: Optional[int] = Field(None, description="Working-set number, None once completed or deleted")
    uuid: str = Field(..., min_length=1, description="Stable task identifier")
    description: str = Field(..., description="Task description")
    project: Optional[str] = Field(None, description="Project, dot-notation for subprojects")
    status: TaskStatus = Field(..., description="Current task status")
    priority: Optional[TaskPriority] = Field(None, description="H, M or L")

    due: Optional[datetime] = None
    scheduled: Optional[datetime] = None
    wait: Optional[datetime] = None
    entry: Optional[datetime] = None
    modified: Optional[datetime] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    tags: Set[str] = Field(default_factory=set, description="Tags without the + prefix")
    annotations: List[Annotation] = Field(default_factory=list, description="Notes in entry order")
    urgency: Optional[float] = Field(None, description="Urgency score computed by Taskwarrior")
    depends: List[str] = Field(default_factory=list, description="UUIDs this task depends on")
    recur: Optional[str] = None
    parent: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _zero_id_is_none(cls, value: Any) -> Any:
        if value == 0:
            return None
        return value

    @field_validator("due", "scheduled", "wait", "entry", "modified", "start", "end", mode="before")
    @classmethod
    def _parse_dates(cls, value: Any) -> Any:
        return parse_taskwarrior_date(value)

    @field_validator("depends", mode="before")
    @classmethod
    def _split_depends(cls, value: Any) -> Any:
        # Taskwarrior 2.x exports a comma-separated string, 3.x a list
        if isinstance(value, str):
            return [uuid for uuid in value.split(",") if uuid]
        return value

    @field_serializer("tags")
    def _sorted_tags(self, tags: Set[str]) -> List[str]:
        return sorted(tags)

    @property
    def identifier(self) -> Union[int, str]:
        """Working-set id when the task has one, otherwise its UUID."""
        return self.id if self.id is not None else self.uuid

    def __str__(self) -> str:
        return f"Task({self.identifier}, {self.description!r}, project={self.project}, status={self.status})"


class TaskList(BaseModel):
    """Result of list_tasks and search_tasks."""

    operation: str
    scope: Optional[str] = Field(None, description="Project the query was restricted to, None for all projects")
    report: str
    count: int = 0
    tasks: List[Task] = Field(default_factory=list)


class TaskLookup(BaseModel):
    """Result of get_task; ``found`` is False when no task matched the id."""

    id: str
    found: bool
    task: Optional[Task] = None


class MutationResult(BaseModel):
    """Confirmation for add, modify, complete, delete and annotate."""

    operation: str
    id: Optional[str] = Field(None, description="Identifier acted upon, or the id assigned by add")
    description: Optional[str] = Field(None, description="Task description when Taskwarrior echoed it")
    affected: Optional[int] = Field(None, description="Number of tasks Taskwarrior reported changing")
    message: str = Field("", description="Taskwarrior's confirmation text")
