"""Shared test fixtures."""

import json
from typing import List, Optional, Sequence

import pytest

from task_warrior.runner import ProcessOutcome
from task_warrior.service import TaskWarrior


class RecordingRunner:
    """Stands in for ProcessRunner: records argv, replays canned outcomes."""

    def __init__(self, outcomes: Optional[List[ProcessOutcome]] = None):
        self.outcomes = list(outcomes or [])
        self.calls: List[Sequence[str]] = []

    def queue(self, exit_code: int = 0, stdout: str = "", stderr: str = "") -> None:
        self.outcomes.append(ProcessOutcome(exit_code=exit_code, stdout=stdout, stderr=stderr))

    async def run(self, args: Sequence[str]) -> ProcessOutcome:
        self.calls.append(list(args))
        if not self.outcomes:
            return ProcessOutcome(exit_code=0, stdout="", stderr="")
        return self.outcomes.pop(0)


def export_record(**overrides) -> dict:
    """One task as Taskwarrior's export command prints it."""
    record = {
        "id": 1,
        "description": "buy milk",
        "entry": "20250601T090000Z",
        "modified": "20250601T090000Z",
        "project": "home",
        "status": "pending",
        "uuid": "0f4f7f8e-2f9a-4c4e-9a53-3c1d2b6e8a10",
        "urgency": 1.9,
    }
    record.update(overrides)
    return record


def export_json(*records: dict) -> str:
    return "[\n" + ",\n".join(json.dumps(record) for record in records) + "\n]"


@pytest.fixture
def runner() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture
def service(runner: RecordingRunner) -> TaskWarrior:
    return TaskWarrior(runner=runner)
