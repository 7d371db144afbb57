"""Tests for the TaskWarrior request pipeline."""

import asyncio
from typing import Sequence

import pytest

from conftest import RecordingRunner, export_json, export_record
from task_warrior.config import TaskWarriorConfig
from task_warrior.errors import CommandError, InfrastructureError, InfrastructureReason, ValidationError
from task_warrior.models import MutationResult, TaskList, TaskLookup
from task_warrior.runner import ProcessOutcome, ProcessRunner
from task_warrior.service import TaskWarrior


class TestValidationBeforeExecution:
    """Rejected requests never reach the runner."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "name, arguments",
        [
            ("add_task", {"description": "buy milk"}),
            ("add_task", {"description": "", "project": "home"}),
            ("list_tasks", {}),
            ("search_tasks", {"pattern": "milk"}),
            ("get_task", {}),
            ("modify_task", {"id": "1"}),
            ("annotate_task", {"id": "1", "note": "   "}),
            ("complete_task", {"id": "1 or +x"}),
            ("purge_everything", {}),
        ],
    )
    async def test_rejected_without_spawning(self, service, runner, name, arguments):
        with pytest.raises(ValidationError):
            await service.execute(name, arguments)
        assert runner.calls == []

    @pytest.mark.asyncio
    async def test_convenience_method_enforces_scope(self, service, runner):
        with pytest.raises(ValidationError) as excinfo:
            await service.list_tasks()
        assert excinfo.value.reason == "missing_project_scope"
        assert runner.calls == []


class TestExecute:
    """One call, one command, one result."""

    @pytest.mark.asyncio
    async def test_add_task(self, service, runner):
        runner.queue(stdout="Created task 1.")
        result = await service.add_task("buy milk", "home", tags=["errand"], priority="m")
        assert isinstance(result, MutationResult)
        assert result.id == "1"
        assert runner.calls == [
            ["rc.confirmation=off", "add", "project:home", "priority:M", "+errand", "--", "buy milk"]
        ]

    @pytest.mark.asyncio
    async def test_list_tasks(self, service, runner):
        runner.queue(stdout=export_json(export_record(), export_record(id=2, description="walk dog")))
        result = await service.list_tasks("home", filter="+READY")
        assert isinstance(result, TaskList)
        assert [task.description for task in result.tasks] == ["buy milk", "walk dog"]
        assert len(runner.calls) == 1

    @pytest.mark.asyncio
    async def test_get_missing_task(self, service, runner):
        runner.queue(stdout="[]")
        result = await service.get_task("42")
        assert result == TaskLookup(id="42", found=False)

    @pytest.mark.asyncio
    async def test_command_error_passes_diagnostic(self, service, runner):
        runner.queue(exit_code=2, stderr="Unable to acquire lock on pending.data")
        with pytest.raises(CommandError) as excinfo:
            await service.search_tasks("x", "home", filter="+a")
        assert excinfo.value.message == "Unable to acquire lock on pending.data"
        assert excinfo.value.matched_rule == "concurrent_access"

    @pytest.mark.asyncio
    async def test_infrastructure_error_propagates(self):
        class MissingRunner:
            async def run(self, args):
                raise InfrastructureError(InfrastructureReason.EXECUTABLE_NOT_FOUND, "not found", "task")

        with pytest.raises(InfrastructureError):
            await TaskWarrior(runner=MissingRunner()).complete_task("1")

    def test_runner_built_from_config(self, tmp_path):
        config = TaskWarriorConfig(executable="/opt/task", timeout_seconds=5, data_location=tmp_path)
        service = TaskWarrior(config=config)
        assert isinstance(service.runner, ProcessRunner)
        assert service.runner.executable == "/opt/task"
        assert service.runner.timeout_seconds == 5
        assert service.runner.data_location == tmp_path


class TestScenario:
    """add -> list -> complete -> list, against canned Taskwarrior output."""

    @pytest.mark.asyncio
    async def test_lifecycle(self, service, runner):
        runner.queue(stdout="Created task 1.")
        added = await service.add_task("buy milk", "home")
        assert added.id == "1"

        runner.queue(stdout=export_json(export_record()))
        listed = await service.list_tasks("home")
        assert listed.count == 1
        assert listed.tasks[0].project == "home"
        assert listed.tasks[0].status == "pending"

        runner.queue(stdout="Completed task 1 'buy milk'.\nCompleted 1 task.")
        completed = await service.complete_task("1")
        assert completed.affected == 1

        runner.queue(exit_code=1, stderr="No matches.")
        after = await service.list_tasks("home")
        assert after.count == 0

        runner.queue(stdout=export_json(export_record(id=0, status="completed", end="20250601T100000Z")))
        history = await service.list_tasks("home", report="completed")
        assert history.tasks[0].status == "completed"
        assert history.tasks[0].end is not None

        assert [call[1] for call in runner.calls] == [
            "add", "rc.json.array=on", "1", "rc.json.array=on", "rc.json.array=on",
        ]
        assert runner.calls[-1][-2:] == ["export", "completed"]


class TestConcurrency:
    """Concurrent calls each receive their own outcome."""

    @pytest.mark.asyncio
    async def test_parallel_calls_do_not_interleave(self):
        class EchoRunner:
            """Answers get_task with a record whose description names the requested id."""

            async def run(self, args: Sequence[str]) -> ProcessOutcome:
                task_id = args[2]
                await asyncio.sleep(0.01 * (10 - int(task_id)))
                record = export_record(id=int(task_id), description=f"task {task_id}")
                return ProcessOutcome(exit_code=0, stdout=export_json(record), stderr="")

        service = TaskWarrior(runner=EchoRunner())
        results = await asyncio.gather(*(service.get_task(str(n)) for n in range(1, 10)))
        assert [result.task.description for result in results] == [f"task {n}" for n in range(1, 10)]

    @pytest.mark.asyncio
    async def test_cancelling_one_call_leaves_others(self):
        class SlowRunner(RecordingRunner):
            async def run(self, args):
                if args[1] == "99":
                    await asyncio.sleep(10)
                return await super().run(args)

        runner = SlowRunner()
        service = TaskWarrior(runner=runner)
        slow = asyncio.create_task(service.complete_task("99"))
        fast = asyncio.create_task(service.complete_task("1"))
        await asyncio.sleep(0.05)
        slow.cancel()
        result = await fast
        assert result.id == "1"
        with pytest.raises(asyncio.CancelledError):
            await slow
