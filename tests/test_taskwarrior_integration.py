"""End-to-end tests against a real Taskwarrior installation.

Skipped when the ``task`` executable is not on PATH. Each test gets a fresh
data directory and an empty taskrc so the user's own tasks are never touched.
"""

import shutil

import pytest

from task_warrior.config import TaskWarriorConfig
from task_warrior.errors import CommandError, ValidationError
from task_warrior.service import TaskWarrior

pytestmark = pytest.mark.skipif(shutil.which("task") is None, reason="Taskwarrior is not installed")


@pytest.fixture
def live(tmp_path):
    taskrc = tmp_path / "taskrc"
    taskrc.write_text("")
    data = tmp_path / "data"
    data.mkdir()
    return TaskWarrior(config=TaskWarriorConfig(data_location=data, taskrc=taskrc, timeout_seconds=20))


class TestLiveTaskwarrior:
    """Scenarios run through the real task executable."""

    @pytest.mark.asyncio
    async def test_add_list_complete(self, live):
        added = await live.add_task("buy milk", "home")
        assert added.id is not None

        listed = await live.list_tasks("home")
        assert [task.description for task in listed.tasks] == ["buy milk"]
        assert listed.tasks[0].project == "home"

        await live.complete_task(added.id)

        assert (await live.list_tasks("home")).count == 0
        history = await live.list_tasks("home", report="completed")
        assert [task.status for task in history.tasks] == ["completed"]

    @pytest.mark.asyncio
    async def test_project_scope_isolates_results(self, live):
        await live.add_task("home chore", "home")
        await live.add_task("work item", "work")

        home = await live.list_tasks("home", filter="+nosuchtag or project:work")
        assert [task.description for task in home.tasks] == []

        everything = await live.list_tasks(all_projects=True, report="all")
        assert {task.description for task in everything.tasks} == {"home chore", "work item"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "description",
        [
            'say "hello" to bob',
            "it's done; rm -rf / && echo pwned",
            "+nottag project:elsewhere",
            "$(whoami) `id`",
        ],
    )
    async def test_description_round_trip(self, live, description):
        added = await live.add_task(description, "quoting")
        found = await live.get_task(added.id)
        assert found.found
        assert found.task.description == description
        assert found.task.project == "quoting"
        assert found.task.tags == set()

    @pytest.mark.asyncio
    async def test_search_and_annotate(self, live):
        added = await live.add_task("flibbertigibbet report", "search-test", priority="H")
        await live.annotate_task(added.id, "first draft sent")

        result = await live.search_tasks("flibbertigibbet", "search-test", filter="priority:H")
        assert result.count == 1
        assert result.tasks[0].annotations[0].description == "first draft sent"

        elsewhere = await live.search_tasks("flibbertigibbet", "other")
        assert elsewhere.count == 0

    @pytest.mark.asyncio
    async def test_get_missing_task(self, live):
        lookup = await live.get_task("999")
        assert not lookup.found

    @pytest.mark.asyncio
    async def test_modify_and_delete(self, live):
        added = await live.add_task("draft", "home")
        await live.modify_task(added.id, "priority:L +later")
        task = (await live.get_task(added.id)).task
        assert task.priority == "L"
        assert "later" in task.tags

        await live.delete_task(added.id)
        assert (await live.list_tasks("home")).count == 0

    @pytest.mark.asyncio
    async def test_unbalanced_filter_is_rejected_before_running(self, live):
        await live.add_task("x", "home")
        with pytest.raises(ValidationError):
            await live.list_tasks("home", filter="( +a")

    @pytest.mark.asyncio
    async def test_filter_cannot_escape_scope_or_delete(self, live):
        await live.add_task("home chore", "home")
        await live.add_task("work item", "work", tags=["work"])
        with pytest.raises(ValidationError):
            await live.list_tasks("home", filter="+x ) or ( project:work")
        with pytest.raises(ValidationError):
            await live.list_tasks(all_projects=True, filter="+work delete")
        remaining = await live.list_tasks(all_projects=True)
        assert remaining.count == 2

    @pytest.mark.asyncio
    async def test_rejected_command_surfaces_diagnostic(self, live):
        with pytest.raises(CommandError):
            await live.modify_task("999", "priority:H")
