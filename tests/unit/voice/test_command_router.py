"""Tests for command routing and the task command handlers.

Handlers run against a real SQLite store on a temporary file.
"""

import asyncio
from datetime import date, timedelta

import pytest

from voxtask.errors import ConflictError, PartialDeleteError, StoreError
from voxtask.tasks.models import Priority, Task, TaskScope
from voxtask.voice.commands.task_commands import CommandContext, format_task_summary, strip_command_verb
from voxtask.voice.models import (
    ALL_TASKS,
    CommandResult,
    CompleteIntent,
    CreateIntent,
    DeleteIntent,
    IntentAction,
    ListIntent,
    UnclearIntent,
    UpdateIntent,
)
from voxtask.voice.parser.command_router import CommandRouter, create_default_router


@pytest.fixture
def router() -> CommandRouter:
    return create_default_router(timeout=2)


@pytest.fixture
def ctx(sqlite_store) -> CommandContext:
    return CommandContext(store=sqlite_store, scope=TaskScope.today())


# =============================================================================
# Router
# =============================================================================


class TestCommandRouter:
    def test_default_actions(self, router):
        assert set(router.actions) == {
            IntentAction.CREATE,
            IntentAction.COMPLETE,
            IntentAction.UPDATE,
            IntentAction.DELETE,
            IntentAction.LIST,
        }

    @pytest.mark.asyncio
    async def test_unclear_never_touches_store(self, router, ctx):
        result = await router.route(UnclearIntent(raw_text="blorp"), ctx)

        assert not result.success
        assert result.error == "unclear"
        assert "add buy milk" in result.message
        assert await ctx.store.list(TaskScope.everything()) == []

    @pytest.mark.asyncio
    async def test_missing_handler(self, ctx):
        result = await CommandRouter().route(ListIntent(), ctx)
        assert not result.success
        assert result.error == "no_handler"
        assert result.action is IntentAction.LIST

    @pytest.mark.asyncio
    async def test_store_error_becomes_failed_result(self, ctx):
        async def broken(intent, ctx):
            raise StoreError("connection refused")

        router = CommandRouter()
        router.register(IntentAction.CREATE, broken)

        result = await router.route(CreateIntent(task_text="buy milk"), ctx)

        assert not result.success
        assert result.message == "Failed to add task"
        assert result.error == "store_error"
        assert result.action is IntentAction.CREATE

    @pytest.mark.asyncio
    async def test_conflict_is_reported_separately(self, ctx):
        async def racing(intent, ctx):
            raise ConflictError("t1", "1", "2")

        router = CommandRouter()
        router.register(IntentAction.COMPLETE, racing)

        result = await router.route(CompleteIntent(target="milk"), ctx)

        assert result.error == "conflict"
        assert "changed" in result.message

    @pytest.mark.asyncio
    async def test_partial_delete_reports_count(self, ctx):
        async def half_done(intent, ctx):
            raise PartialDeleteError(2, 3)

        router = CommandRouter()
        router.register(IntentAction.DELETE, half_done)

        result = await router.route(DeleteIntent(target=ALL_TASKS), ctx)

        assert not result.success
        assert result.count == 2
        assert result.message == "Deleted 2 of 3 tasks, the rest could not be deleted"
        assert result.error == "partial_delete"

    @pytest.mark.asyncio
    async def test_timeout(self, ctx):
        async def slow(intent, ctx):
            await asyncio.sleep(1)
            return CommandResult(success=True, message="late")

        router = CommandRouter(timeout=0.01)
        router.register(IntentAction.DELETE, slow)

        result = await router.route(DeleteIntent(target="milk"), ctx)

        assert not result.success
        assert result.message == "Failed to delete task"
        assert result.error == "timeout"

    @pytest.mark.asyncio
    async def test_action_stamped_on_result(self, router, ctx):
        result = await router.route(CreateIntent(task_text="buy milk"), ctx)
        assert result.action is IntentAction.CREATE


# =============================================================================
# Create
# =============================================================================


class TestCreate:
    @pytest.mark.asyncio
    async def test_adds_task(self, router, ctx):
        intent = CreateIntent(task_text="buy milk", priority=Priority.HIGH, due_date=date.today() + timedelta(days=1))

        result = await router.route(intent, ctx)

        assert result.success
        assert result.message == 'Added "buy milk" to your tasks'
        task = await ctx.store.get(result.task_id)
        assert task.priority is Priority.HIGH
        assert task.plan_date == date.today()
        assert task.due_date == date.today() + timedelta(days=1)

    @pytest.mark.asyncio
    async def test_falls_back_to_raw_text(self, router, ctx):
        result = await router.route(CreateIntent(raw_text="add water the plants"), ctx)
        assert result.message == 'Added "water the plants" to your tasks'

    @pytest.mark.asyncio
    async def test_nothing_to_add(self, router, ctx):
        result = await router.route(CreateIntent(raw_text="add"), ctx)
        assert not result.success
        assert result.error == "missing_text"

    def test_strip_command_verb(self):
        assert strip_command_verb("Please add a new task: call mom.") == "call mom"
        assert strip_command_verb("buy bread") == "buy bread"
        assert strip_command_verb("add task force meeting notes") == "task force meeting notes"


# =============================================================================
# Complete
# =============================================================================


class TestComplete:
    @pytest.mark.asyncio
    async def test_fuzzy_target(self, router, ctx):
        task = await ctx.store.create("buy milk")

        result = await router.route(CompleteIntent(target="milk"), ctx)

        assert result.success
        assert result.message == 'Completed "buy milk"'
        assert (await ctx.store.get(task.id)).is_done

    @pytest.mark.asyncio
    async def test_already_done(self, router, ctx):
        task = await ctx.store.create("buy milk")
        await ctx.store.complete(task.id)

        result = await router.route(CompleteIntent(target="buy milk"), ctx)

        assert result.success
        assert result.message == '"buy milk" is already completed'

    @pytest.mark.asyncio
    async def test_prefers_open_task(self, router, ctx):
        done = await ctx.store.create("call mom")
        await ctx.store.complete(done.id)
        open_task = await ctx.store.create("call mom about sunday")

        result = await router.route(CompleteIntent(target="call mom"), ctx)

        assert result.task_id == open_task.id

    @pytest.mark.asyncio
    async def test_by_position(self, router, ctx):
        await ctx.store.create("low thing", priority=Priority.LOW)
        urgent = await ctx.store.create("urgent thing", priority=Priority.HIGH)

        result = await router.route(CompleteIntent(target="first"), ctx)

        assert result.task_id == urgent.id

    @pytest.mark.asyncio
    async def test_not_found(self, router, ctx):
        await ctx.store.create("buy milk")

        result = await router.route(CompleteIntent(target="dentist"), ctx)

        assert not result.success
        assert result.message == 'Couldn\'t find task "dentist"'
        assert result.error == "not_found"

    @pytest.mark.asyncio
    async def test_position_out_of_range(self, router, ctx):
        await ctx.store.create("buy milk")
        result = await router.route(CompleteIntent(target="5"), ctx)
        assert result.error == "not_found"

    @pytest.mark.asyncio
    async def test_missing_target(self, router, ctx):
        result = await router.route(CompleteIntent(), ctx)
        assert result.message == "Which task do you want to complete?"

    @pytest.mark.asyncio
    async def test_miss_echoes_spoken_position(self, router, ctx):
        result = await router.route(CompleteIntent(target="1", spoken_target="first"), ctx)
        assert result.message == 'Couldn\'t find task "first"'


# =============================================================================
# Update
# =============================================================================


class TestUpdate:
    @pytest.mark.asyncio
    async def test_renames(self, router, ctx):
        task = await ctx.store.create("gym")

        result = await router.route(UpdateIntent(target="gym", new_text="yoga class"), ctx)

        assert result.success
        assert result.message == 'Updated "gym" to "yoga class"'
        assert (await ctx.store.get(task.id)).text == "yoga class"

    @pytest.mark.asyncio
    async def test_missing_new_text(self, router, ctx):
        result = await router.route(UpdateIntent(target="gym"), ctx)
        assert not result.success
        assert result.error == "missing_new_text"

    @pytest.mark.asyncio
    async def test_missing_target(self, router, ctx):
        result = await router.route(UpdateIntent(new_text="yoga"), ctx)
        assert result.error == "missing_target"


# =============================================================================
# Delete
# =============================================================================


class TestDelete:
    @pytest.mark.asyncio
    async def test_single(self, router, ctx):
        keep = await ctx.store.create("walk the dog")
        await ctx.store.create("buy milk")

        result = await router.route(DeleteIntent(target="milk"), ctx)

        assert result.message == 'Deleted "buy milk"'
        remaining = await ctx.store.list(TaskScope.everything())
        assert [t.id for t in remaining] == [keep.id]

    @pytest.mark.asyncio
    async def test_all(self, router, ctx):
        for text in ("one thing", "two things", "three things"):
            await ctx.store.create(text)

        result = await router.route(DeleteIntent(target=ALL_TASKS), ctx)

        assert result.success
        assert result.message == "Deleted all 3 tasks"
        assert result.count == 3
        assert await ctx.store.list(TaskScope.everything()) == []

    @pytest.mark.asyncio
    async def test_all_when_empty(self, router, ctx):
        result = await router.route(DeleteIntent(target=ALL_TASKS), ctx)
        assert not result.success
        assert result.message == "You have no tasks to delete"
        assert result.count == 0


# =============================================================================
# List
# =============================================================================


class TestList:
    @pytest.mark.asyncio
    async def test_empty(self, router, ctx):
        result = await router.route(ListIntent(), ctx)
        assert result.success
        assert result.message == "No tasks for today yet. Start by adding some!"
        assert result.stats == {"total": 0, "todo": 0, "done": 0}

    @pytest.mark.asyncio
    async def test_summary_and_stats(self, router, ctx):
        milk = await ctx.store.create("buy milk")
        await ctx.store.create("file taxes", priority=Priority.HIGH)
        await ctx.store.complete(milk.id)

        result = await router.route(ListIntent(), ctx)

        assert result.stats == {"total": 2, "todo": 1, "done": 1}
        assert [t.text for t in result.tasks] == ["file taxes", "buy milk"]
        assert result.message.splitlines() == [
            "Today's tasks (1/2 done):",
            "",
            "To do:",
            "1. file taxes (high)",
            "",
            "Completed:",
            "- buy milk",
        ]

    def test_summary_without_done(self):
        summary = format_task_summary([Task(id="t1", text="call mom", priority=Priority.LOW)])
        assert summary.splitlines()[-1] == "1. call mom (low)"
        assert "Completed" not in summary
