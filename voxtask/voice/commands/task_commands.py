"""Task-related voice command handlers.

Connects voice intents to the task store (voxtask/tasks/stores/). Handlers
raise store errors; the router turns them into failed CommandResults.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from voxtask.errors import NotFoundError
from voxtask.tasks.models import Priority, Task, TaskScope
from voxtask.tasks.stores.base import TaskStore, is_position_token
from voxtask.voice.models import (
    CommandResult,
    CompleteIntent,
    CreateIntent,
    DeleteIntent,
    IntentAction,
    ListIntent,
    UpdateIntent,
)

logger = logging.getLogger(__name__)


@dataclass
class CommandContext:
    """What a handler may touch while executing one command."""

    store: TaskStore
    scope: TaskScope = field(default_factory=TaskScope.today)


async def resolve_task(
    ctx: CommandContext, target: str, only_open: bool = False, spoken: str | None = None
) -> Task:
    """Find the task a spoken reference points at.

    Position tokens resolve against the open tasks in scope; anything else is
    a fuzzy title search. Raises ``NotFoundError`` echoing the reference as
    spoken when one is given.
    """
    if is_position_token(target):
        task = await ctx.store.find_by_position(target, ctx.scope)
    else:
        task = None
        if only_open:
            task = await ctx.store.find_by_fuzzy_title(target, only_open=True)
        if task is None:
            task = await ctx.store.find_by_fuzzy_title(target)
    if task is None:
        raise NotFoundError(spoken or target)
    return task


def strip_command_verb(text: str) -> str:
    """Raw command minus any leading creation verb and filler."""
    value = " ".join(text.split()).rstrip(".!?")
    value = re.sub(
        r"^(?:please\s+)?(?:new\s+(?:task|todo)\b\s*:?|(?:add|create|new|make)\b)\s*", "", value, flags=re.IGNORECASE
    )
    value = re.sub(r"^(?:a\s+)?(?:new\s+)?(?:task|todo)\s*:\s*", "", value, flags=re.IGNORECASE)
    value = re.sub(r"^a\s+(?:new\s+)?task(?:\s+to\b)?(?:\s+|$)", "", value, flags=re.IGNORECASE)
    return value.strip()


async def handle_create(intent: CreateIntent, ctx: CommandContext) -> CommandResult:
    """Create a new task from voice input."""
    text = intent.task_text or strip_command_verb(intent.raw_text)
    if not text:
        return CommandResult(
            success=False,
            message="I didn't catch what task you want to add.",
            error="missing_text",
        )

    task = await ctx.store.create(
        text,
        priority=intent.priority,
        category=intent.category,
        due_date=intent.due_date,
    )
    return CommandResult(
        success=True,
        message=f'Added "{task.text}" to your tasks',
        task_id=task.id,
    )


async def handle_complete(intent: CompleteIntent, ctx: CommandContext) -> CommandResult:
    """Mark a task as done."""
    if not intent.target:
        return CommandResult(
            success=False,
            message="Which task do you want to complete?",
            error="missing_target",
        )

    task = await resolve_task(ctx, intent.target, only_open=True, spoken=intent.spoken_target)
    if task.is_done:
        return CommandResult(
            success=True,
            message=f'"{task.text}" is already completed',
            task_id=task.id,
        )

    task = await ctx.store.complete(task.id, expected_version=task.version)
    return CommandResult(success=True, message=f'Completed "{task.text}"', task_id=task.id)


async def handle_update(intent: UpdateIntent, ctx: CommandContext) -> CommandResult:
    """Rename a task."""
    if not intent.target:
        return CommandResult(
            success=False,
            message="Which task do you want to update?",
            error="missing_target",
        )
    if not intent.new_text:
        return CommandResult(
            success=False,
            message=f'What should "{intent.spoken_target or intent.target}" be changed to?',
            error="missing_new_text",
        )

    task = await resolve_task(ctx, intent.target, spoken=intent.spoken_target)
    old_text = task.text
    task = await ctx.store.update(task.id, intent.new_text, expected_version=task.version)
    return CommandResult(
        success=True,
        message=f'Updated "{old_text}" to "{task.text}"',
        task_id=task.id,
    )


async def handle_delete(intent: DeleteIntent, ctx: CommandContext) -> CommandResult:
    """Archive one task, or every task in the collection."""
    if not intent.target:
        return CommandResult(
            success=False,
            message="Which task do you want to delete?",
            error="missing_target",
        )

    if intent.is_all:
        count = await ctx.store.delete_all(TaskScope.everything())
        if count == 0:
            return CommandResult(success=False, message="You have no tasks to delete", count=0)
        return CommandResult(success=True, message=f"Deleted all {count} tasks", count=count)

    task = await resolve_task(ctx, intent.target, spoken=intent.spoken_target)
    await ctx.store.delete(task.id, expected_version=task.version)
    return CommandResult(success=True, message=f'Deleted "{task.text}"', task_id=task.id)


def _priority_marker(task: Task) -> str:
    if task.priority is Priority.HIGH:
        return " (high)"
    if task.priority is Priority.LOW:
        return " (low)"
    return ""


def format_task_summary(tasks: list[Task]) -> str:
    """Spoken/printed summary of a task list."""
    if not tasks:
        return "No tasks for today yet. Start by adding some!"

    todo = [t for t in tasks if not t.is_done]
    done = [t for t in tasks if t.is_done]

    lines = [f"Today's tasks ({len(done)}/{len(tasks)} done):"]
    if todo:
        lines.append("")
        lines.append("To do:")
        lines.extend(f"{i}. {t.text}{_priority_marker(t)}" for i, t in enumerate(todo, start=1))
    if done:
        lines.append("")
        lines.append("Completed:")
        lines.extend(f"- {t.text}" for t in done)
    return "\n".join(lines)


async def handle_list(intent: ListIntent, ctx: CommandContext) -> CommandResult:
    """Summarise the tasks in scope."""
    tasks = await ctx.store.list(ctx.scope)
    done = sum(1 for t in tasks if t.is_done)
    return CommandResult(
        success=True,
        message=format_task_summary(tasks),
        tasks=tasks,
        stats={"total": len(tasks), "todo": len(tasks) - done, "done": done},
    )


# Verb used in the generic "Failed to ... task" message per action
ACTION_VERBS: dict[IntentAction, str] = {
    IntentAction.CREATE: "add",
    IntentAction.COMPLETE: "complete",
    IntentAction.UPDATE: "update",
    IntentAction.DELETE: "delete",
    IntentAction.LIST: "list",
}
