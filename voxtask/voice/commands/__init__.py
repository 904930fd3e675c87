"""Voice command handlers, one per intent action."""

from voxtask.voice.commands.task_commands import (
    CommandContext,
    handle_complete,
    handle_create,
    handle_delete,
    handle_list,
    handle_update,
)

__all__ = [
    "CommandContext",
    "handle_complete",
    "handle_create",
    "handle_delete",
    "handle_list",
    "handle_update",
]
