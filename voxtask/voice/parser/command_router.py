"""Route classified intents to task command handlers.

The router dispatches intents to handler functions and converts expected
failures (missing task, version conflict, store outage, timeout) into failed
CommandResults with short messages. Details stay in the log.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from voxtask.errors import (
    ClassificationAmbiguity,
    ConflictError,
    NotFoundError,
    PartialDeleteError,
    StoreError,
    ValidationError,
)
from voxtask.voice.commands.task_commands import (
    ACTION_VERBS,
    CommandContext,
    handle_complete,
    handle_create,
    handle_delete,
    handle_list,
    handle_update,
)
from voxtask.voice.models import CommandResult, Intent, IntentAction, UnclearIntent

logger = logging.getLogger(__name__)

# Handler type: async function(intent, context) -> CommandResult
HandlerFn = Callable[[Intent, CommandContext], Awaitable[CommandResult]]

DEFAULT_STORE_TIMEOUT_SECONDS = 15.0


class CommandRouter:
    """Routes classified intents to registered handlers."""

    def __init__(self, timeout: float = DEFAULT_STORE_TIMEOUT_SECONDS):
        self._handlers: dict[IntentAction, HandlerFn] = {}
        self.timeout = timeout

    def register(self, action: IntentAction, handler: HandlerFn) -> None:
        """Register a handler for an intent action."""
        self._handlers[action] = handler

    @property
    def actions(self) -> list[IntentAction]:
        return list(self._handlers)

    async def route(self, intent: Intent, ctx: CommandContext) -> CommandResult:
        """Route an intent to the appropriate handler."""
        if isinstance(intent, UnclearIntent):
            return CommandResult(
                success=False,
                message=ClassificationAmbiguity.user_message,
                action=IntentAction.UNCLEAR,
                error="unclear",
            )

        handler = self._handlers.get(intent.action)
        if not handler:
            return CommandResult(
                success=False,
                message=f"No handler for {intent.action.value}.",
                action=intent.action,
                error="no_handler",
            )

        verb = ACTION_VERBS.get(intent.action, "process")
        try:
            result = await asyncio.wait_for(handler(intent, ctx), timeout=self.timeout)
        except NotFoundError as e:
            logger.info(f"No task matched {e.target!r} for {intent.action.value}")
            result = CommandResult(success=False, message=e.user_message, error="not_found")
        except ConflictError as e:
            logger.warning(f"{e}")
            result = CommandResult(success=False, message=e.user_message, error="conflict")
        except ValidationError as e:
            result = CommandResult(success=False, message=e.user_message, error="validation")
        except PartialDeleteError as e:
            logger.error(f"Store failure during {intent.action.value}: {e}")
            result = CommandResult(success=False, message=e.user_message, count=e.archived, error="partial_delete")
        except StoreError as e:
            logger.error(f"Store failure during {intent.action.value}: {e}")
            result = CommandResult(success=False, message=f"Failed to {verb} task", error="store_error")
        except asyncio.TimeoutError:
            logger.error(f"Task store timed out after {self.timeout}s during {intent.action.value}")
            result = CommandResult(success=False, message=f"Failed to {verb} task", error="timeout")

        result.action = intent.action
        return result


def create_default_router(timeout: float = DEFAULT_STORE_TIMEOUT_SECONDS) -> CommandRouter:
    """Create a router with all default handlers registered."""
    router = CommandRouter(timeout=timeout)

    router.register(IntentAction.CREATE, handle_create)
    router.register(IntentAction.COMPLETE, handle_complete)
    router.register(IntentAction.UPDATE, handle_update)
    router.register(IntentAction.DELETE, handle_delete)
    router.register(IntentAction.LIST, handle_list)

    return router

