"""Exception taxonomy for the voice command pipeline.

Components raise these; the command router and orchestrator convert them into
``CommandResult`` objects with a short user-facing message. Only errors that
are not ``VoxTaskError`` subclasses reach the HTTP layer as a 500.
"""

from __future__ import annotations


class VoxTaskError(Exception):
    """Base class for all expected pipeline failures."""

    #: Short message that is safe to show (or speak) to the user
    user_message: str = "Something went wrong. Try again?"

    def __init__(self, message: str = "", *, user_message: str | None = None):
        super().__init__(message or self.user_message)
        if user_message is not None:
            self.user_message = user_message


class InputError(VoxTaskError):
    """No text or audio was provided, or the audio could not be decoded."""

    user_message = "No command provided"


class ClassificationAmbiguity(VoxTaskError):
    """The intent is unclear or is missing a required field."""

    user_message = "I didn't understand. Try: 'add buy milk', 'bought milk', or 'show tasks'."


class ValidationError(VoxTaskError):
    """A store operation was called with invalid arguments (e.g. empty text)."""

    user_message = "That task needs a description."


class NotFoundError(VoxTaskError):
    """A task id or search text did not resolve to a task."""

    def __init__(self, target: str, message: str = ""):
        self.target = target
        super().__init__(
            message or f"Task not found: {target}",
            user_message=f'Couldn\'t find task "{target}"',
        )


class StoreError(VoxTaskError):
    """The task store was unreachable or rejected the operation."""

    user_message = "The task store is unavailable right now."


class ConflictError(StoreError):
    """A task changed between lookup and mutation (version mismatch)."""

    user_message = "That task changed while I was working on it. Try again?"

    def __init__(self, task_id: str, expected: str | None, actual: str | None):
        self.task_id = task_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Version conflict on {task_id}: expected {expected}, found {actual}"
        )


class PartialDeleteError(StoreError):
    """A bulk delete archived some tasks before failing on others."""

    def __init__(self, archived: int, total: int, message: str = ""):
        self.archived = archived
        self.total = total
        super().__init__(
            message or f"Archived {archived} of {total} tasks before failing",
            user_message=f"Deleted {archived} of {total} tasks, the rest could not be deleted",
        )


class TranscriptionError(VoxTaskError):
    """A speech-to-text provider failed."""

    user_message = "I couldn't hear that. Try again?"


class SynthesisError(VoxTaskError):
    """Speech synthesis failed; callers degrade to a text-only reply."""


__all__ = [
    "ClassificationAmbiguity",
    "ConflictError",
    "InputError",
    "NotFoundError",
    "StoreError",
    "SynthesisError",
    "TranscriptionError",
    "ValidationError",
    "VoxTaskError",
]
