"""Exceptions raised by the progress core.

Store I/O failures are not wrapped: whatever the store raises reaches the
caller unchanged.
"""

from __future__ import annotations


class ProgressError(Exception):
    """Base class for progress-core errors."""


class ProgramNotFoundError(ProgressError):
    def __init__(self, program_id: int) -> None:
        super().__init__(f"Program {program_id} not found")
        self.program_id = program_id


class ProgressNotFoundError(ProgressError):
    def __init__(self, user_id: str) -> None:
        super().__init__(f"No active progress for user {user_id}")
        self.user_id = user_id


class ProgressConflictError(ProgressError):
    """A progress write lost a race with another writer for the same user."""

    def __init__(self, user_id: str) -> None:
        super().__init__(f"Concurrent progress update for user {user_id}")
        self.user_id = user_id


class TransientProgressConflict(ProgressError):
    """Raised after the conflict retry budget is spent; callers may retry later."""

    def __init__(self, user_id: str, attempts: int) -> None:
        super().__init__(f"Progress for user {user_id} still conflicting after {attempts} attempts")
        self.user_id = user_id
        self.attempts = attempts


class CompletionValidationError(ProgressError, ValueError):
    pass
