# src/workdesk/errors.py

"""
Error taxonomy of the workflow engine.

Every operation raises one of these synchronously; nothing is retried here.
Callers (UI layer, scripts) decide how to surface the message.
"""

from __future__ import annotations


class WorkdeskError(Exception):
    """Base class for all engine errors."""


class NotFoundError(WorkdeskError, LookupError):
    """Unknown task/comment/notification id."""

    def __init__(self, kind: str, ident: str) -> None:
        super().__init__(f"{kind} not found: {ident}")
        self.kind = kind
        self.ident = ident


class PermissionDenied(WorkdeskError):
    """Capability check failed for the acting user."""

    def __init__(self, user_id: str, action: str, task_id: str | None = None) -> None:
        where = f" on task {task_id}" if task_id else ""
        super().__init__(f"user {user_id} may not {action}{where}")
        self.user_id = user_id
        self.action = action
        self.task_id = task_id


class InvalidTransition(WorkdeskError):
    """Status transition not allowed from the current state."""

    def __init__(self, task_id: str, current: str, target: str) -> None:
        super().__init__(f"task {task_id}: cannot move from {current} to {target}")
        self.task_id = task_id
        self.current = current
        self.target = target


class ValidationError(WorkdeskError, ValueError):
    """Missing or malformed input (empty title, unknown priority, ...)."""


class ConflictError(WorkdeskError):
    """Optimistic version check failed: the task changed since it was read."""

    def __init__(self, task_id: str, expected: str, actual: str) -> None:
        super().__init__(f"task {task_id} was modified (expected {expected}, found {actual})")
        self.task_id = task_id
        self.expected = expected
        self.actual = actual
