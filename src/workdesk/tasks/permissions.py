# src/workdesk/tasks/permissions.py

"""
Permission evaluator.

Pure functions of (role, ownership, status). No I/O, no logging, no clock:
the same inputs always give the same answer, so the whole
role x status x ownership matrix can be tested exhaustively.

Policy:
- admin / manager / hr see and edit every task, in any state
- employees see and edit only tasks they created or are assigned to, and may
  not edit a task once it is terminal
- only admin / manager pass the review gate, and only while status == review
- delete: admin, the creator, or the manager of the assignee
"""

from __future__ import annotations

from enum import StrEnum

from ..core.ports import Actor
from ..directory.employees import OVERSIGHT_ROLES, PRIVILEGED_ROLES, EmployeeDirectory, Role
from .task_models import Task, TaskStatus


class Capability(StrEnum):
    VIEW = "view"
    EDIT = "edit"
    VALIDATE = "validate"
    DELETE = "delete"


def _role(user: Actor) -> Role:
    return Role.from_raw(user.role)


def is_privileged(user: Actor) -> bool:
    return _role(user) in PRIVILEGED_ROLES


def has_oversight(user: Actor) -> bool:
    return _role(user) in OVERSIGHT_ROLES


def can_view(user: Actor, task: Task) -> bool:
    if has_oversight(user):
        return True
    return task.is_participant(user.id)


def can_edit(user: Actor, task: Task) -> bool:
    if has_oversight(user):
        return True
    return task.is_participant(user.id) and not task.status.is_terminal


def can_validate(user: Actor, task: Task) -> bool:
    return is_privileged(user) and task.status == TaskStatus.REVIEW


def can_delete(user: Actor, task: Task, directory: EmployeeDirectory | None = None) -> bool:
    role = _role(user)
    if role == Role.ADMIN:
        return True
    if task.created_by == user.id:
        return True
    if role == Role.MANAGER and directory is not None:
        return directory.is_manager_of(user.id, task.assigned_to)
    return False


def capabilities(
    user: Actor,
    task: Task,
    directory: EmployeeDirectory | None = None,
) -> frozenset[Capability]:
    caps: set[Capability] = set()
    if can_view(user, task):
        caps.add(Capability.VIEW)
    if can_edit(user, task):
        caps.add(Capability.EDIT)
    if can_validate(user, task):
        caps.add(Capability.VALIDATE)
    if can_delete(user, task, directory):
        caps.add(Capability.DELETE)
    return frozenset(caps)
