# src/workdesk/tasks/task_api.py

from __future__ import annotations

from collections import Counter
from datetime import date
from typing import Any

from ..core.ports import Actor
from ..core.state import AppState
from ..core.timeutil import utc_now
from .task_models import Task, TaskStatus


def my_tasks(state: AppState, user: Actor) -> list[Task]:
    """Tasks assigned to `user`, whatever their role."""
    return [t for t in state.tasks.list() if t.assigned_to == user.id]


def created_by(state: AppState, user: Actor) -> list[Task]:
    return [t for t in state.tasks.list() if t.created_by == user.id]


def tasks_by_status(state: AppState, user: Actor) -> dict[TaskStatus, list[Task]]:
    """Board columns: every status present as a key, visible tasks only."""
    columns: dict[TaskStatus, list[Task]] = {s: [] for s in TaskStatus}
    for t in state.workflow.visible_tasks(user):
        columns[t.status].append(t)
    return columns


def overdue_tasks(state: AppState, user: Actor, *, today: date | None = None) -> list[Task]:
    """Visible, not terminal, due date strictly in the past. Earliest due first."""
    today = today or utc_now().date()
    late = [
        t
        for t in state.workflow.visible_tasks(user)
        if t.due_date is not None and t.due_date < today and not t.status.is_terminal
    ]
    return sorted(late, key=lambda t: t.due_date or today)


def search_tasks(state: AppState, user: Actor, query: str) -> list[Task]:
    q = (query or "").strip().lower()
    if not q:
        return []
    return [
        t
        for t in state.workflow.visible_tasks(user)
        if q in t.title.lower() or q in t.description.lower() or any(q == g.lower() for g in t.tags)
    ]


def task_stats(state: AppState, user: Actor, *, today: date | None = None) -> dict[str, Any]:
    """
    Dashboard counters over the tasks `user` can see.

    Keys:
    - total, overdue
    - byStatus / byPriority: value -> count
    - completionRate: completed-like / total, rounded to 0.01 (0.0 when empty)
    """
    visible = state.workflow.visible_tasks(user)
    by_status = Counter(t.status.value for t in visible)
    by_priority = Counter(t.priority.value for t in visible)
    done = sum(1 for t in visible if t.status.is_terminal)
    return {
        "total": len(visible),
        "overdue": len(overdue_tasks(state, user, today=today)),
        "byStatus": dict(by_status),
        "byPriority": dict(by_priority),
        "completionRate": round(done / len(visible), 2) if visible else 0.0,
    }
