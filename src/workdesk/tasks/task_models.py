# src/workdesk/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import StrEnum
from typing import Any

from ..core.timeutil import from_iso, parse_date, to_iso


class TaskStatus(StrEnum):
    """
    Task lifecycle status.

    Notes:
    - "done" and "archived" are legacy terminal variants of "completed" found in
      older snapshots; the guarded workflow only ever produces "completed".
    - a rejected review goes back to "in_progress"; there is no separate status.
    """

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    COMPLETED = "completed"
    DONE = "done"
    ARCHIVED = "archived"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.TODO
        try:
            return cls(raw)
        except ValueError:
            return cls.TODO

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.DONE, TaskStatus.ARCHIVED})


class TaskPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskPriority:
        try:
            return cls(raw or "medium")
        except ValueError:
            return cls.MEDIUM


class TransitionName(StrEnum):
    START_WORK = "start_work"
    SUBMIT_FOR_REVIEW = "submit_for_review"
    APPROVE = "approve"
    REJECT = "reject"


# Guarded state machine: (from, to) -> transition name.
TRANSITIONS: dict[tuple[TaskStatus, TaskStatus], TransitionName] = {
    (TaskStatus.TODO, TaskStatus.IN_PROGRESS): TransitionName.START_WORK,
    (TaskStatus.IN_PROGRESS, TaskStatus.REVIEW): TransitionName.SUBMIT_FOR_REVIEW,
    (TaskStatus.REVIEW, TaskStatus.COMPLETED): TransitionName.APPROVE,
    (TaskStatus.REVIEW, TaskStatus.IN_PROGRESS): TransitionName.REJECT,
}


@dataclass(frozen=True, slots=True)
class StatusChange:
    from_status: TaskStatus
    to_status: TaskStatus
    at: datetime
    forced: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": self.from_status.value,
            "to": self.to_status.value,
            "at": to_iso(self.at),
            "forced": self.forced,
        }

    @staticmethod
    def from_dict(raw: dict[str, Any]) -> StatusChange | None:
        at = from_iso(raw.get("at"))
        if at is None:
            return None
        return StatusChange(
            from_status=TaskStatus.from_db(raw.get("from")),
            to_status=TaskStatus.from_db(raw.get("to")),
            at=at,
            forced=bool(raw.get("forced", False)),
        )


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    title: str
    description: str
    status: TaskStatus
    priority: TaskPriority

    created_by: str
    assigned_to: str | None

    created_at: datetime
    updated_at: datetime

    due_date: date | None = None
    start_date: date | None = None
    completed_at: datetime | None = None

    attachments: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    estimated_hours: float | None = None
    actual_hours: float | None = None

    history: tuple[StatusChange, ...] = field(default=())

    def is_participant(self, user_id: str) -> bool:
        return user_id in (self.assigned_to, self.created_by)

    @property
    def owner_id(self) -> str:
        """Who hears about outcomes: the assignee, or the creator for unassigned tasks."""
        return self.assigned_to or self.created_by

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "priority": self.priority.value,
            "created_by": self.created_by,
            "assigned_to": self.assigned_to,
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "completed_at": to_iso(self.completed_at),
            "attachments": list(self.attachments),
            "tags": list(self.tags),
            "estimated_hours": self.estimated_hours,
            "actual_hours": self.actual_hours,
            "history": [h.to_dict() for h in self.history],
        }

    @staticmethod
    def from_dict(raw: dict[str, Any]) -> Task:
        created_at = from_iso(raw.get("created_at"))
        updated_at = from_iso(raw.get("updated_at"))
        if created_at is None:
            raise ValueError(f"task {raw.get('id')!r} has no valid created_at")
        if updated_at is None or updated_at < created_at:
            updated_at = created_at

        history: list[StatusChange] = []
        for h in raw.get("history") or []:
            if isinstance(h, dict):
                change = StatusChange.from_dict(h)
                if change is not None:
                    history.append(change)

        assigned = raw.get("assigned_to")
        return Task(
            id=str(raw["id"]),
            title=str(raw.get("title") or ""),
            description=str(raw.get("description") or ""),
            status=TaskStatus.from_db(raw.get("status")),
            priority=TaskPriority.from_db(raw.get("priority")),
            created_by=str(raw.get("created_by") or ""),
            assigned_to=str(assigned) if assigned not in (None, "") else None,
            created_at=created_at,
            updated_at=updated_at,
            due_date=parse_date(raw.get("due_date")),
            start_date=parse_date(raw.get("start_date")),
            completed_at=from_iso(raw.get("completed_at")),
            attachments=tuple(str(a) for a in raw.get("attachments") or ()),
            tags=tuple(str(t) for t in raw.get("tags") or ()),
            estimated_hours=_opt_float(raw.get("estimated_hours")),
            actual_hours=_opt_float(raw.get("actual_hours")),
            history=tuple(history),
        )


def _opt_float(raw: object) -> float | None:
    if raw is None or raw == "":
        return None
    try:
        return float(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
