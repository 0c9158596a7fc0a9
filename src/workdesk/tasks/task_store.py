# src/workdesk/tasks/task_store.py

from __future__ import annotations

import dataclasses
import logging
import uuid
from datetime import datetime
from typing import Any

from ..core.ports import SnapshotStorage
from ..core.timeutil import Clock, parse_date, utc_now
from ..errors import ConflictError, InvalidTransition, NotFoundError, ValidationError
from ..storage.snapshot import KEY_TASKS
from .task_models import (
    TERMINAL_STATUSES,
    TRANSITIONS,
    StatusChange,
    Task,
    TaskPriority,
    TaskStatus,
)

logger = logging.getLogger(__name__)

MAX_TITLE_LEN = 200
MAX_DESCRIPTION_LEN = 5000

# Fields a patch may touch. Status has its own entry points.
_PATCHABLE = frozenset(
    {
        "title",
        "description",
        "priority",
        "assigned_to",
        "due_date",
        "start_date",
        "attachments",
        "tags",
        "estimated_hours",
        "actual_hours",
    }
)


class TaskStore:
    """
    Owns the canonical task list.

    - tasks live in memory in insertion order (dict keyed by id)
    - every successful mutation persists the whole collection under "tasks"
    - no permission checks here: that is the workflow controller's job

    The snapshot is read once in init(); afterwards memory is authoritative.
    """

    def __init__(self, storage: SnapshotStorage, *, clock: Clock = utc_now) -> None:
        self._storage = storage
        self._clock = clock
        self._tasks: dict[str, Task] = {}

    def init(self) -> None:
        """Load the "tasks" snapshot. Broken records are skipped with a warning."""
        self._tasks = {}
        for raw in self._storage.load(KEY_TASKS):
            try:
                task = Task.from_dict(raw)
            except (KeyError, ValueError):
                logger.warning("Skipping malformed task record id=%r", raw.get("id"))
                continue
            self._tasks[task.id] = task
        logger.info("TaskStore ready total=%s", len(self._tasks))

    # ---- unit of work support ----

    def checkpoint(self) -> dict[str, Task]:
        # Tasks are frozen dataclasses, a shallow copy is a full snapshot.
        return dict(self._tasks)

    def restore(self, saved: dict[str, Task]) -> None:
        self._tasks = dict(saved)

    # ---- low-level helpers ----

    def _persist(self) -> None:
        self._storage.save(KEY_TASKS, [t.to_dict() for t in self._tasks.values()])

    def _now_after(self, task: Task) -> datetime:
        """Current time, but never earlier than the task's last update."""
        now = self._clock()
        return now if now >= task.updated_at else task.updated_at

    def _require(self, task_id: str) -> Task:
        task = self._tasks.get(str(task_id))
        if task is None:
            raise NotFoundError("task", str(task_id))
        return task

    @staticmethod
    def _clean_title(raw: object) -> str:
        # Stored exactly as given; only the blank check ignores whitespace.
        title = "" if raw is None else str(raw)
        if not title.strip():
            raise ValidationError("Task title cannot be empty")
        if len(title) > MAX_TITLE_LEN:
            raise ValidationError(f"Task title cannot exceed {MAX_TITLE_LEN} characters")
        return title

    @staticmethod
    def _clean_description(raw: object) -> str:
        desc = "" if raw is None else str(raw)
        if len(desc) > MAX_DESCRIPTION_LEN:
            raise ValidationError(f"Task description cannot exceed {MAX_DESCRIPTION_LEN} characters")
        return desc

    @staticmethod
    def _clean_priority(raw: object) -> TaskPriority:
        if raw is None or raw == "":
            return TaskPriority.MEDIUM
        try:
            return TaskPriority(str(raw))
        except ValueError:
            raise ValidationError(f"Unknown priority: {raw!r}") from None

    @staticmethod
    def _clean_status(raw: object) -> TaskStatus:
        try:
            return TaskStatus(str(raw))
        except ValueError:
            raise ValidationError(f"Unknown status: {raw!r}") from None

    @staticmethod
    def _clean_date(name: str, raw: object):
        if raw is None or raw == "":
            return None
        parsed = parse_date(raw)
        if parsed is None:
            raise ValidationError(f"{name} is not a valid date: {raw!r}")
        return parsed

    @staticmethod
    def _clean_hours(name: str, raw: object) -> float | None:
        if raw is None or raw == "":
            return None
        try:
            value = float(raw)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            raise ValidationError(f"{name} must be a number") from None
        if value < 0:
            raise ValidationError(f"{name} cannot be negative")
        return value

    @staticmethod
    def _clean_names(raw: object) -> tuple[str, ...]:
        if raw is None:
            return ()
        if isinstance(raw, str):
            raise ValidationError("expected a list of names, got a string")
        return tuple(str(x) for x in raw)  # type: ignore[union-attr]

    def _apply_fields(self, task: Task, data: dict[str, Any]) -> Task:
        changes: dict[str, Any] = {}
        if "title" in data:
            changes["title"] = self._clean_title(data["title"])
        if "description" in data:
            changes["description"] = self._clean_description(data["description"])
        if "priority" in data:
            changes["priority"] = self._clean_priority(data["priority"])
        if "assigned_to" in data:
            a = data["assigned_to"]
            changes["assigned_to"] = str(a) if a not in (None, "") else None
        if "due_date" in data:
            changes["due_date"] = self._clean_date("due_date", data["due_date"])
        if "start_date" in data:
            changes["start_date"] = self._clean_date("start_date", data["start_date"])
        if "attachments" in data:
            changes["attachments"] = self._clean_names(data["attachments"])
        if "tags" in data:
            changes["tags"] = self._clean_names(data["tags"])
        if "estimated_hours" in data:
            changes["estimated_hours"] = self._clean_hours("estimated_hours", data["estimated_hours"])
        if "actual_hours" in data:
            changes["actual_hours"] = self._clean_hours("actual_hours", data["actual_hours"])
        return dataclasses.replace(task, **changes) if changes else task

    # ---- public API ----

    def count(self) -> int:
        return len(self._tasks)

    def get(self, task_id: str) -> Task:
        return self._require(task_id)

    def list(self) -> tuple[Task, ...]:
        """Immutable snapshot at call time, insertion order."""
        return tuple(self._tasks.values())

    def create(self, data: dict[str, Any]) -> Task:
        """
        Create a task from raw input.

        Required: title, created_by. Status defaults to "todo".
        id/created_at/updated_at are always assigned here, never taken from input.
        """
        created_by = str(data.get("created_by") or "").strip()
        if not created_by:
            raise ValidationError("created_by is required")

        raw_status = data.get("status")
        status = TaskStatus.TODO if raw_status in (None, "") else self._clean_status(raw_status)

        now = self._clock()
        task = Task(
            id=uuid.uuid4().hex,
            title=self._clean_title(data.get("title")),
            description="",
            status=status,
            priority=TaskPriority.MEDIUM,
            created_by=created_by,
            assigned_to=None,
            created_at=now,
            updated_at=now,
            completed_at=now if status in TERMINAL_STATUSES else None,
        )
        extra = {k: v for k, v in data.items() if k in _PATCHABLE and k != "title"}
        task = self._apply_fields(task, extra)

        self._tasks[task.id] = task
        self._persist()
        logger.debug(
            "Task created id=%s status=%s priority=%s assigned_to=%s",
            task.id,
            task.status.value,
            task.priority.value,
            task.assigned_to,
        )
        return task

    def update(
        self,
        task_id: str,
        patch: dict[str, Any],
        *,
        expected_updated_at: datetime | None = None,
    ) -> Task:
        """
        Merge `patch` into the task and bump updated_at.

        `expected_updated_at` is an optimistic version check for callers that may
        race each other: if the stored task moved on, ConflictError is raised.
        """
        task = self._require(task_id)
        if expected_updated_at is not None and expected_updated_at != task.updated_at:
            raise ConflictError(task.id, str(expected_updated_at), str(task.updated_at))

        forbidden = sorted(set(patch) - _PATCHABLE)
        if forbidden:
            raise ValidationError(f"fields cannot be patched: {', '.join(forbidden)}")

        updated = self._apply_fields(task, patch)
        updated = dataclasses.replace(updated, updated_at=self._now_after(task))
        self._tasks[task.id] = updated
        self._persist()
        logger.debug("Task updated id=%s fields=%s", task.id, sorted(patch))
        return updated

    def delete(self, task_id: str) -> None:
        task = self._require(task_id)
        del self._tasks[task.id]
        self._persist()
        logger.debug("Task deleted id=%s", task.id)

    def _transition(self, task: Task, new_status: TaskStatus, *, forced: bool) -> Task:
        now = self._now_after(task)
        if new_status in TERMINAL_STATUSES:
            completed_at = task.completed_at if task.status in TERMINAL_STATUSES else now
        else:
            completed_at = None

        updated = dataclasses.replace(
            task,
            status=new_status,
            updated_at=now,
            completed_at=completed_at,
            history=task.history + (StatusChange(task.status, new_status, now, forced),),
        )
        self._tasks[task.id] = updated
        self._persist()
        logger.debug(
            "Task status id=%s %s -> %s forced=%s",
            task.id,
            task.status.value,
            new_status.value,
            forced,
        )
        return updated

    def set_status(self, task_id: str, new_status: TaskStatus | str) -> Task:
        """
        Guarded transition: only edges of the workflow state machine are allowed.

          todo -> in_progress -> review -> completed
                                 review -> in_progress
        """
        task = self._require(task_id)
        target = self._clean_status(new_status)
        if (task.status, target) not in TRANSITIONS:
            raise InvalidTransition(task.id, task.status.value, target.value)
        return self._transition(task, target, forced=False)

    def force_status(self, task_id: str, new_status: TaskStatus | str) -> Task:
        """
        Unguarded administrative override (drag and drop on the board).

        Any status may be set, including skipping the review gate. The change is
        still recorded in the task history, flagged as forced.
        """
        task = self._require(task_id)
        target = self._clean_status(new_status)
        if target == task.status:
            return task
        return self._transition(task, target, forced=True)
