# src/workdesk/tasks/workflow.py

"""
Workflow controller.

The only entry point that mutates tasks. Every operation:
1. loads the task and checks the acting user's capability,
2. applies the change through the task store,
3. publishes a typed event; subscribers emit notifications and score updates.

All of it runs inside one unit of work: store state is checkpointed and
snapshot writes are deferred, so if any step raises (including a subscriber)
the stores are put back, nothing is written, and the error reaches the caller.

Guarded vs unguarded status changes:
- start_work / request_review / validate_task follow the state machine
- drag_drop_status_change is the board's direct move: any target status,
  only can_edit is required (plus a reviewer role for review moves when
  force_status_requires_validate is on)
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Iterator
from datetime import datetime
from typing import Any

from ..comments.models import Comment
from ..core.events import (
    CommentAdded,
    EventBus,
    ReviewRequested,
    TaskAssigned,
    TaskCreated,
    TaskDeleted,
    TaskStatusForced,
    TaskUpdated,
    TaskValidated,
    WorkStarted,
)
from ..core.ports import Actor, Checkpointable, CommentRepo, SnapshotStorage, TaskRepo
from ..directory.employees import EmployeeDirectory
from ..errors import InvalidTransition, PermissionDenied, ValidationError, WorkdeskError
from . import permissions
from .task_models import Task, TaskStatus

logger = logging.getLogger(__name__)


class WorkflowController:
    def __init__(
        self,
        *,
        tasks: TaskRepo,
        comments: CommentRepo,
        directory: EmployeeDirectory,
        bus: EventBus,
        storage: SnapshotStorage,
        side_stores: tuple[Checkpointable, ...] = (),
        force_status_requires_validate: bool = False,
    ) -> None:
        self._tasks = tasks
        self._comments = comments
        self._directory = directory
        self._bus = bus
        self._storage = storage
        # Everything a subscriber may touch must be listed here to be rolled back.
        self._stores: tuple[Checkpointable, ...] = (tasks, comments, *side_stores)
        self._force_requires_validate = force_status_requires_validate

    # ---- unit of work ----

    @contextlib.contextmanager
    def _unit_of_work(
        self,
        op: str,
        user: Actor,
        task_id: str | None = None,
    ) -> Iterator[None]:
        saved = [(store, store.checkpoint()) for store in self._stores]
        try:
            with self._storage.deferred():
                yield
        except WorkdeskError as e:
            for store, cp in saved:
                store.restore(cp)
            logger.warning("%s rejected user=%s task=%s: %s", op, user.id, task_id, e)
            raise
        except Exception:
            for store, cp in saved:
                store.restore(cp)
            logger.exception("%s failed user=%s task=%s; rolled back", op, user.id, task_id)
            raise

    def _require_edit(self, user: Actor, task: Task, action: str) -> None:
        if not permissions.can_edit(user, task):
            raise PermissionDenied(user.id, action, task.id)

    # ---- reads ----

    def get_task(self, user: Actor, task_id: str) -> Task:
        task = self._tasks.get(task_id)
        if not permissions.can_view(user, task):
            raise PermissionDenied(user.id, "view", task.id)
        return task

    def capabilities(self, user: Actor, task_id: str) -> frozenset[permissions.Capability]:
        return permissions.capabilities(user, self._tasks.get(task_id), self._directory)

    def threads_for(self, user: Actor, task_id: str) -> list[Any]:
        task = self.get_task(user, task_id)
        return self._comments.threads_for(task.id)

    # ---- task lifecycle ----

    def create_task(
        self,
        user: Actor,
        data: dict[str, Any],
        *,
        comment: str | None = None,
    ) -> Task:
        """
        Create a task on behalf of `user` (always recorded as created_by).

        An optional first comment is stored with the task in the same unit of work.
        """
        with self._unit_of_work("create_task", user):
            payload = dict(data)
            payload["created_by"] = user.id
            assignee = payload.get("assigned_to")
            if assignee and assignee not in self._directory:
                # Soft referential integrity: keep the id, just make it visible.
                logger.warning("create_task: unknown assignee %s", assignee)

            task = self._tasks.create(payload)
            logger.info(
                "Task created id=%s by=%s assigned_to=%s", task.id, user.id, task.assigned_to
            )
            self._bus.publish(TaskCreated(task=task, actor_id=user.id))

            if comment and comment.strip():
                self._add_comment(user, task, comment, None)
            return task

    def update_task(
        self,
        user: Actor,
        task_id: str,
        patch: dict[str, Any],
        *,
        expected_updated_at: datetime | None = None,
    ) -> Task:
        with self._unit_of_work("update_task", user, task_id):
            task = self._tasks.get(task_id)
            self._require_edit(user, task, "edit")
            if "status" in patch:
                raise ValidationError("status cannot be patched; use the workflow transitions")

            updated = self._tasks.update(task.id, patch, expected_updated_at=expected_updated_at)
            self._bus.publish(
                TaskUpdated(task=updated, actor_id=user.id, fields=tuple(sorted(patch)))
            )
            if updated.assigned_to != task.assigned_to:
                if updated.assigned_to and updated.assigned_to not in self._directory:
                    logger.warning("update_task: unknown assignee %s", updated.assigned_to)
                self._bus.publish(
                    TaskAssigned(task=updated, actor_id=user.id, previous_assignee=task.assigned_to)
                )
            return updated

    def delete_task(self, user: Actor, task_id: str) -> None:
        """Permanent. Comments of the task go with it; notifications and scores stay."""
        with self._unit_of_work("delete_task", user, task_id):
            task = self._tasks.get(task_id)
            if not permissions.can_delete(user, task, self._directory):
                raise PermissionDenied(user.id, "delete", task.id)
            self._tasks.delete(task.id)
            removed = self._comments.delete_for_task(task.id)
            logger.info("Task deleted id=%s by=%s comments_removed=%d", task.id, user.id, removed)
            self._bus.publish(TaskDeleted(task=task, actor_id=user.id))

    def start_work(self, user: Actor, task_id: str) -> Task:
        with self._unit_of_work("start_work", user, task_id):
            task = self._tasks.get(task_id)
            self._require_edit(user, task, "start work")
            if task.status != TaskStatus.TODO:
                raise InvalidTransition(task.id, task.status.value, TaskStatus.IN_PROGRESS.value)
            updated = self._tasks.set_status(task.id, TaskStatus.IN_PROGRESS)
            self._bus.publish(WorkStarted(task=updated, actor_id=user.id))
            return updated

    def request_review(self, user: Actor, task_id: str) -> Task:
        with self._unit_of_work("request_review", user, task_id):
            task = self._tasks.get(task_id)
            if not permissions.can_view(user, task):
                raise PermissionDenied(user.id, "request review", task.id)
            # Status before edit rights: a finished task is a bad transition for its owner too.
            if task.status != TaskStatus.IN_PROGRESS:
                raise InvalidTransition(task.id, task.status.value, TaskStatus.REVIEW.value)
            self._require_edit(user, task, "request review")
            updated = self._tasks.set_status(task.id, TaskStatus.REVIEW)
            logger.info("Review requested task=%s by=%s", task.id, user.id)
            self._bus.publish(ReviewRequested(task=updated, actor_id=user.id))
            return updated

    def validate_task(self, user: Actor, task_id: str, approved: bool) -> Task:
        """
        The review gate: review -> completed (approved) or review -> in_progress.

        Role is checked before status, so an employee gets PermissionDenied even
        on a task that is not in review.
        """
        with self._unit_of_work("validate_task", user, task_id):
            task = self._tasks.get(task_id)
            if not permissions.is_privileged(user):
                raise PermissionDenied(user.id, "validate", task.id)
            target = TaskStatus.COMPLETED if approved else TaskStatus.IN_PROGRESS
            if not permissions.can_validate(user, task):
                raise InvalidTransition(task.id, task.status.value, target.value)
            updated = self._tasks.set_status(task.id, target)
            outcome = "approved" if approved else "rejected"
            logger.info("Task %s id=%s by=%s", outcome, task.id, user.id)
            self._bus.publish(TaskValidated(task=updated, actor_id=user.id, approved=approved))
            return updated

    def drag_drop_status_change(
        self,
        user: Actor,
        task_id: str,
        target_status: TaskStatus | str,
    ) -> Task:
        """Unguarded board move. Bypasses the review gate unless policy says otherwise."""
        with self._unit_of_work("drag_drop_status_change", user, task_id):
            task = self._tasks.get(task_id)
            self._require_edit(user, task, "move")
            try:
                target = TaskStatus(str(target_status))
            except ValueError:
                raise ValidationError(f"Unknown status: {target_status!r}") from None

            touches_review = TaskStatus.REVIEW in (task.status, target) and target != task.status
            gated = self._force_requires_validate and touches_review
            if gated and not permissions.is_privileged(user):
                raise PermissionDenied(user.id, "move a task through review", task.id)

            if target == task.status:
                return task
            updated = self._tasks.force_status(task.id, target)
            logger.info(
                "Task force-moved id=%s by=%s %s -> %s",
                task.id,
                user.id,
                task.status.value,
                target.value,
            )
            self._bus.publish(
                TaskStatusForced(task=updated, actor_id=user.id, previous_status=task.status.value)
            )
            return updated

    # ---- comments ----

    def _add_comment(
        self,
        user: Actor,
        task: Task,
        content: str,
        parent_id: str | None,
    ) -> Comment:
        name = self._directory.display_name(user.id) if user.id in self._directory else None
        comment = self._comments.add_comment(task.id, user.id, content, parent_id, user_name=name)
        self._bus.publish(CommentAdded(comment=comment, task=task, actor_id=user.id))
        return comment

    def add_comment(
        self,
        user: Actor,
        task_id: str,
        content: str,
        parent_id: str | None = None,
    ) -> Comment:
        with self._unit_of_work("add_comment", user, task_id):
            task = self._tasks.get(task_id)
            if not permissions.can_view(user, task):
                raise PermissionDenied(user.id, "comment", task.id)
            return self._add_comment(user, task, content, parent_id)

    def _own_comment(self, user: Actor, comment_id: str, action: str) -> Comment:
        current = self._comments.get(comment_id)
        task = self._tasks.get(current.task_id)
        if not permissions.can_view(user, task) or current.user_id != user.id:
            raise PermissionDenied(user.id, action, task.id)
        return current

    def edit_comment(self, user: Actor, comment_id: str, content: str) -> Comment:
        with self._unit_of_work("edit_comment", user):
            self._own_comment(user, comment_id, "edit comment")
            return self._comments.edit_comment(comment_id, content)

    def delete_comment(self, user: Actor, comment_id: str) -> None:
        """Authors only. Replies go with the comment."""
        with self._unit_of_work("delete_comment", user):
            self._own_comment(user, comment_id, "delete comment")
            self._comments.delete_comment(comment_id)

    # ---- board queries ----

    def visible_tasks(self, user: Actor) -> list[Task]:
        return [t for t in self._tasks.list() if permissions.can_view(user, t)]

    def review_queue(self, user: Actor) -> list[Task]:
        """Tasks waiting at the review gate that `user` may validate, oldest update first."""
        queue = [t for t in self._tasks.list() if permissions.can_validate(user, t)]
        return sorted(queue, key=lambda t: t.updated_at)
