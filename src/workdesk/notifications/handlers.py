# src/workdesk/notifications/handlers.py

"""
Workflow event -> notification records.

Who hears what:
- TaskCreated       -> the assignee if someone else created it, else the creator
- TaskAssigned      -> the new assignee (unless they reassigned it to themselves)
- ReviewRequested   -> every active admin/manager except the requester
                       ("hr" broadcast when the directory has no reviewer)
- TaskValidated     -> the task owner (assignee, or creator when unassigned)
- TaskStatusForced  -> the task owner, when somebody else moved the card
- CommentAdded      -> each resolvable @mention except the author
"""

from __future__ import annotations

import logging

from ..core.events import (
    CommentAdded,
    EventBus,
    ReviewRequested,
    TaskAssigned,
    TaskCreated,
    TaskStatusForced,
    TaskValidated,
)
from ..directory.employees import EmployeeDirectory
from .emitter import NotificationEmitter
from .models import TARGET_HR, NotificationType

logger = logging.getLogger(__name__)

TASKS_URL = "/tasks"


class NotificationHandlers:
    def __init__(self, emitter: NotificationEmitter, directory: EmployeeDirectory) -> None:
        self._emitter = emitter
        self._directory = directory

    def register(self, bus: EventBus) -> None:
        bus.subscribe(TaskCreated, self.on_task_created, name="notify.task_created")
        bus.subscribe(TaskAssigned, self.on_task_assigned, name="notify.task_assigned")
        bus.subscribe(ReviewRequested, self.on_review_requested, name="notify.review_requested")
        bus.subscribe(TaskValidated, self.on_task_validated, name="notify.task_validated")
        bus.subscribe(TaskStatusForced, self.on_status_forced, name="notify.status_forced")
        bus.subscribe(CommentAdded, self.on_comment_added, name="notify.comment_mentions")

    def _name(self, user_id: str) -> str:
        return self._directory.display_name(user_id)

    def on_task_created(self, event: TaskCreated) -> None:
        task = event.task
        meta = {"taskId": task.id, "createdBy": event.actor_id}
        if task.assigned_to and task.assigned_to != event.actor_id:
            self._emitter.notify(
                user_id=task.assigned_to,
                type=NotificationType.TASK_ASSIGNED,
                title="New task assigned",
                message=f'The task "{task.title}" was assigned to you by {self._name(event.actor_id)}',
                action_url=TASKS_URL,
                metadata=meta,
            )
            return
        self._emitter.notify(
            user_id=event.actor_id,
            type=NotificationType.TASK_CREATED,
            title="New task created",
            message=f'You created the task "{task.title}"',
            action_url=TASKS_URL,
            metadata=meta,
        )

    def on_task_assigned(self, event: TaskAssigned) -> None:
        task = event.task
        if not task.assigned_to or task.assigned_to == event.actor_id:
            return
        self._emitter.notify(
            user_id=task.assigned_to,
            type=NotificationType.TASK_ASSIGNED,
            title="New task assigned",
            message=f'The task "{task.title}" was assigned to you by {self._name(event.actor_id)}',
            action_url=TASKS_URL,
            metadata={"taskId": task.id, "previousAssignee": event.previous_assignee},
        )

    def on_review_requested(self, event: ReviewRequested) -> None:
        task = event.task
        message = f'{self._name(event.actor_id)} submitted "{task.title}" for review'
        reviewers = [e.id for e in self._directory.reviewers() if e.id != event.actor_id]
        targets = reviewers or [TARGET_HR]
        for target in targets:
            self._emitter.notify(
                user_id=target,
                type=NotificationType.TASK_REVIEW,
                title="Task awaiting review",
                message=message,
                action_url=TASKS_URL,
                metadata={"taskId": task.id, "requestedBy": event.actor_id},
            )

    def on_task_validated(self, event: TaskValidated) -> None:
        task = event.task
        if event.approved:
            title = "Task approved"
            message = f'"{task.title}" was approved by {self._name(event.actor_id)}'
        else:
            title = "Task sent back"
            message = f'"{task.title}" was sent back to in progress by {self._name(event.actor_id)}'
        self._emitter.notify(
            user_id=task.owner_id,
            type=NotificationType.TASK_VALIDATED,
            title=title,
            message=message,
            action_url=TASKS_URL,
            metadata={"taskId": task.id, "approved": event.approved, "validatedBy": event.actor_id},
        )

    def on_status_forced(self, event: TaskStatusForced) -> None:
        task = event.task
        if task.owner_id == event.actor_id:
            return
        self._emitter.notify(
            user_id=task.owner_id,
            type=NotificationType.INFO,
            title="Task moved",
            message=(
                f'{self._name(event.actor_id)} moved "{task.title}" '
                f"from {event.previous_status} to {task.status.value}"
            ),
            action_url=TASKS_URL,
            metadata={"taskId": task.id, "from": event.previous_status, "to": task.status.value},
        )

    def on_comment_added(self, event: CommentAdded) -> None:
        comment = event.comment
        notified: set[str] = set()
        for token in comment.mentions:
            e = self._directory.find_by_handle(token)
            if e is None:
                logger.debug("Unresolved mention @%s in comment %s", token, comment.id)
                continue
            if e.id == comment.user_id or e.id in notified:
                continue
            notified.add(e.id)
            self._emitter.notify(
                user_id=e.id,
                type=NotificationType.MENTION,
                title="You were mentioned",
                message=f'{comment.user_name} mentioned you on "{event.task.title}"',
                action_url=TASKS_URL,
                metadata={
                    "taskId": event.task.id,
                    "commentId": comment.id,
                    "mentionedBy": comment.user_id,
                },
            )
