# src/workdesk/gamification/handlers.py

from __future__ import annotations

from ..core.events import CommentAdded, EventBus, TaskCreated, TaskValidated
from .models import ScoreEvent
from .scorer import GamificationScorer


class ScoreHandlers:
    """
    Workflow event -> score event.

    Only an approved review counts as a completion. Forcing a card into
    "completed" by drag and drop awards nothing, so skipping the review gate
    never pays.
    """

    def __init__(self, scorer: GamificationScorer) -> None:
        self._scorer = scorer

    def register(self, bus: EventBus) -> None:
        bus.subscribe(TaskCreated, self.on_task_created, name="score.task_created")
        bus.subscribe(TaskValidated, self.on_task_validated, name="score.task_completed")
        bus.subscribe(CommentAdded, self.on_comment_added, name="score.comment_created")

    def on_task_created(self, event: TaskCreated) -> None:
        payload = {"taskId": event.task.id}
        self._scorer.record_event(event.actor_id, ScoreEvent.TASK_CREATED, payload)

    def on_task_validated(self, event: TaskValidated) -> None:
        if not event.approved:
            return
        payload = {"taskId": event.task.id}
        self._scorer.record_event(event.task.owner_id, ScoreEvent.TASK_COMPLETED, payload)

    def on_comment_added(self, event: CommentAdded) -> None:
        self._scorer.record_event(
            event.comment.user_id,
            ScoreEvent.COMMENT_CREATED,
            {"taskId": event.task.id, "commentId": event.comment.id},
        )
