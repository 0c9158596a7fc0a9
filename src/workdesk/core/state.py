# src/workdesk/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..comments.store import CommentStore
from ..directory.employees import EmployeeDirectory
from ..gamification.scorer import GamificationScorer
from ..notifications.emitter import NotificationEmitter
from ..tasks.task_store import TaskStore
from ..tasks.workflow import WorkflowController
from .events import EventBus
from .ports import SnapshotStorage


@dataclass
class AppState:
    # Settings travel with the state so handlers and queries can read them.
    settings: object

    storage: SnapshotStorage
    directory: EmployeeDirectory
    tasks: TaskStore
    notifications: NotificationEmitter
    scorer: GamificationScorer
    comments: CommentStore
    bus: EventBus
    workflow: WorkflowController
