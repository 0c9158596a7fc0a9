# src/workdesk/bootstrap.py

"""
Composition root.

- loads settings once (or takes injected ones),
- ensures the local (gitignored) data directory exists,
- constructs every store explicitly and calls init() to load its snapshot,
- registers the default event subscribers on one EventBus,
- wires everything into AppState.
"""

from __future__ import annotations

import logging
from pathlib import Path

from .comments.store import CommentStore
from .config import get_settings
from .core.events import EventBus
from .core.ports import SnapshotStorage
from .core.state import AppState
from .core.timeutil import Clock, utc_now
from .directory.employees import EmployeeDirectory
from .gamification.handlers import ScoreHandlers
from .gamification.scorer import GamificationScorer
from .logging_setup import level_from_name, setup_logging
from .notifications.emitter import NotificationEmitter
from .notifications.handlers import NotificationHandlers
from .storage.snapshot import JsonSnapshotStorage
from .tasks.task_store import TaskStore
from .tasks.workflow import WorkflowController

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    Path(settings.data_dir).mkdir(parents=True, exist_ok=True)


def init_logging(settings=None) -> Path:
    """Console level from settings.log_level; full DEBUG log file under data_dir."""
    if settings is None:
        settings = get_settings()
    console_level = level_from_name(getattr(settings, "log_level", "INFO"))
    log_dir = getattr(settings, "data_dir", ".local/workdesk")
    return setup_logging(log_dir=log_dir, console_level=console_level)


def wire_default_subscribers(
    bus: EventBus,
    *,
    notifications: NotificationEmitter,
    scorer: GamificationScorer,
    directory: EmployeeDirectory,
) -> None:
    """
    The complete default subscriber list, in delivery order:
    notification handlers first, then score handlers.
    """
    NotificationHandlers(notifications, directory).register(bus)
    ScoreHandlers(scorer).register(bus)
    logger.debug("Default subscribers: %s", bus.subscribers())


def create_initial_state(
    *,
    settings=None,
    storage: SnapshotStorage | None = None,
    clock: Clock = utc_now,
) -> AppState:
    """
    Create AppState from the provided settings.

    If settings is None, falls back to get_settings(). If storage is None, JSON
    snapshots are kept under settings.data_dir.
    """
    if settings is None:
        settings = get_settings()

    if storage is None:
        _ensure_local_dirs(settings)
        storage = JsonSnapshotStorage(settings.data_dir)

    directory = EmployeeDirectory.from_storage(storage)

    tasks = TaskStore(storage, clock=clock)
    notifications = NotificationEmitter(
        storage,
        clock=clock,
        max_items=int(getattr(settings, "max_notifications", 0)),
    )
    scorer = GamificationScorer.from_settings(storage, settings, clock=clock)
    comments = CommentStore(storage, directory=directory, clock=clock)
    for store in (tasks, notifications, scorer, comments):
        store.init()

    bus = EventBus()
    wire_default_subscribers(bus, notifications=notifications, scorer=scorer, directory=directory)

    workflow = WorkflowController(
        tasks=tasks,
        comments=comments,
        directory=directory,
        bus=bus,
        storage=storage,
        side_stores=(notifications, scorer),
        force_status_requires_validate=bool(
            getattr(settings, "force_status_requires_validate", False)
        ),
    )

    logger.info(
        "%s ready employees=%d tasks=%d",
        getattr(settings, "app_name", "workdesk"),
        len(directory),
        tasks.count(),
    )
    return AppState(
        settings=settings,
        storage=storage,
        directory=directory,
        tasks=tasks,
        notifications=notifications,
        scorer=scorer,
        comments=comments,
        bus=bus,
        workflow=workflow,
    )
