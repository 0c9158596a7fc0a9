# src/workdesk/core/events.py

"""
In-process event bus for workflow side effects.

Producers (the workflow controller) publish typed events; subscribers
(notification and gamification handlers) are registered explicitly at the
composition root, so the full subscriber list is always inspectable.

Delivery is synchronous and in registration order. A failing handler raises
straight through publish(): the controller's unit of work then rolls back the
task mutation together with whatever earlier handlers did.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from ..comments.models import Comment
from ..tasks.task_models import Task

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TaskCreated:
    task: Task
    actor_id: str


@dataclass(frozen=True, slots=True)
class TaskUpdated:
    task: Task
    actor_id: str
    fields: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class TaskAssigned:
    task: Task
    actor_id: str
    previous_assignee: str | None


@dataclass(frozen=True, slots=True)
class WorkStarted:
    task: Task
    actor_id: str


@dataclass(frozen=True, slots=True)
class ReviewRequested:
    task: Task
    actor_id: str


@dataclass(frozen=True, slots=True)
class TaskValidated:
    task: Task
    actor_id: str
    approved: bool


@dataclass(frozen=True, slots=True)
class TaskStatusForced:
    task: Task
    actor_id: str
    previous_status: str


@dataclass(frozen=True, slots=True)
class TaskDeleted:
    task: Task
    actor_id: str


@dataclass(frozen=True, slots=True)
class CommentAdded:
    comment: Comment
    task: Task
    actor_id: str


E = TypeVar("E")
Handler = Callable[[Any], None]


class EventBus:
    def __init__(self) -> None:
        self._handlers: dict[type, list[tuple[str, Handler]]] = {}

    def subscribe(
        self,
        event_type: type[E],
        handler: Callable[[E], None],
        *,
        name: str | None = None,
    ) -> None:
        label = name or getattr(handler, "__qualname__", repr(handler))
        self._handlers.setdefault(event_type, []).append((label, handler))
        logger.debug("Subscribed %s -> %s", event_type.__name__, label)

    def publish(self, event: object) -> int:
        """Deliver `event` to every handler of its exact type. Returns handler count."""
        handlers = self._handlers.get(type(event), [])
        for label, handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.warning("Event handler %s failed on %s", label, type(event).__name__)
                raise
        return len(handlers)

    def subscribers(self) -> dict[str, list[str]]:
        """Documented subscriber list: event name -> handler names, in delivery order."""
        return {t.__name__: [label for label, _ in hs] for t, hs in self._handlers.items()}
