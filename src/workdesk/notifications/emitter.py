# src/workdesk/notifications/emitter.py

"""
Notification emitter.

Append-only log of notification records, persisted under "notifications".
Delivery is observe-on-next-read: nothing is pushed, readers call list_for().

Targets:
- a user id           -> that user only
- "all"               -> everybody
- "hr"                -> hr, managers and admins
- "employee"          -> plain employees
"""

from __future__ import annotations

import dataclasses
import logging
import uuid
from typing import Any

from ..core.ports import Actor, SnapshotStorage
from ..core.timeutil import Clock, utc_now
from ..directory.employees import Role
from ..errors import NotFoundError, ValidationError
from ..storage.snapshot import KEY_NOTIFICATIONS
from .models import TARGET_ALL, TARGET_EMPLOYEE, TARGET_HR, Notification, NotificationType

logger = logging.getLogger(__name__)

_HR_READERS = frozenset({Role.HR, Role.MANAGER, Role.ADMIN})


def is_addressed_to(notification: Notification, user: Actor) -> bool:
    target = notification.user_id
    if target == TARGET_ALL:
        return True
    role = Role.from_raw(user.role)
    if target == TARGET_HR:
        return role in _HR_READERS
    if target == TARGET_EMPLOYEE:
        return role == Role.EMPLOYEE
    return target == user.id


class NotificationEmitter:
    def __init__(
        self,
        storage: SnapshotStorage,
        *,
        clock: Clock = utc_now,
        max_items: int = 0,
    ) -> None:
        self._storage = storage
        self._clock = clock
        self._max_items = max(0, int(max_items))
        # Oldest first; readers get newest first.
        self._items: list[Notification] = []

    def init(self) -> None:
        self._items = []
        for raw in self._storage.load(KEY_NOTIFICATIONS):
            try:
                self._items.append(Notification.from_dict(raw))
            except (KeyError, ValueError):
                logger.warning("Skipping malformed notification id=%r", raw.get("id"))
        # Snapshot is newest first; the sort is stable so ties keep emission order.
        self._items.reverse()
        self._items.sort(key=lambda n: n.created_at)
        logger.info("NotificationEmitter ready total=%d", len(self._items))

    def checkpoint(self) -> list[Notification]:
        return list(self._items)

    def restore(self, saved: list[Notification]) -> None:
        self._items = list(saved)

    def _persist(self) -> None:
        # Snapshot keeps the console's order: newest first.
        self._storage.save(KEY_NOTIFICATIONS, [n.to_dict() for n in reversed(self._items)])

    def _index(self, notification_id: str) -> int:
        for i, n in enumerate(self._items):
            if n.id == notification_id:
                return i
        raise NotFoundError("notification", notification_id)

    # ---- writes ----

    def emit(self, notification: Notification) -> Notification:
        if not notification.user_id:
            raise ValidationError("notification target (userId) is required")
        self._items.append(notification)
        if self._max_items and len(self._items) > self._max_items:
            dropped = len(self._items) - self._max_items
            self._items = self._items[dropped:]
            logger.debug("Notification log trimmed dropped=%d", dropped)
        self._persist()
        logger.info(
            "Notification emitted type=%s to=%s title=%r",
            notification.type.value,
            notification.user_id,
            notification.title,
        )
        return notification

    def notify(
        self,
        *,
        user_id: str,
        title: str,
        message: str,
        type: NotificationType | str = NotificationType.INFO,
        action_url: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Notification:
        """Build a fresh unread notification (id + createdAt assigned here) and emit it."""
        return self.emit(
            Notification(
                id=uuid.uuid4().hex,
                type=NotificationType.from_raw(type),
                title=title,
                message=message,
                user_id=str(user_id),
                created_at=self._clock(),
                read=False,
                action_url=action_url,
                metadata=dict(metadata or {}),
            )
        )

    def mark_read(self, notification_id: str) -> None:
        i = self._index(notification_id)
        if self._items[i].read:
            return
        self._items[i] = dataclasses.replace(self._items[i], read=True)
        self._persist()

    def mark_all_read(self, user: Actor) -> int:
        """Mark everything visible to `user` as read. Returns how many changed."""
        changed = 0
        for i, n in enumerate(self._items):
            if not n.read and is_addressed_to(n, user):
                self._items[i] = dataclasses.replace(n, read=True)
                changed += 1
        if changed:
            self._persist()
        return changed

    def delete(self, notification_id: str) -> None:
        i = self._index(notification_id)
        del self._items[i]
        self._persist()

    def clear_all(self) -> None:
        self._items = []
        self._persist()
        logger.info("Notification log cleared")

    # ---- reads ----

    def all(self) -> list[Notification]:
        return list(reversed(self._items))

    def list_for(self, user: Actor) -> list[Notification]:
        """Notifications visible to `user`, newest first."""
        return [n for n in reversed(self._items) if is_addressed_to(n, user)]

    def unread_count(self, user: Actor) -> int:
        return sum(1 for n in self._items if not n.read and is_addressed_to(n, user))
