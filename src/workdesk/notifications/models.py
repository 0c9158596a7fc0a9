# src/workdesk/notifications/models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from ..core.timeutil import from_iso, to_iso


class NotificationType(StrEnum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    TASK_CREATED = "task_created"
    TASK_ASSIGNED = "task_assigned"
    TASK_REVIEW = "task_review"
    TASK_VALIDATED = "task_validated"
    MENTION = "mention"

    @classmethod
    def from_raw(cls, raw: object) -> NotificationType:
        try:
            return cls(str(raw))
        except ValueError:
            return cls.INFO


# Broadcast targets: not a user id but a class of readers.
TARGET_ALL = "all"
TARGET_HR = "hr"
TARGET_EMPLOYEE = "employee"
BROADCAST_TARGETS = frozenset({TARGET_ALL, TARGET_HR, TARGET_EMPLOYEE})


@dataclass(frozen=True, slots=True)
class Notification:
    """
    Persisted with the camelCase keys of the console's "notifications" snapshot
    (userId, createdAt, actionUrl).
    """

    id: str
    type: NotificationType
    title: str
    message: str
    user_id: str
    created_at: datetime
    read: bool = False
    action_url: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_broadcast(self) -> bool:
        return self.user_id in BROADCAST_TARGETS

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "title": self.title,
            "message": self.message,
            "userId": self.user_id,
            "read": self.read,
            "createdAt": to_iso(self.created_at),
        }
        if self.action_url:
            out["actionUrl"] = self.action_url
        if self.metadata:
            out["metadata"] = dict(self.metadata)
        return out

    @staticmethod
    def from_dict(raw: dict[str, Any]) -> Notification:
        created_at = from_iso(raw.get("createdAt"))
        if created_at is None:
            raise ValueError(f"notification {raw.get('id')!r} has no valid createdAt")
        meta = raw.get("metadata")
        return Notification(
            id=str(raw["id"]),
            type=NotificationType.from_raw(raw.get("type")),
            title=str(raw.get("title") or ""),
            message=str(raw.get("message") or ""),
            user_id=str(raw.get("userId") or TARGET_ALL),
            created_at=created_at,
            read=bool(raw.get("read", False)),
            action_url=raw.get("actionUrl") or None,
            metadata=dict(meta) if isinstance(meta, dict) else {},
        )
