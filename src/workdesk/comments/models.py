# src/workdesk/comments/models.py

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..core.timeutil import from_iso, to_iso

MENTION_RE = re.compile(r"@(\w[\w.-]*\w|\w)")


def extract_mentions(text: str) -> list[str]:
    """Raw @tokens in order of appearance, without duplicates."""
    out: list[str] = []
    for m in MENTION_RE.finditer(text or ""):
        token = m.group(1)
        if token not in out:
            out.append(token)
    return out


@dataclass(frozen=True, slots=True)
class Comment:
    """
    userName is captured when the comment is written and never refreshed:
    a renamed or removed employee keeps their old name on old comments.
    """

    id: str
    task_id: str
    user_id: str
    user_name: str
    content: str
    created_at: datetime
    updated_at: datetime
    mentions: tuple[str, ...] = ()
    parent_id: str | None = None
    is_edited: bool = False

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "taskId": self.task_id,
            "userId": self.user_id,
            "userName": self.user_name,
            "content": self.content,
            "mentions": list(self.mentions),
            "createdAt": to_iso(self.created_at),
            "updatedAt": to_iso(self.updated_at),
            "isEdited": self.is_edited,
        }
        if self.parent_id:
            out["parentId"] = self.parent_id
        return out

    @staticmethod
    def from_dict(raw: dict[str, Any]) -> Comment:
        created_at = from_iso(raw.get("createdAt"))
        if created_at is None:
            raise ValueError(f"comment {raw.get('id')!r} has no valid createdAt")
        updated_at = from_iso(raw.get("updatedAt")) or created_at
        parent = raw.get("parentId")
        return Comment(
            id=str(raw["id"]),
            task_id=str(raw["taskId"]),
            user_id=str(raw.get("userId") or ""),
            user_name=str(raw.get("userName") or ""),
            content=str(raw.get("content") or ""),
            created_at=created_at,
            updated_at=max(updated_at, created_at),
            mentions=tuple(str(m) for m in raw.get("mentions") or ()),
            parent_id=str(parent) if parent else None,
            is_edited=bool(raw.get("isEdited", False)),
        )


@dataclass(frozen=True, slots=True)
class CommentThread:
    comment: Comment
    replies: tuple[Comment, ...] = field(default=())
