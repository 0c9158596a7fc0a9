# src/workdesk/comments/store.py

"""
Comment thread store.

Append-mostly comments keyed by task id, persisted under "comments".

Threads are one level deep: a reply to a reply is stored under the original
top-level comment. Mentions are kept as the raw @tokens; turning them into
display names is a read-time concern (resolve_mentions).
"""

from __future__ import annotations

import dataclasses
import logging
import uuid
from typing import Any

from ..core.ports import SnapshotStorage
from ..core.timeutil import Clock, utc_now
from ..directory.employees import Employee, EmployeeDirectory
from ..errors import NotFoundError, ValidationError
from ..storage.snapshot import KEY_COMMENTS
from .models import Comment, CommentThread, extract_mentions

logger = logging.getLogger(__name__)

MAX_COMMENT_LEN = 5000


class CommentStore:
    def __init__(
        self,
        storage: SnapshotStorage,
        *,
        directory: EmployeeDirectory | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._storage = storage
        self._directory = directory
        self._clock = clock
        self._comments: dict[str, Comment] = {}

    def init(self) -> None:
        self._comments = {}
        for raw in self._storage.load(KEY_COMMENTS):
            try:
                c = Comment.from_dict(raw)
            except (KeyError, ValueError):
                logger.warning("Skipping malformed comment id=%r", raw.get("id"))
                continue
            self._comments[c.id] = c
        logger.info("CommentStore ready total=%d", len(self._comments))

    def checkpoint(self) -> dict[str, Comment]:
        return dict(self._comments)

    def restore(self, saved: dict[str, Comment]) -> None:
        self._comments = dict(saved)

    def _persist(self) -> None:
        self._storage.save(KEY_COMMENTS, [c.to_dict() for c in self._comments.values()])

    @staticmethod
    def _clean_content(raw: object) -> str:
        content = str(raw or "").strip()
        if not content:
            raise ValidationError("Comment cannot be empty")
        if len(content) > MAX_COMMENT_LEN:
            raise ValidationError(f"Comment cannot exceed {MAX_COMMENT_LEN} characters")
        return content

    def _name_for(self, user_id: str) -> str:
        if self._directory is None:
            return user_id
        e = self._directory.get(user_id)
        return e.full_name if e else "Unknown user"

    # ---- writes ----

    def get(self, comment_id: str) -> Comment:
        c = self._comments.get(comment_id)
        if c is None:
            raise NotFoundError("comment", comment_id)
        return c

    def add_comment(
        self,
        task_id: str,
        user_id: str,
        content: str,
        parent_id: str | None = None,
        *,
        user_name: str | None = None,
    ) -> Comment:
        if not task_id:
            raise ValidationError("task_id is required")
        if not user_id:
            raise ValidationError("user_id is required")
        text = self._clean_content(content)

        root_id: str | None = None
        if parent_id:
            parent = self.get(parent_id)
            if parent.task_id != task_id:
                raise ValidationError("reply must belong to the same task as its parent")
            # Single-level threads: hang replies-to-replies off the top-level comment.
            root_id = parent.parent_id or parent.id

        now = self._clock()
        comment = Comment(
            id=uuid.uuid4().hex,
            task_id=str(task_id),
            user_id=str(user_id),
            user_name=user_name or self._name_for(str(user_id)),
            content=text,
            created_at=now,
            updated_at=now,
            mentions=tuple(extract_mentions(text)),
            parent_id=root_id,
        )
        self._comments[comment.id] = comment
        self._persist()
        logger.debug("Comment added id=%s task=%s parent=%s", comment.id, task_id, root_id)
        return comment

    def edit_comment(self, comment_id: str, content: str) -> Comment:
        current = self.get(comment_id)
        text = self._clean_content(content)
        now = self._clock()
        updated = dataclasses.replace(
            current,
            content=text,
            mentions=tuple(extract_mentions(text)),
            updated_at=max(now, current.updated_at),
            is_edited=True,
        )
        self._comments[comment_id] = updated
        self._persist()
        return updated

    def delete_comment(self, comment_id: str) -> None:
        """Delete a comment together with its replies."""
        self.get(comment_id)
        doomed = [
            cid
            for cid, c in self._comments.items()
            if cid == comment_id or c.parent_id == comment_id
        ]
        for cid in doomed:
            del self._comments[cid]
        self._persist()
        logger.debug("Comment deleted id=%s removed=%d", comment_id, len(doomed))

    def delete_for_task(self, task_id: str) -> int:
        doomed = [cid for cid, c in self._comments.items() if c.task_id == task_id]
        if not doomed:
            return 0
        for cid in doomed:
            del self._comments[cid]
        self._persist()
        return len(doomed)

    # ---- reads ----

    def comments_for_task(self, task_id: str) -> list[Comment]:
        return sorted(
            (c for c in self._comments.values() if c.task_id == task_id),
            key=lambda c: c.created_at,
        )

    def threads_for(self, task_id: str) -> list[CommentThread]:
        """Top-level comments oldest first, each with its direct replies oldest first."""
        comments = self.comments_for_task(task_id)
        replies: dict[str, list[Comment]] = {}
        for c in comments:
            if c.parent_id:
                replies.setdefault(c.parent_id, []).append(c)
        return [
            CommentThread(comment=c, replies=tuple(replies.get(c.id, ())))
            for c in comments
            if not c.parent_id
        ]

    def mentions_of(self, handles: list[str] | str) -> list[Comment]:
        """Comments whose raw mentions include any of the given handles (case-insensitive)."""
        wanted = {h.lower() for h in ([handles] if isinstance(handles, str) else handles)}
        return [c for c in self._comments.values() if any(m.lower() in wanted for m in c.mentions)]

    def search(self, query: str) -> list[Comment]:
        q = (query or "").strip().lower()
        if not q:
            return []
        return [
            c
            for c in self._comments.values()
            if q in c.content.lower() or q in c.user_name.lower()
        ]

    def recent(self, limit: int = 10) -> list[Comment]:
        ordered = sorted(self._comments.values(), key=lambda c: c.created_at, reverse=True)
        return ordered[: max(0, limit)]

    def stats(self) -> dict[str, Any]:
        items = list(self._comments.values())
        return {
            "totalComments": len(items),
            "totalReplies": sum(1 for c in items if c.parent_id),
            "totalMentions": sum(len(c.mentions) for c in items),
            "activeUsers": len({c.user_id for c in items}),
        }


def resolve_mentions(comment: Comment, directory: EmployeeDirectory) -> dict[str, Employee | None]:
    """Map each raw @token of a comment to the employee it names right now (or None)."""
    return {token: directory.find_by_handle(token) for token in comment.mentions}
