# src/workdesk/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the workflow core.

The controller depends on Protocols instead of concrete stores.
This keeps persistence swappable and makes testing easier.
"""

import contextlib
from typing import Any, Protocol

Record = dict[str, Any]
# One JSON-serializable object inside a snapshot array.


class SnapshotStorage(Protocol):
    """Flat keyed snapshot persistence: each key holds a full JSON array."""

    def load(self, key: str) -> list[Record]: ...
    def save(self, key: str, records: list[Record]) -> None: ...
    def deferred(self) -> contextlib.AbstractContextManager[None]: ...


class Actor(Protocol):
    """The authenticated-user context injected into every controller call."""

    @property
    def id(self) -> str: ...

    @property
    def role(self) -> str: ...


class Checkpointable(Protocol):
    """A store whose in-memory state can be captured and put back (unit of work)."""

    def checkpoint(self) -> Any: ...
    def restore(self, saved: Any) -> None: ...


class TaskRepo(Checkpointable, Protocol):
    def init(self) -> None: ...
    def create(self, data: dict[str, Any]) -> Any: ...
    def get(self, task_id: str) -> Any: ...
    def update(
            self,
            task_id: str,
            patch: dict[str, Any],
            *,
            expected_updated_at: Any | None = None,
    ) -> Any: ...
    def delete(self, task_id: str) -> None: ...
    def set_status(self, task_id: str, new_status: Any) -> Any: ...
    def force_status(self, task_id: str, new_status: Any) -> Any: ...
    def list(self) -> tuple[Any, ...]: ...


class CommentRepo(Checkpointable, Protocol):
    def init(self) -> None: ...
    def add_comment(
            self,
            task_id: str,
            user_id: str,
            content: str,
            parent_id: str | None = None,
            *,
            user_name: str | None = None,
    ) -> Any: ...
    def get(self, comment_id: str) -> Any: ...
    def edit_comment(self, comment_id: str, content: str) -> Any: ...
    def delete_comment(self, comment_id: str) -> None: ...
    def delete_for_task(self, task_id: str) -> int: ...
    def threads_for(self, task_id: str) -> list[Any]: ...
