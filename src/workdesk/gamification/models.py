# src/workdesk/gamification/models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from ..core.timeutil import from_iso, to_iso


class ScoreEvent(StrEnum):
    TASK_CREATED = "task_created"
    TASK_COMPLETED = "task_completed"
    COMMENT_CREATED = "comment_created"


class Counter(StrEnum):
    TASKS_CREATED = "tasks_created"
    TASKS_COMPLETED = "tasks_completed"
    COMMENTS_MADE = "comments_made"


EVENT_COUNTERS: dict[ScoreEvent, Counter] = {
    ScoreEvent.TASK_CREATED: Counter.TASKS_CREATED,
    ScoreEvent.TASK_COMPLETED: Counter.TASKS_COMPLETED,
    ScoreEvent.COMMENT_CREATED: Counter.COMMENTS_MADE,
}


@dataclass(frozen=True, slots=True)
class Badge:
    id: str
    name: str
    description: str
    counter: Counter
    target: int
    points: int


BADGES: tuple[Badge, ...] = (
    Badge("first-step", "First Step", "Complete your first task", Counter.TASKS_COMPLETED, 1, 10),
    Badge("productive", "Productive", "Complete 10 tasks", Counter.TASKS_COMPLETED, 10, 50),
    Badge("super-productive", "Super Productive", "Complete 50 tasks", Counter.TASKS_COMPLETED, 50, 200),
    Badge("master", "Master", "Complete 100 tasks", Counter.TASKS_COMPLETED, 100, 500),
    Badge("legend", "Legend", "Complete 500 tasks", Counter.TASKS_COMPLETED, 500, 1000),
    Badge("chatty", "Chatty", "Post your first comment", Counter.COMMENTS_MADE, 1, 15),
    Badge("collaborator", "Collaborator", "Post 25 comments", Counter.COMMENTS_MADE, 25, 75),
    Badge("planner", "Planner", "Create your first task", Counter.TASKS_CREATED, 1, 5),
    Badge("organizer", "Organizer", "Create 20 tasks", Counter.TASKS_CREATED, 20, 40),
)

BADGES_BY_ID: dict[str, Badge] = {b.id: b for b in BADGES}


@dataclass(frozen=True, slots=True)
class GamificationStats:
    user_id: str
    total_points: int = 0
    level: int = 1
    badges: frozenset[str] = field(default_factory=frozenset)
    tasks_created: int = 0
    tasks_completed: int = 0
    comments_made: int = 0
    last_activity: datetime | None = None

    def counter(self, which: Counter) -> int:
        return int(getattr(self, which.value))

    def to_dict(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "totalPoints": self.total_points,
            "level": self.level,
            "badges": sorted(self.badges),
            "tasksCreated": self.tasks_created,
            "tasksCompleted": self.tasks_completed,
            "commentsMade": self.comments_made,
            "lastActivity": to_iso(self.last_activity),
        }

    @staticmethod
    def from_dict(raw: dict[str, Any]) -> GamificationStats:
        return GamificationStats(
            user_id=str(raw["userId"]),
            total_points=int(raw.get("totalPoints") or 0),
            level=int(raw.get("level") or 1),
            badges=frozenset(str(b) for b in raw.get("badges") or ()),
            tasks_created=int(raw.get("tasksCreated") or 0),
            tasks_completed=int(raw.get("tasksCompleted") or 0),
            comments_made=int(raw.get("commentsMade") or 0),
            last_activity=from_iso(raw.get("lastActivity")),
        )


@dataclass(frozen=True, slots=True)
class LeaderboardEntry:
    rank: int
    user_id: str
    total_points: int
    level: int
    badges_count: int
