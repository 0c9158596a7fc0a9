# src/workdesk/gamification/scorer.py

"""
Gamification scorer.

Per-user cumulative stats driven by workflow events. Increment-only: nothing
here is recomputed when a task is edited later.

Policy (fixed configuration, see Settings):
- task_created    -> +points_task_created,   tasksCreated += 1
- task_completed  -> +points_task_completed, tasksCompleted += 1
- comment_created -> +points_comment_created, commentsMade += 1
- level = totalPoints // level_threshold + 1
- badges unlock once when their counter reaches the target; their bonus points
  are added only when badge_bonus is on
"""

from __future__ import annotations

import dataclasses
import logging
from datetime import UTC, datetime
from typing import Any

from ..core.ports import SnapshotStorage
from ..core.timeutil import Clock, utc_now
from ..errors import ValidationError
from ..storage.snapshot import KEY_GAMIFICATION
from .models import BADGES, EVENT_COUNTERS, GamificationStats, LeaderboardEntry, ScoreEvent

logger = logging.getLogger(__name__)

_NEVER = datetime.max.replace(tzinfo=UTC)


class GamificationScorer:
    def __init__(
        self,
        storage: SnapshotStorage,
        *,
        points: dict[ScoreEvent, int] | None = None,
        level_threshold: int = 100,
        badge_bonus: bool = False,
        clock: Clock = utc_now,
    ) -> None:
        self._storage = storage
        self._clock = clock
        self._points: dict[ScoreEvent, int] = {
            ScoreEvent.TASK_CREATED: 10,
            ScoreEvent.TASK_COMPLETED: 25,
            ScoreEvent.COMMENT_CREATED: 5,
        }
        if points:
            self._points.update(points)
        self._level_threshold = max(1, int(level_threshold))
        self._badge_bonus = badge_bonus
        self._stats: dict[str, GamificationStats] = {}

    @classmethod
    def from_settings(
        cls,
        storage: SnapshotStorage,
        settings: Any,
        *,
        clock: Clock = utc_now,
    ) -> GamificationScorer:
        return cls(
            storage,
            points={
                ScoreEvent.TASK_CREATED: int(settings.points_task_created),
                ScoreEvent.TASK_COMPLETED: int(settings.points_task_completed),
                ScoreEvent.COMMENT_CREATED: int(settings.points_comment_created),
            },
            level_threshold=int(settings.level_threshold),
            badge_bonus=bool(getattr(settings, "badge_bonus", False)),
            clock=clock,
        )

    def init(self) -> None:
        self._stats = {}
        for raw in self._storage.load(KEY_GAMIFICATION):
            try:
                s = GamificationStats.from_dict(raw)
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed gamification record: %r", raw)
                continue
            self._stats[s.user_id] = s
        logger.info("GamificationScorer ready users=%d", len(self._stats))

    def checkpoint(self) -> dict[str, GamificationStats]:
        return dict(self._stats)

    def restore(self, saved: dict[str, GamificationStats]) -> None:
        self._stats = dict(saved)

    def _persist(self) -> None:
        self._storage.save(KEY_GAMIFICATION, [s.to_dict() for s in self._stats.values()])

    def points_for(self, event_type: ScoreEvent | str) -> int:
        return self._points[ScoreEvent(event_type)]

    def level_for(self, total_points: int) -> int:
        return max(0, total_points) // self._level_threshold + 1

    def record_event(
        self,
        user_id: str,
        event_type: ScoreEvent | str,
        payload: dict[str, Any] | None = None,
    ) -> GamificationStats:
        """Apply one workflow event to the user's stats and return the updated stats."""
        if not user_id:
            raise ValidationError("user_id is required")
        try:
            event = ScoreEvent(event_type)
        except ValueError:
            raise ValidationError(f"Unknown gamification event: {event_type!r}") from None

        current = self._stats.get(user_id) or GamificationStats(user_id=user_id)
        counter = EVENT_COUNTERS[event]
        total = current.total_points + self._points[event]
        updated = dataclasses.replace(
            current,
            **{counter.value: current.counter(counter) + 1},
            last_activity=self._clock(),
        )

        unlocked = [
            b
            for b in BADGES
            if b.id not in updated.badges and updated.counter(b.counter) >= b.target
        ]
        if unlocked:
            if self._badge_bonus:
                total += sum(b.points for b in unlocked)
            updated = dataclasses.replace(updated, badges=updated.badges | {b.id for b in unlocked})
            logger.info("Badges unlocked user=%s badges=%s", user_id, [b.id for b in unlocked])

        updated = dataclasses.replace(updated, total_points=total, level=self.level_for(total))
        self._stats[user_id] = updated
        self._persist()
        logger.debug(
            "Score event user=%s event=%s points=%d total=%d payload=%s",
            user_id,
            event.value,
            self._points[event],
            total,
            payload or {},
        )
        return updated

    # ---- reads ----

    def stats_for(self, user_id: str) -> GamificationStats:
        return self._stats.get(user_id) or GamificationStats(user_id=user_id)

    def leaderboard(self, limit: int | None = None) -> list[LeaderboardEntry]:
        """Sorted by totalPoints desc; ties go to whoever was active first."""
        ordered = sorted(
            self._stats.values(),
            key=lambda s: (-s.total_points, s.last_activity or _NEVER, s.user_id),
        )
        if limit is not None:
            ordered = ordered[: max(0, limit)]
        return [
            LeaderboardEntry(
                rank=i,
                user_id=s.user_id,
                total_points=s.total_points,
                level=s.level,
                badges_count=len(s.badges),
            )
            for i, s in enumerate(ordered, start=1)
        ]

    def rank(self, user_id: str) -> int | None:
        for entry in self.leaderboard():
            if entry.user_id == user_id:
                return entry.rank
        return None

    def global_stats(self) -> dict[str, Any]:
        users = list(self._stats.values())
        n = len(users)
        return {
            "totalUsers": n,
            "totalPoints": sum(s.total_points for s in users),
            "totalBadges": sum(len(s.badges) for s in users),
            "averageLevel": round(sum(s.level for s in users) / n, 1) if n else 0.0,
        }
