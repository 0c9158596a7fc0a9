# tests/fakes.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta


class FakeClock:
    """
    Deterministic clock for stores and the scorer.

    - every call returns the current instant, then steps forward by `step`
    - set() can move time backwards to simulate a wall-clock jump
    """

    def __init__(
        self,
        start: datetime = datetime(2024, 3, 1, 9, 0, tzinfo=UTC),
        step: timedelta = timedelta(seconds=1),
    ) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = current + self.step
        return current

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)

    def set(self, when: datetime) -> None:
        self.now = when


@dataclass(frozen=True, slots=True)
class FakeUser:
    """Bare Actor: an id and a role, no directory record behind it."""

    id: str
    role: str


@dataclass(slots=True)
class ExplodingHandler:
    """Event subscriber that records what it saw, then fails."""

    seen: list[object] = field(default_factory=list)

    def __call__(self, event: object) -> None:
        self.seen.append(event)
        raise RuntimeError("subscriber failed")
