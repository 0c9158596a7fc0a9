# src/workdesk/core/timeutil.py

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, date, datetime

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


def to_iso(ts: datetime | None) -> str | None:
    if ts is None:
        return None
    return ts.isoformat()


def from_iso(raw: object) -> datetime | None:
    """Parse an ISO timestamp; naive values are taken as UTC. Bad input -> None."""
    if not isinstance(raw, str) or not raw.strip():
        return None
    try:
        ts = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return ts


def parse_date(raw: object) -> date | None:
    """Accept a date, a datetime, or an ISO string ("2024-03-20" or full timestamp)."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if isinstance(raw, str):
        try:
            return date.fromisoformat(raw.strip()[:10])
        except ValueError:
            return None
    return None
