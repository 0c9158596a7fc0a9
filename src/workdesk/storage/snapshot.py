# src/workdesk/storage/snapshot.py

"""
Flat keyed snapshot storage.

Layout: one JSON array per logical key ("tasks", "employees", "notifications",
"gamification-stats", "comments"), fully overwritten on every write.
No incremental diff format.

Writes can be deferred: inside `deferred()` every save is buffered and only
flushed when the outermost block exits cleanly, all keys together. An exception
drops the writes buffered by the failing block.
"""

from __future__ import annotations

import contextlib
import copy
import json
import logging
import os
from collections.abc import Iterator
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

Record = dict[str, Any]

KEY_TASKS = "tasks"
KEY_EMPLOYEES = "employees"
KEY_NOTIFICATIONS = "notifications"
KEY_GAMIFICATION = "gamification-stats"
KEY_COMMENTS = "comments"

SNAPSHOT_KEYS = (KEY_TASKS, KEY_EMPLOYEES, KEY_NOTIFICATIONS, KEY_GAMIFICATION, KEY_COMMENTS)


class _DeferredWrites:
    """Stack of pending write buffers shared by both storage backends."""

    def __init__(self) -> None:
        self._stack: list[dict[str, list[Record]]] = []

    @property
    def active(self) -> bool:
        return bool(self._stack)

    def buffer(self, key: str, records: list[Record]) -> None:
        self._stack[-1][key] = records

    def pending(self, key: str) -> list[Record] | None:
        for frame in reversed(self._stack):
            if key in frame:
                return frame[key]
        return None

    @contextlib.contextmanager
    def frame(self, flush) -> Iterator[None]:
        self._stack.append({})
        try:
            yield
        except BaseException:
            dropped = self._stack.pop()
            if dropped:
                logger.debug("Dropped deferred snapshot writes keys=%s", sorted(dropped))
            raise
        top = self._stack.pop()
        if self._stack:
            self._stack[-1].update(top)
            return
        if top:
            flush(top)


class JsonSnapshotStorage:
    """
    File-backed snapshot storage: `<data_dir>/<key>.json`.

    Each write goes to a tmp file first and is moved into place with os.replace,
    so a crash never leaves a half-written snapshot behind.
    """

    def __init__(self, data_dir: str | Path) -> None:
        self._dir = Path(data_dir)
        self._dir.mkdir(parents=True, exist_ok=True)
        self._deferred = _DeferredWrites()
        logger.info("JsonSnapshotStorage ready dir=%s", self._dir)

    def path_for(self, key: str) -> Path:
        return self._dir / f"{key}.json"

    def load(self, key: str) -> list[Record]:
        pending = self._deferred.pending(key)
        if pending is not None:
            return copy.deepcopy(pending)

        path = self.path_for(key)
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text("utf-8"))
        except Exception:
            logger.exception("Failed to read snapshot %s; starting empty.", path)
            return []
        if not isinstance(data, list):
            logger.warning("Snapshot %s is not a JSON array; starting empty.", path)
            return []
        return [r for r in data if isinstance(r, dict)]

    def save(self, key: str, records: list[Record]) -> None:
        records = copy.deepcopy(records)
        if self._deferred.active:
            self._deferred.buffer(key, records)
            return
        self._write(key, records)

    def deferred(self) -> contextlib.AbstractContextManager[None]:
        return self._deferred.frame(self._write_many)

    def _write_many(self, batch: dict[str, list[Record]]) -> None:
        # Every key is staged before any is replaced; a failed dump replaces nothing.
        staged: list[tuple[Path, Path]] = []
        try:
            for key, records in batch.items():
                path = self.path_for(key)
                tmp = path.with_suffix(".tmp")
                staged.append((tmp, path))
                tmp.write_text(json.dumps(records, ensure_ascii=False, indent=2), "utf-8")
        except Exception:
            for tmp, _ in staged:
                tmp.unlink(missing_ok=True)
            logger.error("Snapshot flush aborted keys=%s; nothing replaced.", sorted(batch))
            raise
        for tmp, path in staged:
            os.replace(tmp, path)
        logger.debug("Snapshots written keys=%s", sorted(batch))

    def _write(self, key: str, records: list[Record]) -> None:
        self._write_many({key: records})


class InMemoryStorage:
    """Same contract as JsonSnapshotStorage, kept in a dict (tests, demos)."""

    def __init__(self, initial: dict[str, list[Record]] | None = None) -> None:
        self.data: dict[str, list[Record]] = copy.deepcopy(initial or {})
        self.writes: list[str] = []
        self._deferred = _DeferredWrites()

    def load(self, key: str) -> list[Record]:
        pending = self._deferred.pending(key)
        if pending is not None:
            return copy.deepcopy(pending)
        return copy.deepcopy(self.data.get(key, []))

    def save(self, key: str, records: list[Record]) -> None:
        records = copy.deepcopy(records)
        if self._deferred.active:
            self._deferred.buffer(key, records)
            return
        self._write(key, records)

    def deferred(self) -> contextlib.AbstractContextManager[None]:
        return self._deferred.frame(self._write_many)

    def _write_many(self, batch: dict[str, list[Record]]) -> None:
        self.data.update(batch)
        self.writes.extend(batch)

    def _write(self, key: str, records: list[Record]) -> None:
        self.data[key] = records
        self.writes.append(key)
