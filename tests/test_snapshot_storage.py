# tests/test_snapshot_storage.py

from __future__ import annotations

import json
from pathlib import Path

import pytest

from workdesk.storage.snapshot import KEY_COMMENTS, KEY_TASKS, InMemoryStorage, JsonSnapshotStorage


def test_json_storage_round_trip_and_layout(tmp_path: Path) -> None:
    storage = JsonSnapshotStorage(tmp_path / "data")
    storage.save(KEY_TASKS, [{"id": "t1", "title": "Ünïcode ok"}])

    path = tmp_path / "data" / "tasks.json"
    assert json.loads(path.read_text("utf-8")) == [{"id": "t1", "title": "Ünïcode ok"}]
    assert storage.load(KEY_TASKS) == [{"id": "t1", "title": "Ünïcode ok"}]
    assert storage.load(KEY_COMMENTS) == []
    assert not path.with_suffix(".tmp").exists()


@pytest.mark.parametrize("content", ["{not json", '{"id": "t1"}', "42"])
def test_corrupt_snapshot_loads_empty(tmp_path: Path, content: str) -> None:
    (tmp_path / "tasks.json").write_text(content, "utf-8")
    assert JsonSnapshotStorage(tmp_path).load(KEY_TASKS) == []


def test_save_copies_records() -> None:
    storage = InMemoryStorage()
    records = [{"id": "t1", "tags": ["a"]}]
    storage.save(KEY_TASKS, records)
    records[0]["tags"].append("b")
    assert storage.load(KEY_TASKS) == [{"id": "t1", "tags": ["a"]}]


def test_deferred_writes_flush_once_on_clean_exit(tmp_path: Path) -> None:
    storage = JsonSnapshotStorage(tmp_path)
    with storage.deferred():
        storage.save(KEY_TASKS, [{"id": "1"}])
        storage.save(KEY_TASKS, [{"id": "1"}, {"id": "2"}])
        # Reads inside the block see the pending state.
        assert len(storage.load(KEY_TASKS)) == 2
        assert not (tmp_path / "tasks.json").exists()
    assert [r["id"] for r in storage.load(KEY_TASKS)] == ["1", "2"]


def test_deferred_writes_dropped_on_error() -> None:
    storage = InMemoryStorage({KEY_TASKS: [{"id": "old"}]})
    with pytest.raises(RuntimeError):
        with storage.deferred():
            storage.save(KEY_TASKS, [{"id": "new"}])
            raise RuntimeError("abort")
    assert storage.load(KEY_TASKS) == [{"id": "old"}]
    assert storage.writes == []


def test_nested_deferred_blocks() -> None:
    storage = InMemoryStorage()
    with storage.deferred():
        storage.save(KEY_TASKS, [{"id": "outer"}])
        with pytest.raises(ValueError):
            with storage.deferred():
                storage.save(KEY_COMMENTS, [{"id": "inner-failed"}])
                raise ValueError("inner")
        with storage.deferred():
            storage.save(KEY_COMMENTS, [{"id": "inner-ok"}])
        assert storage.writes == []
    assert storage.data == {KEY_TASKS: [{"id": "outer"}], KEY_COMMENTS: [{"id": "inner-ok"}]}


def test_failed_flush_replaces_no_snapshot(tmp_path: Path) -> None:
    storage = JsonSnapshotStorage(tmp_path)
    storage.save(KEY_TASKS, [{"id": "old"}])

    with pytest.raises(TypeError):
        with storage.deferred():
            storage.save(KEY_TASKS, [{"id": "new"}])
            storage.save(KEY_COMMENTS, [{"id": "c1", "when": object()}])

    assert storage.load(KEY_TASKS) == [{"id": "old"}]
    assert not (tmp_path / "comments.json").exists()
    assert sorted(p.name for p in tmp_path.iterdir()) == ["tasks.json"]
