# tests/test_task_store.py

from __future__ import annotations

import itertools
import json
from datetime import UTC, date, datetime, timedelta
from pathlib import Path

import pytest

from workdesk.errors import ConflictError, InvalidTransition, NotFoundError, ValidationError
from workdesk.storage.snapshot import KEY_TASKS, InMemoryStorage, JsonSnapshotStorage
from workdesk.tasks.task_models import TRANSITIONS, TaskPriority, TaskStatus
from workdesk.tasks.task_store import TaskStore

from .fakes import FakeClock


@pytest.fixture()
def store(clock: FakeClock) -> TaskStore:
    s = TaskStore(InMemoryStorage(), clock=clock)
    s.init()
    return s


def _new(store: TaskStore, **extra) -> str:
    data = {"title": "Review contract", "created_by": "emp-1"}
    data.update(extra)
    return store.create(data).id


def test_create_defaults_and_list_round_trip(store: TaskStore, clock: FakeClock) -> None:
    start = clock.now
    t = store.create(
        {
            "title": "  Prepare onboarding pack  ",
            "created_by": "mgr-1",
            "assigned_to": "emp-1",
            "priority": "high",
            "due_date": "2024-03-20",
            "tags": ["onboarding", "q1"],
            "estimated_hours": "3.5",
        }
    )

    assert t.title == "  Prepare onboarding pack  "
    assert t.status == TaskStatus.TODO
    assert t.priority == TaskPriority.HIGH
    assert t.due_date == date(2024, 3, 20)
    assert t.tags == ("onboarding", "q1")
    assert t.estimated_hours == 3.5
    assert t.created_at == t.updated_at == start
    assert store.list() == (t,)
    assert store.get(t.id) == t


def test_create_keeps_input_fields_verbatim(store: TaskStore) -> None:
    created = store.create(
        {
            "title": "  Padded title ",
            "description": " notes\n",
            "created_by": "emp-1",
            "attachments": ["a.pdf", " "],
            "tags": ["HR", " q1"],
        }
    )

    [listed] = store.list()
    assert listed == created
    assert listed.title == "  Padded title "
    assert listed.description == " notes\n"
    assert listed.attachments == ("a.pdf", " ")
    assert listed.tags == ("HR", " q1")


@pytest.mark.parametrize(
    "data",
    [
        {"title": "", "created_by": "emp-1"},
        {"title": "   ", "created_by": "emp-1"},
        {"title": "x" * 201, "created_by": "emp-1"},
        {"title": "ok", "created_by": ""},
        {"title": "ok", "created_by": "emp-1", "priority": "critical"},
        {"title": "ok", "created_by": "emp-1", "status": "blocked"},
        {"title": "ok", "created_by": "emp-1", "due_date": "next week"},
        {"title": "ok", "created_by": "emp-1", "estimated_hours": -1},
    ],
)
def test_create_rejects_bad_input(store: TaskStore, data: dict) -> None:
    with pytest.raises(ValidationError):
        store.create(data)
    assert store.count() == 0


def test_list_is_an_immutable_snapshot(store: TaskStore) -> None:
    _new(store)
    snapshot = store.list()
    _new(store, title="Second")
    assert isinstance(snapshot, tuple)
    assert len(snapshot) == 1
    assert [t.title for t in store.list()] == ["Review contract", "Second"]


@pytest.mark.parametrize(("src", "dst"), list(itertools.product(TaskStatus, TaskStatus)))
def test_set_status_follows_transition_graph(
    store: TaskStore, src: TaskStatus, dst: TaskStatus
) -> None:
    task_id = _new(store)
    store.force_status(task_id, src)
    before = store.get(task_id)

    if (src, dst) in TRANSITIONS:
        assert store.set_status(task_id, dst).status == dst
    else:
        with pytest.raises(InvalidTransition):
            store.set_status(task_id, dst)
        assert store.get(task_id) == before


def test_happy_path_records_history_and_completed_at(store: TaskStore) -> None:
    task_id = _new(store)
    store.set_status(task_id, TaskStatus.IN_PROGRESS)
    store.set_status(task_id, TaskStatus.REVIEW)
    done = store.set_status(task_id, TaskStatus.COMPLETED)

    assert done.completed_at is not None
    assert [(h.from_status, h.to_status, h.forced) for h in done.history] == [
        (TaskStatus.TODO, TaskStatus.IN_PROGRESS, False),
        (TaskStatus.IN_PROGRESS, TaskStatus.REVIEW, False),
        (TaskStatus.REVIEW, TaskStatus.COMPLETED, False),
    ]


def test_force_status_skips_the_gate_and_is_flagged(store: TaskStore) -> None:
    task_id = _new(store)
    forced = store.force_status(task_id, "completed")
    assert forced.status == TaskStatus.COMPLETED
    assert forced.completed_at is not None
    assert forced.history[-1].forced is True

    reopened = store.force_status(task_id, TaskStatus.TODO)
    assert reopened.completed_at is None
    # Same status: no-op, no extra history entry.
    assert store.force_status(task_id, TaskStatus.TODO) == reopened


def test_update_merges_patch_and_bumps_updated_at(store: TaskStore) -> None:
    task_id = _new(store, description="draft")
    before = store.get(task_id)
    after = store.update(task_id, {"title": "Review signed contract", "assigned_to": "emp-2"})

    assert after.title == "Review signed contract"
    assert after.assigned_to == "emp-2"
    assert after.description == "draft"
    assert after.created_at == before.created_at
    assert after.updated_at > before.updated_at


@pytest.mark.parametrize("field", ["id", "created_by", "created_at", "status"])
def test_update_refuses_protected_fields(store: TaskStore, field: str) -> None:
    task_id = _new(store)
    with pytest.raises(ValidationError):
        store.update(task_id, {field: "x"})


def test_update_optimistic_version_check(store: TaskStore) -> None:
    task_id = _new(store)
    seen = store.get(task_id).updated_at
    store.update(task_id, {"title": "First writer"}, expected_updated_at=seen)

    with pytest.raises(ConflictError):
        store.update(task_id, {"title": "Second writer"}, expected_updated_at=seen)
    assert store.get(task_id).title == "First writer"


def test_updated_at_never_goes_backwards(store: TaskStore, clock: FakeClock) -> None:
    task_id = _new(store)
    stamped = store.update(task_id, {"title": "Later"}).updated_at

    clock.set(stamped - timedelta(hours=3))
    again = store.update(task_id, {"title": "Clock stepped back"})
    assert again.updated_at >= stamped
    assert again.updated_at >= again.created_at


def test_unknown_ids_raise_not_found(store: TaskStore) -> None:
    for call in (
        lambda: store.get("missing"),
        lambda: store.update("missing", {"title": "x"}),
        lambda: store.delete("missing"),
        lambda: store.set_status("missing", TaskStatus.IN_PROGRESS),
        lambda: store.force_status("missing", TaskStatus.DONE),
    ):
        with pytest.raises(NotFoundError):
            call()


def test_every_mutation_persists_full_collection(clock: FakeClock) -> None:
    storage = InMemoryStorage()
    store = TaskStore(storage, clock=clock)
    store.init()

    a = _new(store, title="A")
    b = _new(store, title="B")
    store.delete(a)

    assert storage.writes == [KEY_TASKS, KEY_TASKS, KEY_TASKS]
    assert [r["id"] for r in storage.data[KEY_TASKS]] == [b]


def test_snapshot_reload_round_trip(tmp_path: Path, clock: FakeClock) -> None:
    storage = JsonSnapshotStorage(tmp_path)
    store = TaskStore(storage, clock=clock)
    store.init()
    task_id = _new(store, assigned_to="emp-1", attachments=["brief.pdf"], due_date=date(2024, 4, 1))
    store.set_status(task_id, TaskStatus.IN_PROGRESS)

    reloaded = TaskStore(JsonSnapshotStorage(tmp_path), clock=clock)
    reloaded.init()
    assert reloaded.list() == store.list()

    raw = json.loads((tmp_path / "tasks.json").read_text("utf-8"))
    assert raw[0]["status"] == "in_progress"
    assert raw[0]["history"][0] == {
        "from": "todo",
        "to": "in_progress",
        "at": raw[0]["updated_at"],
        "forced": False,
    }


def test_init_skips_malformed_records(clock: FakeClock) -> None:
    storage = InMemoryStorage(
        {
            KEY_TASKS: [
                {"id": "ok", "title": "Fine", "created_by": "u", "created_at": "2024-01-01T00:00:00Z"},
                {"id": "bad", "title": "No timestamps"},
                {"title": "No id", "created_at": "2024-01-01T00:00:00Z"},
            ]
        }
    )
    store = TaskStore(storage, clock=clock)
    store.init()

    assert [t.id for t in store.list()] == ["ok"]
    t = store.get("ok")
    assert t.updated_at == t.created_at == datetime(2024, 1, 1, tzinfo=UTC)
