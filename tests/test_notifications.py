# tests/test_notifications.py

from __future__ import annotations

import pytest

from workdesk.errors import NotFoundError, ValidationError
from workdesk.notifications.emitter import NotificationEmitter
from workdesk.notifications.models import NotificationType
from workdesk.storage.snapshot import KEY_NOTIFICATIONS, InMemoryStorage

from .fakes import FakeClock, FakeUser

EMP = FakeUser("emp-1", "employee")
HR = FakeUser("hr-1", "hr")
MGR = FakeUser("mgr-1", "manager")


@pytest.fixture()
def emitter(clock: FakeClock) -> NotificationEmitter:
    e = NotificationEmitter(InMemoryStorage(), clock=clock)
    e.init()
    return e


def _note(emitter: NotificationEmitter, to: str, title: str = "Hello"):
    return emitter.notify(user_id=to, title=title, message="...", type="info")


def test_list_for_matches_id_and_broadcast_classes(emitter: NotificationEmitter) -> None:
    direct = _note(emitter, "emp-1", "direct")
    everyone = _note(emitter, "all", "everyone")
    hr_only = _note(emitter, "hr", "hr only")
    employees = _note(emitter, "employee", "employees")
    _note(emitter, "emp-2", "someone else")

    assert emitter.list_for(EMP) == [employees, everyone, direct]
    assert emitter.list_for(HR) == [hr_only, everyone]
    assert emitter.list_for(MGR) == [hr_only, everyone]


def test_unknown_type_falls_back_to_info(emitter: NotificationEmitter) -> None:
    n = emitter.notify(user_id="emp-1", title="t", message="m", type="carrier-pigeon")
    assert n.type == NotificationType.INFO


def test_emit_requires_target(emitter: NotificationEmitter) -> None:
    with pytest.raises(ValidationError):
        emitter.notify(user_id="", title="t", message="m")


def test_mark_all_read_is_idempotent(emitter: NotificationEmitter) -> None:
    _note(emitter, "emp-1")
    _note(emitter, "all")
    other = _note(emitter, "emp-2")

    assert emitter.unread_count(EMP) == 2
    assert emitter.mark_all_read(EMP) == 2
    first = emitter.all()
    assert emitter.mark_all_read(EMP) == 0
    assert emitter.all() == first
    assert emitter.unread_count(EMP) == 0
    # Not addressed to emp-1: untouched.
    assert [n for n in emitter.all() if n.id == other.id][0].read is False


def test_mark_read_and_delete(emitter: NotificationEmitter) -> None:
    n = _note(emitter, "emp-1")
    emitter.mark_read(n.id)
    emitter.mark_read(n.id)
    assert emitter.unread_count(EMP) == 0

    emitter.delete(n.id)
    assert emitter.all() == []
    with pytest.raises(NotFoundError):
        emitter.mark_read(n.id)
    with pytest.raises(NotFoundError):
        emitter.delete(n.id)


def test_clear_all_persists_empty_log(clock: FakeClock) -> None:
    storage = InMemoryStorage()
    e = NotificationEmitter(storage, clock=clock)
    e.init()
    _note(e, "all")
    e.clear_all()
    assert storage.data[KEY_NOTIFICATIONS] == []


def test_retention_cap_drops_oldest(clock: FakeClock) -> None:
    e = NotificationEmitter(InMemoryStorage(), clock=clock, max_items=2)
    e.init()
    for i in range(4):
        _note(e, "emp-1", f"n{i}")
    assert [n.title for n in e.list_for(EMP)] == ["n3", "n2"]


def test_snapshot_is_newest_first_and_reloads(clock: FakeClock) -> None:
    storage = InMemoryStorage()
    e = NotificationEmitter(storage, clock=clock)
    e.init()
    for title in ("a", "b", "c"):
        _note(e, "emp-1", title)

    assert [r["title"] for r in storage.data[KEY_NOTIFICATIONS]] == ["c", "b", "a"]
    assert storage.data[KEY_NOTIFICATIONS][0]["userId"] == "emp-1"

    reloaded = NotificationEmitter(storage, clock=clock)
    reloaded.init()
    assert reloaded.all() == e.all()
