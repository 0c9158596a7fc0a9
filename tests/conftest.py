# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from workdesk.bootstrap import create_initial_state
from workdesk.core.state import AppState
from workdesk.directory.employees import Employee
from workdesk.storage.snapshot import KEY_EMPLOYEES, InMemoryStorage

from .fakes import FakeClock

EMPLOYEES = [
    {
        "id": "emp-1",
        "first_name": "Eve",
        "last_name": "Stone",
        "email": "eve.stone@corp.example",
        "role": "employee",
        "department": "Sales",
        "manager_id": "mgr-1",
    },
    {
        "id": "emp-2",
        "first_name": "Bob",
        "last_name": "Ray",
        "email": "bob@corp.example",
        "role": "employee",
        "department": "Support",
    },
    {
        "id": "mgr-1",
        "first_name": "Mia",
        "last_name": "Cole",
        "email": "mia@corp.example",
        "role": "manager",
        "department": "Sales",
    },
    {
        "id": "adm-1",
        "first_name": "Ada",
        "last_name": "Lane",
        "email": "ada@corp.example",
        "role": "admin",
        "department": "IT",
    },
    {
        "id": "hr-1",
        "first_name": "Hana",
        "last_name": "Park",
        "email": "hana@corp.example",
        "role": "hr",
        "department": "People",
    },
]


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap and the stores.

    A SimpleNamespace rather than the real config keeps tests independent
    of the environment and of any local .env file.
    """
    return SimpleNamespace(
        app_name="workdesk-test",
        log_level="DEBUG",
        data_dir=tmp_path / "data",
        points_task_created=10,
        points_task_completed=25,
        points_comment_created=5,
        level_threshold=100,
        badge_bonus=False,
        max_notifications=0,
        force_status_requires_validate=False,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def storage() -> InMemoryStorage:
    return InMemoryStorage({KEY_EMPLOYEES: EMPLOYEES})


@pytest.fixture()
def state(settings: SimpleNamespace, storage: InMemoryStorage, clock: FakeClock) -> AppState:
    """AppState wired exactly like production, on in-memory snapshots and a fake clock."""
    return create_initial_state(settings=settings, storage=storage, clock=clock)


def _employee(state: AppState, user_id: str) -> Employee:
    e = state.directory.get(user_id)
    assert e is not None
    return e


@pytest.fixture()
def emp(state: AppState) -> Employee:
    return _employee(state, "emp-1")


@pytest.fixture()
def emp2(state: AppState) -> Employee:
    return _employee(state, "emp-2")


@pytest.fixture()
def manager(state: AppState) -> Employee:
    return _employee(state, "mgr-1")


@pytest.fixture()
def admin(state: AppState) -> Employee:
    return _employee(state, "adm-1")


@pytest.fixture()
def hr(state: AppState) -> Employee:
    return _employee(state, "hr-1")
