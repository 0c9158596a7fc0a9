# tests/test_bootstrap.py

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from workdesk.bootstrap import create_initial_state, init_logging
from workdesk.config import Settings
from workdesk.logging_setup import _ConsoleNoiseFilter, level_from_name
from workdesk.storage.snapshot import KEY_EMPLOYEES, KEY_TASKS

from .conftest import EMPLOYEES
from .fakes import FakeClock


def test_state_survives_restart_on_json_snapshots(settings, tmp_path: Path) -> None:
    data_dir = settings.data_dir
    data_dir.mkdir(parents=True)
    (data_dir / f"{KEY_EMPLOYEES}.json").write_text(json.dumps(EMPLOYEES), "utf-8")

    first = create_initial_state(settings=settings, clock=FakeClock())
    emp = first.directory.get("emp-1")
    mgr = first.directory.get("mgr-1")
    task = first.workflow.create_task(emp, {"title": "Persisted", "assigned_to": emp.id})
    first.workflow.start_work(emp, task.id)
    first.workflow.add_comment(emp, task.id, "note for @mia")
    assert (data_dir / f"{KEY_TASKS}.json").exists()

    second = create_initial_state(settings=settings)
    assert second.tasks.list() == first.tasks.list()
    assert second.notifications.all() == first.notifications.all()
    assert second.scorer.stats_for(emp.id) == first.scorer.stats_for(emp.id)
    assert second.comments.threads_for(task.id) == first.comments.threads_for(task.id)
    assert second.notifications.unread_count(mgr) == 1


def test_settings_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("WORKDESK_DATA_DIR", str(tmp_path / "wd"))
    monkeypatch.setenv("WORKDESK_POINTS_TASK_COMPLETED", "40")
    monkeypatch.setenv("WORKDESK_LEVEL_THRESHOLD", "0")
    monkeypatch.setenv("WORKDESK_MAX_NOTIFICATIONS", "oops")
    monkeypatch.setenv("WORKDESK_FORCE_STATUS_REQUIRES_VALIDATE", "yes")

    s = Settings.from_env()
    assert s.data_dir == tmp_path / "wd"
    assert s.points_task_completed == 40
    assert s.points_task_created == 10
    assert s.level_threshold == 1
    assert s.max_notifications == 500
    assert s.force_status_requires_validate is True
    assert s.badge_bonus is False


def test_level_from_name() -> None:
    assert level_from_name("debug") == logging.DEBUG
    assert level_from_name("nonsense", logging.WARNING) == logging.WARNING
    assert level_from_name(None) == logging.INFO


def test_init_logging_writes_log_file(settings) -> None:
    root = logging.getLogger()
    saved = list(root.handlers), root.level
    try:
        init_logging(settings)
        log_file = init_logging(settings)
        assert len(root.handlers) == len(saved[0]) + 2
        logging.getLogger("workdesk.test").info("hello log")
        for h in root.handlers:
            h.flush()
        assert log_file == settings.data_dir / "workdesk.log"
        assert "hello log" in log_file.read_text("utf-8")
    finally:
        for h in [h for h in root.handlers if h not in saved[0]]:
            root.removeHandler(h)
            h.close()
        root.setLevel(saved[1])
        logging.captureWarnings(False)


@pytest.mark.parametrize(
    ("name", "level", "shown"),
    [
        ("workdesk.tasks.workflow", logging.INFO, True),
        ("workdesk.storage.snapshot", logging.DEBUG, False),
        ("workdesk.storage.snapshot", logging.WARNING, True),
        ("py.warnings", logging.WARNING, False),
        ("urllib3", logging.WARNING, False),
        ("urllib3", logging.ERROR, True),
    ],
)
def test_console_noise_filter(name: str, level: int, shown: bool) -> None:
    record = logging.LogRecord(name, level, __file__, 1, "msg", None, None)
    assert _ConsoleNoiseFilter().filter(record) is shown
