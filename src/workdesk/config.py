# src/workdesk/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole engine.
- No secrets anywhere; everything has a safe default.
- Point table and review-gate policy are configuration, not code.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "WORKDESK"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


# Local .env never overrides variables already set in the environment.
load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data (one JSON snapshot per logical store) ----
    data_dir: Path

    # ---- Gamification policy ----
    points_task_created: int
    points_task_completed: int
    points_comment_created: int
    level_threshold: int
    badge_bonus: bool

    # ---- Notifications ----
    max_notifications: int

    # ---- Workflow policy ----
    # When on, drag-and-drop moves into/out of review need a reviewer role too.
    force_status_requires_validate: bool

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "workdesk") or "workdesk"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/workdesk"))

        points_task_created = _env_int(_k("POINTS_TASK_CREATED"), 10)
        points_task_completed = _env_int(_k("POINTS_TASK_COMPLETED"), 25)
        points_comment_created = _env_int(_k("POINTS_COMMENT_CREATED"), 5)
        # Guard against division by zero in level computation.
        level_threshold = max(1, _env_int(_k("LEVEL_THRESHOLD"), 100))
        badge_bonus = _env_bool(_k("BADGE_BONUS"), False)

        # 0 means "keep everything".
        max_notifications = max(0, _env_int(_k("MAX_NOTIFICATIONS"), 500))

        force_status_requires_validate = _env_bool(_k("FORCE_STATUS_REQUIRES_VALIDATE"), False)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            points_task_created=points_task_created,
            points_task_completed=points_task_completed,
            points_comment_created=points_comment_created,
            level_threshold=level_threshold,
            badge_bonus=badge_bonus,
            max_notifications=max_notifications,
            force_status_requires_validate=force_status_requires_validate,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
