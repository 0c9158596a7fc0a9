# src/workdesk/directory/employees.py

"""
Employee directory: read-only collaborator of the workflow engine.

The engine never writes employees; it only resolves ids to roles, names and
managers. Records come from the "employees" snapshot (or are injected directly).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from ..core.ports import SnapshotStorage
from ..storage.snapshot import KEY_EMPLOYEES

logger = logging.getLogger(__name__)


class Role(StrEnum):
    EMPLOYEE = "employee"
    HR = "hr"
    MANAGER = "manager"
    ADMIN = "admin"

    @classmethod
    def from_raw(cls, raw: object) -> Role:
        try:
            return cls(str(raw or "").strip().lower())
        except ValueError:
            return cls.EMPLOYEE


# Pass the review gate.
PRIVILEGED_ROLES = frozenset({Role.ADMIN, Role.MANAGER})
# See and edit every task; hr included.
OVERSIGHT_ROLES = PRIVILEGED_ROLES | {Role.HR}


@dataclass(frozen=True, slots=True)
class Employee:
    id: str
    first_name: str
    last_name: str
    email: str
    role: Role
    department: str = ""
    status: str = "active"
    manager_id: str | None = None

    @property
    def full_name(self) -> str:
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.email or self.id

    @property
    def is_active(self) -> bool:
        return self.status.lower() == "active"

    @staticmethod
    def from_dict(raw: dict[str, Any]) -> Employee:
        manager = raw.get("manager_id")
        return Employee(
            id=str(raw["id"]),
            first_name=str(raw.get("first_name") or ""),
            last_name=str(raw.get("last_name") or ""),
            email=str(raw.get("email") or ""),
            role=Role.from_raw(raw.get("role")),
            department=str(raw.get("department") or ""),
            status=str(raw.get("status") or "active"),
            manager_id=str(manager) if manager not in (None, "") else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "role": self.role.value,
            "department": self.department,
            "status": self.status,
            "manager_id": self.manager_id,
        }


class EmployeeDirectory:
    """In-memory lookup over employee records."""

    def __init__(self, employees: Iterable[Employee] = ()) -> None:
        self._by_id: dict[str, Employee] = {}
        for e in employees:
            self._by_id[e.id] = e

    @classmethod
    def from_storage(cls, storage: SnapshotStorage) -> EmployeeDirectory:
        employees: list[Employee] = []
        for raw in storage.load(KEY_EMPLOYEES):
            try:
                employees.append(Employee.from_dict(raw))
            except KeyError:
                logger.warning("Skipping employee record without id: %r", raw)
        logger.info("EmployeeDirectory loaded total=%d", len(employees))
        return cls(employees)

    def get(self, user_id: str | None) -> Employee | None:
        if not user_id:
            return None
        return self._by_id.get(str(user_id))

    def __contains__(self, user_id: object) -> bool:
        return isinstance(user_id, str) and user_id in self._by_id

    def __len__(self) -> int:
        return len(self._by_id)

    def all(self) -> list[Employee]:
        return list(self._by_id.values())

    def display_name(self, user_id: str | None) -> str:
        e = self.get(user_id)
        return e.full_name if e else "Unknown user"

    def reviewers(self) -> list[Employee]:
        """Active admins/managers: the people who can pass the review gate."""
        return [e for e in self._by_id.values() if e.role in PRIVILEGED_ROLES and e.is_active]

    def is_manager_of(self, manager_id: str, employee_id: str | None) -> bool:
        e = self.get(employee_id)
        return e is not None and e.manager_id is not None and e.manager_id == manager_id

    def find_by_handle(self, handle: str) -> Employee | None:
        """
        Resolve an @mention token to an employee.

        Tried in order: id, email local part, "first.last", unique first name.
        Matching is case-insensitive; ambiguous first names resolve to nothing.
        """
        raw = (handle or "").strip()
        if not raw:
            return None
        if raw in self._by_id:
            return self._by_id[raw]
        h = raw.lower()
        for e in self._by_id.values():
            if e.id.lower() == h:
                return e
        for e in self._by_id.values():
            if e.email and e.email.split("@", 1)[0].lower() == h:
                return e
        for e in self._by_id.values():
            joined = f"{e.first_name}.{e.last_name}".lower().replace(" ", "")
            if joined == h:
                return e
        firsts = [e for e in self._by_id.values() if e.first_name.lower() == h]
        return firsts[0] if len(firsts) == 1 else None
