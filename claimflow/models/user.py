"""User and organization models."""
from __future__ import annotations

import enum
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from flask_login import UserMixin


class Role(enum.Enum):
    REQUESTER = "Requester"
    MANAGER = "Manager"
    CFO = "CFO"
    CEO = "CEO"
    FINANCE = "Finance"


class User(UserMixin):
    def __init__(
        self,
        id: str,
        name: str,
        email: str,
        role: Role,
        manager_id: Optional[str] = None,
    ) -> None:
        self.id = id
        self.name = name
        self.email = email
        self.role = role
        self.manager_id = manager_id

    def get_id(self) -> str:
        return str(self.id)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "User":
        return cls(
            id=str(payload["id"]),
            name=payload.get("name", ""),
            email=payload.get("email", ""),
            role=Role(payload["role"]),
            manager_id=payload.get("manager_id") or None,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "manager_id": self.manager_id,
        }

    def __repr__(self) -> str:
        return f"<User {self.id} role={self.role.value}>"


class ApprovalLimits:
    """Monetary thresholds; escalation happens strictly above each limit."""

    def __init__(self, manager: Decimal, cfo: Decimal, ceo: Decimal) -> None:
        self.manager = Decimal(manager)
        self.cfo = Decimal(cfo)
        self.ceo = Decimal(ceo)

    def is_ordered(self) -> bool:
        return self.manager < self.cfo < self.ceo

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "ApprovalLimits":
        return cls(
            manager=Decimal(str(payload["manager"])),
            cfo=Decimal(str(payload["cfo"])),
            ceo=Decimal(str(payload["ceo"])),
        )

    def to_dict(self) -> dict:
        return {
            "manager": float(self.manager),
            "cfo": float(self.cfo),
            "ceo": float(self.ceo),
        }

    def __repr__(self) -> str:
        return f"<ApprovalLimits manager={self.manager} cfo={self.cfo} ceo={self.ceo}>"


class OrganizationModel:
    """Read-only snapshot of users, reporting lines and approval limits.

    A snapshot is never edited in place; organization setup builds a new one
    and swaps it in wholesale.
    """

    def __init__(self, users: Iterable[User], limits: ApprovalLimits) -> None:
        self._users: Dict[str, User] = {}
        for user in users:
            self._users[user.id] = user
        self.limits = limits

    @property
    def users(self) -> List[User]:
        return list(self._users.values())

    def get_user(self, user_id: Optional[str]) -> Optional[User]:
        if user_id is None:
            return None
        return self._users.get(user_id)

    def find_by_email(self, email: str) -> Optional[User]:
        needle = (email or "").strip().lower()
        return next((u for u in self._users.values() if u.email.lower() == needle), None)

    def users_with_role(self, role: Role) -> List[User]:
        return [u for u in self._users.values() if u.role is role]

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "OrganizationModel":
        users = [User.from_dict(entry) for entry in payload.get("users", [])]
        return cls(users=users, limits=ApprovalLimits.from_dict(payload["limits"]))

    def to_dict(self) -> dict:
        return {
            "users": [user.to_dict() for user in self._users.values()],
            "limits": self.limits.to_dict(),
        }

    def __repr__(self) -> str:
        return f"<OrganizationModel users={len(self._users)} {self.limits!r}>"


def default_organization(
    manager_limit: Decimal = Decimal("1000"),
    cfo_limit: Decimal = Decimal("5000"),
    ceo_limit: Decimal = Decimal("10000"),
) -> OrganizationModel:
    """Demo organization with one user per role and a full reporting line."""
    users = [
        User("u1", "John Doe", "john@example.com", Role.REQUESTER, manager_id="u2"),
        User("u2", "Jane Manager", "jane@example.com", Role.MANAGER, manager_id="u3"),
        User("u3", "Chief Financial", "cfo@example.com", Role.CFO, manager_id="u4"),
        User("u4", "Chief Executive", "ceo@example.com", Role.CEO),
        User("u5", "Finance Team", "finance@example.com", Role.FINANCE),
    ]
    return OrganizationModel(users, ApprovalLimits(manager_limit, cfo_limit, ceo_limit))
