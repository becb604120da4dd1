"""Approval step models."""
from __future__ import annotations

import enum
from datetime import datetime
from typing import Optional

from .user import Role


class StepStatus(enum.Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    SKIPPED = "Skipped"


class Approver:
    """Who may sign off a step: any holder of a role, or one bound user."""

    role: Role
    user_id: Optional[str] = None

    def admits(self, user) -> bool:
        raise NotImplementedError


class Unbound(Approver):
    def __init__(self, role: Role) -> None:
        self.role = role

    def admits(self, user) -> bool:
        return user.role is self.role

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Unbound) and other.role is self.role

    def __repr__(self) -> str:
        return f"Unbound({self.role.value})"


class Bound(Approver):
    def __init__(self, role: Role, user_id: str) -> None:
        self.role = role
        self.user_id = user_id

    def admits(self, user) -> bool:
        return user.role is self.role and user.id == self.user_id

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, Bound)
            and other.role is self.role
            and other.user_id == self.user_id
        )

    def __repr__(self) -> str:
        return f"Bound({self.role.value}, {self.user_id})"


class ApprovalStep:
    def __init__(
        self,
        approver: Approver,
        status: StepStatus = StepStatus.PENDING,
        action_date: Optional[datetime] = None,
        comment: Optional[str] = None,
    ) -> None:
        self.approver = approver
        self.status = status
        self.action_date = action_date
        self.comment = comment

    @property
    def approver_role(self) -> Role:
        return self.approver.role

    @property
    def approver_id(self) -> Optional[str]:
        return self.approver.user_id

    @property
    def is_pending(self) -> bool:
        return self.status is StepStatus.PENDING

    @property
    def is_decided(self) -> bool:
        return self.status in (StepStatus.APPROVED, StepStatus.REJECTED)

    def to_dict(self) -> dict:
        return {
            "approver_role": self.approver_role.value,
            "approver_id": self.approver_id,
            "status": self.status.value,
            "action_date": self.action_date.isoformat() if self.action_date else None,
            "comment": self.comment,
        }

    def __repr__(self) -> str:
        return f"<ApprovalStep {self.approver!r} status={self.status.value}>"
