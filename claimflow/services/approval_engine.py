"""Approval chain construction and claim state transitions.

Everything in this module is pure: functions take a claim value and return
a new one. Serializing concurrent writers is the job of ``ClaimStore``.
"""
from __future__ import annotations

import copy
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterable, List, Optional

from claimflow.models import (
    ApprovalStep,
    Approver,
    Bound,
    Decision,
    ExpenseClaim,
    OrganizationModel,
    Role,
    StepStatus,
    Unbound,
    User,
)

logger = logging.getLogger(__name__)

SUBMISSION_COMMENT = "Submitted"


class ApprovalError(Exception):
    """An approve/reject attempt that was refused without any mutation."""


class NotAuthorizedError(ApprovalError):
    pass


class StepNotPendingError(ApprovalError):
    pass


class ClaimFinalizedError(ApprovalError):
    pass


class OrganizationConfigError(Exception):
    """The organization model cannot produce a chain for this requester."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _role_approver(role: Role, org: OrganizationModel) -> Approver:
    holders = org.users_with_role(role)
    if len(holders) == 1:
        return Bound(role, holders[0].id)
    return Unbound(role)


def build_chain(
    requester: User,
    amount: Decimal,
    org: OrganizationModel,
    now: Optional[datetime] = None,
) -> List[ApprovalStep]:
    """Return the ordered approval steps for a claim of ``amount``."""
    if org.get_user(requester.id) is None:
        raise OrganizationConfigError(f"Requester {requester.id!r} is not part of the organization.")

    now = now or _utcnow()
    chain = [
        ApprovalStep(
            Bound(Role.REQUESTER, requester.id),
            status=StepStatus.APPROVED,
            action_date=now,
            comment=SUBMISSION_COMMENT,
        )
    ]

    if requester.manager_id:
        if requester.manager_id == requester.id:
            raise OrganizationConfigError(f"User {requester.id!r} is listed as their own manager.")
        manager = org.get_user(requester.manager_id)
        if manager is not None:
            chain.append(ApprovalStep(Bound(Role.MANAGER, manager.id)))
        else:
            logger.warning(
                "Manager %s of requester %s not found, skipping manager step",
                requester.manager_id,
                requester.id,
            )

    # Strictly above the limit; a claim sitting exactly on it stays below the tier.
    if amount > org.limits.cfo:
        chain.append(ApprovalStep(_role_approver(Role.CFO, org)))
    if amount > org.limits.ceo:
        chain.append(ApprovalStep(_role_approver(Role.CEO, org)))

    chain.append(ApprovalStep(Unbound(Role.FINANCE)))
    return chain


def first_pending_index(chain: List[ApprovalStep]) -> int:
    return next(
        (index for index, step in enumerate(chain) if step.status is StepStatus.PENDING),
        len(chain),
    )


def create_claim(
    claim_id: str,
    requester: User,
    amount: Decimal,
    currency: str,
    org: OrganizationModel,
    now: Optional[datetime] = None,
    **details: Any,
) -> ExpenseClaim:
    """Build a freshly submitted claim with its chain fully populated."""
    if amount < 0:
        raise ValueError("Claim amount cannot be negative.")
    now = now or _utcnow()
    chain = build_chain(requester, amount, org, now=now)
    return ExpenseClaim(
        id=claim_id,
        requester_id=requester.id,
        amount=amount,
        currency=currency,
        approval_chain=chain,
        current_step_index=first_pending_index(chain),
        created_at=now,
        **details,
    )


def can_act(claim: ExpenseClaim, user: User) -> bool:
    step = claim.active_step
    if step is None or not step.is_pending:
        return False
    return step.approver.admits(user)


def act(
    claim: ExpenseClaim,
    actor: User,
    decision: Decision,
    comment: Optional[str] = None,
    now: Optional[datetime] = None,
    step_index: Optional[int] = None,
) -> ExpenseClaim:
    """Apply ``decision`` by ``actor`` to the active step and return the new claim.

    ``step_index`` pins the step the actor was looking at; if the claim has
    moved on since, the attempt fails instead of landing on the next step.
    """
    if claim.is_terminal:
        raise ClaimFinalizedError(f"Claim {claim.id} is already {claim.status.value}.")
    if step_index is not None and step_index != claim.current_step_index:
        raise StepNotPendingError(f"Step {step_index} of claim {claim.id} is no longer pending.")
    step = claim.active_step
    if step is None or not step.is_pending:
        raise StepNotPendingError(f"Claim {claim.id} has no pending step to act on.")
    if not can_act(claim, actor):
        raise NotAuthorizedError(
            f"User {actor.id} ({actor.role.value}) may not act on the "
            f"{step.approver_role.value} step of claim {claim.id}."
        )

    now = now or _utcnow()
    updated = copy.deepcopy(claim)
    active = updated.approval_chain[updated.current_step_index]
    active.status = StepStatus.APPROVED if decision is Decision.APPROVE else StepStatus.REJECTED
    active.action_date = now
    active.comment = comment
    active.approver = Bound(active.approver_role, actor.id)

    if decision is Decision.APPROVE:
        # Past the last step the cursor sits at len(chain), marking full approval.
        updated.current_step_index += 1

    updated.updated_at = now
    updated.version += 1
    return updated


def awaits_finance(claim: ExpenseClaim) -> bool:
    step = claim.active_step
    return step is not None and step.is_pending and step.approver_role is Role.FINANCE


def entered_finance_stage(before: ExpenseClaim, after: ExpenseClaim) -> bool:
    """True when a committed transition moved the cursor onto the Finance step."""
    if after.current_step_index == before.current_step_index:
        return False
    return awaits_finance(after)


def awaiting_action(claims: Iterable[ExpenseClaim], user: User) -> List[ExpenseClaim]:
    return [claim for claim in claims if can_act(claim, user)]


def has_acted_on(claim: ExpenseClaim, user: User) -> bool:
    return any(
        step.is_decided
        and step.approver_role is not Role.REQUESTER
        and step.approver.admits(user)
        for step in claim.approval_chain
    )


def acted_on(claims: Iterable[ExpenseClaim], user: User) -> List[ExpenseClaim]:
    return [claim for claim in claims if has_acted_on(claim, user)]
