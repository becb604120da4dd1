"""In-memory claim repository with optimistic per-claim transitions."""
from __future__ import annotations

import copy
import logging
import threading
import uuid
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from claimflow.models import AccountingProposal, Decision, ExpenseClaim, OrganizationModel, User
from claimflow.services import approval_engine

logger = logging.getLogger(__name__)

ProposalHook = Callable[[ExpenseClaim], None]


class ClaimNotFoundError(LookupError):
    pass


class ConcurrentUpdateError(RuntimeError):
    pass


class ClaimStore:
    """Holds the committed value of every submitted claim.

    Callers only ever receive copies; the stored value changes solely through
    ``transition`` and ``attach_proposal``, each of which bumps ``version``.
    """

    def __init__(self, max_retries: int = 5, proposal_hook: Optional[ProposalHook] = None) -> None:
        self._lock = threading.Lock()
        self._claims: Dict[str, ExpenseClaim] = {}
        self.max_retries = max_retries
        self.proposal_hook = proposal_hook

    def init_app(self, app) -> None:
        self.max_retries = app.config.get("CLAIM_MAX_RETRIES", self.max_retries)
        app.extensions["claim_store"] = self

    def clear(self) -> None:
        with self._lock:
            self._claims.clear()

    def submit(
        self,
        requester: User,
        amount: Decimal,
        currency: str,
        org: OrganizationModel,
        **details: Any,
    ) -> ExpenseClaim:
        """Build the claim's chain and store it; nothing is stored if that fails."""
        claim = approval_engine.create_claim(
            uuid.uuid4().hex[:12], requester, amount, currency, org, **details
        )
        with self._lock:
            self._claims[claim.id] = claim
        logger.info(
            "Claim %s submitted by %s for %s %s with %d steps",
            claim.id,
            requester.id,
            amount,
            currency,
            len(claim.approval_chain),
        )
        if approval_engine.awaits_finance(claim):
            self._fire_proposal_hook(claim)
        return copy.deepcopy(claim)

    def get(self, claim_id: str) -> ExpenseClaim:
        with self._lock:
            claim = self._claims.get(claim_id)
            if claim is None:
                raise ClaimNotFoundError(f"Claim {claim_id} not found.")
            return copy.deepcopy(claim)

    def all(self) -> List[ExpenseClaim]:
        with self._lock:
            return [copy.deepcopy(claim) for claim in self._claims.values()]

    def for_requester(self, user_id: str) -> List[ExpenseClaim]:
        return [claim for claim in self.all() if claim.requester_id == user_id]

    def transition(
        self,
        claim_id: str,
        actor: User,
        decision: Decision,
        comment: Optional[str] = None,
        step_index: Optional[int] = None,
    ) -> ExpenseClaim:
        """Approve or reject the active step of a stored claim.

        The decision is computed against a snapshot and committed only if no
        other writer got in first; otherwise it is recomputed, so a losing
        racer sees the new state and fails its preconditions.
        """
        for attempt in range(1, self.max_retries + 1):
            snapshot = self.get(claim_id)
            try:
                updated = approval_engine.act(snapshot, actor, decision, comment, step_index=step_index)
            except approval_engine.ApprovalError as exc:
                logger.warning("Refused %s on claim %s by %s: %s", decision.value, claim_id, actor.id, exc)
                raise

            with self._lock:
                if self._claims[claim_id].version != snapshot.version:
                    logger.info("Claim %s changed underneath attempt %d, retrying", claim_id, attempt)
                    continue
                self._claims[claim_id] = updated
                committed = copy.deepcopy(updated)

            logger.info(
                "Claim %s: %s by %s, now %s at step %d",
                claim_id,
                decision.value,
                actor.id,
                committed.status.value,
                committed.current_step_index,
            )
            if approval_engine.entered_finance_stage(snapshot, committed):
                self._fire_proposal_hook(committed)
            return committed

        raise ConcurrentUpdateError(f"Claim {claim_id} kept changing; gave up after {self.max_retries} attempts.")

    def attach_proposal(self, claim_id: str, proposal: AccountingProposal) -> bool:
        """Merge an accounting proposal; chain, cursor and status are untouched."""
        with self._lock:
            claim = self._claims.get(claim_id)
            if claim is None:
                logger.warning("Dropping accounting proposal for unknown claim %s", claim_id)
                return False
            claim.accounting_proposal = proposal
            claim.version += 1
        logger.info("Attached %s accounting proposal to claim %s", proposal.status.value, claim_id)
        return True

    def _fire_proposal_hook(self, claim: ExpenseClaim) -> None:
        if self.proposal_hook is None:
            return
        try:
            self.proposal_hook(copy.deepcopy(claim))
        except Exception:  # the transition is already committed
            logger.exception("Accounting proposal hook failed for claim %s", claim.id)
